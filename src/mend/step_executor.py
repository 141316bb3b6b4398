# mend/step_executor.py
"""
StepExecutor - runs a MendPlan one step at a time.

Per step:
    PENDING → RESOLVING → BEFORE_HOOKS → RUNNING_RECIPE → AFTER_HOOKS
            → COMMITTING → DONE
Any stage may end in FAILED, which stops the whole run. Nothing is retried
and nothing is reverted: the working tree is left as the failing command
left it.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .command_executor import CommandExecutor
from .exceptions import (
    CommitFailure,
    HookFailure,
    RecipeFailure,
    RepositoryError,
    ResolveFailure,
    StepError,
    TemplateError,
)
from .mend_config import MendPlan, Recipe, Step
from .notifier import Notifier
from .repository import Repository
from .run_report import RunReport, StepFailure, StepOutcome, StepResult, StepState
from .run_result import CommandResult, ResolvedCommand
from .tag_matcher import select_hooks
from .template import build_environment, expand

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedStep:
    """Everything a step will run, fully expanded. Also the dry-run view."""

    index: int
    step: Step
    recipe: Recipe
    before_hooks: tuple[ResolvedCommand, ...]
    recipe_command: ResolvedCommand
    after_hooks: tuple[ResolvedCommand, ...]
    commit_message: str

    @property
    def commands(self) -> list[ResolvedCommand]:
        return [*self.before_hooks, self.recipe_command, *self.after_hooks]


class StepExecutor:
    """
    Owns the run state of a plan: which step is in flight and the results
    so far. Each command is awaited before the next one starts, and a step's
    commit finishes before the next step's hooks run.
    """

    def __init__(
        self,
        plan: MendPlan,
        executor: CommandExecutor,
        repository: Repository,
        *,
        cwd: str | Path | None = None,
        notifier: Notifier | None = None,
        skip_unchanged: bool = False,
        base_env: Mapping[str, str] | None = None,
    ):
        """
        Args:
            plan: The merged plan to run
            executor: Runs hooks and recipes
            repository: Receives one commit per successful step
            cwd: Working directory for every command (None → current directory)
            notifier: Progress callbacks (default: silent)
            skip_unchanged: When True, a step whose commands left the tree
                unchanged is recorded as SKIPPED instead of committing. When
                False (default) the commit is always attempted and an empty
                commit fails the step.
            base_env: Inherited environment (default: os.environ)
        """
        self.plan = plan
        self._executor = executor
        self._repository = repository
        self._cwd = cwd
        self._notifier = notifier or Notifier()
        self._skip_unchanged = skip_unchanged
        self._env = build_environment(plan.env, base_env)

        self._current_index: int | None = None
        self._results: list[StepResult] = []

        logger.debug(
            f"StepExecutor initialized with {len(plan.steps)} steps, "
            f"{len(plan.recipes)} recipes (skip_unchanged={skip_unchanged})"
        )

    # ------------------------------------------------------------------ #
    # Read-only views
    # ------------------------------------------------------------------ #
    @property
    def env(self) -> dict[str, str]:
        return self._env.copy()

    @property
    def current_index(self) -> int | None:
        """Index of the step in flight, or None between runs."""
        return self._current_index

    @property
    def results(self) -> list[StepResult]:
        return self._results.copy()

    # ------------------------------------------------------------------ #
    # Resolution
    # ------------------------------------------------------------------ #
    def resolve(self, index: int, step: Step) -> ResolvedStep:
        """
        Expand a step into the exact commands and message it will use.

        Raises:
            ResolveFailure: Unknown recipe, or a template that cannot expand
        """
        recipe = self.plan.recipes.get(step.recipe)
        if recipe is None:
            known = ", ".join(sorted(self.plan.recipes)) or "(none)"
            raise ResolveFailure(
                f"Recipe '{step.recipe}' not found. Available: {known}",
                step_index=index,
                recipe=step.recipe,
            )

        try:
            command = expand(recipe.run, self._env, step.args)
            if recipe.commit_template is not None:
                message = expand(recipe.commit_template, self._env, step.args)
            else:
                message = str(step)
            before = tuple(
                ResolvedCommand(expand(hook.run, self._env), "before_step", i)
                for i, hook in select_hooks(self.plan.before_step, recipe.tags)
            )
            after = tuple(
                ResolvedCommand(expand(hook.run, self._env), "after_step", i)
                for i, hook in select_hooks(self.plan.after_step, recipe.tags)
            )
        except TemplateError as e:
            raise ResolveFailure(str(e), step_index=index, recipe=step.recipe) from e

        return ResolvedStep(
            index=index,
            step=step,
            recipe=recipe,
            before_hooks=before,
            recipe_command=ResolvedCommand(command.strip(), "recipe"),
            after_hooks=after,
            commit_message=message,
        )

    def preview(self) -> list[ResolvedStep]:
        """Resolve every step without running anything (dry run)."""
        return [self.resolve(i, step) for i, step in enumerate(self.plan.steps)]

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #
    async def run(self, *, start_at: int = 0) -> RunReport:
        """
        Run the plan's steps in order, stopping after the first failure.

        Args:
            start_at: Zero-based index of the first step to run. Earlier
                steps are assumed to be committed already.

        Returns:
            RunReport with one entry per step attempted
        """
        if not 0 <= start_at <= len(self.plan.steps):
            raise ValueError(
                f"start_at must be between 0 and {len(self.plan.steps)}, got {start_at}"
            )

        steps = list(self.plan.steps[start_at:])
        self._results = []
        self._notifier.run_started(steps, start_at)
        logger.info(f"Running {len(steps)} step(s)")

        for offset, step in enumerate(steps):
            index = start_at + offset
            self._current_index = index
            result = await self.run_step(index, step)
            self._results.append(result)
            if result.outcome is StepOutcome.FAILED:
                remaining = len(steps) - offset - 1
                logger.info(f"Stopping run; {remaining} step(s) not attempted")
                break

        self._current_index = None
        report = RunReport(results=tuple(self._results), total_steps=len(steps))
        self._notifier.run_finished(report)
        return report

    async def run_step(self, index: int, step: Step) -> StepResult:
        """Run a single step through every stage. Never raises StepError."""
        result = StepResult(index=index, step=step, start_time=datetime.datetime.now())
        logger.info(f"Step {result.describe()} started")

        try:
            self._transition(result, StepState.RESOLVING)
            resolved = self.resolve(index, step)
            result.commit_message = resolved.commit_message

            self._transition(result, StepState.BEFORE_HOOKS)
            await self._run_hooks(result, resolved.before_hooks)

            self._transition(result, StepState.RUNNING_RECIPE)
            command = await self._run_command(result, resolved.recipe_command)
            if not command.success:
                raise RecipeFailure(
                    f"Recipe '{step.recipe}' failed: {command.error}",
                    step_index=index,
                    recipe=step.recipe,
                    exit_code=command.exit_code,
                    output=command.output,
                    command=command.command,
                )

            self._transition(result, StepState.AFTER_HOOKS)
            await self._run_hooks(result, resolved.after_hooks)

            self._transition(result, StepState.COMMITTING)
            result.outcome = await self._commit(result, resolved)

        except StepError as e:
            result.failure = StepFailure.from_error(e)
            result.outcome = StepOutcome.FAILED
            result.end_time = datetime.datetime.now()
            logger.error(f"Step {result.describe()} failed at {e.stage}: {e}")
            if e.output.strip():
                logger.error(f"Output from failing command:\n{e.output}")
            self._transition(result, StepState.FAILED)
            return result

        result.end_time = datetime.datetime.now()
        self._transition(result, StepState.DONE)
        logger.info(f"Step {result.describe()} {result.outcome.value} in {result.duration_str}")
        return result

    # ------------------------------------------------------------------ #
    # Stages
    # ------------------------------------------------------------------ #
    async def _run_command(self, result: StepResult, resolved: ResolvedCommand) -> CommandResult:
        logger.debug(f"Step {result.index + 1} {resolved}: {resolved.command}")
        command = await self._executor.run(resolved.command, env=self._env, cwd=self._cwd)
        result.commands.append(command)
        return command

    async def _run_hooks(self, result: StepResult, hooks: tuple[ResolvedCommand, ...]) -> None:
        for hook in hooks:
            command = await self._run_command(result, hook)
            if not command.success:
                raise HookFailure(
                    f"{hook} hook failed: {command.error}",
                    hook_point=hook.origin,
                    hook_index=hook.hook_index or 0,
                    step_index=result.index,
                    recipe=result.recipe,
                    exit_code=command.exit_code,
                    output=command.output,
                    command=command.command,
                )

    async def _commit(self, result: StepResult, resolved: ResolvedStep) -> StepOutcome:
        if self._skip_unchanged:
            try:
                changed = await self._repository.has_changes()
            except RepositoryError as e:
                raise CommitFailure(
                    str(e), step_index=result.index, recipe=result.recipe
                ) from e
            if not changed:
                logger.info(f"Step {result.describe()} left the tree unchanged; not committing")
                return StepOutcome.SKIPPED

        commit = await self._repository.commit_all(resolved.commit_message)
        result.commands.append(commit)
        if not commit.success:
            raise CommitFailure(
                f"Commit failed: {commit.error}",
                step_index=result.index,
                recipe=result.recipe,
                exit_code=commit.exit_code,
                output=commit.output,
                command=commit.command,
            )
        result.commit_sha = await self._repository.head_sha()
        return StepOutcome.SUCCESS

    def _transition(self, result: StepResult, state: StepState) -> None:
        logger.debug(f"Step {result.index + 1}: {result.state.value} → {state.value}")
        result.state = state
        self._notifier.step_changed(result)

    def __repr__(self) -> str:
        return (
            f"StepExecutor(steps={len(self.plan.steps)}, "
            f"executor={self._executor!r}, repository={self._repository!r})"
        )
