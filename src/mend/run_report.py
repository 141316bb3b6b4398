# mend/run_report.py
"""
Per-step outcomes and the read-only report returned by StepExecutor.run().

The report carries no behaviour beyond summarising: callers (the CLI,
automation) use it for exit codes and display.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .exceptions import (
    CommitFailure,
    HookFailure,
    RecipeFailure,
    ResolveFailure,
    StepError,
)
from .mend_config import Step
from .run_result import CommandResult, format_duration


class StepState(Enum):
    """Lifecycle of one step. FAILED is terminal for the whole run."""
    PENDING = "pending"
    RESOLVING = "resolving"
    BEFORE_HOOKS = "before_hooks"
    RUNNING_RECIPE = "running_recipe"
    AFTER_HOOKS = "after_hooks"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


class StepStage(Enum):
    """Stage a step failed in."""
    RESOLVE = "resolve"
    BEFORE_HOOK = "before_hook"
    RECIPE = "recipe"
    AFTER_HOOK = "after_hook"
    COMMIT = "commit"


class StepOutcome(Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    """Step verified but the commit was skipped because nothing changed."""
    FAILED = "failed"


_ERROR_TYPES: dict[StepStage, type[StepError]] = {
    StepStage.RESOLVE: ResolveFailure,
    StepStage.RECIPE: RecipeFailure,
    StepStage.COMMIT: CommitFailure,
}


@dataclass(frozen=True)
class StepFailure:
    """Structured description of why a step failed."""

    stage: StepStage
    message: str
    exit_code: int | None = None
    output: str = ""
    command: str | None = None
    hook_index: int | None = None

    @classmethod
    def from_error(cls, error: StepError) -> StepFailure:
        return cls(
            stage=StepStage(error.stage),
            message=str(error),
            exit_code=error.exit_code,
            output=error.output,
            command=error.command,
            hook_index=getattr(error, "hook_index", None),
        )


@dataclass
class StepResult:
    """
    Outcome of one step. Filled in by StepExecutor as the step progresses.
    """

    index: int
    step: Step
    state: StepState = StepState.PENDING
    outcome: StepOutcome | None = None
    failure: StepFailure | None = None

    commands: list[CommandResult] = field(default_factory=list)
    """Every command run for this step (hooks, recipe, commit) in order."""

    commit_message: str | None = None
    commit_sha: str | None = None

    start_time: datetime.datetime | None = None
    end_time: datetime.datetime | None = None

    @property
    def recipe(self) -> str:
        return self.step.recipe

    @property
    def succeeded(self) -> bool:
        return self.outcome in (StepOutcome.SUCCESS, StepOutcome.SKIPPED)

    @property
    def duration_str(self) -> str:
        if self.start_time is None or self.end_time is None:
            return format_duration(None)
        return format_duration(self.end_time - self.start_time)

    def describe(self) -> str:
        return f"[{self.index + 1}] {self.step}"

    def to_error(self) -> StepError | None:
        """Rebuild the StepError for a failed step (None if it did not fail)."""
        failure = self.failure
        if failure is None:
            return None
        kwargs: dict[str, Any] = dict(
            step_index=self.index,
            recipe=self.recipe,
            exit_code=failure.exit_code,
            output=failure.output,
            command=failure.command,
        )
        if failure.stage in (StepStage.BEFORE_HOOK, StepStage.AFTER_HOOK):
            point = "before_step" if failure.stage is StepStage.BEFORE_HOOK else "after_step"
            return HookFailure(
                failure.message, hook_point=point, hook_index=failure.hook_index or 0, **kwargs
            )
        return _ERROR_TYPES[failure.stage](failure.message, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "step": str(self.step),
            "recipe": self.recipe,
            "state": self.state.value,
            "outcome": self.outcome.value if self.outcome else None,
            "failure": (
                {
                    "stage": self.failure.stage.value,
                    "message": self.failure.message,
                    "exit_code": self.failure.exit_code,
                    "command": self.failure.command,
                    "hook_index": self.failure.hook_index,
                }
                if self.failure
                else None
            ),
            "commit_message": self.commit_message,
            "commit_sha": self.commit_sha,
            "duration_str": self.duration_str,
            "commands": [c.to_dict() for c in self.commands],
        }


@dataclass(frozen=True)
class RunReport:
    """Ordered (step, outcome) pairs for one run."""

    results: tuple[StepResult, ...]
    total_steps: int
    """Steps the run covered, including ones never reached."""

    @property
    def success(self) -> bool:
        return all(r.succeeded for r in self.results) and len(self.results) == self.total_steps

    @property
    def failed_step(self) -> StepResult | None:
        for result in self.results:
            if result.outcome is StepOutcome.FAILED:
                return result
        return None

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    @property
    def commits(self) -> list[str]:
        """Commit messages recorded, in order."""
        return [
            r.commit_message
            for r in self.results
            if r.outcome is StepOutcome.SUCCESS and r.commit_message is not None
        ]

    def raise_for_failure(self) -> None:
        """Raise the StepError of the failed step, if there is one."""
        failed = self.failed_step
        if failed is not None:
            error = failed.to_error()
            if error is not None:
                raise error

    def summary(self) -> str:
        done = sum(1 for r in self.results if r.succeeded)
        failed = self.failed_step
        if failed is None:
            return f"{done}/{self.total_steps} steps done"
        assert failed.failure is not None
        text = (
            f"Step {failed.describe()} failed at {failed.failure.stage.value}: "
            f"{failed.failure.message}"
        )
        return f"{done}/{self.total_steps} steps done. {text}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "total_steps": self.total_steps,
            "steps": [r.to_dict() for r in self.results],
        }
