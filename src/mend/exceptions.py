# mend/exceptions.py
"""
Custom exception hierarchy for mend.

All mend-specific exceptions inherit from MendError to enable
catch-all error handling while still providing specific exception types
for load-time and run-time failures.
"""

from __future__ import annotations


class MendError(Exception):
    """
    Base exception for all mend errors.

    Catch this to handle any mend-specific error.
    """

    pass


class ConfigError(MendError):
    """
    Raised when a mend document is malformed or cannot be resolved.

    Always raised by load_config() before any step runs. Covers missing or
    invalid fields, steps naming undeclared recipes, unreadable includes,
    cyclic includes and malformed template syntax.

    Example:
        >>> load_config("mend.toml")
        ConfigError: Include cycle detected: mend.toml -> a.toml -> mend.toml
    """

    pass


class TemplateError(MendError):
    """
    Raised when a template cannot be expanded.

    A positional reference ($2) with no matching step argument, or a
    malformed placeholder such as an unterminated '${'.
    """

    pass


class StepError(MendError):
    """
    Base class for failures scoped to a single step.

    The step executor raises these internally for each failing stage and
    records them in the RunReport. RunReport.raise_for_failure() re-raises
    the recorded one for callers that prefer exceptions.

    Attributes:
        step_index: Zero-based position of the step in the plan
        recipe: Name of the recipe the step invokes
        stage: Stage that failed (a StepStage value)
        exit_code: Exit status reported by the collaborator, if any
        output: Captured output of the failing command, if any
        command: The failing command, if any
    """

    stage: str = ""

    def __init__(
        self,
        message: str,
        *,
        step_index: int,
        recipe: str,
        exit_code: int | None = None,
        output: str = "",
        command: str | None = None,
    ):
        self.step_index = step_index
        self.recipe = recipe
        self.exit_code = exit_code
        self.output = output
        self.command = command
        super().__init__(message)


class ResolveFailure(StepError):
    """Raised when a step's recipe or templates cannot be resolved."""

    stage = "resolve"


class HookFailure(StepError):
    """
    Raised when a before_step or after_step hook exits non-zero.

    Attributes:
        hook_point: "before_step" or "after_step"
        hook_index: Index of the hook in its list
    """

    def __init__(self, message: str, *, hook_point: str, hook_index: int, **kwargs):
        self.hook_point = hook_point
        self.hook_index = hook_index
        self.stage = "before_hook" if hook_point == "before_step" else "after_hook"
        super().__init__(message, **kwargs)


class RecipeFailure(StepError):
    """Raised when the recipe command exits non-zero."""

    stage = "recipe"


class CommitFailure(StepError):
    """Raised when the version-control commit is rejected or has nothing to record."""

    stage = "commit"


class RepositoryError(MendError):
    """
    Raised when preparing a repository or worktree fails.

    Commit failures during a run are not raised this way; they are reported
    as CommitFailure for the step that tried to commit.
    """

    pass
