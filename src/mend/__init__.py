__version__ = "0.1.0"

from .command_executor import CommandExecutor
from .exceptions import (
    CommitFailure,
    ConfigError,
    HookFailure,
    MendError,
    RecipeFailure,
    RepositoryError,
    ResolveFailure,
    StepError,
    TemplateError,
)
from .load_config import load_config
from .local_subprocess_executor import LocalSubprocessExecutor
from .logging_config import disable_logging, get_log_file_path, setup_logging
from .mend_config import Hook, MendPlan, Recipe, SourceRef, Step
from .mock_executor import MockExecutor, MockRepository
from .notifier import ConsoleNotifier, Notifier
from .repository import GitRepository, Repository, ensure_worktree
from .run_report import RunReport, StepFailure, StepOutcome, StepResult, StepStage, StepState
from .run_result import CommandResult, ResolvedCommand, RunState, format_duration
from .step_executor import ResolvedStep, StepExecutor
from .tag_matcher import hook_applies, matches, select_hooks
from .template import build_environment, check_template, expand

__all__ = [
    # Version
    "__version__",
    # Core Components
    "Hook",
    "load_config",
    "MendPlan",
    "Recipe",
    "ResolvedCommand",
    "ResolvedStep",
    "SourceRef",
    "Step",
    "StepExecutor",
    # Reporting
    "CommandResult",
    "RunReport",
    "RunState",
    "StepFailure",
    "StepOutcome",
    "StepResult",
    "StepStage",
    "StepState",
    "ConsoleNotifier",
    "Notifier",
    # Templates and tags
    "build_environment",
    "check_template",
    "expand",
    "hook_applies",
    "matches",
    "select_hooks",
    # Utilities
    "format_duration",
    "disable_logging",
    "get_log_file_path",
    "setup_logging",
    # Collaborators
    "CommandExecutor",
    "LocalSubprocessExecutor",
    "MockExecutor",
    "GitRepository",
    "MockRepository",
    "Repository",
    "ensure_worktree",
    # Exceptions
    "CommitFailure",
    "ConfigError",
    "HookFailure",
    "MendError",
    "RecipeFailure",
    "RepositoryError",
    "ResolveFailure",
    "StepError",
    "TemplateError",
]
