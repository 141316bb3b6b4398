# mend/run_result.py
from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class RunState(Enum):
    """Possible states of a single command execution."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


def format_duration(duration: datetime.timedelta | None) -> str:
    """Human-readable duration (e.g. '452ms', '2.4s', '1m 23s', '2h 5m')."""
    if duration is None:
        return "—"
    secs = duration.total_seconds()
    if secs < 1:
        return f"{secs * 1000:.0f}ms"
    if secs < 60:
        return f"{secs:.1f}s"
    mins, secs = divmod(secs, 60)
    if mins < 60:
        return f"{int(mins)}m {secs:.0f}s"
    hrs, mins = divmod(mins, 60)
    return f"{int(hrs)}h {int(mins)}m"


@dataclass
class CommandResult:
    """
    Outcome of one command run by a CommandExecutor or Repository.

    Mutable while the command runs; executors fill in output and exit_code
    and finish with mark_success() or mark_failed().
    """

    command: str
    """The fully expanded command (or a display form of a git invocation)."""

    output: str = ""
    """Captured stdout + stderr."""

    exit_code: int | None = None
    """Process exit status. None if the process never started or timed out."""

    error: str | None = None
    """Failure description, if failed."""

    state: RunState = RunState.PENDING

    start_time: datetime.datetime | None = None
    end_time: datetime.datetime | None = None
    duration: datetime.timedelta | None = None

    # ------------------------------------------------------------------ #
    # State transitions
    # ------------------------------------------------------------------ #
    def mark_running(self) -> None:
        """Transition to RUNNING and record start time."""
        if self.state is not RunState.PENDING:
            logger.warning(f"Command '{self.command}' marked running from invalid state {self.state}")
        self.state = RunState.RUNNING
        self.start_time = datetime.datetime.now()

    def mark_success(self) -> None:
        self.state = RunState.SUCCESS
        self._finalize()
        logger.debug(f"Command '{self.command}' succeeded in {self.duration_str}")

    def mark_failed(self, error: str | Exception) -> None:
        self.state = RunState.FAILED
        self.error = str(error)
        self._finalize()
        logger.debug(f"Command '{self.command}' failed: {self.error}")

    def _finalize(self) -> None:
        self.end_time = datetime.datetime.now()
        if self.start_time:
            self.duration = self.end_time - self.start_time
        else:
            self.duration = datetime.timedelta(0)

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #
    @property
    def success(self) -> bool:
        return self.state is RunState.SUCCESS

    @property
    def is_finished(self) -> bool:
        return self.state not in {RunState.PENDING, RunState.RUNNING}

    @property
    def duration_str(self) -> str:
        return format_duration(self.duration)

    def __repr__(self) -> str:
        return (
            f"CommandResult(cmd={self.command!r}, state={self.state.value}, "
            f"exit_code={self.exit_code}, dur={self.duration_str})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "command": self.command,
            "output": self.output,
            "exit_code": self.exit_code,
            "error": self.error,
            "state": self.state.value,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration_str": self.duration_str,
        }


@dataclass(frozen=True)
class ResolvedCommand:
    """A command ready to run: what it is, and where it came from."""

    command: str
    origin: str
    """One of before_step, recipe or after_step."""

    hook_index: int | None = None
    """Index in the hook list, for hooks."""

    def __str__(self) -> str:
        if self.hook_index is None:
            return self.origin
        return f"{self.origin}[{self.hook_index}]"
