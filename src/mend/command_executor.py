# mend/command_executor.py
"""
CommandExecutor - the command-execution collaborator used by StepExecutor.

An executor takes a fully expanded shell command plus the environment and
working directory and reports exit status and captured output. It never
raises for a failing command: non-zero exits are reported through the
returned CommandResult.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path

from .run_result import CommandResult


class CommandExecutor(ABC):
    """Abstract base class for command executors."""

    @abstractmethod
    async def run(
        self,
        command: str,
        *,
        env: Mapping[str, str],
        cwd: str | Path | None = None,
    ) -> CommandResult:
        """
        Run a command to completion.

        Args:
            command: Fully expanded shell command
            env: Complete environment for the process
            cwd: Working directory (None → current directory)

        Returns:
            A finished CommandResult (state SUCCESS or FAILED)
        """
        ...
