# mend/mock_executor.py
"""
In-memory collaborators for tests and dry runs.

MockExecutor records every command instead of running it; MockRepository
records commit messages instead of touching version control. Both can
share an `events` list so tests can assert on the exact interleaving of
commands and commits.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from .command_executor import CommandExecutor
from .repository import Repository
from .run_result import CommandResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MockCall:
    command: str
    env: dict[str, str]
    cwd: str | Path | None


class MockExecutor(CommandExecutor):
    """
    Executor that never spawns processes.

    Exit codes come from, in order: `handler(command)` if given and it
    returns an int, then `exit_codes[command]`, then `default_exit_code`.
    """

    def __init__(
        self,
        *,
        exit_codes: Mapping[str, int] | None = None,
        outputs: Mapping[str, str] | None = None,
        default_exit_code: int = 0,
        handler: Callable[[str], int | None] | None = None,
        events: list[str] | None = None,
    ):
        self.exit_codes = dict(exit_codes or {})
        self.outputs = dict(outputs or {})
        self.default_exit_code = default_exit_code
        self.handler = handler
        self.events = events if events is not None else []
        self.calls: list[MockCall] = []

    async def run(
        self,
        command: str,
        *,
        env: Mapping[str, str],
        cwd: str | Path | None = None,
    ) -> CommandResult:
        self.calls.append(MockCall(command=command, env=dict(env), cwd=cwd))
        self.events.append(f"run: {command}")

        exit_code = self.handler(command) if self.handler else None
        if exit_code is None:
            exit_code = self.exit_codes.get(command, self.default_exit_code)

        result = CommandResult(command=command)
        result.mark_running()
        result.output = self.outputs.get(command, "")
        result.exit_code = exit_code
        if exit_code == 0:
            result.mark_success()
        else:
            result.mark_failed(f"Command exited with code {exit_code}")
        return result

    @property
    def commands(self) -> list[str]:
        return [c.command for c in self.calls]


class MockRepository(Repository):
    """
    Repository that records commit messages.

    `fail_commits` makes every commit fail; `changed` is what has_changes()
    reports.
    """

    def __init__(
        self,
        *,
        fail_commits: bool = False,
        changed: bool = True,
        events: list[str] | None = None,
    ):
        self.fail_commits = fail_commits
        self.changed = changed
        self.events = events if events is not None else []
        self.commits: list[str] = []

    async def commit_all(self, message: str) -> CommandResult:
        self.events.append(f"commit: {message}")
        result = CommandResult(command=f"commit {message!r}")
        result.mark_running()
        if self.fail_commits:
            result.exit_code = 1
            result.output = "nothing to commit, working tree clean\n"
            result.mark_failed("Commit rejected")
            return result
        self.commits.append(message)
        result.exit_code = 0
        result.mark_success()
        return result

    async def has_changes(self) -> bool:
        return self.changed

    async def head_sha(self) -> str | None:
        if not self.commits:
            return None
        return f"{len(self.commits):07x}"
