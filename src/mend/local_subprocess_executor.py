# mend/local_subprocess_executor.py
"""
LocalSubprocessExecutor - Default executor using asyncio subprocesses.

Executes commands through the shell with:
- Output capture (stdout + stderr merged)
- Optional timeout handling (SIGKILL on expiry)
- One command at a time; each run() is awaited to completion
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from collections.abc import Mapping
from pathlib import Path

from .command_executor import CommandExecutor
from .run_result import CommandResult

logger = logging.getLogger(__name__)


class LocalSubprocessExecutor(CommandExecutor):
    """Runs commands as local shell subprocesses using asyncio."""

    def __init__(self, timeout_secs: float | None = None):
        """
        Initialize the executor.

        Args:
            timeout_secs: Optional per-command timeout. A command still running
                when it expires is killed and reported as failed.
        """
        if timeout_secs is not None and timeout_secs <= 0:
            raise ValueError("timeout_secs must be positive")
        self._timeout_secs = timeout_secs
        logger.debug(f"Initialized LocalSubprocessExecutor (timeout_secs={timeout_secs})")

    async def run(
        self,
        command: str,
        *,
        env: Mapping[str, str],
        cwd: str | Path | None = None,
    ) -> CommandResult:
        result = CommandResult(command=command)
        process = None

        try:
            logger.debug(f"Launching subprocess: {command}")
            process = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,  # Merge stderr into stdout
                cwd=str(cwd) if cwd is not None else None,
                env=dict(env),
                # New process group so a kill reaches the whole pipeline
                preexec_fn=os.setpgrp if os.name != "nt" else None,
            )
            result.mark_running()

            if self._timeout_secs:
                try:
                    stdout, _ = await asyncio.wait_for(
                        process.communicate(),
                        timeout=self._timeout_secs,
                    )
                except asyncio.TimeoutError:
                    logger.warning(f"Command timed out after {self._timeout_secs}s: {command}")
                    result.mark_failed(f"Command timed out after {self._timeout_secs} seconds")
                    await self._kill_process(process)
                    return result
            else:
                stdout, _ = await process.communicate()

            result.output = stdout.decode("utf-8", errors="replace") if stdout else ""
            result.exit_code = process.returncode

            if process.returncode == 0:
                result.mark_success()
            else:
                result.mark_failed(f"Command exited with code {process.returncode}")

        except OSError as e:
            # Shell could not be spawned (bad cwd, missing /bin/sh, ...)
            logger.error(f"Could not start command '{command}': {e}")
            result.mark_failed(e)

        if not result.success and result.output.strip():
            logger.debug(f"Output from failed command '{command}':\n{result.output}")
        return result

    async def _kill_process(self, process: asyncio.subprocess.Process) -> None:
        try:
            if os.name != "nt":
                # The shell leads its own group, so this also reaches its children
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except ProcessLookupError:
            # Already dead
            pass
        except PermissionError:
            process.kill()
        await process.wait()

    def __repr__(self) -> str:
        return f"LocalSubprocessExecutor(timeout_secs={self._timeout_secs})"
