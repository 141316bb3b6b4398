"""Version-control collaborator for mend.

`Repository` is the surface StepExecutor needs from version control:

- `commit_all(message) -> CommandResult`
  Stage every working-tree change and commit it. Fails (returned result has
  state FAILED) when there is nothing to commit or the commit is rejected.
- `has_changes() -> bool`
  Whether the working tree differs from HEAD. Only consulted when the
  executor runs with skip_unchanged=True.
- `head_sha() -> str | None`
  Short sha of HEAD after a commit, recorded in the report.

`GitRepository` implements it by shelling out to `git` with argument lists
(no shell). `ensure_worktree()` prepares a detached worktree for the
`from` revision of a plan; it is used by the CLI --worktree mode only.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from abc import ABC, abstractmethod
from pathlib import Path

from .exceptions import RepositoryError
from .run_result import CommandResult

logger = logging.getLogger(__name__)


class Repository(ABC):
    @abstractmethod
    async def commit_all(self, message: str) -> CommandResult: ...

    @abstractmethod
    async def has_changes(self) -> bool: ...

    async def head_sha(self) -> str | None:
        return None


async def run_git(args: list[str], *, cwd: Path) -> CommandResult:
    """Run `git <args>` in `cwd` and capture merged output."""
    result = CommandResult(command=shlex.join(["git", *args]))
    try:
        process = await asyncio.create_subprocess_exec(
            "git",
            *args,
            cwd=str(cwd),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
        result.mark_running()
        stdout, _ = await process.communicate()
    except OSError as e:
        logger.error(f"Could not run {result.command}: {e}")
        result.mark_failed(e)
        return result

    result.output = stdout.decode("utf-8", errors="replace") if stdout else ""
    result.exit_code = process.returncode
    if process.returncode == 0:
        result.mark_success()
    else:
        result.mark_failed(f"git exited with code {process.returncode}")
    return result


class GitRepository(Repository):
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    async def commit_all(self, message: str) -> CommandResult:
        staged = await run_git(["add", "-A"], cwd=self.path)
        if not staged.success:
            return staged
        return await run_git(["commit", "-m", message], cwd=self.path)

    async def has_changes(self) -> bool:
        status = await run_git(["status", "--porcelain"], cwd=self.path)
        if not status.success:
            raise RepositoryError(f"git status failed in {self.path}: {status.output.strip()}")
        return bool(status.output.strip())

    async def head_sha(self) -> str | None:
        rev = await run_git(["rev-parse", "--short", "HEAD"], cwd=self.path)
        if not rev.success:
            logger.debug(f"Could not read HEAD in {self.path}: {rev.output.strip()}")
            return None
        return rev.output.strip()

    def __repr__(self) -> str:
        return f"GitRepository(path={str(self.path)!r})"


async def ensure_worktree(repo_dir: Path, worktree_rel: str, sha: str) -> Path:
    """
    Create a detached worktree of `sha` at `repo_dir / worktree_rel`.

    An existing worktree at that location is removed first, so every run
    starts from the plan's `from` revision.

    Raises:
        RepositoryError: If git cannot create the worktree
    """
    worktree_dir = repo_dir / worktree_rel
    logger.info(f"Creating worktree at {worktree_dir} in repo at {repo_dir}")

    if worktree_dir.exists():
        removed = await run_git(["worktree", "remove", "--force", worktree_rel], cwd=repo_dir)
        if not removed.success:
            logger.warning(f"Could not remove existing worktree: {removed.output.strip()}")

    added = await run_git(
        ["worktree", "add", "--force", "--detach", worktree_rel, sha], cwd=repo_dir
    )
    if not added.success:
        raise RepositoryError(
            f"Could not create worktree for {sha} in {repo_dir}: {added.output.strip()}"
        )
    return worktree_dir
