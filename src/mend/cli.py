"""mend.cli

Command-line entrypoint for mend.

Entry points
- `mend` (console script)
- `python -m mend ...` (delegates to this module)

Flags
- `-f/--file <path>`: Plan document. Default: `mend.toml` in the current
  directory.
- `--dry-run`: Load and resolve the plan, print every command and commit
  message each step would use, run nothing.
- `--worktree`: Run inside a fresh detached git worktree of the plan's
  `from` revision (created under `from.repo` at `--worktree-dir`) instead of
  the current directory.
- `--skip-unchanged`: Do not fail a step that changed nothing; record it as
  skipped and move on without committing.
- `--start-at <N>`: Start at step N (1-based). Earlier steps are assumed to
  be committed by a previous run.
- `--timeout <secs>`: Kill any single command running longer than this.
- `-v/--verbose`: INFO logging; `-vv` for DEBUG.
- `--log-file <path>`: Also write logs to a file.

Exit status is 0 when every step completes, 1 on a configuration error or
the first failing step.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from . import __version__
from .exceptions import ConfigError, MendError
from .load_config import load_config
from .local_subprocess_executor import LocalSubprocessExecutor
from .logging_config import setup_logging
from .mend_config import MendPlan
from .notifier import ConsoleNotifier
from .repository import GitRepository, ensure_worktree
from .run_report import RunReport
from .step_executor import ResolvedStep, StepExecutor

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "mend.toml"
DEFAULT_WORKTREE_DIR = ".mend/worktree"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mend",
        description="Apply a plan of small recipes to a source tree, one commit per step.",
    )
    parser.add_argument("-f", "--file", help=f"Plan document (default: ./{DEFAULT_CONFIG})")
    parser.add_argument("--dry-run", action="store_true", help="Resolve and print, run nothing")
    parser.add_argument(
        "--worktree",
        action="store_true",
        help="Run in a fresh worktree of the plan's `from` revision",
    )
    parser.add_argument(
        "--worktree-dir",
        default=DEFAULT_WORKTREE_DIR,
        help=f"Worktree location relative to from.repo (default: {DEFAULT_WORKTREE_DIR})",
    )
    parser.add_argument(
        "--skip-unchanged",
        action="store_true",
        help="Record steps that change nothing as skipped instead of failing the commit",
    )
    parser.add_argument("--start-at", type=int, default=1, metavar="N", help="First step to run (1-based)")
    parser.add_argument("--timeout", type=float, default=None, help="Per-command timeout in seconds")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def resolve_config_path(file: str | None, cwd: Path | None = None) -> Path:
    """Find the plan document, or raise ConfigError explaining what is missing."""
    cwd = cwd or Path.cwd()
    if file is not None:
        path = cwd / file
        if not path.exists():
            raise ConfigError(f"Specified file {file} doesn't exist")
        return path
    path = cwd / DEFAULT_CONFIG
    if not path.exists():
        raise ConfigError(f"No {DEFAULT_CONFIG} found, please specify one with -f")
    return path


def print_preview(console: Console, resolved_steps: list[ResolvedStep]) -> None:
    width = len(str(len(resolved_steps)))
    for resolved in resolved_steps:
        prefix = escape(f"[{resolved.index + 1:>{width}}]")
        console.print(f"[bold]{prefix}[/bold] {escape(str(resolved.step))}")
        for command in resolved.commands:
            style = "white" if command.origin == "recipe" else "dim"
            console.print(f"    [cyan]{escape(str(command))}[/cyan] [{style}]{escape(command.command)}[/{style}]")
        console.print(f"    [green]commit[/green] {escape(resolved.commit_message)}")


async def drive(plan: MendPlan, args: argparse.Namespace, console: Console) -> RunReport:
    cwd = Path.cwd()
    if args.worktree:
        if plan.source is None:
            raise ConfigError("No `from` declared in config; --worktree needs one")
        cwd = await ensure_worktree(plan.source.repo_path, args.worktree_dir, plan.source.sha)
    logger.info(f"Running {len(plan.steps)} step(s) in {cwd}")

    executor = StepExecutor(
        plan,
        LocalSubprocessExecutor(timeout_secs=args.timeout),
        GitRepository(cwd),
        cwd=cwd,
        notifier=ConsoleNotifier(console),
        skip_unchanged=args.skip_unchanged,
    )
    return await executor.run(start_at=args.start_at - 1)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    console = Console(stderr=True)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    setup_logging(level, file=args.log_file or False)

    try:
        plan = load_config(resolve_config_path(args.file))
        last = max(len(plan.steps), 1)
        if not 1 <= args.start_at <= last:
            raise ConfigError(f"--start-at must be between 1 and {last}, got {args.start_at}")

        if args.dry_run:
            executor = StepExecutor(
                plan, LocalSubprocessExecutor(), GitRepository(Path.cwd())
            )
            print_preview(console, executor.preview()[args.start_at - 1 :])
            console.print("[dim]Dry run, nothing executed[/dim]")
            return 0

        report = asyncio.run(drive(plan, args, console))
    except MendError as e:
        console.print(f"[bold red]error:[/bold red] {escape(str(e))}", highlight=False)
        return 1

    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
