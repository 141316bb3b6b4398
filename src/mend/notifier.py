# mend/notifier.py
# Progress reporting for a mend run.
#
# StepExecutor calls a Notifier at every step state change. The base class
# is silent; ConsoleNotifier renders progress with rich for the CLI.
#
# Colour language:
#   dim: pending / finished detail
#   blue: running
#   green: done
#   yellow: skipped commit
#   red: failures

from __future__ import annotations

import time

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from .mend_config import Step
from .run_report import RunReport, StepOutcome, StepResult, StepState

OUTPUT_TAIL_LINES = 20


class Notifier:
    """No-op notifier. Subclass and override what you need."""

    def run_started(self, steps: list[Step], start_at: int = 0) -> None:
        pass

    def step_changed(self, result: StepResult) -> None:
        pass

    def run_finished(self, report: RunReport) -> None:
        pass


def _prefix(index: int, total: int) -> str:
    width = len(str(total))
    return f"[{index + 1:>{width}}]"


def _tail(output: str, lines: int = OUTPUT_TAIL_LINES) -> str:
    kept = output.rstrip().splitlines()[-lines:]
    return "\n".join(kept)


class ConsoleNotifier(Notifier):
    """Prints one line per step transition, and a failure panel at the end."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)
        self._started = time.monotonic()
        self._total = 0

    def run_started(self, steps: list[Step], start_at: int = 0) -> None:
        self._started = time.monotonic()
        self._total = start_at + len(steps)
        for i, step in enumerate(steps, start_at):
            line = Text(f"{_prefix(i, self._total)} ", style="bold dim")
            line.append("Pending ", style="dim")
            line.append(str(step), style="dim")
            self.console.print(line)

    def step_changed(self, result: StepResult) -> None:
        prefix = Text(f"{_prefix(result.index, self._total)} ", style="bold dim")
        state = result.state
        if state is StepState.RESOLVING:
            prefix.append("Running ", style="bold blue")
            prefix.append(str(result.step))
        elif state is StepState.DONE:
            if result.outcome is StepOutcome.SKIPPED:
                prefix.append("Skipped ", style="yellow")
                prefix.append(f"{result.step} (nothing to commit)", style="dim")
            else:
                prefix.append("Done    ", style="green")
                prefix.append(str(result.step), style="dim")
                if result.commit_sha:
                    prefix.append(f" {result.commit_sha}", style="dim")
        elif state is StepState.FAILED:
            prefix.append("Failed  ", style="bold red")
            prefix.append(str(result.step))
        else:
            return
        self.console.print(prefix)

    def run_finished(self, report: RunReport) -> None:
        elapsed = time.monotonic() - self._started
        failed = report.failed_step
        if failed is not None and failed.failure is not None:
            failure = failed.failure
            body = Text()
            body.append(f"{failure.message}\n", style="bold")
            if failure.command:
                body.append("command: ", style="dim")
                body.append(f"{failure.command}\n")
            if failure.exit_code is not None:
                body.append("exit status: ", style="dim")
                body.append(f"{failure.exit_code}\n")
            if failure.output.strip():
                body.append("\n")
                body.append(_tail(failure.output), style="dim")
            self.console.print(
                Panel(
                    body,
                    title=Text(f"Step {failed.describe()} failed at {failure.stage.value}"),
                    border_style="red",
                    padding=(0, 2),
                )
            )
        style = "green" if report.success else "red"
        self.console.print(
            Text(f"✨ {report.summary()} in {elapsed:.1f}s", style=style)
        )
