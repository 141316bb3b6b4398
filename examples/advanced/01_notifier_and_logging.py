"""
Example: Custom progress notifier and logging for mend

This example demonstrates:
- Subclassing Notifier to receive every step state change
- Turning on mend's logging with setup_logging()
- Handling a failed run through RunReport and raise_for_failure()

Commands are simulated with MockExecutor; the "make test" hook fails so the
run stops at the second step.
"""
# ruff: noqa: T201

import asyncio

from mend import (
    Hook,
    MendPlan,
    MockExecutor,
    MockRepository,
    Notifier,
    Recipe,
    Step,
    StepError,
    StepExecutor,
    setup_logging,
)


class PrintingNotifier(Notifier):
    def run_started(self, steps, start_at=0):
        print(f"Starting {len(steps)} step(s) at index {start_at}")

    def step_changed(self, result):
        print(f"  {result.describe():<30} {result.state.value}")

    def run_finished(self, report):
        print(report.summary())


async def main():
    setup_logging(level="INFO", format_string="[%(levelname)s] %(name)s: %(message)s")

    plan = MendPlan(
        steps=[Step.parse("rename a alpha"), Step.parse("rename b beta")],
        recipes={"rename": Recipe(name="rename", run="untangler rename $1 $2 -w -f main.c")},
        after_step=[Hook(run="make test")],
    )

    # Only the second "make test" fails
    test_runs = []

    def handler(command):
        if command == "make test":
            test_runs.append(command)
            return 0 if len(test_runs) == 1 else 2
        return None

    executor = StepExecutor(
        plan,
        MockExecutor(handler=handler),
        MockRepository(),
        notifier=PrintingNotifier(),
    )
    report = await executor.run()

    try:
        report.raise_for_failure()
    except StepError as e:
        print(f"\nStep {e.step_index + 1} ({e.recipe}) failed at {e.stage}, exit status {e.exit_code}")


if __name__ == "__main__":
    asyncio.run(main())
