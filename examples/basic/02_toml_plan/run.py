"""
02_toml_plan/run.py - Load a plan from TOML and run it

This example demonstrates:
- Loading mend.toml (which includes recipes.toml) with load_config()
- Running it in a scratch directory with LocalSubprocessExecutor
- Recording commits with MockRepository, so no git repository is needed
- Reading the RunReport

Try it:
    python examples/basic/02_toml_plan/run.py
"""
# ruff: noqa: T201

import asyncio
import tempfile
from pathlib import Path

from mend import ConsoleNotifier, LocalSubprocessExecutor, MockRepository, StepExecutor, load_config


async def main():
    # Step 1: Load the plan; includes are resolved relative to mend.toml
    plan = load_config(Path(__file__).parent / "mend.toml")
    print(f"Loaded {len(plan.steps)} steps and {len(plan.recipes)} recipes\n")

    with tempfile.TemporaryDirectory() as workdir:
        # Step 2: Seed the working tree the recipes operate on
        (Path(workdir) / "notes.txt").write_text("TODO: write notes\n")

        # Step 3: Run every step, one commit each
        repository = MockRepository()
        executor = StepExecutor(
            plan,
            LocalSubprocessExecutor(timeout_secs=10),
            repository,
            cwd=workdir,
            notifier=ConsoleNotifier(),
        )
        report = await executor.run()

        # Step 4: Inspect the outcome
        print(f"\nCommits: {repository.commits}")
        print(f"Final file:\n{(Path(workdir) / 'notes.txt').read_text()}")

    return report.exit_code


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
