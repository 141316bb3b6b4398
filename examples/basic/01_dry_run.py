"""
01_dry_run.py - Build a plan in code and preview it

This example demonstrates:
- Declaring recipes, hooks and steps without a TOML file
- Resolving every step with StepExecutor.preview()
- How tags decide which hooks wrap which step

Nothing is executed and no repository is needed.

Try it:
    python examples/basic/01_dry_run.py
"""
# ruff: noqa: T201

from mend import Hook, MendPlan, MockExecutor, MockRepository, Recipe, Step, StepExecutor


def main():
    # Step 1: Recipes are named command templates
    # $1, $2 are step arguments; $DEFAULT_FILE comes from the plan env
    recipes = {
        "format": Recipe(
            name="format",
            run="clang-format -i $DEFAULT_FILE",
            commit_template="d - Format",
            tag="binary_identical",
        ),
        "rename": Recipe(
            name="rename",
            run="untangler rename $1 $2 -w -f $DEFAULT_FILE",
            commit_template="R - Rename $1 to $2",
        ),
    }

    # Step 2: Hooks run around every step whose tags match
    plan = MendPlan(
        steps=[Step.parse("format"), Step.parse("rename B calculate_value")],
        recipes=recipes,
        env={"DEFAULT_FILE": "main.c"},
        before_step=[
            Hook(run="make && cp a.out a.out.bak", when_tag="binary_identical"),
            Hook(run="make", when_not_tag="binary_identical"),
        ],
        after_step=[
            Hook(run="diff a.out a.out.bak", when_tag="binary_identical"),
            Hook(run="make test", when_not_tag="binary_identical"),
        ],
    )

    # Step 3: Preview resolves templates and hooks without running anything
    executor = StepExecutor(plan, MockExecutor(), MockRepository())
    for resolved in executor.preview():
        print(f"[{resolved.index + 1}] {resolved.step}")
        for command in resolved.commands:
            print(f"    {str(command):<15} {command.command}")
        print(f"    {'commit':<15} {resolved.commit_message}")


if __name__ == "__main__":
    main()
