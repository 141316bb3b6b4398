# tests/test_step_executor/test_hooks.py
import pytest

from mend.mend_config import Hook, MendPlan, Recipe, Step
from mend.mock_executor import MockExecutor
from mend.run_report import StepOutcome, StepStage, StepState


@pytest.mark.asyncio
async def test_binary_identical_check_blocks_commit(sample_plan, make_executor, events, mock_repository, notifier):
    executor = MockExecutor(
        events=events,
        exit_codes={"diff a.out a.out.bak": 1},
        outputs={"diff a.out a.out.bak": "Binary files a.out and a.out.bak differ\n"},
    )

    report = await make_executor(sample_plan, executor=executor).run()

    assert events == [
        "run: make && cp a.out a.out.bak",
        "run: clang-format -i main.c",
        "run: diff a.out a.out.bak",
    ]
    assert mock_repository.commits == []

    failure = report.results[0].failure
    assert failure.stage is StepStage.AFTER_HOOK
    assert failure.hook_index == 0
    assert failure.exit_code == 1
    assert failure.command == "diff a.out a.out.bak"
    assert "differ" in failure.output
    assert failure.message.startswith("after_step[0] hook failed")
    assert notifier.transitions[-1] == (0, "failed")


@pytest.mark.asyncio
async def test_before_hook_failure_skips_recipe(sample_plan, make_executor, events):
    executor = MockExecutor(events=events, exit_codes={"make": 2})

    report = await make_executor(sample_plan, executor=executor).run(start_at=1)

    assert events == ["run: make"]
    result = report.results[0]
    assert result.state is StepState.FAILED
    assert result.outcome is StepOutcome.FAILED
    assert result.failure.stage is StepStage.BEFORE_HOOK
    assert result.failure.hook_index == 1
    assert len(result.commands) == 1


@pytest.mark.asyncio
async def test_hooks_run_in_declaration_order(make_executor, events):
    plan = MendPlan(
        steps=[Step.parse("fmt")],
        recipes={"fmt": Recipe(name="fmt", run="fmt", tag="t")},
        before_step=[
            Hook(run="b0"),
            Hook(run="b1", when_tag="t"),
            Hook(run="b2", when_not_tag="t"),
            Hook(run="b3"),
        ],
        after_step=[Hook(run="a0", when_tag="t"), Hook(run="a1")],
    )

    await make_executor(plan).run()

    assert events == ["run: b0", "run: b1", "run: b3", "run: fmt", "run: a0", "run: a1", "commit: fmt"]


@pytest.mark.asyncio
async def test_contradictory_hook_never_runs(make_executor, events):
    plan = MendPlan(
        steps=[Step.parse("plain"), Step.parse("tagged")],
        recipes={
            "plain": Recipe(name="plain", run="plain"),
            "tagged": Recipe(name="tagged", run="tagged", tag="x"),
        },
        before_step=[Hook(run="never", when_tag="x", when_not_tag="x")],
    )

    await make_executor(plan).run()

    assert "run: never" not in events


@pytest.mark.asyncio
async def test_hooks_expand_env_but_not_positionals(make_executor, events):
    plan = MendPlan(
        steps=[Step.parse("rename a b")],
        recipes={"rename": Recipe(name="rename", run="rename $1 $2")},
        env={"TARGET": "main.c"},
        after_step=[Hook(run="awk '{print $1}' $TARGET")],
    )

    await make_executor(plan).run()

    assert "run: awk '{print $1}' main.c" in events
    assert "run: rename a b" in events


@pytest.mark.asyncio
async def test_step_with_no_hooks(make_executor, events):
    plan = MendPlan(
        steps=[Step.parse("only")],
        recipes={"only": Recipe(name="only", run="only")},
    )
    report = await make_executor(plan).run()
    assert events == ["run: only", "commit: only"]
    assert report.success
