# tests/test_step_executor/test_run.py
import pytest

from mend.exceptions import HookFailure, RecipeFailure
from mend.mend_config import MendPlan, Recipe, Step
from mend.mock_executor import MockExecutor
from mend.run_report import StepOutcome, StepStage, StepState

SCENARIO_A_EVENTS = [
    "run: make && cp a.out a.out.bak",
    "run: clang-format -i main.c",
    "run: diff a.out a.out.bak",
    "commit: d - Format",
    "run: make",
    "run: untangler rename B calculate_value -w -f main.c",
    "run: make test",
    "commit: R - Rename B to calculate_value",
]


@pytest.mark.asyncio
async def test_all_steps_succeed(sample_plan, make_executor, events, mock_repository):
    report = await make_executor(sample_plan).run()

    assert report.success
    assert report.exit_code == 0
    assert events == SCENARIO_A_EVENTS
    assert mock_repository.commits == ["d - Format", "R - Rename B to calculate_value"]
    assert report.commits == mock_repository.commits
    assert [r.outcome for r in report.results] == [StepOutcome.SUCCESS, StepOutcome.SUCCESS]
    assert [r.commit_sha for r in report.results] == ["0000001", "0000002"]
    assert report.summary() == "2/2 steps done"


@pytest.mark.asyncio
async def test_state_transitions_in_order(sample_plan, make_executor, notifier):
    report = await make_executor(sample_plan).run()

    stages = ["resolving", "before_hooks", "running_recipe", "after_hooks", "committing", "done"]
    assert notifier.transitions == [(0, s) for s in stages] + [(1, s) for s in stages]
    assert notifier.started == (list(sample_plan.steps), 0)
    assert notifier.report is report


@pytest.mark.asyncio
async def test_stops_at_first_failing_recipe(sample_plan, make_executor, events, mock_repository):
    executor = MockExecutor(
        events=events, exit_codes={"untangler rename B calculate_value -w -f main.c": 2}
    )
    plan = MendPlan(
        steps=[*sample_plan.steps, Step.parse("format")],
        recipes=sample_plan.recipes,
        env=sample_plan.env,
        before_step=sample_plan.before_step,
        after_step=sample_plan.after_step,
    )

    report = await make_executor(plan, executor=executor).run()

    assert not report.success
    assert report.exit_code == 1
    assert len(report.results) == 2
    assert report.total_steps == 3
    assert events == SCENARIO_A_EVENTS[:6]
    assert mock_repository.commits == ["d - Format"]

    failed = report.failed_step
    assert failed.index == 1
    assert failed.state is StepState.FAILED
    assert failed.failure.stage is StepStage.RECIPE
    assert failed.failure.exit_code == 2
    assert failed.failure.command == "untangler rename B calculate_value -w -f main.c"
    assert "Recipe 'rename' failed: Command exited with code 2" in failed.failure.message
    assert report.summary() == (
        "1/3 steps done. Step [2] rename B calculate_value failed at recipe: "
        "Recipe 'rename' failed: Command exited with code 2"
    )


@pytest.mark.asyncio
async def test_failing_first_step_runs_nothing_else(sample_plan, make_executor, events):
    executor = MockExecutor(events=events, exit_codes={"make && cp a.out a.out.bak": 1})

    report = await make_executor(sample_plan, executor=executor).run()

    assert events == ["run: make && cp a.out a.out.bak"]
    assert len(report.results) == 1
    assert report.failed_step.failure.stage is StepStage.BEFORE_HOOK


@pytest.mark.asyncio
async def test_raise_for_failure(sample_plan, make_executor, events):
    executor = MockExecutor(events=events, exit_codes={"clang-format -i main.c": 1})
    report = await make_executor(sample_plan, executor=executor).run()

    with pytest.raises(RecipeFailure) as exc_info:
        report.raise_for_failure()
    assert exc_info.value.step_index == 0
    assert exc_info.value.recipe == "format"
    assert exc_info.value.exit_code == 1


@pytest.mark.asyncio
async def test_raise_for_failure_hook(sample_plan, make_executor, events):
    executor = MockExecutor(events=events, exit_codes={"make test": 1})
    report = await make_executor(sample_plan, executor=executor).run()

    with pytest.raises(HookFailure) as exc_info:
        report.raise_for_failure()
    assert exc_info.value.hook_point == "after_step"
    assert exc_info.value.hook_index == 1
    assert exc_info.value.stage == "after_hook"


@pytest.mark.asyncio
async def test_raise_for_failure_noop_on_success(sample_plan, make_executor):
    report = await make_executor(sample_plan).run()
    report.raise_for_failure()


@pytest.mark.asyncio
async def test_start_at_skips_earlier_steps(sample_plan, make_executor, events, notifier):
    report = await make_executor(sample_plan).run(start_at=1)

    assert events == SCENARIO_A_EVENTS[4:]
    assert report.total_steps == 1
    assert [r.index for r in report.results] == [1]
    assert report.results[0].describe() == "[2] rename B calculate_value"
    assert notifier.started == ([sample_plan.steps[1]], 1)


@pytest.mark.asyncio
async def test_start_at_end_runs_nothing(sample_plan, make_executor, events):
    report = await make_executor(sample_plan).run(start_at=2)
    assert events == []
    assert report.success
    assert report.summary() == "0/0 steps done"


@pytest.mark.asyncio
@pytest.mark.parametrize("start_at", [-1, 3])
async def test_start_at_out_of_range(sample_plan, make_executor, start_at):
    with pytest.raises(ValueError, match="start_at must be between 0 and 2"):
        await make_executor(sample_plan).run(start_at=start_at)


@pytest.mark.asyncio
async def test_empty_plan(make_executor, events, notifier):
    report = await make_executor(MendPlan()).run()
    assert report.success
    assert report.results == ()
    assert events == []
    assert notifier.transitions == []


@pytest.mark.asyncio
async def test_commands_receive_plan_env_and_cwd(sample_plan, make_executor, mock_executor, tmp_path):
    await make_executor(sample_plan, cwd=tmp_path).run()

    call = mock_executor.calls[0]
    assert call.cwd == tmp_path
    assert call.env["DEFAULT_FILE"] == "main.c"
    assert call.env["PATH"] == "/usr/bin"


@pytest.mark.asyncio
async def test_env_extends_inherited_path(make_executor, mock_executor):
    plan = MendPlan(
        steps=[Step.parse("hi")],
        recipes={"hi": Recipe(name="hi", run="echo hi")},
        env={"PATH": "$PATH:/opt/untangler/bin"},
    )
    await make_executor(plan).run()
    assert mock_executor.calls[0].env["PATH"] == "/usr/bin:/opt/untangler/bin"


@pytest.mark.asyncio
async def test_results_and_current_index(sample_plan, make_executor):
    step_executor = make_executor(sample_plan)
    assert step_executor.current_index is None
    assert step_executor.results == []

    report = await step_executor.run()

    assert step_executor.current_index is None
    assert step_executor.results == list(report.results)


@pytest.mark.asyncio
async def test_report_to_dict(sample_plan, make_executor):
    report = await make_executor(sample_plan).run()
    data = report.to_dict()

    assert data["success"] is True
    assert data["total_steps"] == 2
    assert [s["step"] for s in data["steps"]] == ["format", "rename B calculate_value"]
    assert [c["command"] for c in data["steps"][0]["commands"]] == [
        "make && cp a.out a.out.bak",
        "clang-format -i main.c",
        "diff a.out a.out.bak",
        "commit 'd - Format'",
    ]
    assert data["steps"][1]["failure"] is None


def test_repr(sample_plan, make_executor):
    assert repr(make_executor(sample_plan)).startswith("StepExecutor(steps=2, ")
