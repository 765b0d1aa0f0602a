"""Tests for the swarm lifecycle state machine."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from feature_swarm.config import ConfigError
from feature_swarm.errors import FatalStageError
from feature_swarm.events import EventAction, EventLog
from feature_swarm.lifecycle import (
    LifecycleContext,
    LifecycleOptions,
    run_swarm_lifecycle,
    stage_integrate,
)
from feature_swarm.models import Gate, SwarmState
from feature_swarm.summary import read_summary
from feature_swarm.task_board import (
    INTEGRATE_TASK_ID,
    TaskBoard,
    TaskBoardStore,
    TaskStatus,
    acceptance_task_id,
    implement_task_id,
)
from tests.fakes import PM_MSG, RED_MSG, ScriptedProvider, make_feature, make_spec


class ProgressRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, state, message):
        self.calls.append((state, message))

    @property
    def messages(self):
        return [message for _, message in self.calls]


@pytest.fixture
def progress():
    return ProgressRecorder()


@pytest.fixture
def make_options(project_dir, progress):
    def _make(spec=None, provider=None, **overrides):
        values = dict(
            spec=spec or make_spec(),
            project_path=project_dir,
            output_path=project_dir / "swarm-output",
            provider=provider or ScriptedProvider(),
            no_questions=True,
            on_progress=progress,
        )
        values.update(overrides)
        return LifecycleOptions(**values)

    return _make


def _reflections(ctx):
    return ctx.event_log.query(action=EventAction.REFLECTION)


class TestFullRun:
    """End-to-end runs where every agent call falls back."""

    @pytest.mark.asyncio
    async def test_completes_with_fallbacks(self, make_options, progress):
        ctx = await run_swarm_lifecycle(make_options())

        assert ctx.state == SwarmState.DONE
        assert list(ctx.feature_results) == ["f-1", "f-2"]
        assert all(r.success for r in ctx.feature_results.values())
        assert ctx.global_score == 87
        assert progress.calls[-1] == (SwarmState.DONE, "Swarm execution complete.")

    @pytest.mark.asyncio
    async def test_stages_run_in_order(self, make_options, progress):
        await run_swarm_lifecycle(make_options())

        stage_states = []
        for state, _ in progress.calls:
            if state not in stage_states:
                stage_states.append(state)
        assert stage_states == [
            SwarmState.INIT,
            SwarmState.CLARIFY,
            SwarmState.PLAN,
            SwarmState.FEATURE_LOOP,
            SwarmState.INTEGRATE,
            SwarmState.OUTPUT,
            SwarmState.DONE,
        ]

    @pytest.mark.asyncio
    async def test_writes_artifacts(self, make_options, project_dir):
        ctx = await run_swarm_lifecycle(make_options())

        swarm = project_dir / ".swarm"
        for name in ("spec-summary.json", "assumptions.md", "plan.json", "task-board.json",
                     "events.jsonl"):
            assert (swarm / name).exists(), name

        plan = json.loads((swarm / "plan.json").read_text())
        assert plan["pm"]["summary"] == "PM planned 2 features"
        assert set(plan) == {"pm", "architect", "best_practices"}

        summary = read_summary(project_dir / "swarm-output")
        assert summary == ctx.summary
        assert summary.project_name == "todo-api"
        assert summary.task_board == {"total": 5, "done": 5, "failed": 0}

    @pytest.mark.asyncio
    async def test_board_is_fully_done(self, make_options):
        ctx = await run_swarm_lifecycle(make_options())

        board = ctx.board_store.load()
        assert all(t.status == TaskStatus.DONE for t in board.tasks)
        assert board.get_task(INTEGRATE_TASK_ID).assigned_role == "integrator"

    @pytest.mark.asyncio
    async def test_gate_events(self, make_options):
        ctx = await run_swarm_lifecycle(make_options())

        plan = ctx.event_log.query(gate=Gate.PLAN)
        assert len(plan) == 1
        assert plan[0].input["passed"] is True
        assert "no planning quality check" in plan[0].output["reason"]

        global_score = ctx.event_log.query(gate=Gate.GLOBAL_SCORE)
        assert global_score[0].output == {"reason": "Global score: 87"}
        assert len(ctx.event_log.query(gate=Gate.REVIEW)) == 2
        assert ctx.event_log.query(gate=Gate.INTEGRATION)[0].input["passed"] is True

    @pytest.mark.asyncio
    async def test_handoffs_after_pm(self, make_options):
        ctx = await run_swarm_lifecycle(make_options())

        handoffs = ctx.event_log.query(action=EventAction.HANDOFF)
        assert [e.agent_role for e in handoffs][0] == "pm"
        assert sorted(e.agent_role for e in handoffs[1:]) == ["architect", "best-practices"]

    @pytest.mark.asyncio
    async def test_global_score_below_min_fails_gate_but_run_completes(self, make_options):
        ctx = await run_swarm_lifecycle(make_options(min_score=95, max_iterations=1))

        assert ctx.state == SwarmState.DONE
        assert ctx.global_score == 87
        assert not any(r.success for r in ctx.feature_results.values())
        assert ctx.event_log.query(gate=Gate.GLOBAL_SCORE)[0].input["passed"] is False
        assert ctx.board_store.load().get_task(INTEGRATE_TASK_ID).status == TaskStatus.FAILED

    @pytest.mark.asyncio
    async def test_clarification_runs_when_enabled(self, make_options, project_dir):
        provider = ScriptedProvider({"clarifying questions": {
            "questions": [{"question": "DB?", "default_assumption": "SQLite"}],
        }})
        ctx = await run_swarm_lifecycle(make_options(provider=provider, no_questions=False))

        assert [q.question for q in ctx.clarification.questions] == ["DB?"]
        assert "SQLite" in (project_dir / ".swarm" / "assumptions.md").read_text()

    @pytest.mark.asyncio
    async def test_empty_spec_has_zero_score(self, make_options):
        ctx = await run_swarm_lifecycle(make_options(spec=make_spec(features=[])))

        assert ctx.state == SwarmState.DONE
        assert ctx.feature_results == {}
        assert ctx.global_score == 0

    @pytest.mark.asyncio
    async def test_second_run_keeps_knowledge(self, make_options):
        first = await run_swarm_lifecycle(make_options())
        before = len(first.knowledge.read_all())

        second = await run_swarm_lifecycle(make_options())

        assert len(second.knowledge.read_all()) == before * 2


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("overrides", [
        {"min_score": 101},
        {"min_score": -5},
        {"max_iterations": 0},
    ])
    async def test_out_of_range_thresholds(self, make_options, project_dir, overrides):
        with pytest.raises(ConfigError):
            await run_swarm_lifecycle(make_options(**overrides))
        assert not (project_dir / ".swarm").exists()


class TestFailures:
    """Tests for fatal stage errors."""

    @pytest.mark.asyncio
    async def test_stage_error_is_reraised_unchanged(self, make_options, progress, project_dir):
        error = RuntimeError("planner exploded")
        options = make_options()

        with patch("feature_swarm.lifecycle.stage_plan", AsyncMock(side_effect=error)):
            with pytest.raises(RuntimeError) as excinfo:
                await run_swarm_lifecycle(options)

        assert excinfo.value is error
        assert progress.calls[-1] == (SwarmState.FAILED, "Swarm failed: planner exploded")
        assert not (project_dir / "swarm-output" / "swarm-summary.json").exists()

    @pytest.mark.asyncio
    async def test_exactly_one_failure_reflection(self, make_options, project_dir):
        """A failure adds one reflection beyond what the failing stage already emitted."""
        event_log = EventLog(project_dir / ".swarm")
        seen = {}

        def failing_create(store, spec):
            seen["events"] = event_log.read_all()
            raise OSError("disk full")

        with patch.object(TaskBoardStore, "create", failing_create):
            with pytest.raises(OSError, match="disk full"):
                await run_swarm_lifecycle(make_options())

        before = seen["events"]
        after = event_log.read_all()
        handoffs = [e.agent_role for e in before if e.action == EventAction.HANDOFF]
        assert handoffs == ["pm", "architect", "best-practices"]

        assert len(after) == len(before) + 1
        assert after[:-1] == before
        failure = after[-1]
        assert failure.action == EventAction.REFLECTION
        assert failure.input == {"error": "disk full", "stage": "plan"}
        assert failure.output == {"state": "failed"}
        assert failure.agent_role == "integrator"

    @pytest.mark.asyncio
    async def test_missing_integration_task(self, make_options):
        ctx = LifecycleContext.create(make_options())
        ctx.board_store.save(TaskBoard(project_name="todo-api"))

        with pytest.raises(FatalStageError, match="Integration task not found") as excinfo:
            await stage_integrate(ctx)
        assert excinfo.value.stage == "integrate"

    @pytest.mark.asyncio
    async def test_missing_integration_task_fails_run(self, make_options):
        async def plan_without_board(ctx):
            ctx.board_store.save(TaskBoard(project_name="todo-api"))

        with patch("feature_swarm.lifecycle.stage_plan", plan_without_board):
            with pytest.raises(FatalStageError):
                await run_swarm_lifecycle(make_options(spec=make_spec(features=[])))


class TestFeatureLoopWarnings:
    """Tests for non-fatal dependency warnings."""

    @pytest.mark.asyncio
    async def test_cycle_warns_and_continues(self, make_options, progress):
        spec = make_spec([make_feature("a", ["b"]), make_feature("b", ["a"])])

        ctx = await run_swarm_lifecycle(make_options(spec=spec))

        assert ctx.state == SwarmState.DONE
        assert sorted(ctx.feature_results) == ["a", "b"]
        assert any("[WARNING] Dependency cycle detected" in m for m in progress.messages)
        warnings = [e for e in _reflections(ctx) if e.input.get("warning") == "dependency_cycle"]
        assert len(warnings) == 1

    @pytest.mark.asyncio
    async def test_failed_dependency_warns_and_still_runs(self, make_options, progress):
        def red(message):
            if "Feature: Feature f-1\n" in message:
                return {"summary": "nothing", "tests_written": 0, "tests_failing": True}
            return {"summary": "2 failing", "tests_written": 2, "tests_failing": True}

        provider = ScriptedProvider({RED_MSG: red})

        ctx = await run_swarm_lifecycle(make_options(provider=provider))

        assert ctx.feature_results["f-1"].success is False
        assert ctx.feature_results["f-2"].success is True
        assert ctx.global_score == 44
        assert any(
            "depends on failed feature(s) f-1" in m for m in progress.messages
        )
        assert (
            "Feature loop complete. 1 task(s) failed, continuing to integration."
            in progress.messages
        )

        board = ctx.board_store.load()
        assert board.get_task(acceptance_task_id("f-1")).status == TaskStatus.FAILED
        assert board.get_task(implement_task_id("f-1")).status == TaskStatus.PENDING
        assert board.get_task(INTEGRATE_TASK_ID).status == TaskStatus.FAILED

        warnings = [
            e for e in _reflections(ctx)
            if isinstance(e.input, dict) and e.input.get("warning") == "failed_dependencies"
        ]
        assert warnings[0].feature_id == "f-2"
        assert warnings[0].input["failed_dependencies"] == ["f-1"]

    @pytest.mark.asyncio
    async def test_prose_plan_is_kept(self, make_options):
        provider = ScriptedProvider({PM_MSG: "Build the create endpoint first."})
        ctx = await run_swarm_lifecycle(make_options(provider=provider))
        assert ctx.plan_summary == "Build the create endpoint first."
