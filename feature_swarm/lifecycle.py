"""
Swarm lifecycle state machine.

Drives one run from INIT to DONE:

1. INIT         - create the workspace, write the spec summary
2. CLARIFY      - bounded clarification, always writes assumptions.md
3. PLAN         - PM, then architect and best practices concurrently; create the board
4. FEATURE_LOOP - features in dependency order, one at a time, through the gate pipeline
5. INTEGRATE    - integrator agent over every feature result
6. OUTPUT       - global score and swarm-summary.json
7. DONE

Any exception escaping a stage moves the run to FAILED, appends one
reflection event describing the error, and is re-raised unchanged to the
caller. Failed features are data, not exceptions: they show up in the
summary and on the task board.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from feature_swarm.agents.base import AgentInvoker
from feature_swarm.agents.team import AgentTeam
from feature_swarm.clarifier import ClarificationResult, Clarifier
from feature_swarm.config import AgentModelConfig, default_agent_config, validate_lifecycle
from feature_swarm.errors import FatalStageError
from feature_swarm.events.persistence import EventLog
from feature_swarm.events.types import EventAction
from feature_swarm.learning.knowledge_base import KnowledgeBase
from feature_swarm.llm_clients import ChatProvider
from feature_swarm.logger import SwarmLogger
from feature_swarm.models import AgentRole, FeatureResult, Gate, SwarmSpec, SwarmState
from feature_swarm.orchestration.concurrency import join_all
from feature_swarm.orchestration.gate_pipeline import FeatureProcessor, PipelineSettings
from feature_swarm.planning.dependency_graph import DependencyScheduler
from feature_swarm.summary import SwarmSummary, write_summary
from feature_swarm.task_board import (
    INTEGRATE_TASK_ID,
    TaskBoardStore,
    mark_done,
    mark_failed,
    mark_in_progress,
)
from feature_swarm.utils.fs import FileSystemError, ensure_dir, safe_write

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[SwarmState, str], None]

SPEC_SUMMARY_FILE = "spec-summary.json"
PLAN_FILE = "plan.json"


@dataclass
class LifecycleOptions:
    """Everything one run needs. Built by SwarmOrchestrator or by tests."""
    spec: SwarmSpec
    project_path: Path
    output_path: Path
    provider: ChatProvider
    agent_config: dict[str, AgentModelConfig] = field(default_factory=default_agent_config)
    min_score: int = 85
    max_iterations: int = 10
    no_questions: bool = False
    max_questions: int = 3
    on_progress: Optional[ProgressCallback] = None
    logger: Optional[SwarmLogger] = None
    swarm_dir: str = ".swarm"

    @property
    def swarm_path(self) -> Path:
        return Path(self.project_path) / self.swarm_dir


@dataclass
class LifecycleContext:
    """
    Run state threaded through every stage.

    ``feature_results`` keeps insertion order, which is processing order.
    """
    options: LifecycleOptions
    event_log: EventLog
    knowledge: KnowledgeBase
    board_store: TaskBoardStore
    agents: AgentTeam
    clarifier: Clarifier
    state: SwarmState = SwarmState.INIT
    plan_summary: str = ""
    clarification: Optional[ClarificationResult] = None
    feature_results: dict[str, FeatureResult] = field(default_factory=dict)
    summary: Optional[SwarmSummary] = None

    @classmethod
    def create(cls, options: LifecycleOptions) -> LifecycleContext:
        swarm_path = options.swarm_path
        event_log = EventLog(swarm_path)
        invoker = AgentInvoker(
            options.provider,
            agent_config=options.agent_config,
            event_log=event_log,
            logger=options.logger,
        )
        return cls(
            options=options,
            event_log=event_log,
            knowledge=KnowledgeBase(swarm_path),
            board_store=TaskBoardStore(swarm_path, logger=options.logger),
            agents=AgentTeam.from_invoker(invoker),
            clarifier=Clarifier(invoker, max_questions=options.max_questions),
        )

    @property
    def global_score(self) -> Optional[int]:
        return self.summary.global_score if self.summary else None


# =============================================================================
# Helpers
# =============================================================================


def _progress(ctx: LifecycleContext, state: SwarmState, message: str) -> None:
    if ctx.options.on_progress:
        ctx.options.on_progress(state, message)


def _log(
    ctx: LifecycleContext,
    event_type: str,
    data: Optional[dict[str, Any]] = None,
    level: str = "info",
) -> None:
    """Log an event if logger is configured."""
    if ctx.options.logger:
        ctx.options.logger.log(event_type, data, level=level)


def _reflect(
    ctx: LifecycleContext,
    role: str,
    input: Any,
    output: Any,
    agent_turn: int = 0,
    feature_id: Optional[str] = None,
) -> None:
    ctx.event_log.emit(
        role,
        EventAction.REFLECTION,
        agent_turn=agent_turn,
        input=input,
        output=output,
        feature_id=feature_id,
    )


def _gate(ctx: LifecycleContext, gate: Gate, passed: bool, reason: str) -> None:
    ctx.event_log.emit_gate(gate, passed, reason)
    _log(ctx, "gate_check", {"gate": gate.value, "passed": passed, "reason": reason},
         level="info" if passed else "warn")


def _warn(
    ctx: LifecycleContext,
    event_type: str,
    message: str,
    data: dict[str, Any],
    feature_id: Optional[str] = None,
) -> None:
    """Surface a non-fatal condition on every channel: progress, logs and events."""
    logger.warning(message)
    _progress(ctx, ctx.state, f"[WARNING] {message}")
    _log(ctx, event_type, data, level="warn")
    _reflect(ctx, AgentRole.PM.value, {"warning": event_type, **data}, {"message": message},
             feature_id=feature_id)


# =============================================================================
# Stages
# =============================================================================


async def stage_init(ctx: LifecycleContext) -> None:
    """Create workspace directories (idempotent) and write the spec summary."""
    options = ctx.options
    ensure_dir(options.swarm_path)
    ensure_dir(options.output_path)

    spec_summary = options.spec.summary()
    safe_write(options.swarm_path / SPEC_SUMMARY_FILE, json.dumps(spec_summary, indent=2))

    _reflect(
        ctx,
        AgentRole.PM.value,
        {"state": SwarmState.INIT.value, "spec": spec_summary},
        {"workspace": str(options.project_path)},
    )


async def stage_clarify(ctx: LifecycleContext) -> None:
    options = ctx.options
    result = await ctx.clarifier.clarify(
        options.spec, options.swarm_path, no_questions=options.no_questions
    )
    ctx.clarification = result

    _reflect(
        ctx,
        AgentRole.PM.value,
        {"state": SwarmState.CLARIFY.value, "question_count": len(result.questions)},
        {"assumptions": result.assumptions, "assumptions_file": result.assumptions_file},
    )


async def stage_plan(ctx: LifecycleContext) -> None:
    """PM first; architect and best practices fan out from the PM summary."""
    spec = ctx.options.spec
    agents = ctx.agents

    pm_result = await agents.pm.run(spec)
    ctx.plan_summary = pm_result.summary
    ctx.event_log.emit(
        AgentRole.PM.value,
        EventAction.HANDOFF,
        agent_turn=1,
        input={"spec": spec.project_name},
        output=pm_result.to_dict(),
    )

    arch_result, bp_result = await join_all(
        agents.architect.run(spec, pm_result.summary),
        agents.best_practices.run(spec),
        label="plan",
    )
    for agent, result in ((agents.architect, arch_result), (agents.best_practices, bp_result)):
        ctx.event_log.emit(
            agent.role,
            EventAction.HANDOFF,
            agent_turn=1,
            input={"plan": pm_result.summary},
            output=result.to_dict(),
        )

    ctx.board_store.create(spec)

    plan = {
        "pm": pm_result.to_dict(),
        "architect": arch_result.to_dict(),
        "best_practices": bp_result.to_dict(),
    }
    safe_write(ctx.options.swarm_path / PLAN_FILE, json.dumps(plan, indent=2))

    # No planning-quality check exists yet; the gate is recorded as passed.
    _gate(ctx, Gate.PLAN, True, "Plan accepted (no planning quality check performed)")


async def stage_feature_loop(ctx: LifecycleContext) -> None:
    """Run every feature, in dependency order, strictly one after another."""
    options = ctx.options
    scheduler = DependencyScheduler(options.spec.features)

    cycle = scheduler.find_cycle()
    if cycle:
        _warn(
            ctx,
            "dependency_cycle",
            f"Dependency cycle detected: {' -> '.join(cycle)}. "
            "Order within the cycle does not satisfy its dependencies.",
            {"cycle": cycle},
        )

    unknown = scheduler.unknown_dependencies()
    if unknown:
        _log(ctx, "unknown_dependencies_ignored", {"features": unknown}, level="debug")

    processor = FeatureProcessor(
        agents=ctx.agents,
        board_store=ctx.board_store,
        event_log=ctx.event_log,
        knowledge=ctx.knowledge,
        settings=PipelineSettings(
            min_score=options.min_score,
            max_iterations=options.max_iterations,
            min_coverage=options.spec.quality.min_coverage,
        ),
        on_progress=options.on_progress,
        logger=options.logger,
    )

    for feature in scheduler.order():
        failed_deps = [
            dep for dep in feature.dependencies
            if dep in ctx.feature_results and not ctx.feature_results[dep].success
        ]
        if failed_deps:
            _warn(
                ctx,
                "failed_dependencies",
                f'Feature "{feature.name}" depends on failed feature(s) '
                f"{', '.join(failed_deps)}; processing it anyway.",
                {"feature_id": feature.id, "failed_dependencies": failed_deps},
                feature_id=feature.id,
            )
        ctx.feature_results[feature.id] = await processor.process(feature)

    failed = ctx.board_store.load().stats.failed
    if failed > 0:
        _progress(
            ctx,
            SwarmState.FEATURE_LOOP,
            f"Feature loop complete. {failed} task(s) failed, continuing to integration.",
        )


async def stage_integrate(ctx: LifecycleContext) -> None:
    """
    Run the integrator over all feature results.

    Raises:
        FatalStageError: If the board has no integration task.
    """
    board = ctx.board_store.load()
    if board.get_task(INTEGRATE_TASK_ID) is None:
        raise FatalStageError(
            SwarmState.INTEGRATE.value, "Integration task not found on task board"
        )

    board = mark_in_progress(board, INTEGRATE_TASK_ID, AgentRole.INTEGRATOR.value)
    ctx.board_store.save(board)

    result = await ctx.agents.integrator.run(ctx.options.spec, ctx.feature_results)
    _gate(ctx, Gate.INTEGRATION, result.integration_passed, result.summary)

    if result.integration_passed:
        board = mark_done(board, INTEGRATE_TASK_ID, result.summary)
    else:
        board = mark_failed(board, INTEGRATE_TASK_ID, result.summary)
    ctx.board_store.save(board)

    _reflect(
        ctx,
        AgentRole.INTEGRATOR.value,
        {"feature_count": len(ctx.feature_results)},
        result.to_dict(),
        agent_turn=1,
    )


async def stage_output(ctx: LifecycleContext) -> None:
    """Compute the global score and write swarm-summary.json."""
    options = ctx.options
    board = ctx.board_store.load()

    summary = SwarmSummary.build(
        options.spec.project_name,
        list(ctx.feature_results.values()),
        board.stats,
    )
    path = write_summary(options.output_path, summary)
    ctx.summary = summary
    _log(ctx, "summary_written", {"path": str(path), "global_score": summary.global_score})

    _gate(
        ctx,
        Gate.GLOBAL_SCORE,
        summary.global_score >= options.min_score,
        f"Global score: {summary.global_score}",
    )
    _reflect(
        ctx, AgentRole.INTEGRATOR.value, {"state": SwarmState.OUTPUT.value}, summary.to_dict()
    )


# =============================================================================
# Entry point
# =============================================================================


async def run_swarm_lifecycle(options: LifecycleOptions) -> LifecycleContext:
    """
    Run every stage in order and return the final context.

    Raises:
        ConfigError: If min_score or max_iterations is out of range.
        Exception: Whatever a stage raised, unchanged, after the run has
            been marked failed.
    """
    validate_lifecycle(options.min_score, options.max_iterations)
    ctx = LifecycleContext.create(options)

    stages: tuple[tuple[SwarmState, str, Callable[[LifecycleContext], Awaitable[None]]], ...] = (
        (SwarmState.INIT, "Initializing swarm workspace...", stage_init),
        (SwarmState.CLARIFY, "Running pre-flight clarification...", stage_clarify),
        (SwarmState.PLAN, "Planning: PM + Architect + Best Practices...", stage_plan),
        (SwarmState.FEATURE_LOOP, "Starting feature implementation loop...", stage_feature_loop),
        (SwarmState.INTEGRATE, "Running integration...", stage_integrate),
        (SwarmState.OUTPUT, "Generating output summary...", stage_output),
    )

    try:
        for state, message, stage in stages:
            ctx.state = state
            _progress(ctx, state, message)
            _log(ctx, "stage_start", {"stage": state.value})
            await stage(ctx)
            _log(ctx, "stage_complete", {"stage": state.value})
    except Exception as e:
        failed_stage = ctx.state
        ctx.state = SwarmState.FAILED
        _progress(ctx, SwarmState.FAILED, f"Swarm failed: {e}")
        logger.error("Swarm failed during %s: %s", failed_stage.value, e)
        _log(ctx, "stage_failed", {
            "stage": failed_stage.value,
            "error_type": type(e).__name__,
            "error": str(e),
        }, level="error")
        try:
            _reflect(
                ctx,
                AgentRole.INTEGRATOR.value,
                {"error": str(e), "stage": failed_stage.value},
                {"state": SwarmState.FAILED.value},
            )
        except FileSystemError as log_error:
            logger.error("Could not record failure event: %s", log_error)
        raise

    ctx.state = SwarmState.DONE
    _progress(ctx, SwarmState.DONE, "Swarm execution complete.")
    _log(ctx, "run_complete", {
        "global_score": ctx.global_score,
        "features": len(ctx.feature_results),
    })
    return ctx
