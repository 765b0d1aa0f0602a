"""
Per-feature gate pipeline.

A feature moves through its gates in a fixed order:

    acceptance-test-red -> (implement -> test -> coverage -> review)* -> done | failed

The acceptance-test gate gets exactly one attempt. The implement loop runs
at most ``max_iterations`` times; a failed test, coverage or review gate
records a note and starts the next iteration. Exhausting the loop marks the
implement task failed and sends an escalation notice, but never raises: the
feature loop moves on to the next feature either way.

Every gate outcome appends one gate_check event. The task board is saved
when a task changes status; sub-gates inside an iteration only touch the
event log and knowledge base.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from feature_swarm.agents.review import ReviewBundle
from feature_swarm.learning.knowledge_base import KnowledgePattern, format_for_context
from feature_swarm.models import AgentRole, FeatureResult, Gate, GateResult, SwarmState
from feature_swarm.orchestration.concurrency import join_all
from feature_swarm.task_board import (
    TaskBoard,
    acceptance_task_id,
    implement_task_id,
    mark_done,
    mark_failed,
    mark_in_progress,
)

if TYPE_CHECKING:
    from feature_swarm.agents.team import AgentTeam
    from feature_swarm.events.persistence import EventLog
    from feature_swarm.learning.knowledge_base import KnowledgeBase
    from feature_swarm.logger import SwarmLogger
    from feature_swarm.models import Feature
    from feature_swarm.task_board import TaskBoardStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[SwarmState, str], None]

# Most recent knowledge entries injected into the implement prompt
KNOWLEDGE_CONTEXT_LIMIT = 20

ACCEPTANCE_FAILED_NOTE = "acceptance-test RED phase failed"


@dataclass(frozen=True)
class PipelineSettings:
    """Thresholds for one run."""
    min_score: int = 85
    max_iterations: int = 10
    min_coverage: float = 80.0


class FeatureProcessor:
    """
    Runs one feature through its gates and returns its FeatureResult.

    The processor owns no run state of its own: the board is reloaded from
    the store at the start of each feature and every result is returned to
    the caller.
    """

    def __init__(
        self,
        agents: AgentTeam,
        board_store: TaskBoardStore,
        event_log: EventLog,
        knowledge: KnowledgeBase,
        settings: PipelineSettings,
        on_progress: Optional[ProgressCallback] = None,
        logger: Optional[SwarmLogger] = None,
    ) -> None:
        self.agents = agents
        self.board_store = board_store
        self.event_log = event_log
        self.knowledge = knowledge
        self.settings = settings
        self._on_progress = on_progress
        self._logger = logger

    def _log(self, event_type: str, data: Optional[dict] = None, level: str = "info") -> None:
        """Log an event if logger is configured."""
        if self._logger:
            self._logger.log(event_type, data, level=level)

    def _progress(self, message: str) -> None:
        if self._on_progress:
            self._on_progress(SwarmState.FEATURE_LOOP, message)

    def _gate(
        self,
        gate: Gate,
        passed: bool,
        reason: str,
        feature_id: str,
        details: Optional[dict] = None,
    ) -> GateResult:
        """Record a gate outcome in the event log and return it."""
        result = GateResult(gate=gate, passed=passed, reason=reason, details=details)
        self.event_log.emit_gate(gate, passed, reason, feature_id=feature_id)
        self._log("gate_check", {
            "feature_id": feature_id,
            "gate": gate.value,
            "passed": passed,
            "reason": reason,
        }, level="info" if passed else "warn")
        return result

    def _save(self, board: TaskBoard) -> TaskBoard:
        self.board_store.save(board)
        return board

    def _knowledge_context(self) -> str:
        entries = self.knowledge.read_all()[-KNOWLEDGE_CONTEXT_LIMIT:]
        return format_for_context(entries)

    async def process(self, feature: Feature) -> FeatureResult:
        """Run the full gate pipeline for one feature."""
        self._progress(f"Feature: {feature.name} [{feature.id}]")
        self._log("feature_start", {"feature_id": feature.id, "name": feature.name})

        board = self.board_store.load()

        # --- acceptance-test-red: one attempt, no retries ---
        at_task = acceptance_task_id(feature.id)
        board = self._save(mark_in_progress(board, at_task, AgentRole.TDD_DEVELOPER.value))

        red = await self.agents.acceptance_tests.run(feature)

        if not red.passed:
            board = self._save(
                mark_failed(board, at_task, "Failed to write failing acceptance tests")
            )
            self._gate(Gate.ACCEPTANCE_TEST_RED, False, red.summary, feature.id, red.to_dict())
            self.knowledge.record(
                feature_id=feature.id,
                pattern=KnowledgePattern.FAILURE,
                description=f"Acceptance test RED phase failed: {red.summary}",
                agent_role=AgentRole.TDD_DEVELOPER.value,
                gate=Gate.ACCEPTANCE_TEST_RED.value,
                tags=["tdd", "acceptance-test"],
            )
            result = FeatureResult(
                feature_id=feature.id,
                success=False,
                iterations=1,
                review_score=0,
                notes=(ACCEPTANCE_FAILED_NOTE,),
            )
            self._log("feature_complete", result.to_dict(), level="warn")
            return result

        board = self._save(mark_done(board, at_task, red.summary))
        self._gate(
            Gate.ACCEPTANCE_TEST_RED, True, "Acceptance tests written and failing", feature.id
        )

        # --- implement loop: GREEN + REFACTOR, then test, coverage, review ---
        impl_task = implement_task_id(feature.id)
        settings = self.settings
        notes: list[str] = []
        success = False
        iterations = 0
        last_score: float = 0

        while iterations < settings.max_iterations and not success:
            iterations += 1
            board = self._save(mark_in_progress(board, impl_task, AgentRole.TDD_DEVELOPER.value))

            impl = await self.agents.implementer.run(
                feature,
                red.summary,
                feedback=tuple(notes),
                knowledge=self._knowledge_context(),
            )

            if not self._gate(Gate.TEST, impl.all_tests_passing, impl.test_summary, feature.id).passed:
                notes.append(f"Iteration {iterations}: tests failed: {impl.test_summary}")
                self.knowledge.record(
                    feature_id=feature.id,
                    pattern=KnowledgePattern.FAILURE,
                    description=(
                        f"Implementation iteration {iterations} failed tests: {impl.test_summary}"
                    ),
                    agent_role=AgentRole.TDD_DEVELOPER.value,
                    gate=Gate.TEST.value,
                    tags=["tdd", "tests"],
                )
                continue

            coverage_ok = impl.coverage >= settings.min_coverage
            coverage_reason = f"Coverage: {impl.coverage:g}% (min: {settings.min_coverage:g}%)"
            if not self._gate(Gate.COVERAGE, coverage_ok, coverage_reason, feature.id).passed:
                notes.append(
                    f"Iteration {iterations}: coverage {impl.coverage:g}% "
                    f"< {settings.min_coverage:g}%"
                )
                self.knowledge.record(
                    feature_id=feature.id,
                    pattern=KnowledgePattern.FAILURE,
                    description=(
                        f"Implementation iteration {iterations} below coverage: "
                        f"{impl.coverage:g}% < {settings.min_coverage:g}%"
                    ),
                    agent_role=AgentRole.TDD_DEVELOPER.value,
                    gate=Gate.COVERAGE.value,
                    tags=["tdd", "coverage"],
                )
                continue

            architecture, security, qa = await join_all(
                self.agents.architecture_review.run(feature),
                self.agents.security_audit.run(feature),
                self.agents.qa_review.run(feature),
                label=f"review:{feature.id}",
            )
            reviews = ReviewBundle(architecture=architecture, security=security, qa=qa)
            verdict = await self.agents.external_reviewer.run(feature, reviews)

            last_score = verdict.score
            review_ok = verdict.score >= settings.min_score
            self._gate(
                Gate.REVIEW,
                review_ok,
                f"Review score: {verdict.score:g} (min: {settings.min_score}) {verdict.verdict.value}",
                feature.id,
                {"reviews": reviews.to_dict(), "verdict": verdict.to_dict()},
            )

            if review_ok:
                success = True
                board = self._save(
                    mark_done(board, impl_task, f"Score: {verdict.score:g}, {verdict.summary}")
                )
                self.knowledge.record(
                    feature_id=feature.id,
                    pattern=KnowledgePattern.SUCCESS,
                    description=f"Feature implemented successfully with score {verdict.score:g}",
                    agent_role=AgentRole.TDD_DEVELOPER.value,
                    gate=Gate.REVIEW.value,
                    tags=["implementation", "review"],
                )
            else:
                blockers = "; ".join(verdict.blockers)
                notes.append(
                    f"Iteration {iterations}: review score {verdict.score:g} "
                    f"< {settings.min_score}: {blockers}"
                )
                self.knowledge.record(
                    feature_id=feature.id,
                    pattern=KnowledgePattern.GOTCHA,
                    description=f"Review failed (score {verdict.score:g}): {blockers}",
                    agent_role=AgentRole.EXTERNAL_REVIEWER.value,
                    gate=Gate.REVIEW.value,
                    tags=["review", "quality"],
                )

        if not success:
            board = self._save(mark_failed(
                board,
                impl_task,
                f"Failed after {iterations} iterations. Last score: {last_score:g}",
            ))
            logger.warning(
                "Escalation: feature %s failed after %d iterations", feature.id, iterations
            )
            self._log("feature_escalated", {
                "feature_id": feature.id,
                "iterations": iterations,
                "last_score": last_score,
            }, level="warn")
            self._progress(
                f'[ESCALATION] Feature "{feature.name}" failed after {iterations} iterations'
            )

        result = FeatureResult(
            feature_id=feature.id,
            success=success,
            iterations=iterations,
            review_score=last_score,
            notes=tuple(notes),
        )
        self._log("feature_complete", result.to_dict(), level="info" if success else "warn")
        return result
