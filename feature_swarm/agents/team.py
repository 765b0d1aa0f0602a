"""The full set of role agents used by one swarm run."""

from __future__ import annotations

from dataclasses import dataclass

from feature_swarm.agents.base import AgentInvoker
from feature_swarm.agents.integrator import IntegratorAgent
from feature_swarm.agents.planning import ArchitectAgent, BestPracticesAgent, PMAgent
from feature_swarm.agents.review import (
    ArchitectureReviewAgent,
    ExternalReviewerAgent,
    QAReviewAgent,
    SecurityAuditAgent,
)
from feature_swarm.agents.tdd import AcceptanceTestAgent, ImplementAgent


@dataclass
class AgentTeam:
    pm: PMAgent
    architect: ArchitectAgent
    best_practices: BestPracticesAgent
    acceptance_tests: AcceptanceTestAgent
    implementer: ImplementAgent
    architecture_review: ArchitectureReviewAgent
    security_audit: SecurityAuditAgent
    qa_review: QAReviewAgent
    external_reviewer: ExternalReviewerAgent
    integrator: IntegratorAgent

    @classmethod
    def from_invoker(cls, invoker: AgentInvoker) -> AgentTeam:
        """Build every role agent on top of one shared invoker."""
        return cls(
            pm=PMAgent(invoker),
            architect=ArchitectAgent(invoker),
            best_practices=BestPracticesAgent(invoker),
            acceptance_tests=AcceptanceTestAgent(invoker),
            implementer=ImplementAgent(invoker),
            architecture_review=ArchitectureReviewAgent(invoker),
            security_audit=SecurityAuditAgent(invoker),
            qa_review=QAReviewAgent(invoker),
            external_reviewer=ExternalReviewerAgent(invoker),
            integrator=IntegratorAgent(invoker),
        )
