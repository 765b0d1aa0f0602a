"""
Feature Swarm agents package.

Every agent call goes through AgentInvoker and comes back as a typed result;
a failed or unparseable call yields the role's default instead of raising.

- PMAgent, ArchitectAgent, BestPracticesAgent: planning
- AcceptanceTestAgent, ImplementAgent: TDD developer (RED, then GREEN + REFACTOR)
- ArchitectureReviewAgent, SecurityAuditAgent, QAReviewAgent: parallel reviewers
- ExternalReviewerAgent: synthesizes the three reviews into a verdict
- IntegratorAgent: final integration check
"""

from feature_swarm.agents.base import AgentInvoker, BaseAgent, extract_json
from feature_swarm.agents.integrator import IntegratorAgent, IntegratorResult
from feature_swarm.agents.planning import (
    ArchitectAgent,
    ArchitectResult,
    BestPracticesAgent,
    BestPracticesResult,
    PMAgent,
    PMResult,
)
from feature_swarm.agents.review import (
    ArchitectureReviewAgent,
    ExternalReviewerAgent,
    ExternalReviewResult,
    QAReviewAgent,
    ReviewBundle,
    ReviewResult,
    SecurityAuditAgent,
    Verdict,
)
from feature_swarm.agents.tdd import (
    AcceptanceTestAgent,
    AcceptanceTestResult,
    ImplementAgent,
    ImplementResult,
)
from feature_swarm.agents.team import AgentTeam

__all__ = [
    "AcceptanceTestAgent",
    "AcceptanceTestResult",
    "AgentInvoker",
    "AgentTeam",
    "ArchitectAgent",
    "ArchitectResult",
    "ArchitectureReviewAgent",
    "BaseAgent",
    "BestPracticesAgent",
    "BestPracticesResult",
    "ExternalReviewResult",
    "ExternalReviewerAgent",
    "ImplementAgent",
    "ImplementResult",
    "IntegratorAgent",
    "IntegratorResult",
    "PMAgent",
    "PMResult",
    "QAReviewAgent",
    "ReviewBundle",
    "ReviewResult",
    "SecurityAuditAgent",
    "Verdict",
    "extract_json",
]
