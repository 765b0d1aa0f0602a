"""
Core data models for Feature Swarm.

This module defines the data structures shared by the lifecycle:
- Enums for lifecycle states, gates and agent roles
- The parsed project spec (SwarmSpec, Feature, TechStack, QualityConfig)
- Per-feature outcomes (FeatureResult) and gate checkpoints (GateResult)
- JSON serialization support for all models
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional


class SwarmState(Enum):
    """
    Stages of the swarm lifecycle.

    A run moves through these in order; FAILED is reachable from any stage
    when an exception escapes it. DONE and FAILED are terminal.
    """
    INIT = "init"
    CLARIFY = "clarify"
    PLAN = "plan"
    FEATURE_LOOP = "feature_loop"
    INTEGRATE = "integrate"
    OUTPUT = "output"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SwarmState.DONE, SwarmState.FAILED)


class Gate(Enum):
    """Named pass/fail checkpoints."""
    PLAN = "plan"
    ACCEPTANCE_TEST_RED = "acceptance-test-red"
    TEST = "test"
    COVERAGE = "coverage"
    REVIEW = "review"
    INTEGRATION = "integration"
    GLOBAL_SCORE = "global-score"


class AgentRole(Enum):
    """Roles that swarm agents take on."""
    PM = "pm"
    ARCHITECT = "architect"
    BEST_PRACTICES = "best-practices"
    TDD_DEVELOPER = "tdd-developer"
    QA = "qa"
    EXTERNAL_REVIEWER = "external-reviewer"
    SECURITY_AUDITOR = "security-auditor"
    INTEGRATOR = "integrator"


@dataclass(frozen=True)
class Feature:
    """
    A spec-derived unit of work.

    Created once from the parsed spec and never mutated during a run.
    """
    id: str
    name: str
    description: str = ""
    priority: str = "medium"
    dependencies: tuple[str, ...] = ()
    acceptance_criteria: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "priority": self.priority,
            "dependencies": list(self.dependencies),
            "acceptance_criteria": list(self.acceptance_criteria),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Feature:
        """Create from dictionary."""
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            description=str(data.get("description", "")),
            priority=str(data.get("priority", "medium")),
            dependencies=tuple(str(d) for d in data.get("dependencies", []) or []),
            acceptance_criteria=tuple(
                str(c) for c in data.get("acceptance_criteria", []) or []
            ),
        )


@dataclass(frozen=True)
class TechStack:
    """Technology stack for the project being built."""
    language: str = ""
    framework: Optional[str] = None
    database: Optional[str] = None
    testing: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class QualityConfig:
    """
    Quality thresholds declared by the spec.

    min_score and max_iterations are None when the spec leaves them to the
    run configuration.
    """
    min_score: Optional[int] = None
    max_iterations: Optional[int] = None
    min_coverage: float = 80.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SwarmSpec:
    """Full project specification handed to the lifecycle."""
    project_name: str
    description: str = ""
    tech_stack: TechStack = field(default_factory=TechStack)
    features: tuple[Feature, ...] = ()
    quality: QualityConfig = field(default_factory=QualityConfig)
    raw_content: str = ""

    def summary(self) -> dict[str, Any]:
        """Compact view of the spec written to disk for agent reference."""
        return {
            "project_name": self.project_name,
            "description": self.description,
            "tech_stack": self.tech_stack.to_dict(),
            "feature_count": len(self.features),
            "features": [
                {
                    "id": f.id,
                    "name": f.name,
                    "priority": f.priority,
                    "dependencies": list(f.dependencies),
                }
                for f in self.features
            ],
            "quality": self.quality.to_dict(),
        }


@dataclass(frozen=True)
class FeatureResult:
    """
    Outcome of one feature's gate pipeline.

    Exactly one exists per concluded feature; never mutated afterward.
    """
    feature_id: str
    success: bool
    iterations: int
    review_score: float
    notes: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "featureId": self.feature_id,
            "success": self.success,
            "iterations": self.iterations,
            "reviewScore": self.review_score,
            "notes": list(self.notes),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FeatureResult:
        """Create from dictionary."""
        return cls(
            feature_id=data["featureId"],
            success=bool(data.get("success", False)),
            iterations=int(data.get("iterations", 0)),
            review_score=data.get("reviewScore", 0),
            notes=tuple(data.get("notes", [])),
        )


@dataclass(frozen=True)
class GateResult:
    """Ephemeral result of a gate check; only its effects are persisted."""
    gate: Gate
    passed: bool
    reason: str = ""
    details: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "gate": self.gate.value,
            "passed": self.passed,
            "reason": self.reason,
            "details": self.details,
        }


def compute_global_score(results: list[FeatureResult]) -> int:
    """
    Mean review score over all processed features, rounded.

    Returns 0 when no feature was processed. Halves round up.
    """
    if not results:
        return 0
    total = sum(r.review_score for r in results)
    return math.floor(total / len(results) + 0.5)
