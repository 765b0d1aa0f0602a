"""
Review agents.

Three independent reviewers (architecture, security, QA) score the current
implementation of a feature. The external reviewer then synthesizes their
output into one verdict and score that the review gate compares against
the run's minimum score.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from feature_swarm.agents.base import BaseAgent, as_score, as_str, as_str_list
from feature_swarm.errors import AgentError
from feature_swarm.models import AgentRole, Feature

APPROVE_THRESHOLD = 85


class Verdict(Enum):
    """External reviewer verdict."""
    APPROVE = "APPROVE"
    REQUEST_CHANGES = "REQUEST_CHANGES"
    REJECT = "REJECT"

    @classmethod
    def for_score(cls, score: float) -> Verdict:
        return cls.APPROVE if score >= APPROVE_THRESHOLD else cls.REQUEST_CHANGES


@dataclass
class ReviewResult:
    """One reviewer's assessment."""
    score: float
    issues: list[str] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "issues": self.issues, "summary": self.summary}

    @classmethod
    def from_payload(cls, data: dict[str, Any], default: ReviewResult) -> ReviewResult:
        return cls(
            score=as_score(data.get("score"), default.score),
            issues=as_str_list(data.get("issues")),
            summary=as_str(data.get("summary"), default.summary),
        )


@dataclass
class ReviewBundle:
    """The three parallel reviews handed to the external reviewer."""
    architecture: ReviewResult
    security: ReviewResult
    qa: ReviewResult

    def mean_score(self) -> int:
        total = self.architecture.score + self.security.score + self.qa.score
        return math.floor(total / 3 + 0.5)

    def to_dict(self) -> dict[str, Any]:
        return {
            "architecture": self.architecture.to_dict(),
            "security": self.security.to_dict(),
            "qa": self.qa.to_dict(),
        }


@dataclass
class ExternalReviewResult:
    """Synthesized verdict over the three reviews."""
    verdict: Verdict
    score: float
    blockers: list[str] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "verdict": self.verdict.value,
            "score": self.score,
            "blockers": self.blockers,
            "summary": self.summary,
        }

    @classmethod
    def fallback(cls, reviews: ReviewBundle) -> ExternalReviewResult:
        score = reviews.mean_score()
        return cls(
            verdict=Verdict.for_score(score),
            score=score,
            blockers=[],
            summary=f"External review score: {score}",
        )

    @classmethod
    def from_payload(cls, data: dict[str, Any], reviews: ReviewBundle) -> ExternalReviewResult:
        default = cls.fallback(reviews)
        score = as_score(data.get("score"), default.score)
        raw_verdict = data.get("verdict")
        try:
            verdict = Verdict(raw_verdict.strip().upper()) if isinstance(raw_verdict, str) else None
        except ValueError:
            verdict = None
        return cls(
            verdict=verdict or Verdict.for_score(score),
            score=score,
            blockers=as_str_list(data.get("blockers")),
            summary=as_str(data.get("summary"), f"Synthesized review score: {score:g}"),
        )


class _ReviewerAgent(BaseAgent[ReviewResult]):
    """Shared parse/fallback for the three reviewers."""

    max_tokens = 1024
    default_score: float = 85.0
    default_summary: str = "Review completed"

    def parse(self, data: dict[str, Any], feature: Feature) -> ReviewResult:
        return ReviewResult.from_payload(data, self.default())

    def fallback(self, error: AgentError, feature: Feature) -> ReviewResult:
        return self.default()

    def default(self) -> ReviewResult:
        return ReviewResult(score=self.default_score, issues=[], summary=self.default_summary)

    @staticmethod
    def _response_format() -> str:
        return 'Return JSON with: { "score": number, "issues": ["..."], "summary": "..." }'


class ArchitectureReviewAgent(_ReviewerAgent):
    role = AgentRole.ARCHITECT.value
    default_score = 85.0
    default_summary = "Architecture review completed"

    def build_message(self, feature: Feature) -> str:
        return (
            f"Review architecture of the implementation for: {feature.name}\n\n"
            f"{self._response_format()}"
        )


class SecurityAuditAgent(_ReviewerAgent):
    role = AgentRole.SECURITY_AUDITOR.value
    default_score = 90.0
    default_summary = "Security audit completed"

    def build_message(self, feature: Feature) -> str:
        return f"Security audit for feature: {feature.name}\n\n{self._response_format()}"


class QAReviewAgent(_ReviewerAgent):
    role = AgentRole.QA.value
    default_score = 85.0
    default_summary = "QA review completed"

    def build_message(self, feature: Feature) -> str:
        criteria = "\n".join(f"- {c}" for c in feature.acceptance_criteria)
        return (
            f"QA review for feature: {feature.name}\n\n"
            f"Acceptance criteria:\n{criteria}\n\n"
            f"{self._response_format()}"
        )


class ExternalReviewerAgent(BaseAgent[ExternalReviewResult]):
    """Synthesizes the three reviews into a verdict."""

    role = AgentRole.EXTERNAL_REVIEWER.value

    def build_message(self, feature: Feature, reviews: ReviewBundle) -> str:
        return (
            f"Synthesize these reviews for feature: {feature.name}\n\n"
            f"Architecture review: {json.dumps(reviews.architecture.to_dict())}\n"
            f"Security audit: {json.dumps(reviews.security.to_dict())}\n"
            f"QA review: {json.dumps(reviews.qa.to_dict())}\n\n"
            'Return JSON with: { "verdict": "APPROVE|REQUEST_CHANGES|REJECT", '
            '"score": number, "blockers": ["..."], "summary": "..." }'
        )

    def parse(
        self, data: dict[str, Any], feature: Feature, reviews: ReviewBundle
    ) -> ExternalReviewResult:
        return ExternalReviewResult.from_payload(data, reviews)

    def fallback(
        self, error: AgentError, feature: Feature, reviews: ReviewBundle
    ) -> ExternalReviewResult:
        return ExternalReviewResult.fallback(reviews)
