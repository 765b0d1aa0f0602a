"""Integrator agent: combines every processed feature and reports whether integration passed."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from feature_swarm.agents.base import BaseAgent, as_bool, as_str, as_str_list
from feature_swarm.errors import AgentError
from feature_swarm.models import AgentRole, FeatureResult, SwarmSpec


@dataclass
class IntegratorResult:
    """Outcome of the integration stage."""
    integration_passed: bool
    summary: str
    conflicts: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "integration_passed": self.integration_passed,
            "summary": self.summary,
            "conflicts": self.conflicts,
        }

    @classmethod
    def fallback(cls, results: Mapping[str, FeatureResult]) -> IntegratorResult:
        succeeded = sum(1 for r in results.values() if r.success)
        return cls(
            integration_passed=succeeded == len(results),
            summary=f"Integration: {succeeded}/{len(results)} features succeeded",
            conflicts=[],
        )

    @classmethod
    def from_payload(
        cls, data: dict[str, Any], results: Mapping[str, FeatureResult]
    ) -> IntegratorResult:
        default = cls.fallback(results)
        return cls(
            integration_passed=as_bool(
                data.get("integration_passed", data.get("integrationPassed")),
                default.integration_passed,
            ),
            summary=as_str(data.get("summary"), default.summary),
            conflicts=as_str_list(data.get("conflicts")),
        )


class IntegratorAgent(BaseAgent[IntegratorResult]):
    role = AgentRole.INTEGRATOR.value

    def build_message(self, spec: SwarmSpec, results: Mapping[str, FeatureResult]) -> str:
        lines = "\n".join(
            f"- {r.feature_id}: {'success' if r.success else 'failed'} (score: {r.review_score:g})"
            for r in results.values()
        )
        return (
            f"Integrate all features for project: {spec.project_name}\n\n"
            f"Feature results:\n{lines}\n\n"
            'Return JSON with: { "integration_passed": boolean, "summary": "...", '
            '"conflicts": ["..."] }'
        )

    def parse(
        self, data: dict[str, Any], spec: SwarmSpec, results: Mapping[str, FeatureResult]
    ) -> IntegratorResult:
        return IntegratorResult.from_payload(data, results)

    def fallback(
        self, error: AgentError, spec: SwarmSpec, results: Mapping[str, FeatureResult]
    ) -> IntegratorResult:
        return IntegratorResult.fallback(results)
