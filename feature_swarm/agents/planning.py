"""
Planning agents: PM, Architect and Best Practices.

The PM runs first and its summary feeds the architect. Architect and best
practices are independent of each other and run concurrently in the plan
stage.

When the provider answers with prose instead of JSON, the first 500
characters of that prose become the summary. When the call itself fails,
a fixed summary is used.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from feature_swarm.agents.base import BaseAgent, as_str, as_str_list, raw_text_of
from feature_swarm.errors import AgentError
from feature_swarm.models import AgentRole, SwarmSpec

RAW_SUMMARY_LIMIT = 500


@dataclass
class PMResult:
    """Task breakdown produced by the PM agent."""
    summary: str
    epics: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"summary": self.summary, "epics": self.epics}

    @classmethod
    def from_payload(cls, data: dict[str, Any], default_summary: str) -> PMResult:
        epics = data.get("epics")
        return cls(
            summary=as_str(data.get("summary"), default_summary),
            epics=[e for e in epics if isinstance(e, dict)] if isinstance(epics, list) else [],
        )


@dataclass
class ArchitectResult:
    """Architecture outline produced by the architect agent."""
    summary: str
    components: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"summary": self.summary, "components": self.components}

    @classmethod
    def from_payload(cls, data: dict[str, Any], default_summary: str) -> ArchitectResult:
        return cls(
            summary=as_str(data.get("summary"), default_summary),
            components=as_str_list(data.get("components")),
        )


@dataclass
class BestPracticesResult:
    """Coding conventions produced by the best-practices agent."""
    summary: str
    conventions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"summary": self.summary, "conventions": self.conventions}

    @classmethod
    def from_payload(cls, data: dict[str, Any], default_summary: str) -> BestPracticesResult:
        return cls(
            summary=as_str(data.get("summary"), default_summary),
            conventions=as_str_list(data.get("conventions")),
        )


class PMAgent(BaseAgent[PMResult]):
    """Breaks the project spec into epics."""

    role = AgentRole.PM.value

    def build_message(self, spec: SwarmSpec) -> str:
        payload = {
            "project_name": spec.project_name,
            "description": spec.description,
            "features": [f.to_dict() for f in spec.features],
        }
        return (
            "Create a task breakdown for this project:\n\n"
            f"{json.dumps(payload, indent=2)}\n\n"
            'Return JSON with: { "summary": "...", "epics": [{"id": "...", "title": "..."}] }'
        )

    def parse(self, data: dict[str, Any], spec: SwarmSpec) -> PMResult:
        return PMResult.from_payload(data, self._default_summary(spec))

    def fallback(self, error: AgentError, spec: SwarmSpec) -> PMResult:
        raw = raw_text_of(error)
        if raw is not None:
            return PMResult(summary=raw[:RAW_SUMMARY_LIMIT])
        return PMResult(summary=self._default_summary(spec))

    @staticmethod
    def _default_summary(spec: SwarmSpec) -> str:
        return f"PM planned {len(spec.features)} features"


class ArchitectAgent(BaseAgent[ArchitectResult]):
    """Designs the component layout from the PM's plan."""

    role = AgentRole.ARCHITECT.value

    def build_message(self, spec: SwarmSpec, plan_summary: str) -> str:
        payload = {
            "tech_stack": spec.tech_stack.to_dict(),
            "features": [f.name for f in spec.features],
        }
        return (
            "Design the architecture for this project:\n\n"
            f"Plan: {plan_summary}\n"
            f"Spec: {json.dumps(payload)}\n\n"
            'Return JSON with: { "summary": "...", "components": ["..."] }'
        )

    def parse(self, data: dict[str, Any], spec: SwarmSpec, plan_summary: str) -> ArchitectResult:
        return ArchitectResult.from_payload(data, "Architecture designed")

    def fallback(self, error: AgentError, spec: SwarmSpec, plan_summary: str) -> ArchitectResult:
        raw = raw_text_of(error)
        if raw is not None:
            return ArchitectResult(summary=raw[:RAW_SUMMARY_LIMIT])
        return ArchitectResult(summary="Architecture designed")


class BestPracticesAgent(BaseAgent[BestPracticesResult]):
    """Defines coding standards for the tech stack."""

    role = AgentRole.BEST_PRACTICES.value

    def build_message(self, spec: SwarmSpec) -> str:
        return (
            "Define coding standards for this project:\n\n"
            f"Tech Stack: {json.dumps(spec.tech_stack.to_dict())}\n"
            f"Project: {spec.project_name}\n\n"
            'Return JSON with: { "summary": "...", "conventions": ["..."] }'
        )

    def parse(self, data: dict[str, Any], spec: SwarmSpec) -> BestPracticesResult:
        return BestPracticesResult.from_payload(data, "Best practices defined")

    def fallback(self, error: AgentError, spec: SwarmSpec) -> BestPracticesResult:
        raw = raw_text_of(error)
        if raw is not None:
            return BestPracticesResult(summary=raw[:RAW_SUMMARY_LIMIT])
        return BestPracticesResult(summary="Best practices defined")
