"""
Pre-flight clarification for swarm runs.

The clarifier asks the LLM which ambiguities in the spec would change what
gets built, keeps at most ``max_questions`` of them, and resolves each one
with its default assumption. Runs are non-interactive, so the answer to
every question is its default.

An assumptions file is always written to ``<swarm_dir>/assumptions.md``,
even with zero questions or when questions are disabled, so later stages
and humans can see what the swarm assumed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from feature_swarm.agents.base import AgentInvoker, BaseAgent, as_str
from feature_swarm.errors import AgentError
from feature_swarm.models import SwarmSpec
from feature_swarm.utils.fs import safe_write

ASSUMPTIONS_FILE = "assumptions.md"


@dataclass
class ClarifyingQuestion:
    question: str
    default_assumption: str

    def to_dict(self) -> dict[str, str]:
        return {"question": self.question, "default_assumption": self.default_assumption}


@dataclass
class ClarificationResult:
    """Questions asked and the assumptions the run proceeds under."""
    questions: list[ClarifyingQuestion] = field(default_factory=list)
    assumptions: list[str] = field(default_factory=list)
    assumptions_file: str = ""


class ClarifierAgent(BaseAgent[list[ClarifyingQuestion]]):
    """Asks the LLM for blocking ambiguities in the spec."""

    role = "clarifier"

    def build_message(self, spec: SwarmSpec, max_questions: int) -> str:
        features = "\n".join(
            f"- {f.id}: {f.name}: {f.description}" for f in spec.features
        )
        return (
            f"Project: {spec.project_name}\n"
            f"Description: {spec.description}\n"
            f"Features:\n{features}\n\n"
            f"List at most {max_questions} clarifying questions.\n"
            'Return JSON with: { "questions": [{"question": "...", '
            '"default_assumption": "..."}] }'
        )

    def parse(
        self, data: dict[str, Any], spec: SwarmSpec, max_questions: int
    ) -> list[ClarifyingQuestion]:
        raw = data.get("questions")
        if not isinstance(raw, list):
            return []
        questions = []
        for item in raw:
            if isinstance(item, dict) and item.get("question"):
                questions.append(ClarifyingQuestion(
                    question=as_str(item.get("question"), ""),
                    default_assumption=as_str(
                        item.get("default_assumption", item.get("defaultAssumption")),
                        "Use the simplest reasonable interpretation",
                    ),
                ))
            elif isinstance(item, str) and item:
                questions.append(ClarifyingQuestion(
                    question=item,
                    default_assumption="Use the simplest reasonable interpretation",
                ))
        return questions[:max_questions]

    def fallback(
        self, error: AgentError, spec: SwarmSpec, max_questions: int
    ) -> list[ClarifyingQuestion]:
        return []


def baseline_assumptions(spec: SwarmSpec) -> list[str]:
    """Assumptions that hold for every run regardless of questions."""
    assumptions = [
        "Features are implemented in dependency order, one at a time.",
        f"Minimum test coverage per feature is {spec.quality.min_coverage:g}%.",
    ]
    if spec.tech_stack.language:
        assumptions.append(f"Implementation language is {spec.tech_stack.language}.")
    return assumptions


def render_assumptions(spec: SwarmSpec, result: ClarificationResult) -> str:
    lines = [f"# Assumptions: {spec.project_name}", ""]
    lines.extend(f"- {a}" for a in result.assumptions)
    if result.questions:
        lines.extend(["", "## Clarifying questions", ""])
        for q in result.questions:
            lines.append(f"- **Q:** {q.question}")
            lines.append(f"  **Assumed:** {q.default_assumption}")
    return "\n".join(lines) + "\n"


class Clarifier:
    """Default clarification collaborator used by the lifecycle."""

    def __init__(self, invoker: AgentInvoker, max_questions: int = 3) -> None:
        self.agent = ClarifierAgent(invoker)
        self.max_questions = max_questions

    async def clarify(
        self,
        spec: SwarmSpec,
        swarm_dir: Path,
        no_questions: bool = False,
    ) -> ClarificationResult:
        """Collect questions (unless disabled) and write the assumptions file."""
        questions: list[ClarifyingQuestion] = []
        if not no_questions and self.max_questions > 0:
            questions = await self.agent.run(spec, self.max_questions)

        result = ClarificationResult(
            questions=questions,
            assumptions=baseline_assumptions(spec) + [q.default_assumption for q in questions],
        )
        path = Path(swarm_dir) / ASSUMPTIONS_FILE
        safe_write(path, render_assumptions(spec, result))
        result.assumptions_file = str(path)
        return result
