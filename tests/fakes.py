"""Test doubles and builders shared across the test suite."""

from __future__ import annotations

import json
from typing import Any, Callable, Sequence, Union

from feature_swarm.llm_clients import ChatMessage, ChatOptions, ChatResponse
from feature_swarm.models import Feature, QualityConfig, SwarmSpec, TechStack

# A scripted answer: raw text, a dict (serialized to JSON), an exception to
# raise, or a callable that builds one of those from the user message.
Answer = Union[str, dict, BaseException, Callable[[str], Any]]


class ScriptedProvider:
    """
    Fake ChatProvider that answers by matching the user message.

    ``script`` maps a substring of the user message to an answer or a list of
    answers. Lists are consumed one per call and the last answer repeats.
    Unmatched messages raise RuntimeError, which the invoker turns into the
    role's fallback.
    """

    def __init__(self, script: dict[str, Union[Answer, Sequence[Answer]]] | None = None) -> None:
        self.script = dict(script or {})
        self.calls: list[tuple[str, ChatOptions]] = []
        self._cursor: dict[str, int] = {}

    def calls_matching(self, needle: str) -> list[str]:
        return [message for message, _ in self.calls if needle in message]

    def _next_answer(self, key: str) -> Answer:
        answers = self.script[key]
        if not isinstance(answers, (list, tuple)):
            return answers
        index = self._cursor.get(key, 0)
        self._cursor[key] = index + 1
        return answers[min(index, len(answers) - 1)]

    async def chat(self, messages: Sequence[ChatMessage], options: ChatOptions) -> ChatResponse:
        message = messages[-1].content
        self.calls.append((message, options))
        for key in self.script:
            if key in message:
                answer = self._next_answer(key)
                if callable(answer) and not isinstance(answer, BaseException):
                    answer = answer(message)
                if isinstance(answer, BaseException):
                    raise answer
                if isinstance(answer, dict):
                    answer = json.dumps(answer)
                return ChatResponse(content=answer, usage={})
        raise RuntimeError(f"unscripted message: {message[:60]}")


# Message prefixes for each agent call
PM_MSG = "Create a task breakdown"
ARCHITECT_MSG = "Design the architecture"
BEST_PRACTICES_MSG = "Define coding standards"
RED_MSG = "Write failing acceptance tests"
IMPLEMENT_MSG = "Implement (GREEN + REFACTOR)"
ARCH_REVIEW_MSG = "Review architecture of the implementation"
SECURITY_MSG = "Security audit for feature"
QA_MSG = "QA review for feature"
SYNTHESIZE_MSG = "Synthesize these reviews"
INTEGRATE_MSG = "Integrate all features"
CLARIFY_MSG = "clarifying questions"


def make_feature(feature_id: str, dependencies: Sequence[str] = (), criteria: int = 2) -> Feature:
    return Feature(
        id=feature_id,
        name=f"Feature {feature_id}",
        description=f"Description of {feature_id}",
        dependencies=tuple(dependencies),
        acceptance_criteria=tuple(f"{feature_id} criterion {i}" for i in range(1, criteria + 1)),
    )


def make_spec(features: Sequence[Feature] | None = None, min_coverage: float = 80.0) -> SwarmSpec:
    if features is None:
        features = [make_feature("f-1"), make_feature("f-2", ["f-1"])]
    return SwarmSpec(
        project_name="todo-api",
        description="REST API for todos",
        tech_stack=TechStack(language="python", framework="fastapi"),
        features=tuple(features),
        quality=QualityConfig(min_coverage=min_coverage),
    )
