"""
Base classes for Feature Swarm agents.

This module provides the boundary between the lifecycle and the LLM:
- extract_json: fence-stripping, then first-{...}-span JSON extraction
- AgentInvoker: one provider call, parsed into an AgentOutcome
- BaseAgent: role agents that turn an outcome into a typed result with
  a deterministic fallback, so agent calls never raise
- Coercion helpers used by the per-role ``from_payload`` constructors
"""

from __future__ import annotations

import json
import logging
import math
import re
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Generic, Optional, TypeVar

from feature_swarm.agents.prompts import system_prompt_for
from feature_swarm.config import AgentModelConfig, default_agent_config
from feature_swarm.errors import (
    AgentError,
    AgentInvocationError,
    AgentOutcome,
    MalformedResponseError,
)
from feature_swarm.events.types import EventAction
from feature_swarm.llm_clients import ChatMessage, ChatOptions

if TYPE_CHECKING:
    from feature_swarm.events.persistence import EventLog
    from feature_swarm.llm_clients import ChatProvider
    from feature_swarm.logger import SwarmLogger

logger = logging.getLogger(__name__)

_FENCE_START = re.compile(r"^```(?:json)?\s*\n?")
_FENCE_END = re.compile(r"\n?```\s*$")
_OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")


def extract_json(text: str) -> Optional[dict[str, Any]]:
    """
    Extract a JSON object from LLM response text.

    Tries the whole text with an optional markdown fence stripped, then the
    span from the first ``{`` to the last ``}``. Returns None if neither
    parses to an object.
    """
    stripped = _FENCE_END.sub("", _FENCE_START.sub("", text.strip())).strip()
    try:
        data = json.loads(stripped)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    match = _OBJECT_SPAN.search(text)
    if match:
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
        if isinstance(data, dict):
            return data
    return None


# =============================================================================
# Payload coercion
# =============================================================================


def as_str(value: Any, default: str) -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return default
    return str(value)


def as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    number = as_float(value, float(default))
    return int(number)


def as_float(value: Any, default: float) -> float:
    """Finite float from a number or numeric string; NaN and infinities give default."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip().rstrip("%"))
        except ValueError:
            return default
    else:
        return default
    if not math.isfinite(result):
        return default
    return result


def as_score(value: Any, default: float) -> float:
    """Numeric score clamped to 0..100."""
    score = as_float(value, default)
    return max(0.0, min(100.0, score))


def as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0"):
            return False
    return default


def as_str_list(value: Any) -> list[str]:
    if isinstance(value, list):
        return [v if isinstance(v, str) else json.dumps(v, default=str) for v in value]
    if isinstance(value, str) and value:
        return [value]
    return []


# =============================================================================
# Invoker
# =============================================================================


class AgentInvoker:
    """
    Calls the provider for a role and parses the answer.

    ``call`` never raises: transport failures become AgentInvocationError
    and unparseable text becomes MalformedResponseError, both wrapped in
    an AgentOutcome.
    """

    def __init__(
        self,
        provider: ChatProvider,
        agent_config: Optional[dict[str, AgentModelConfig]] = None,
        event_log: Optional[EventLog] = None,
        logger: Optional[SwarmLogger] = None,
    ) -> None:
        self.provider = provider
        self.agent_config = agent_config or default_agent_config()
        self._event_log = event_log
        self._logger = logger
        self._turns: dict[str, int] = defaultdict(int)

    def _log(self, event_type: str, data: Optional[dict] = None, level: str = "info") -> None:
        """Log an event if logger is configured."""
        if self._logger:
            self._logger.log(event_type, data, level=level)

    def options_for(
        self,
        role: str,
        system_prompt: str,
        max_tokens: Optional[int] = None,
    ) -> ChatOptions:
        model_config = self.agent_config.get(role, AgentModelConfig())
        return ChatOptions(
            system=system_prompt,
            max_tokens=max_tokens or model_config.max_tokens,
            temperature=model_config.temperature,
            model=model_config.model,
        )

    async def call(
        self,
        role: str,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None,
    ) -> AgentOutcome[dict[str, Any]]:
        """Run one chat call for a role and return the parsed JSON object."""
        self._turns[role] += 1
        turn = self._turns[role]
        options = self.options_for(role, system_prompt, max_tokens)
        started = time.monotonic()

        outcome: AgentOutcome[dict[str, Any]]
        try:
            response = await self.provider.chat(
                [ChatMessage(role="user", content=user_message)], options
            )
        except Exception as e:
            # Any provider failure is transient from the lifecycle's view.
            outcome = AgentOutcome.err(AgentInvocationError(str(e), role=role))
        else:
            data = extract_json(response.content)
            if data is None:
                outcome = AgentOutcome.err(MalformedResponseError(
                    "No JSON object in agent response",
                    role=role,
                    raw_text=response.content,
                ))
            else:
                outcome = AgentOutcome.ok(data)

        duration_ms = int((time.monotonic() - started) * 1000)

        if not outcome.is_ok:
            logger.warning("Agent %s fell back to default: %s", role, outcome.error)
            self._log("agent_fallback", {
                "role": role,
                "turn": turn,
                "error_type": type(outcome.error).__name__,
                "error": str(outcome.error),
            }, level="warn")

        if self._event_log is not None:
            self._event_log.emit(
                role,
                EventAction.LLM_REQUEST,
                agent_turn=turn,
                input={"prompt_length": len(user_message)},
                output={
                    "parsed": outcome.is_ok,
                    "error": None if outcome.is_ok else type(outcome.error).__name__,
                },
                duration_ms=duration_ms,
            )

        return outcome


# =============================================================================
# Agents
# =============================================================================


R = TypeVar("R")


class BaseAgent(ABC, Generic[R]):
    """
    Abstract base class for role agents.

    Subclasses provide the role, the prompt, a parser from a JSON payload
    and a fallback. ``run`` glues them together and never raises for
    LLM-shaped failures.
    """

    # Role key used for config lookup and events (override in subclasses)
    role: str = "base"
    # Response budget override; None uses the role's configured max_tokens
    max_tokens: Optional[int] = None

    def __init__(self, invoker: AgentInvoker, system_prompt: Optional[str] = None) -> None:
        self.invoker = invoker
        self.system_prompt = system_prompt or system_prompt_for(self.role)

    @abstractmethod
    def build_message(self, *args: Any, **kwargs: Any) -> str:
        """Build the user message for this call."""

    @abstractmethod
    def parse(self, data: dict[str, Any], *args: Any, **kwargs: Any) -> R:
        """Build a typed result from a parsed payload."""

    @abstractmethod
    def fallback(self, error: AgentError, *args: Any, **kwargs: Any) -> R:
        """Deterministic default used when the call or parse failed."""

    async def run(self, *args: Any, **kwargs: Any) -> R:
        message = self.build_message(*args, **kwargs)
        outcome = await self.invoker.call(
            self.role, self.system_prompt, message, max_tokens=self.max_tokens
        )
        if outcome.is_ok:
            return self.parse(outcome.unwrap(), *args, **kwargs)
        return outcome.unwrap_or_else(lambda error: self.fallback(error, *args, **kwargs))


def raw_text_of(error: AgentError) -> Optional[str]:
    """Raw answer text when the provider replied but held no JSON."""
    if isinstance(error, MalformedResponseError) and error.raw_text:
        return error.raw_text
    return None
