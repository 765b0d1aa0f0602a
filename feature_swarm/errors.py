"""
Error taxonomy for Feature Swarm.

This module provides:
- AgentError and its subclasses for failures at the agent-calling boundary
- AgentOutcome, an explicit result type used by the agent invoker
- FatalStageError for structural lifecycle failures
- TaskBoardError for task board store failures

Agent errors are always absorbed by the invoker and replaced by a role
default. Gate failures are data (GateResult.passed == False), not exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar


class SwarmError(Exception):
    """Base exception for Feature Swarm errors."""
    pass


class AgentError(SwarmError):
    """
    Base exception for a failed agent call.

    Carries the role that was being invoked so fallbacks can be logged
    against the right agent.
    """

    def __init__(self, message: str, role: str = "") -> None:
        super().__init__(message)
        self.role = role


class AgentInvocationError(AgentError):
    """Raised when the provider call itself fails (exit code, timeout, transport)."""

    def __init__(
        self,
        message: str,
        role: str = "",
        stderr: str = "",
        returncode: int = -1,
    ) -> None:
        super().__init__(message, role=role)
        self.stderr = stderr
        self.returncode = returncode


class MalformedResponseError(AgentError):
    """Raised when an agent answered with text that holds no JSON object."""

    def __init__(self, message: str, role: str = "", raw_text: str = "") -> None:
        super().__init__(message, role=role)
        self.raw_text = raw_text


class FatalStageError(SwarmError):
    """Raised when a lifecycle stage hits a structural failure."""

    def __init__(self, stage: str, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"[{stage}] {message}")
        self.stage = stage
        self.cause = cause


class TaskBoardError(SwarmError):
    """Raised when the task board is missing, corrupt, or a task id is unknown."""
    pass


T = TypeVar("T")


@dataclass(frozen=True)
class AgentOutcome(Generic[T]):
    """
    Result of a single agent call: either a value or an AgentError.

    ``BaseAgent.run`` resolves it with ``unwrap_or_else``, building the
    role's fallback from the error, so callers only ever see a typed value.
    """

    value: Optional[T] = None
    error: Optional[AgentError] = None

    @classmethod
    def ok(cls, value: T) -> AgentOutcome[T]:
        return cls(value=value)

    @classmethod
    def err(cls, error: AgentError) -> AgentOutcome[T]:
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the stored error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def unwrap_or(self, default: T) -> T:
        """Return the value, or ``default`` when the call failed."""
        if self.error is not None:
            return default
        return self.value  # type: ignore[return-value]

    def unwrap_or_else(self, factory: Callable[[AgentError], T]) -> T:
        """Return the value, or build a default from the error."""
        if self.error is not None:
            return factory(self.error)
        return self.value  # type: ignore[return-value]
