"""
Event types for the swarm audit log.

Defines the SwarmEvent dataclass and the EventAction enum. Events are
append-only: once written they are never mutated or deleted.
"""

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class EventAction(Enum):
    """What an event records."""

    TOOL_CALL = "tool_call"
    LLM_REQUEST = "llm_request"
    GATE_CHECK = "gate_check"
    HANDOFF = "handoff"
    REFLECTION = "reflection"


def create_event_id() -> str:
    """Event id from the current time in ms plus a random suffix."""
    return f"evt-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class SwarmEvent:
    """A single entry in the swarm event log."""

    agent_role: str
    action: EventAction
    agent_turn: int = 0
    input: Any = None
    output: Any = None
    duration_ms: int = 0
    feature_id: Optional[str] = None
    task_id: Optional[str] = None
    id: str = field(default_factory=create_event_id)
    timestamp: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON serialization."""
        data: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "agent_role": self.agent_role,
            "agent_turn": self.agent_turn,
            "action": self.action.value,
            "input": self.input,
            "output": self.output,
            "duration_ms": self.duration_ms,
        }
        if self.feature_id is not None:
            data["feature_id"] = self.feature_id
        if self.task_id is not None:
            data["task_id"] = self.task_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SwarmEvent":
        """Create from dict."""
        return cls(
            id=data.get("id", ""),
            timestamp=data.get("timestamp", ""),
            agent_role=data.get("agent_role", ""),
            agent_turn=data.get("agent_turn", 0),
            action=EventAction(data["action"]),
            input=data.get("input"),
            output=data.get("output"),
            duration_ms=data.get("duration_ms", 0),
            feature_id=data.get("feature_id"),
            task_id=data.get("task_id"),
        )

    def __str__(self) -> str:
        return f"[{self.timestamp}] {self.action.value} role={self.agent_role}"
