"""
Event persistence for the swarm audit log.

Events are appended as one JSON line each to ``<swarm_dir>/events.jsonl``.
Total order is file-append order.
"""

import json
from pathlib import Path
from typing import Any, Optional

from feature_swarm.events.types import EventAction, SwarmEvent
from feature_swarm.models import AgentRole, Gate
from feature_swarm.utils.fs import append_line, read_jsonl


class EventLog:
    """Append-only JSONL event sink."""

    FILE_NAME = "events.jsonl"

    def __init__(self, swarm_dir: Path) -> None:
        """
        Initialize the event log.

        Args:
            swarm_dir: Path to the .swarm directory; created on first append.
        """
        self._path = Path(swarm_dir) / self.FILE_NAME

    @property
    def path(self) -> Path:
        return self._path

    def append(self, event: SwarmEvent) -> SwarmEvent:
        """Append one event and return it."""
        append_line(self._path, json.dumps(event.to_dict(), default=str))
        return event

    def emit(
        self,
        agent_role: str,
        action: EventAction,
        *,
        agent_turn: int = 0,
        input: Any = None,
        output: Any = None,
        duration_ms: int = 0,
        feature_id: Optional[str] = None,
        task_id: Optional[str] = None,
    ) -> SwarmEvent:
        """Build an event with a fresh id and timestamp, then append it."""
        return self.append(SwarmEvent(
            agent_role=agent_role,
            action=action,
            agent_turn=agent_turn,
            input=input,
            output=output,
            duration_ms=duration_ms,
            feature_id=feature_id,
            task_id=task_id,
        ))

    def emit_gate(
        self,
        gate: Gate,
        passed: bool,
        reason: str,
        feature_id: Optional[str] = None,
    ) -> SwarmEvent:
        """Record a gate_check event."""
        return self.emit(
            AgentRole.INTEGRATOR.value,
            EventAction.GATE_CHECK,
            input={"gate": gate.value, "passed": passed},
            output={"reason": reason},
            feature_id=feature_id,
        )

    def read_all(self) -> list[SwarmEvent]:
        """Read every event in append order. Missing file yields []."""
        events = []
        for data in read_jsonl(self._path):
            try:
                events.append(SwarmEvent.from_dict(data))
            except (KeyError, ValueError):
                continue
        return events

    def query(
        self,
        action: Optional[EventAction] = None,
        feature_id: Optional[str] = None,
        gate: Optional[Gate] = None,
    ) -> list[SwarmEvent]:
        """Filter events by action, feature and (for gate checks) gate name."""
        results = []
        for event in self.read_all():
            if action and event.action != action:
                continue
            if feature_id and event.feature_id != feature_id:
                continue
            if gate:
                if event.action != EventAction.GATE_CHECK:
                    continue
                if not isinstance(event.input, dict) or event.input.get("gate") != gate.value:
                    continue
            results.append(event)
        return results
