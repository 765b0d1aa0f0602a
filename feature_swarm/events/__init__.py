"""Append-only audit log for swarm runs."""

from feature_swarm.events.persistence import EventLog
from feature_swarm.events.types import EventAction, SwarmEvent, create_event_id

__all__ = ["EventAction", "EventLog", "SwarmEvent", "create_event_id"]
