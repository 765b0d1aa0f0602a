"""Knowledge base of patterns learned during swarm runs.

Entries are appended to ``<swarm_dir>/knowledge.jsonl`` and survive across
runs. They are fed back into implementation prompts so later attempts can
avoid known failures.

Key Classes:
- KnowledgePattern: Enum of pattern kinds (success, failure, gotcha, optimization)
- KnowledgeEntry: One observed pattern
- KnowledgeBase: Append-only JSONL store
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from feature_swarm.utils.fs import append_line, read_jsonl


class KnowledgePattern(Enum):
    """Kind of pattern a knowledge entry captures."""
    SUCCESS = "success"
    FAILURE = "failure"
    GOTCHA = "gotcha"
    OPTIMIZATION = "optimization"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class KnowledgeEntry:
    """A pattern observed while running a feature through a gate.

    Attributes:
        feature_id: Feature the pattern was observed on.
        pattern: Kind of pattern.
        description: Human-readable description.
        agent_role: Role whose output produced the pattern.
        gate: Gate the pattern was observed at.
        tags: Free-form tags for filtering.
        timestamp: ISO timestamp, set on creation.
    """
    feature_id: str
    pattern: KnowledgePattern
    description: str
    agent_role: str
    gate: str
    tags: tuple[str, ...] = ()
    timestamp: str = field(default_factory=_utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "feature_id": self.feature_id,
            "pattern": self.pattern.value,
            "description": self.description,
            "agent_role": self.agent_role,
            "gate": self.gate,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KnowledgeEntry:
        return cls(
            timestamp=data.get("timestamp", ""),
            feature_id=data.get("feature_id", ""),
            pattern=KnowledgePattern(data["pattern"]),
            description=data.get("description", ""),
            agent_role=data.get("agent_role", ""),
            gate=data.get("gate", ""),
            tags=tuple(data.get("tags", [])),
        )


class KnowledgeBase:
    """Append-only JSONL knowledge store."""

    FILE_NAME = "knowledge.jsonl"

    def __init__(self, swarm_dir: Path) -> None:
        self._path = Path(swarm_dir) / self.FILE_NAME

    @property
    def path(self) -> Path:
        return self._path

    def append(self, entry: KnowledgeEntry) -> None:
        append_line(self._path, json.dumps(entry.to_dict()))

    def record(
        self,
        feature_id: str,
        pattern: KnowledgePattern,
        description: str,
        agent_role: str,
        gate: str,
        tags: Optional[list[str]] = None,
    ) -> KnowledgeEntry:
        """Build and append an entry, returning it."""
        entry = KnowledgeEntry(
            feature_id=feature_id,
            pattern=pattern,
            description=description,
            agent_role=agent_role,
            gate=gate,
            tags=tuple(tags or []),
        )
        self.append(entry)
        return entry

    def read_all(self) -> list[KnowledgeEntry]:
        entries = []
        for data in read_jsonl(self._path):
            try:
                entries.append(KnowledgeEntry.from_dict(data))
            except (KeyError, ValueError):
                continue
        return entries

    def for_feature(self, feature_id: str) -> list[KnowledgeEntry]:
        return [e for e in self.read_all() if e.feature_id == feature_id]


_SECTION_TITLES = (
    (KnowledgePattern.FAILURE, "Known Failures to Avoid"),
    (KnowledgePattern.GOTCHA, "Gotchas"),
    (KnowledgePattern.SUCCESS, "Successful Patterns"),
    (KnowledgePattern.OPTIMIZATION, "Optimizations"),
)


def format_for_context(entries: list[KnowledgeEntry]) -> str:
    """Group entries by pattern into a markdown block for prompt injection.

    Returns an empty string when there are no entries.
    """
    if not entries:
        return ""

    sections = []
    for pattern, title in _SECTION_TITLES:
        lines = [
            f"- [{e.feature_id}/{e.gate}] {e.description}"
            for e in entries
            if e.pattern == pattern
        ]
        if lines:
            sections.append(f"## {title}\n" + "\n".join(lines))

    return "# Swarm Knowledge Base\n\n" + "\n\n".join(sections)
