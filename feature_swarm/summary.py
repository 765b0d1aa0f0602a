"""Run summary artifact (``swarm-summary.json``)."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence, Union

from feature_swarm.models import FeatureResult, compute_global_score
from feature_swarm.task_board import BoardStats
from feature_swarm.utils.fs import ensure_dir, read_file, safe_write

SUMMARY_FILE = "swarm-summary.json"


@dataclass(frozen=True)
class SwarmSummary:
    """Final outcome of a run, written by the output stage."""
    project_name: str
    features: tuple[FeatureResult, ...] = ()
    task_board: dict[str, int] = field(default_factory=dict)
    global_score: int = 0
    completed_at: str = ""

    @classmethod
    def build(
        cls,
        project_name: str,
        results: Sequence[FeatureResult],
        stats: BoardStats,
    ) -> SwarmSummary:
        return cls(
            project_name=project_name,
            features=tuple(results),
            task_board={"total": stats.total, "done": stats.done, "failed": stats.failed},
            global_score=compute_global_score(list(results)),
            completed_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "projectName": self.project_name,
            "completedAt": self.completed_at,
            "features": [r.to_dict() for r in self.features],
            "taskBoard": dict(self.task_board),
            "globalScore": self.global_score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SwarmSummary:
        return cls(
            project_name=data.get("projectName", ""),
            completed_at=data.get("completedAt", ""),
            features=tuple(FeatureResult.from_dict(r) for r in data.get("features", [])),
            task_board=dict(data.get("taskBoard", {})),
            global_score=int(data.get("globalScore", 0)),
        )


def write_summary(output_dir: Union[str, Path], summary: SwarmSummary) -> Path:
    """Write the summary into output_dir and return its path."""
    output = ensure_dir(output_dir)
    path = output / SUMMARY_FILE
    safe_write(path, json.dumps(summary.to_dict(), indent=2))
    return path


def read_summary(path: Union[str, Path]) -> SwarmSummary:
    """Read a summary file (or the summary inside a directory)."""
    path = Path(path)
    if path.is_dir():
        path = path / SUMMARY_FILE
    return SwarmSummary.from_dict(json.loads(read_file(path)))
