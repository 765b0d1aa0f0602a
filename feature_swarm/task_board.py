"""
Task board persistence for Feature Swarm.

This module handles:
- Building the initial board from a spec (two tasks per feature + integration)
- Saving and loading the board to .swarm/task-board.json with atomic writes
- Pure status transitions that return a new board instead of mutating
- Picking the next ready task and computing board stats

Task ids are derived from (feature id, stage), so the lifecycle never needs
to look ids up:
    task-<feature>-acceptance-test, task-<feature>-implement, task-integrate
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from feature_swarm.errors import TaskBoardError
from feature_swarm.models import Feature, SwarmSpec
from feature_swarm.utils.fs import FileSystemError, file_exists, read_file, safe_write

if TYPE_CHECKING:
    from feature_swarm.logger import SwarmLogger


INTEGRATE_TASK_ID = "task-integrate"


class TaskType(Enum):
    """Pipeline checkpoint a task tracks."""
    ACCEPTANCE_TEST = "acceptance-test"
    IMPLEMENT = "implement"
    INTEGRATE = "integrate"


class TaskStatus(Enum):
    """Status of a task on the board."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    FAILED = "failed"
    BLOCKED = "blocked"


def acceptance_task_id(feature_id: str) -> str:
    return f"task-{feature_id}-acceptance-test"


def implement_task_id(feature_id: str) -> str:
    return f"task-{feature_id}-implement"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class SwarmTask:
    """A single work item on the board."""
    id: str
    feature_id: str
    type: TaskType
    title: str
    description: str = ""
    dependencies: tuple[str, ...] = ()
    status: TaskStatus = TaskStatus.PENDING
    assigned_role: Optional[str] = None
    iterations: int = 0
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)
    result: Optional[str] = None
    failure_reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "feature_id": self.feature_id,
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "dependencies": list(self.dependencies),
            "status": self.status.value,
            "assigned_role": self.assigned_role,
            "iterations": self.iterations,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "result": self.result,
            "failure_reason": self.failure_reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SwarmTask:
        return cls(
            id=data["id"],
            feature_id=data.get("feature_id", ""),
            type=TaskType(data["type"]),
            title=data.get("title", ""),
            description=data.get("description", ""),
            dependencies=tuple(data.get("dependencies", [])),
            status=TaskStatus(data.get("status", "pending")),
            assigned_role=data.get("assigned_role"),
            iterations=data.get("iterations", 0),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
            result=data.get("result"),
            failure_reason=data.get("failure_reason"),
        )


@dataclass(frozen=True)
class BoardStats:
    """Counts by status."""
    total: int = 0
    done: int = 0
    failed: int = 0
    in_progress: int = 0
    pending: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "done": self.done,
            "failed": self.failed,
            "in_progress": self.in_progress,
            "pending": self.pending,
        }


def compute_stats(tasks: tuple[SwarmTask, ...]) -> BoardStats:
    return BoardStats(
        total=len(tasks),
        done=sum(1 for t in tasks if t.status == TaskStatus.DONE),
        failed=sum(1 for t in tasks if t.status == TaskStatus.FAILED),
        in_progress=sum(1 for t in tasks if t.status == TaskStatus.IN_PROGRESS),
        pending=sum(1 for t in tasks if t.status == TaskStatus.PENDING),
    )


@dataclass(frozen=True)
class TaskBoard:
    """The full board for a swarm run. Immutable; transitions return copies."""
    project_name: str
    features: tuple[Feature, ...] = ()
    tasks: tuple[SwarmTask, ...] = ()
    created_at: str = field(default_factory=_utc_now)
    updated_at: str = field(default_factory=_utc_now)

    @property
    def stats(self) -> BoardStats:
        return compute_stats(self.tasks)

    def get_task(self, task_id: str) -> Optional[SwarmTask]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_name": self.project_name,
            "features": [f.to_dict() for f in self.features],
            "tasks": [t.to_dict() for t in self.tasks],
            "stats": self.stats.to_dict(),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TaskBoard:
        return cls(
            project_name=data.get("project_name", ""),
            features=tuple(Feature.from_dict(f) for f in data.get("features", [])),
            tasks=tuple(SwarmTask.from_dict(t) for t in data.get("tasks", [])),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )


def build_board(spec: SwarmSpec) -> TaskBoard:
    """
    Build a fresh board from a spec.

    Each feature gets an acceptance-test task and an implement task. A
    feature's acceptance-test task depends on the implement tasks of its
    dependencies; the single integrate task depends on every implement task.
    """
    now = _utc_now()
    tasks: list[SwarmTask] = []

    for feature in spec.features:
        at_id = acceptance_task_id(feature.id)
        tasks.append(SwarmTask(
            id=at_id,
            feature_id=feature.id,
            type=TaskType.ACCEPTANCE_TEST,
            title=f"Write acceptance tests (RED) for: {feature.name}",
            description=(
                f'TDD Red phase: write failing acceptance tests for feature '
                f'"{feature.name}" based on acceptance criteria.'
            ),
            dependencies=tuple(implement_task_id(dep) for dep in feature.dependencies),
            created_at=now,
            updated_at=now,
        ))
        tasks.append(SwarmTask(
            id=implement_task_id(feature.id),
            feature_id=feature.id,
            type=TaskType.IMPLEMENT,
            title=f"Implement: {feature.name}",
            description=(
                f'TDD Green+Refactor phase: implement "{feature.name}" to make '
                f'acceptance tests pass, then refactor.'
            ),
            dependencies=(at_id,),
            created_at=now,
            updated_at=now,
        ))

    tasks.append(SwarmTask(
        id=INTEGRATE_TASK_ID,
        feature_id="integration",
        type=TaskType.INTEGRATE,
        title="Integrate all features",
        description="Run end-to-end integration: resolve conflicts and verify all tests pass.",
        dependencies=tuple(implement_task_id(f.id) for f in spec.features),
        created_at=now,
        updated_at=now,
    ))

    return TaskBoard(
        project_name=spec.project_name,
        features=tuple(spec.features),
        tasks=tuple(tasks),
        created_at=now,
        updated_at=now,
    )


def _update_task(board: TaskBoard, task_id: str, **changes: Any) -> TaskBoard:
    if board.get_task(task_id) is None:
        raise TaskBoardError(f"Task '{task_id}' not found on task board")
    now = _utc_now()
    tasks = tuple(
        replace(t, updated_at=now, **changes) if t.id == task_id else t
        for t in board.tasks
    )
    return replace(board, tasks=tasks, updated_at=now)


def mark_in_progress(board: TaskBoard, task_id: str, role: str) -> TaskBoard:
    """Return a new board with the task in progress and assigned to role."""
    return _update_task(board, task_id, status=TaskStatus.IN_PROGRESS, assigned_role=role)


def mark_done(board: TaskBoard, task_id: str, result: str) -> TaskBoard:
    """Return a new board with the task done."""
    task = board.get_task(task_id)
    iterations = task.iterations + 1 if task else 0
    return _update_task(
        board, task_id, status=TaskStatus.DONE, result=result, iterations=iterations
    )


def mark_failed(board: TaskBoard, task_id: str, reason: str) -> TaskBoard:
    """Return a new board with the task failed."""
    task = board.get_task(task_id)
    iterations = task.iterations + 1 if task else 0
    return _update_task(
        board, task_id, status=TaskStatus.FAILED, failure_reason=reason, iterations=iterations
    )


def get_next_task(board: TaskBoard) -> Optional[SwarmTask]:
    """First pending task whose dependencies are all done, or None."""
    done_ids = {t.id for t in board.tasks if t.status == TaskStatus.DONE}
    for task in board.tasks:
        if task.status != TaskStatus.PENDING:
            continue
        if all(dep in done_ids for dep in task.dependencies):
            return task
    return None


class TaskBoardStore:
    """
    Persistent task board storage.

    The board lives at <swarm_dir>/task-board.json. Single writer only;
    concurrent runs against one project are not supported.
    """

    FILE_NAME = "task-board.json"

    def __init__(self, swarm_dir: Path, logger: Optional[SwarmLogger] = None) -> None:
        self._path = Path(swarm_dir) / self.FILE_NAME
        self._logger = logger

    @property
    def path(self) -> Path:
        return self._path

    def _log(self, event_type: str, data: Optional[dict] = None, level: str = "info") -> None:
        """Log an event if logger is configured."""
        if self._logger:
            self._logger.log(event_type, data, level=level)

    def create(self, spec: SwarmSpec) -> TaskBoard:
        """Build a board from the spec and persist it."""
        board = build_board(spec)
        self.save(board)
        self._log("board_created", {"tasks": len(board.tasks)})
        return board

    def exists(self) -> bool:
        return file_exists(self._path)

    def load(self) -> TaskBoard:
        """
        Load the board from disk.

        Raises:
            TaskBoardError: If the board is missing or corrupt.
        """
        if not file_exists(self._path):
            raise TaskBoardError(f"Task board not found: {self._path}")
        try:
            data = json.loads(read_file(self._path))
            return TaskBoard.from_dict(data)
        except (json.JSONDecodeError, KeyError, ValueError, TypeError) as e:
            self._log("board_corrupted", {"error": str(e)}, level="error")
            raise TaskBoardError(f"Task board is corrupt: {e}")
        except FileSystemError as e:
            raise TaskBoardError(f"Failed to read task board: {e}")

    def save(self, board: TaskBoard) -> None:
        """
        Save the board atomically.

        Raises:
            TaskBoardError: If the write fails.
        """
        try:
            safe_write(self._path, json.dumps(board.to_dict(), indent=2))
        except FileSystemError as e:
            self._log("board_save_error", {"error": str(e)}, level="error")
            raise TaskBoardError(f"Failed to save task board: {e}")
        self._log("board_saved", board.stats.to_dict(), level="debug")
