"""Display helpers and formatters for the CLI.

Rich tables for the task board and run summary, and colored stage labels
for progress output.
"""
from __future__ import annotations

from rich.table import Table
from rich.text import Text

from feature_swarm.models import SwarmState
from feature_swarm.summary import SwarmSummary
from feature_swarm.task_board import TaskBoard, TaskStatus

# Stage display names and colors
STATE_DISPLAY: dict[SwarmState, tuple[str, str]] = {
    SwarmState.INIT: ("Init", "dim"),
    SwarmState.CLARIFY: ("Clarify", "blue"),
    SwarmState.PLAN: ("Plan", "blue"),
    SwarmState.FEATURE_LOOP: ("Features", "cyan"),
    SwarmState.INTEGRATE: ("Integrate", "cyan"),
    SwarmState.OUTPUT: ("Output", "cyan"),
    SwarmState.DONE: ("Done", "green bold"),
    SwarmState.FAILED: ("Failed", "red bold"),
}

STATUS_DISPLAY: dict[TaskStatus, tuple[str, str]] = {
    TaskStatus.PENDING: ("Pending", "dim"),
    TaskStatus.IN_PROGRESS: ("In Progress", "cyan bold"),
    TaskStatus.DONE: ("Done", "green"),
    TaskStatus.FAILED: ("Failed", "red"),
    TaskStatus.BLOCKED: ("Blocked", "yellow"),
}


def format_state(state: SwarmState) -> Text:
    """Format a lifecycle state as a colored label."""
    display_name, style = STATE_DISPLAY.get(state, (state.name, "white"))
    return Text(f"[{display_name}]", style=style)


def format_status(status: TaskStatus) -> Text:
    """Format a task status as colored text."""
    display_name, style = STATUS_DISPLAY.get(status, (status.name, "white"))
    return Text(display_name, style=style)


def format_score(score: float, min_score: int) -> Text:
    style = "green" if score >= min_score else "red"
    return Text(f"{score:g}", style=style)


def board_table(board: TaskBoard) -> Table:
    """Render every task on the board."""
    table = Table(title=f"Task Board: {board.project_name}")
    table.add_column("Task", style="cyan")
    table.add_column("Status")
    table.add_column("Role")
    table.add_column("Iter", justify="right")
    table.add_column("Result")

    for task in board.tasks:
        detail = task.failure_reason if task.status == TaskStatus.FAILED else task.result
        table.add_row(
            task.id,
            format_status(task.status),
            task.assigned_role or "-",
            str(task.iterations),
            detail or "",
        )

    stats = board.stats
    table.caption = (
        f"{stats.done}/{stats.total} done, {stats.failed} failed, "
        f"{stats.in_progress} in progress"
    )
    return table


def summary_table(summary: SwarmSummary, min_score: int) -> Table:
    """Render per-feature results and the global score."""
    table = Table(title=f"Swarm Summary: {summary.project_name}")
    table.add_column("Feature", style="cyan")
    table.add_column("Result")
    table.add_column("Iterations", justify="right")
    table.add_column("Score", justify="right")

    for result in summary.features:
        table.add_row(
            result.feature_id,
            Text("success", style="green") if result.success else Text("failed", style="red"),
            str(result.iterations),
            format_score(result.review_score, min_score),
        )

    table.caption = f"Global score: {summary.global_score} (min: {min_score})"
    return table
