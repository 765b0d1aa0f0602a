"""
Structured JSONL logging for Feature Swarm.

This module provides:
- JSONL diagnostic logging for swarm runs
- Log files organized by logger name and date
- Log levels (debug, info, warn, error)
- Context manager for run-scoped logging

The audit trail of a run lives in the event log (feature_swarm.events);
this logger is for debugging the orchestrator itself.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

from feature_swarm.utils.fs import append_line, ensure_dir, read_jsonl


class LogLevel:
    """Log level constants."""
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class SwarmLogger:
    """
    JSONL event logger for Feature Swarm.

    Writes structured log entries to <logs_dir>/<name>-YYYY-MM-DD.jsonl

    Each log entry is a JSON object with:
    - timestamp: ISO format timestamp
    - level: Log level (debug, info, warn, error)
    - event_type: Type of event being logged
    - name: Logger name (usually the project name)
    - data: Additional event data (dict)
    - run_id: Present inside run_context()
    """

    def __init__(self, name: str, logs_dir: Path) -> None:
        """
        Initialize logger.

        Args:
            name: Logger name used in file names and entries.
            logs_dir: Directory that receives the JSONL files.
        """
        self.name = name
        self.logs_dir = Path(logs_dir)
        self._current_run_id: Optional[str] = None

    def _get_log_path(self, date: Optional[str] = None) -> Path:
        """Get the log file path for a date (today by default)."""
        if date is None:
            date = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        return self.logs_dir / f"{self.name}-{date}.jsonl"

    def log(
        self,
        event_type: str,
        data: Optional[dict[str, Any]] = None,
        level: str = LogLevel.INFO,
    ) -> None:
        """
        Log an event.

        Args:
            event_type: Type of event (e.g., "stage_start", "agent_fallback").
            data: Additional data to include in the log entry.
            level: Log level (debug, info, warn, error).
        """
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": level,
            "event_type": event_type,
            "name": self.name,
            "data": data or {},
        }

        if self._current_run_id:
            entry["run_id"] = self._current_run_id

        ensure_dir(self.logs_dir)
        append_line(self._get_log_path(), json.dumps(entry, default=str))

    def debug(self, event_type: str, data: Optional[dict[str, Any]] = None) -> None:
        """Log a debug event."""
        self.log(event_type, data, LogLevel.DEBUG)

    def info(self, event_type: str, data: Optional[dict[str, Any]] = None) -> None:
        """Log an info event."""
        self.log(event_type, data, LogLevel.INFO)

    def warn(self, event_type: str, data: Optional[dict[str, Any]] = None) -> None:
        """Log a warning event."""
        self.log(event_type, data, LogLevel.WARN)

    def error(self, event_type: str, data: Optional[dict[str, Any]] = None) -> None:
        """Log an error event."""
        self.log(event_type, data, LogLevel.ERROR)

    @contextmanager
    def run_context(self, run_id: str) -> Iterator[SwarmLogger]:
        """
        Context manager for run-scoped logging.

        All logs within this context include the run_id.

        Example:
            with logger.run_context("run-001") as log:
                log.info("stage_start", {"stage": "plan"})
        """
        old_run_id = self._current_run_id
        self._current_run_id = run_id
        self.info("run_start", {"run_id": run_id})
        try:
            yield self
        finally:
            self.info("run_end", {"run_id": run_id})
            self._current_run_id = old_run_id

    def read_logs(
        self,
        date: Optional[str] = None,
        level: Optional[str] = None,
        event_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """
        Read log entries with optional filtering.

        Args:
            date: Date string (YYYY-MM-DD) to read. If None, reads today's logs.
            level: Filter by log level.
            event_type: Filter by event type.
            limit: Maximum number of entries to return.
        """
        entries = []
        for entry in read_jsonl(self._get_log_path(date)):
            if level and entry.get("level") != level:
                continue
            if event_type and entry.get("event_type") != event_type:
                continue
            entries.append(entry)
            if limit and len(entries) >= limit:
                break
        return entries


def get_logger(name: str, logs_dir: Path) -> SwarmLogger:
    """Create a logger for a project."""
    return SwarmLogger(name, logs_dir)
