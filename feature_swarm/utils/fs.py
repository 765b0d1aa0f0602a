"""
File system utilities for Feature Swarm.

This module provides the file operations the swarm stores rely on:
- Atomic writes (write to temp file, then rename) for the task board and artifacts
- Line appends for the JSONL event log and knowledge base
- Directory creation
- Tolerant JSONL reading
"""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any


class FileSystemError(Exception):
    """Raised when a file system operation fails."""
    pass


def ensure_dir(path: str | Path) -> Path:
    """
    Create a directory (and its parents) if it does not exist.

    Safe to call repeatedly.

    Args:
        path: Directory to create.

    Returns:
        Path: The directory path.

    Raises:
        FileSystemError: If the directory cannot be created.
    """
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
        return path
    except OSError as e:
        raise FileSystemError(f"Failed to create directory {path}: {e}")


def safe_write(path: str | Path, content: str, encoding: str = "utf-8") -> None:
    """
    Write content to a file atomically.

    The content goes to a temp file in the target directory first and is then
    moved over the destination, so readers never see a half-written file.

    Args:
        path: Destination file.
        content: Text to write.
        encoding: Character encoding. Defaults to utf-8.

    Raises:
        FileSystemError: If the write fails.
    """
    path = Path(path)
    ensure_dir(path.parent)

    try:
        fd, temp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding=encoding) as f:
                f.write(content)
            shutil.move(temp_path, path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise
    except OSError as e:
        raise FileSystemError(f"Failed to write file {path}: {e}")


def append_line(path: str | Path, line: str, encoding: str = "utf-8") -> None:
    """
    Append a single line to a file, creating it if needed.

    Args:
        path: File to append to.
        line: Line content (a trailing newline is added).
        encoding: Character encoding. Defaults to utf-8.

    Raises:
        FileSystemError: If the append fails.
    """
    path = Path(path)
    ensure_dir(path.parent)
    try:
        with open(path, "a", encoding=encoding) as f:
            f.write(line.rstrip("\n") + "\n")
    except OSError as e:
        raise FileSystemError(f"Failed to append to file {path}: {e}")


def file_exists(path: str | Path) -> bool:
    """Return True if path exists and is a regular file."""
    return Path(path).is_file()


def read_file(path: str | Path, encoding: str = "utf-8") -> str:
    """
    Read a text file.

    Raises:
        FileSystemError: If the file is missing, not a file, or unreadable.
    """
    path = Path(path)

    if not path.exists():
        raise FileSystemError(f"File not found: {path}")

    if not path.is_file():
        raise FileSystemError(f"Not a file: {path}")

    try:
        return path.read_text(encoding=encoding)
    except UnicodeDecodeError as e:
        raise FileSystemError(f"Failed to decode file {path} with encoding {encoding}: {e}")
    except OSError as e:
        raise FileSystemError(f"Failed to read file {path}: {e}")


def read_jsonl(path: str | Path) -> list[dict[str, Any]]:
    """
    Read every JSON object line from a JSONL file.

    Blank and corrupt lines are skipped. A missing file yields an empty list.
    """
    path = Path(path)
    if not path.exists():
        return []

    entries: list[dict[str, Any]] = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(entry, dict):
                entries.append(entry)
    return entries
