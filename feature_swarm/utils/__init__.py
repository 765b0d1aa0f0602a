"""Utility modules for Feature Swarm."""

from feature_swarm.utils.fs import (
    FileSystemError,
    append_line,
    ensure_dir,
    file_exists,
    read_file,
    read_jsonl,
    safe_write,
)

__all__ = [
    "FileSystemError",
    "append_line",
    "ensure_dir",
    "file_exists",
    "read_file",
    "read_jsonl",
    "safe_write",
]
