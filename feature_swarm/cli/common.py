"""Common utilities and global state for the CLI.

Contains project directory management and config loading.
This module should NOT import from app/display to avoid circular imports.
"""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

from rich.console import Console

if TYPE_CHECKING:
    from feature_swarm.config import SwarmConfig

# ============================================================================
# Global State
# ============================================================================

# Global project directory override (set via --project flag)
_project_dir: Optional[str] = None

# Console singleton
_console: Optional[Console] = None


def get_project_dir() -> Optional[str]:
    """Get the project directory override if set."""
    return _project_dir


def set_project_dir(path: Optional[str]) -> None:
    """Set the project directory override."""
    global _project_dir
    _project_dir = path


def get_console() -> Console:
    """Get or create the console singleton."""
    global _console
    if _console is None:
        _console = Console()
    return _console


# ============================================================================
# Config Helpers
# ============================================================================


def resolve_project_dir(project: Optional[str] = None) -> Path:
    """Command option, then the global --project flag, then the current directory."""
    return Path(project or get_project_dir() or ".").absolute()


def get_config_or_default(
    project: Optional[str] = None,
    config_file: Optional[str] = None,
) -> "SwarmConfig":
    """
    Load config.yaml, or fall back to defaults rooted at the project directory.

    An explicit config_file must exist; the implicit <project>/config.yaml
    is optional.

    Raises:
        ConfigError: If an explicit config file is missing or any config is invalid.
    """
    from feature_swarm.config import default_config, load_config

    if config_file:
        return load_config(config_file)

    project_dir = resolve_project_dir(project)
    candidate = project_dir / "config.yaml"
    if candidate.is_file():
        return load_config(str(candidate))
    return default_config(str(project_dir))
