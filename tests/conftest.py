"""Shared fixtures for Feature Swarm tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from tests.fakes import ScriptedProvider, make_spec


@pytest.fixture
def provider() -> ScriptedProvider:
    """Provider with an empty script: every agent call falls back."""
    return ScriptedProvider()


@pytest.fixture
def spec():
    """Two features, the second depending on the first."""
    return make_spec()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def swarm_dir(project_dir: Path) -> Path:
    path = project_dir / ".swarm"
    path.mkdir()
    return path


@pytest.fixture
def cli_runner() -> CliRunner:
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Clear module-level state between tests."""
    from feature_swarm.cli.common import set_project_dir
    from feature_swarm.config import clear_config_cache

    yield
    set_project_dir(None)
    clear_config_cache()
