"""Tests for the feature-swarm CLI."""

from unittest.mock import patch

import pytest

from feature_swarm import __version__
from feature_swarm.cli.app import app
from feature_swarm.learning import KnowledgeBase, KnowledgePattern
from feature_swarm.orchestrator import SwarmOrchestrator
from tests.fakes import ScriptedProvider

SPEC_YAML = """\
project:
  name: todo-api
features:
  - id: f-1
    name: Create todo
    acceptance_criteria: [POST returns 201]
"""


def _offline_orchestrator(config):
    return SwarmOrchestrator(config, provider=ScriptedProvider())


@pytest.fixture
def spec_file(tmp_path):
    path = tmp_path / "spec.yaml"
    path.write_text(SPEC_YAML)
    return path


class TestMainCallback:
    """Tests for global options."""

    def test_version(self, cli_runner):
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"feature-swarm version {__version__}" in result.output

    def test_no_command_shows_help(self, cli_runner):
        result = cli_runner.invoke(app, [])
        assert result.exit_code == 0
        assert "run" in result.output

    def test_missing_project_dir(self, cli_runner, tmp_path):
        result = cli_runner.invoke(app, ["--project", str(tmp_path / "nope"), "status"])
        assert result.exit_code == 1
        assert "Project directory not found" in result.output


class TestRunCommand:
    """Tests for `feature-swarm run`."""

    def test_successful_run(self, cli_runner, project_dir, spec_file):
        with patch("feature_swarm.cli.app.SwarmOrchestrator", _offline_orchestrator):
            result = cli_runner.invoke(app, [
                "--project", str(project_dir),
                "run", "--spec", str(spec_file), "--no-questions",
            ])

        assert result.exit_code == 0, result.output
        assert "Global score: 87 (min: 85)" in result.output
        assert (project_dir / "swarm-output" / "swarm-summary.json").exists()
        assert (project_dir / ".swarm" / "task-board.json").exists()

    def test_output_and_threshold_options(self, cli_runner, project_dir, spec_file, tmp_path):
        with patch("feature_swarm.cli.app.SwarmOrchestrator", _offline_orchestrator):
            result = cli_runner.invoke(app, [
                "--project", str(project_dir),
                "run", "--spec", str(spec_file),
                "--output", str(tmp_path / "out"),
                "--min-score", "95",
                "--max-iterations", "1",
                "--no-questions",
            ])

        assert result.exit_code == 0, result.output
        assert "Global score: 87 (min: 95)" in result.output
        assert "[ESCALATION]" in result.output
        assert (tmp_path / "out" / "swarm-summary.json").exists()

    def test_missing_spec_file(self, cli_runner, tmp_path):
        result = cli_runner.invoke(app, ["run", "--spec", str(tmp_path / "missing.yaml")])
        assert result.exit_code != 0

    def test_min_score_out_of_range(self, cli_runner, spec_file):
        result = cli_runner.invoke(app, ["run", "--spec", str(spec_file), "--min-score", "101"])
        assert result.exit_code == 2

    def test_invalid_spec(self, cli_runner, project_dir, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("features: []\n")
        with patch("feature_swarm.cli.app.SwarmOrchestrator", _offline_orchestrator):
            result = cli_runner.invoke(app, [
                "--project", str(project_dir), "run", "--spec", str(bad),
            ])
        assert result.exit_code == 1
        assert "project.name" in result.output

    def test_missing_explicit_config(self, cli_runner, spec_file, tmp_path):
        result = cli_runner.invoke(app, [
            "run", "--spec", str(spec_file), "--config", str(tmp_path / "nope.yaml"),
        ])
        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_fatal_stage_error(self, cli_runner, project_dir, spec_file):
        async def explode(ctx):
            raise RuntimeError("board on fire")

        with patch("feature_swarm.cli.app.SwarmOrchestrator", _offline_orchestrator), \
                patch("feature_swarm.lifecycle.stage_plan", explode):
            result = cli_runner.invoke(app, [
                "--project", str(project_dir),
                "run", "--spec", str(spec_file), "--no-questions",
            ])

        assert result.exit_code == 1
        assert "Swarm failed" in result.output
        assert "board on fire" in result.output


class TestStatusCommand:
    """Tests for `feature-swarm status`."""

    def test_no_board(self, cli_runner, project_dir):
        result = cli_runner.invoke(app, ["status", "--project", str(project_dir)])
        assert result.exit_code == 1
        assert "No task board available" in result.output

    def test_shows_board_after_run(self, cli_runner, project_dir, spec_file):
        with patch("feature_swarm.cli.app.SwarmOrchestrator", _offline_orchestrator):
            cli_runner.invoke(app, [
                "--project", str(project_dir), "run", "--spec", str(spec_file), "--no-questions",
            ])

        result = cli_runner.invoke(app, ["status", "--project", str(project_dir)])

        assert result.exit_code == 0, result.output
        assert "Task Board: todo-api" in result.output
        assert "3/3 done, 0 failed" in result.output


class TestKnowledgeCommand:
    """Tests for `feature-swarm knowledge`."""

    def test_empty(self, cli_runner, project_dir):
        result = cli_runner.invoke(app, ["knowledge", "--project", str(project_dir)])
        assert result.exit_code == 0
        assert "No knowledge recorded yet." in result.output

    def test_filters_by_feature(self, cli_runner, project_dir):
        kb = KnowledgeBase(project_dir / ".swarm")
        kb.record("f-1", KnowledgePattern.GOTCHA, "watch the migrations", "qa", "review")
        kb.record("f-2", KnowledgePattern.SUCCESS, "clean handlers", "qa", "review")

        result = cli_runner.invoke(
            app, ["knowledge", "--project", str(project_dir), "--feature", "f-2"]
        )

        assert result.exit_code == 0
        assert "clean handlers" in result.output
        assert "watch the migrations" not in result.output
