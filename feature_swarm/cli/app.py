"""Main Typer app definition and commands.

This is the canonical entry point for the CLI:

    feature-swarm run --spec spec.yaml [--output DIR] [--min-score N]
                      [--max-iterations N] [--no-questions] [--config FILE]
    feature-swarm status
    feature-swarm knowledge [--feature ID]
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.markdown import Markdown
from rich.text import Text

from feature_swarm import __version__
from feature_swarm.cli.common import get_config_or_default, get_console, set_project_dir
from feature_swarm.cli.display import board_table, format_state, summary_table
from feature_swarm.config import ConfigError
from feature_swarm.errors import TaskBoardError
from feature_swarm.learning.knowledge_base import KnowledgeBase, format_for_context
from feature_swarm.models import SwarmState
from feature_swarm.orchestrator import SwarmOrchestrator
from feature_swarm.spec_loader import SpecLoadError
from feature_swarm.task_board import TaskBoardStore

# Create Typer app
app = typer.Typer(
    name="feature-swarm",
    help="Multi-agent TDD delivery: spec in, reviewed and integrated features out",
    add_completion=False,
)

# Rich console for output - use singleton from common module
console = get_console()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"feature-swarm version {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    project: Optional[str] = typer.Option(
        None,
        "--project",
        "-p",
        help="Project directory to operate on (default: current directory)",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    Feature Swarm - autonomous multi-agent feature delivery.

    Plans a project spec, drives each feature through RED, GREEN and
    parallel review gates, then integrates the result.
    """
    if project:
        project_path = Path(project)
        if not project_path.is_dir():
            console.print(f"[red]Error: Project directory not found: {project}[/red]")
            raise typer.Exit(1)
        set_project_dir(str(project_path.absolute()))

    # If no subcommand and no --help, show help
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


def _print_progress(state: SwarmState, message: str) -> None:
    line = format_state(state)
    line.append(" ")
    line.append(message, style="yellow" if "[ESCALATION]" in message else "")
    console.print(line)


@app.command()
def run(
    spec: Path = typer.Option(
        ...,
        "--spec",
        "-s",
        help="Path to the YAML project spec",
        exists=True,
        dir_okay=False,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Directory for swarm-summary.json (default: config output_dir)",
    ),
    min_score: Optional[int] = typer.Option(
        None,
        "--min-score",
        min=0,
        max=100,
        help="Review and global score threshold (0-100)",
    ),
    max_iterations: Optional[int] = typer.Option(
        None,
        "--max-iterations",
        min=1,
        help="Implement-loop bound per feature",
    ),
    no_questions: bool = typer.Option(
        False,
        "--no-questions",
        help="Skip clarifying questions; assumptions are still written",
    ),
    config_file: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config.yaml",
    ),
) -> None:
    """Run the full swarm lifecycle for a spec."""
    try:
        config = get_config_or_default(config_file=config_file)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    orchestrator = SwarmOrchestrator(config)

    try:
        ctx = asyncio.run(orchestrator.run(
            spec,
            output_path=output,
            min_score=min_score,
            max_iterations=max_iterations,
            no_questions=True if no_questions else None,
            on_progress=_print_progress,
        ))
    except (SpecLoadError, ConfigError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red bold]Swarm failed:[/red bold] {e}")
        raise typer.Exit(1)

    if ctx.summary is not None:
        console.print()
        console.print(summary_table(ctx.summary, ctx.options.min_score))
        console.print(Text(f"Summary written to {ctx.options.output_path}", style="dim"))


@app.command()
def status(
    project: Optional[str] = typer.Option(
        None,
        "--project",
        "-p",
        help="Project directory (default: global --project or current directory)",
    ),
) -> None:
    """Show the persisted task board."""
    try:
        config = get_config_or_default(project=project)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    try:
        board = TaskBoardStore(config.swarm_path).load()
    except TaskBoardError as e:
        console.print(f"[yellow]No task board available:[/yellow] {e}")
        raise typer.Exit(1)

    console.print(board_table(board))


@app.command()
def knowledge(
    project: Optional[str] = typer.Option(
        None,
        "--project",
        "-p",
        help="Project directory (default: global --project or current directory)",
    ),
    feature: Optional[str] = typer.Option(
        None,
        "--feature",
        "-f",
        help="Only show entries for this feature id",
    ),
) -> None:
    """Show patterns learned across runs."""
    try:
        config = get_config_or_default(project=project)
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    kb = KnowledgeBase(config.swarm_path)
    entries = kb.for_feature(feature) if feature else kb.read_all()
    if not entries:
        console.print("[dim]No knowledge recorded yet.[/dim]")
        return

    console.print(Markdown(format_for_context(entries)))


# =========================================================================
# Entry Point
# =========================================================================


def cli_main() -> None:
    """Entry point for the CLI."""
    app()


__all__ = ["app", "cli_main"]
