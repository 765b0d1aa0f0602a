"""Command line interface for Feature Swarm."""

from feature_swarm.cli.app import app, cli_main

__all__ = ["app", "cli_main"]
