"""
Entry point for running feature_swarm as a module.

Allows running as: python -m feature_swarm
"""

from feature_swarm.cli.app import cli_main

if __name__ == "__main__":
    cli_main()
