"""
Entry point for running the management CLI as a module.

Usage:
    python -m shuttlecoach <command>
"""

from shuttlecoach.cli import cli

if __name__ == "__main__":
    cli()
