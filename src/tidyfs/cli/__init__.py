"""CLI entrypoints for tidyfs."""

from tidyfs.cli.main import app, run_cli

__all__ = ["app", "run_cli"]
