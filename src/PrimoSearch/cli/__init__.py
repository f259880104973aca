"""CLI package for PrimoSearch command orchestration."""

from __future__ import annotations

__all__ = ["CommandRunner", "main"]

from PrimoSearch.cli.runner import CommandRunner
from PrimoSearch.cli.ui import cli


def main() -> None:
    """Run PrimoSearch CLI.

    Entry point referenced by console script in pyproject.toml.
    """
    cli()
