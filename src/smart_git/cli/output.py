"""Output utilities for CLI commands with clear intent.

- user_output: human-facing text, always routed to stderr
- machine_output: structured data for scripts, routed to stdout

Keeping the streams separate lets `sg ... --json | jq` work while progress and
conflict help still reach the terminal.
"""

from typing import Any

import click


def user_output(message: Any = "", nl: bool = True) -> None:
    """Output informational message for human users (stderr)."""
    click.echo(message, nl=nl, err=True)


def machine_output(message: Any = "", nl: bool = True) -> None:
    """Output structured data for machine consumption (stdout)."""
    click.echo(message, nl=nl)
