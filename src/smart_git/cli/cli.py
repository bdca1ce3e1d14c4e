import logging
import os
from dataclasses import replace
from pathlib import Path

import click

from smart_git.cli.commands.push import push_cmd
from smart_git.cli.commands.resolve import resolve_cmd
from smart_git.cli.commands.status import status_cmd
from smart_git.cli.commands.sync import sync_cmd
from smart_git.cli.output import user_output
from smart_git.core.context import create_context
from smart_git.core.user_feedback import create_feedback

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])  # terse help flags

DEBUG_ENV_VAR = "SG_DEBUG"


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="smart-git")
@click.option("-q", "--quiet", is_flag=True, help="Only show results, warnings and errors.")
@click.option("--json", "json_mode", is_flag=True, help="Print one JSON document to stdout.")
@click.pass_context
def cli(ctx: click.Context, quiet: bool, json_mode: bool) -> None:
    """Keep branches in sync with their base and resolve conflicts safely."""
    if os.environ.get(DEBUG_ENV_VAR):
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    # Only create context if not already provided (e.g., by tests)
    if ctx.obj is None:
        try:
            ctx.obj = create_context(cwd=Path.cwd(), quiet=quiet, json_mode=json_mode)
        except ValueError as e:
            user_output(click.style("Error: ", fg="red") + str(e))
            raise SystemExit(1) from e
    elif quiet or json_mode:
        quiet = ctx.obj.quiet or quiet
        json_mode = ctx.obj.json_mode or json_mode
        ctx.obj = replace(
            ctx.obj,
            feedback=create_feedback(quiet=quiet, json_mode=json_mode),
            quiet=quiet,
            json_mode=json_mode,
        )


cli.add_command(sync_cmd)
cli.add_command(push_cmd)
cli.add_command(resolve_cmd)
cli.add_command(status_cmd)


def main() -> None:
    """CLI entry point used by the `sg` console script."""
    cli()
