"""CLI error handling utilities with styled output.

This module provides the Ensure class for asserting invariants in CLI commands
with consistent, user-friendly error messages. All errors use red "Error:" prefix
for visual consistency.
"""

from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

import click

from smart_git.cli.output import user_output

if TYPE_CHECKING:
    from smart_git.core.context import SgContext

T = TypeVar("T")


class Ensure:
    """Helper class for asserting invariants with consistent error handling."""

    @staticmethod
    def invariant(condition: bool, error_message: str) -> None:
        """Ensure condition is true, otherwise output styled error and exit.

        Args:
            condition: Boolean condition to check
            error_message: Error message to display if condition is false.
                          "Error: " prefix will be added automatically in red.

        Raises:
            SystemExit: If condition is false (with exit code 1)
        """
        if not condition:
            user_output(click.style("Error: ", fg="red") + error_message)
            raise SystemExit(1)

    @staticmethod
    def not_none(value: T | None, error_message: str) -> T:
        """Ensure value is not None, otherwise output styled error and exit.

        Provides type narrowing from `T | None` to `T`.

        Raises:
            SystemExit: If value is None (with exit code 1)
        """
        if value is None:
            user_output(click.style("Error: ", fg="red") + error_message)
            raise SystemExit(1)
        return value

    @staticmethod
    def in_git_repository(ctx: "SgContext") -> Path:
        """Ensure the command runs inside a git work tree and return the repository root.

        Raises:
            SystemExit: If not inside a git repository
        """
        repo_root = Ensure.not_none(
            ctx.repo_root,
            "Not a git repository - Run this command from inside a repository",
        )
        Ensure.invariant(
            ctx.git.is_repository(repo_root),
            f"Not a git work tree: {repo_root}",
        )
        return repo_root

    @staticmethod
    def no_operation_in_progress(ctx: "SgContext", repo_root: Path) -> None:
        """Ensure no rebase or merge is already in progress.

        Raises:
            SystemExit: If a rebase or merge is in progress
        """
        if ctx.git.is_rebase_in_progress(repo_root):
            user_output(
                click.style("Error: ", fg="red")
                + "A rebase is already in progress - "
                "Finish it with 'git rebase --continue' or 'git rebase --abort'"
            )
            raise SystemExit(1)
        if ctx.git.is_merge_in_progress(repo_root):
            user_output(
                click.style("Error: ", fg="red")
                + "A merge is already in progress - "
                "Finish it with 'git merge --continue' or 'git merge --abort'"
            )
            raise SystemExit(1)
