"""User-facing diagnostic output with mode awareness."""

from abc import ABC, abstractmethod

import click

from smart_git.cli.output import user_output


class UserFeedback(ABC):
    """Provides user-facing diagnostic output that's mode-aware.

    The engine reports progress through ctx.feedback instead of threading
    quiet/json booleans through every call.

    Three modes:
    - Interactive: Show all diagnostics
    - Quiet: Suppress info, keep success, warnings and errors
    - Json: Suppress all free text; the command emits one JSON document instead

    Usage:
        ctx.feedback.info("Fetching latest changes...")
        ctx.feedback.success("✓ Rebased onto origin/main")
        ctx.feedback.warning("Local main has 2 unpushed commit(s), skipping update")
        ctx.feedback.error("Error: not a git repository")
    """

    @abstractmethod
    def info(self, message: str) -> None:
        """Show informational message."""

    @abstractmethod
    def success(self, message: str) -> None:
        """Show success message."""

    @abstractmethod
    def warning(self, message: str) -> None:
        """Show warning message."""

    @abstractmethod
    def error(self, message: str) -> None:
        """Show error message."""


class InteractiveFeedback(UserFeedback):
    """Feedback shown in interactive mode (all messages)."""

    def info(self, message: str) -> None:
        user_output(message)

    def success(self, message: str) -> None:
        user_output(click.style(message, fg="green"))

    def warning(self, message: str) -> None:
        user_output(click.style(message, fg="yellow"))

    def error(self, message: str) -> None:
        user_output(click.style(message, fg="red"))


class QuietFeedback(InteractiveFeedback):
    """Feedback for --quiet: informational chatter is dropped."""

    def info(self, message: str) -> None:
        pass


class JsonFeedback(UserFeedback):
    """Feedback for --json: nothing but the final JSON document is printed."""

    def info(self, message: str) -> None:
        pass

    def success(self, message: str) -> None:
        pass

    def warning(self, message: str) -> None:
        pass

    def error(self, message: str) -> None:
        pass


def create_feedback(*, quiet: bool, json_mode: bool) -> UserFeedback:
    if json_mode:
        return JsonFeedback()
    if quiet:
        return QuietFeedback()
    return InteractiveFeedback()
