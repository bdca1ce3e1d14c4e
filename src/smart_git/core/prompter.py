"""Operator prompts behind an interface so tests can script the answers."""

from abc import ABC, abstractmethod

import click


class Prompter(ABC):
    """Blocking questions to the operator. No timeouts."""

    @abstractmethod
    def confirm(self, message: str, *, default: bool) -> bool:
        """Ask a yes/no question."""

    @abstractmethod
    def choose(self, message: str, choices: list[str], *, default: str | None = None) -> str:
        """Ask the operator to pick one of choices and return it."""


class ClickPrompter(Prompter):
    """Prompts on stderr via click, keeping stdout clean for --json."""

    def confirm(self, message: str, *, default: bool) -> bool:
        return click.confirm(message, default=default, err=True)

    def choose(self, message: str, choices: list[str], *, default: str | None = None) -> str:
        return click.prompt(
            message,
            type=click.Choice(choices, case_sensitive=False),
            default=default,
            show_choices=True,
            err=True,
        ).lower()
