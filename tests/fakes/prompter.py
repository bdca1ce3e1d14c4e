"""Fake implementation of Prompter for testing.

Answers are scripted up front and consumed in order, so a test states exactly
which questions it expects the engine to ask.
"""

from smart_git.core.prompter import Prompter


class FakePrompter(Prompter):
    """In-memory fake implementation of operator prompts.

    Constructor Injection:
    - confirm_responses: answers for successive confirm() calls
    - choices: answers for successive choose() calls

    An unexpected question (no scripted answer left) fails the test with
    AssertionError instead of blocking.

    Examples:
        # Operator picks "resolve", then keeps the incoming side
        >>> prompter = FakePrompter(choices=["r", "i"])
        >>> prompter.choose("How?", ["r", "a", "m"])
        'r'
    """

    def __init__(
        self,
        *,
        confirm_responses: list[bool] | None = None,
        choices: list[str] | None = None,
    ) -> None:
        self._confirm_responses = list(confirm_responses or [])
        self._choices = list(choices or [])
        self._confirm_prompts: list[str] = []
        self._choose_prompts: list[tuple[str, list[str]]] = []

    def confirm(self, message: str, *, default: bool) -> bool:
        self._confirm_prompts.append(message)
        if not self._confirm_responses:
            raise AssertionError(f"Unexpected confirm prompt: {message}")
        return self._confirm_responses.pop(0)

    def choose(self, message: str, choices: list[str], *, default: str | None = None) -> str:
        self._choose_prompts.append((message, list(choices)))
        if not self._choices:
            raise AssertionError(f"Unexpected choice prompt: {message}")
        answer = self._choices.pop(0)
        if answer not in choices:
            raise AssertionError(f"Scripted answer {answer!r} not in {choices}")
        return answer

    @property
    def confirm_prompts(self) -> list[str]:
        return self._confirm_prompts.copy()

    @property
    def choose_prompts(self) -> list[tuple[str, list[str]]]:
        return self._choose_prompts.copy()

    @property
    def unused_choices(self) -> list[str]:
        return self._choices.copy()
