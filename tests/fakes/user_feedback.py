"""Fake implementation of UserFeedback that records every message."""

from smart_git.core.user_feedback import UserFeedback


class FakeUserFeedback(UserFeedback):
    """Captures messages instead of printing them.

    messages holds every call in order, prefixed with its level
    ("INFO: ...", "SUCCESS: ...", "WARNING: ...", "ERROR: ...").
    """

    def __init__(self) -> None:
        self._messages: list[str] = []

    def info(self, message: str) -> None:
        self._messages.append(f"INFO: {message}")

    def success(self, message: str) -> None:
        self._messages.append(f"SUCCESS: {message}")

    def warning(self, message: str) -> None:
        self._messages.append(f"WARNING: {message}")

    def error(self, message: str) -> None:
        self._messages.append(f"ERROR: {message}")

    @property
    def messages(self) -> list[str]:
        return self._messages.copy()

    @property
    def errors(self) -> list[str]:
        return [m.removeprefix("ERROR: ") for m in self._messages if m.startswith("ERROR: ")]

    @property
    def warnings(self) -> list[str]:
        return [m.removeprefix("WARNING: ") for m in self._messages if m.startswith("WARNING: ")]

    def contains(self, text: str) -> bool:
        return any(text in message for message in self._messages)
