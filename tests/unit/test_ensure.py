"""Tests for CLI Ensure utility class."""

from pathlib import Path

import pytest

from smart_git.cli.ensure import Ensure
from smart_git.core.context import SgContext
from smart_git.core.git.fake import ConflictRound, FakeGit


class TestEnsureNotNone:
    """Tests for Ensure.not_none method."""

    def test_returns_value_when_not_none(self) -> None:
        assert Ensure.not_none("hello", "Value is None") == "hello"

    def test_zero_is_not_none(self) -> None:
        """Ensure.not_none returns 0 since 0 is not None."""
        assert Ensure.not_none(0, "Value is None") == 0

    def test_error_message_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Ensure.not_none outputs error message with red Error prefix to stderr."""
        with pytest.raises(SystemExit) as exc_info:
            Ensure.not_none(None, "Custom error message")

        assert exc_info.value.code == 1
        captured = capsys.readouterr()
        assert "Error:" in captured.err
        assert "Custom error message" in captured.err
        assert captured.out == ""


class TestEnsureInvariant:
    def test_passes_when_true(self) -> None:
        Ensure.invariant(True, "never shown")

    def test_exits_when_false(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            Ensure.invariant(False, "Something is off")

        assert exc_info.value.code == 1
        assert "Something is off" in capsys.readouterr().err


class TestEnsureRepository:
    """Tests for the repository preconditions shared by every command."""

    def test_returns_repo_root(self) -> None:
        ctx = SgContext.for_test(cwd=Path("/work/repo"))

        assert Ensure.in_git_repository(ctx) == Path("/work/repo")

    def test_not_a_work_tree(self, capsys: pytest.CaptureFixture[str]) -> None:
        ctx = SgContext.for_test(git=FakeGit(is_repository=False))

        with pytest.raises(SystemExit):
            Ensure.in_git_repository(ctx)

        assert "Not a git work tree" in capsys.readouterr().err

    def test_idle_repository_passes(self) -> None:
        ctx = SgContext.for_test()

        Ensure.no_operation_in_progress(ctx, Path("/test/repo"))

    def test_merge_in_progress(self, capsys: pytest.CaptureFixture[str]) -> None:
        git = FakeGit(conflict_rounds=[ConflictRound(files={"a.txt": "x\n"})])
        git.merge(Path("/test/repo"), "origin/main")
        ctx = SgContext.for_test(git=git)

        with pytest.raises(SystemExit):
            Ensure.no_operation_in_progress(ctx, Path("/test/repo"))

        err = capsys.readouterr().err
        assert "merge is already in progress" in err
        assert "git merge --abort" in err
