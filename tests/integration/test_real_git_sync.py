"""Sync, resolve and stash behaviour against real git repositories.

Each test builds a bare `origin`, a working clone and a second clone that
plays the teammate pushing to main.
"""

import shutil
import subprocess
from pathlib import Path

import pytest

from smart_git.core.branch_status import collect_branch_status
from smart_git.core.conflict_resolver import fixed_choice_strategy
from smart_git.core.git.real import RealGit
from smart_git.core.sync_orchestrator import SyncOrchestrator
from smart_git.core.types import ResolutionChoice, SyncState, SyncStrategy
from smart_git.core.working_tree_guard import WorkingTreeGuard
from tests.fakes.prompter import FakePrompter
from tests.fakes.user_feedback import FakeUserFeedback

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed"),
]


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout


def _configure(repo: Path) -> None:
    _git(repo, "config", "user.email", "test@example.com")
    _git(repo, "config", "user.name", "Test User")
    _git(repo, "config", "commit.gpgsign", "false")


def _commit_file(repo: Path, path: str, content: str, message: str) -> None:
    (repo / path).write_text(content, encoding="utf-8")
    _git(repo, "add", path)
    _git(repo, "commit", "-m", message)


@pytest.fixture
def repos(tmp_path: Path) -> tuple[Path, Path]:
    """Return (work, teammate) clones of a shared bare origin."""
    origin = tmp_path / "origin.git"
    _git(tmp_path, "init", "--bare", str(origin))
    _git(origin, "symbolic-ref", "HEAD", "refs/heads/main")

    work = tmp_path / "work"
    _git(tmp_path, "init", str(work))
    _git(work, "symbolic-ref", "HEAD", "refs/heads/main")
    _configure(work)
    _git(work, "remote", "add", "origin", str(origin))
    (work / "notes.txt").write_text("notes\n", encoding="utf-8")
    _commit_file(work, "app.txt", "base\n", "Initial commit")
    _git(work, "push", "-u", "origin", "main")

    teammate = tmp_path / "teammate"
    _git(tmp_path, "clone", str(origin), str(teammate))
    _configure(teammate)
    return work, teammate


def _push_upstream_change(teammate: Path, content: str) -> None:
    _commit_file(teammate, "app.txt", content, "Upstream change")
    _git(teammate, "push", "origin", "main")


def _orchestrator(
    work: Path,
    feedback: FakeUserFeedback,
    prompter: FakePrompter | None = None,
    choice: ResolutionChoice = ResolutionChoice.KEEP_INCOMING,
) -> SyncOrchestrator:
    return SyncOrchestrator(
        RealGit(),
        work,
        feedback,
        prompter or FakePrompter(),
        resolution_strategy=fixed_choice_strategy(choice),
    )


def test_clean_rebase_onto_moved_base(repos: tuple[Path, Path]) -> None:
    work, teammate = repos
    _git(work, "checkout", "-b", "feature")
    _commit_file(work, "notes.txt", "feature notes\n", "Feature change")
    _push_upstream_change(teammate, "upstream\n")

    outcome = _orchestrator(work, FakeUserFeedback()).sync(
        "main", SyncStrategy.REBASE, interactive=False
    )

    assert outcome.success, outcome.message
    assert outcome.message == "Successfully rebased feature onto origin/main"
    assert (work / "app.txt").read_text(encoding="utf-8") == "upstream\n"
    assert (work / "notes.txt").read_text(encoding="utf-8") == "feature notes\n"
    # Local main was fast-forwarded too
    assert _git(work, "rev-parse", "main") == _git(work, "rev-parse", "origin/main")


def test_rebase_conflict_resolved_with_incoming(repos: tuple[Path, Path]) -> None:
    work, teammate = repos
    _git(work, "checkout", "-b", "feature")
    _commit_file(work, "app.txt", "feature\n", "Feature change")
    _push_upstream_change(teammate, "upstream\n")
    prompter = FakePrompter(choices=["r"])

    outcome = _orchestrator(work, FakeUserFeedback(), prompter).sync(
        "main", SyncStrategy.REBASE, interactive=True
    )

    assert outcome.success, outcome.message
    # During a rebase the replayed feature commit is the incoming side
    assert (work / "app.txt").read_text(encoding="utf-8") == "feature\n"
    assert not RealGit().is_rebase_in_progress(work)
    assert _git(work, "log", "-1", "--format=%s").strip() == "Feature change"
    assert _git(work, "merge-base", "--is-ancestor", "origin/main", "HEAD") == ""


def test_merge_conflict_resolved_with_current(repos: tuple[Path, Path]) -> None:
    work, teammate = repos
    _git(work, "checkout", "-b", "feature")
    _commit_file(work, "app.txt", "feature\n", "Feature change")
    _push_upstream_change(teammate, "upstream\n")
    prompter = FakePrompter(choices=["r"])

    outcome = _orchestrator(work, FakeUserFeedback(), prompter, ResolutionChoice.KEEP_CURRENT).sync(
        "main", SyncStrategy.MERGE, interactive=True
    )

    assert outcome.success, outcome.message
    assert outcome.message == "Successfully merged origin/main into feature"
    assert (work / "app.txt").read_text(encoding="utf-8") == "feature\n"
    assert not RealGit().is_merge_in_progress(work)


def test_conflict_abort_restores_dirty_tree(repos: tuple[Path, Path]) -> None:
    work, teammate = repos
    _git(work, "checkout", "-b", "feature")
    _commit_file(work, "app.txt", "feature\n", "Feature change")
    _push_upstream_change(teammate, "upstream\n")
    (work / "notes.txt").write_text("staged notes\n", encoding="utf-8")
    _git(work, "add", "notes.txt")
    (work / "scratch.txt").write_text("scratch\n", encoding="utf-8")

    outcome = _orchestrator(work, FakeUserFeedback()).sync(
        "main", SyncStrategy.REBASE, interactive=False
    )

    git = RealGit()
    assert not outcome.success
    assert outcome.conflicted
    assert outcome.state == SyncState.ABORTED
    assert not outcome.stash_pending
    assert not git.is_rebase_in_progress(work)
    assert (work / "app.txt").read_text(encoding="utf-8") == "feature\n"
    assert (work / "notes.txt").read_text(encoding="utf-8") == "staged notes\n"
    assert (work / "scratch.txt").exists()
    assert git.get_staged_files(work) == ["notes.txt"]
    assert git.list_stashes(work) == []


def test_guard_round_trip_keeps_staging(repos: tuple[Path, Path]) -> None:
    work, _ = repos
    git = RealGit()
    (work / "notes.txt").write_text("staged\n", encoding="utf-8")
    _git(work, "add", "notes.txt")
    (work / "app.txt").write_text("unstaged\n", encoding="utf-8")
    (work / "new.txt").write_text("untracked\n", encoding="utf-8")
    guard = WorkingTreeGuard(git, work, FakeUserFeedback())

    record = guard.capture()
    assert record.stashed
    assert not git.get_status(work).is_dirty

    result = guard.restore(record)

    assert result.success
    status = git.get_status(work)
    assert status.has_staged
    assert status.has_unstaged
    assert status.has_untracked
    assert git.get_staged_files(work) == ["notes.txt"]
    assert git.list_stashes(work) == []
    assert (work / "notes.txt").read_bytes() == b"staged\n"
    assert (work / "app.txt").read_bytes() == b"unstaged\n"
    assert (work / "new.txt").read_bytes() == b"untracked\n"
    assert git.get_unstaged_files(work) == ["app.txt"]
    assert git.get_untracked_files(work) == ["new.txt"]


def test_real_git_queries_during_conflict(repos: tuple[Path, Path]) -> None:
    work, teammate = repos
    git = RealGit()
    _git(work, "checkout", "-b", "feature")
    _commit_file(work, "app.txt", "feature\n", "Feature change")
    _push_upstream_change(teammate, "upstream\n")
    git.fetch(work, "origin")

    assert git.get_current_branch(work) == "feature"
    assert git.get_ahead_behind(work, "HEAD", "origin/main") == (1, 1)
    assert git.count_commits(work, "origin/main", "HEAD") == 1
    assert git.branch_exists(work, "origin/main")
    assert git.remote_branch_exists(work, "origin", "main")
    assert not git.remote_branch_exists(work, "origin", "feature")

    result = git.rebase(work, "origin/main")

    assert not result.success
    assert git.is_rebase_in_progress(work)
    assert git.get_conflicted_files(work) == ["app.txt"]
    content = git.read_file(work, "app.txt")
    assert content is not None
    assert "<<<<<<< " in content
    assert git.abort_rebase(work).success
    assert git.get_conflicted_files(work) == []


def test_unborn_branch_name(tmp_path: Path) -> None:
    repo = tmp_path / "fresh"
    _git(tmp_path, "init", str(repo))
    _git(repo, "symbolic-ref", "HEAD", "refs/heads/trunk")

    assert RealGit().get_current_branch(repo) == "trunk"


def test_branch_status_against_real_remote(repos: tuple[Path, Path]) -> None:
    work, teammate = repos
    _git(work, "checkout", "-b", "feature")
    _commit_file(work, "lib.txt", "feature\n", "Feature change")
    _push_upstream_change(teammate, "upstream 1\n")
    _push_upstream_change(teammate, "upstream 2\n")
    (work / "app.txt").write_text("wip\n", encoding="utf-8")

    status = collect_branch_status(
        RealGit(), work, FakeUserFeedback(), base_branch="main", remote="origin"
    )

    assert status.current_branch == "feature"
    assert status.upstream is None
    assert (status.ahead_of_base, status.behind_base) == (1, 2)
    assert (status.local_base_ahead, status.local_base_behind) == (0, 2)
    assert (status.staged, status.unstaged, status.untracked) == (0, 1, 1)
    assert status.conflicts == 0
