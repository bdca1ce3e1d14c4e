"""In-memory fake implementation of Git for testing.

Design:
- Constructor injection: all initial state is passed to __init__
- Automatic state transitions (stash push clears the working tree, add
  resolves a conflicted path, continue advances to the next scripted round)
- Mutation tracking through read-only properties that return copies
"""

from dataclasses import dataclass, field
from pathlib import Path

from smart_git.core.git.abc import DEFAULT_BRANCH, Git
from smart_git.core.types import GitCommandResult, WorkingTreeStatus


@dataclass(frozen=True)
class ConflictRound:
    """One stop of a scripted rebase or merge.

    files maps each conflicted path to the content (with conflict markers)
    written into the working tree when the operation stops.
    """

    files: dict[str, str] = field(default_factory=dict)


@dataclass
class _StashEntry:
    message: str
    staged: list[str]
    unstaged: list[str]
    untracked: list[str]


def _ok(stdout: str = "") -> GitCommandResult:
    return GitCommandResult(success=True, stdout=stdout, stderr="")


def _fail(stderr: str) -> GitCommandResult:
    return GitCommandResult(success=False, stdout="", stderr=stderr)


class FakeGit(Git):
    """In-memory fake implementation of git operations.

    Rebase and merge follow the script given by conflict_rounds: an empty
    script applies cleanly; otherwise each round is one stop with conflicts,
    and continue_* moves to the next round once every conflicted path has
    been staged.

    Examples:
        # Clean rebase of a dirty working tree
        >>> git = FakeGit(unstaged_files=["app.py"])
        >>> git.stash_push(Path("/repo"), "sg-auto-stash")
        True
        >>> git.rebase(Path("/repo"), "origin/main").success
        True

        # Rebase that stops once on a conflict
        >>> git = FakeGit(conflict_rounds=[ConflictRound(files={"a.txt": "..."})])
        >>> git.rebase(Path("/repo"), "origin/main").success
        False
        >>> git.get_conflicted_files(Path("/repo"))
        ['a.txt']
    """

    def __init__(
        self,
        *,
        current_branch: str = "feature",
        is_repository: bool = True,
        upstream_branch: str | None = None,
        existing_refs: set[str] | None = None,
        remote_branches: set[str] | None = None,
        ahead_behind: dict[tuple[str, str], tuple[int, int]] | None = None,
        commit_counts: dict[tuple[str, str], int] | None = None,
        commits_between: dict[tuple[str, str], list[str]] | None = None,
        fetch_error: str | None = None,
        fast_forward_error: str | None = None,
        push_results: list[GitCommandResult] | None = None,
        staged_files: list[str] | None = None,
        unstaged_files: list[str] | None = None,
        untracked_files: list[str] | None = None,
        tracked_files: set[str] | None = None,
        files: dict[str, str] | None = None,
        conflicted_files: list[str] | None = None,
        stash_entries: list[str] | None = None,
        pop_index_fails: bool = False,
        pop_conflict_files: list[str] | None = None,
        pop_error: str | None = None,
        conflict_rounds: list[ConflictRound] | None = None,
        apply_error: str | None = None,
        continue_error: str | None = None,
        interrupt_during_apply: bool = False,
    ) -> None:
        """Create FakeGit with pre-configured state.

        Args:
            current_branch: Branch returned by get_current_branch
            is_repository: Value returned by is_repository
            upstream_branch: Upstream of the current branch, or None
            existing_refs: Refs for which branch_exists is True
            remote_branches: "remote/branch" names for which remote_branch_exists is True
            ahead_behind: (ref, other) -> (ahead, behind)
            commit_counts: (from_ref, to_ref) -> count for count_commits
            commits_between: (from_ref, to_ref) -> one-line summaries
            fetch_error: If set, fetch and fetch_branch raise RuntimeError
            fast_forward_error: If set, fast_forward_branch raises RuntimeError
            push_results: Results returned by successive push calls; pushes
                beyond the list succeed
            staged_files: Paths with staged changes
            unstaged_files: Paths with unstaged changes
            untracked_files: Untracked paths
            tracked_files: Paths known to the index (defaults to every path
                given in staged_files, unstaged_files and files)
            files: Working-tree file contents
            conflicted_files: Paths unmerged before any operation runs
            stash_entries: Pre-existing stash messages, most recent first
            pop_index_fails: stash_pop(index=True) fails without side effects
            pop_conflict_files: stash_pop conflicts on these paths and keeps the entry
            pop_error: stash_pop fails with this stderr and keeps the entry
            conflict_rounds: Scripted conflict stops for rebase/merge
            apply_error: rebase/merge fail with this stderr and no conflicts
            continue_error: continue_* fail with this stderr even when resolved
            interrupt_during_apply: rebase/merge start the operation, then
                raise KeyboardInterrupt
        """
        self._current_branch = current_branch
        self._is_repository = is_repository
        self._upstream_branch = upstream_branch
        self._existing_refs = existing_refs if existing_refs is not None else set()
        self._remote_branches = remote_branches if remote_branches is not None else set()
        self._ahead_behind = ahead_behind or {}
        self._commit_counts = commit_counts or {}
        self._commits_between = commits_between or {}
        self._fetch_error = fetch_error
        self._fast_forward_error = fast_forward_error
        self._push_results = list(push_results or [])
        self._staged = list(staged_files or [])
        self._unstaged = list(unstaged_files or [])
        self._untracked = list(untracked_files or [])
        self._files = dict(files or {})
        if tracked_files is not None:
            self._tracked = set(tracked_files)
        else:
            self._tracked = set(self._staged) | set(self._unstaged) | set(self._files)
        self._conflicted = list(conflicted_files or [])
        self._stash: list[_StashEntry] = [
            _StashEntry(message=message, staged=[], unstaged=[], untracked=[])
            for message in (stash_entries or [])
        ]
        self._pop_index_fails = pop_index_fails
        self._pop_conflict_files = pop_conflict_files
        self._pop_error = pop_error
        self._conflict_rounds = list(conflict_rounds or [])
        self._apply_error = apply_error
        self._continue_error = continue_error
        self._interrupt_during_apply = interrupt_during_apply

        self._in_progress: str | None = None
        self._round_index = 0
        self._files_before_op: dict[str, str] = {}

        # Mutation tracking
        self._fetches: list[str] = []
        self._fetched_branches: list[tuple[str, str]] = []
        self._fast_forwarded: list[str] = []
        self._pushes: list[tuple[str, str, bool, bool, bool]] = []
        self._stash_pushes: list[str] = []
        self._stash_pops: list[bool] = []
        self._added_paths: list[str] = []
        self._written_files: dict[str, str] = {}
        self._rebases: list[str] = []
        self._merges: list[str] = []
        self._aborted: list[str] = []
        self._continued: list[str] = []

    # Repository and branch queries

    def is_repository(self, cwd: Path) -> bool:
        return self._is_repository

    def get_current_branch(self, cwd: Path) -> str:
        return self._current_branch or DEFAULT_BRANCH

    def get_upstream_branch(self, cwd: Path) -> str | None:
        return self._upstream_branch

    def branch_exists(self, cwd: Path, ref: str) -> bool:
        return ref in self._existing_refs

    def remote_branch_exists(self, cwd: Path, remote: str, branch: str) -> bool:
        return f"{remote}/{branch}" in self._remote_branches

    def get_ahead_behind(self, cwd: Path, ref: str, other: str) -> tuple[int, int]:
        return self._ahead_behind.get((ref, other), (0, 0))

    def count_commits(self, cwd: Path, from_ref: str, to_ref: str) -> int:
        return self._commit_counts.get((from_ref, to_ref), 0)

    def get_commits_between(self, cwd: Path, from_ref: str, to_ref: str) -> list[str]:
        return list(self._commits_between.get((from_ref, to_ref), []))

    # Remote operations

    def fetch(self, cwd: Path, remote: str) -> None:
        if self._fetch_error is not None:
            raise RuntimeError(self._fetch_error)
        self._fetches.append(remote)

    def fetch_branch(self, cwd: Path, remote: str, branch: str) -> None:
        if self._fetch_error is not None:
            raise RuntimeError(self._fetch_error)
        self._fetched_branches.append((remote, branch))

    def fast_forward_branch(self, cwd: Path, remote: str, branch: str) -> None:
        if self._fast_forward_error is not None:
            raise RuntimeError(self._fast_forward_error)
        self._fast_forwarded.append(branch)

    def push(
        self,
        cwd: Path,
        remote: str,
        branch: str,
        *,
        set_upstream: bool,
        force_with_lease: bool,
        force: bool,
    ) -> GitCommandResult:
        self._pushes.append((remote, branch, set_upstream, force_with_lease, force))
        if self._push_results:
            return self._push_results.pop(0)
        return _ok()

    # Working tree state

    def get_status(self, cwd: Path) -> WorkingTreeStatus:
        return WorkingTreeStatus(
            has_staged=len(self._staged) > 0,
            has_unstaged=len(self._unstaged) > 0,
            has_untracked=len(self._untracked) > 0,
        )

    def get_staged_files(self, cwd: Path) -> list[str]:
        return list(self._staged)

    def get_unstaged_files(self, cwd: Path) -> list[str]:
        return list(self._unstaged)

    def get_untracked_files(self, cwd: Path) -> list[str]:
        return list(self._untracked)

    def get_conflicted_files(self, cwd: Path) -> list[str]:
        return list(self._conflicted)

    def is_tracked(self, cwd: Path, path: str) -> bool:
        return path in self._tracked

    def add(self, cwd: Path, paths: list[str]) -> None:
        for path in paths:
            self._added_paths.append(path)
            self._tracked.add(path)
            if path in self._conflicted:
                self._conflicted.remove(path)
                continue
            if path in self._unstaged:
                self._unstaged.remove(path)
            if path not in self._staged:
                self._staged.append(path)

    def read_file(self, cwd: Path, path: str) -> str | None:
        return self._files.get(path)

    def write_file(self, cwd: Path, path: str, content: str) -> None:
        self._files[path] = content
        self._written_files[path] = content

    # Stash

    def stash_push(self, cwd: Path, message: str) -> bool:
        if not (self._staged or self._unstaged or self._untracked):
            return False
        self._stash.insert(
            0,
            _StashEntry(
                message=message,
                staged=self._staged,
                unstaged=self._unstaged,
                untracked=self._untracked,
            ),
        )
        self._staged = []
        self._unstaged = []
        self._untracked = []
        self._stash_pushes.append(message)
        return True

    def stash_pop(self, cwd: Path, *, index: bool) -> GitCommandResult:
        self._stash_pops.append(index)
        if not self._stash:
            return _fail("No stash entries found.")
        if index and self._pop_index_fails:
            return _fail("error: conflicts in index. Try without --index.")
        if self._pop_conflict_files is not None:
            for path in self._pop_conflict_files:
                if path not in self._conflicted:
                    self._conflicted.append(path)
            stderr = "\n".join(
                f"CONFLICT (content): Merge conflict in {path}" for path in self._pop_conflict_files
            )
            return _fail(stderr + "\nThe stash entry is kept in case you need it again.")
        if self._pop_error is not None:
            return _fail(self._pop_error)

        entry = self._stash.pop(0)
        if index:
            self._staged = list(entry.staged)
            self._unstaged = list(entry.unstaged)
        else:
            # Without --index everything comes back unstaged
            self._staged = []
            self._unstaged = list(dict.fromkeys([*entry.staged, *entry.unstaged]))
        self._untracked = list(entry.untracked)
        return _ok("Dropped refs/stash@{0}")

    def list_stashes(self, cwd: Path) -> list[str]:
        return [
            f"stash@{{{position}}}: On {self._current_branch}: {entry.message}"
            for position, entry in enumerate(self._stash)
        ]

    # Rebase / merge

    def rebase(self, cwd: Path, onto: str) -> GitCommandResult:
        self._rebases.append(onto)
        return self._start_operation("rebase")

    def merge(self, cwd: Path, ref: str) -> GitCommandResult:
        self._merges.append(ref)
        return self._start_operation("merge")

    def abort_rebase(self, cwd: Path) -> GitCommandResult:
        return self._abort("rebase")

    def abort_merge(self, cwd: Path) -> GitCommandResult:
        return self._abort("merge")

    def continue_rebase(self, cwd: Path) -> GitCommandResult:
        return self._continue("rebase")

    def continue_merge(self, cwd: Path) -> GitCommandResult:
        return self._continue("merge")

    def is_rebase_in_progress(self, cwd: Path) -> bool:
        return self._in_progress == "rebase"

    def is_merge_in_progress(self, cwd: Path) -> bool:
        return self._in_progress == "merge"

    def _start_operation(self, operation: str) -> GitCommandResult:
        if self._apply_error is not None:
            return _fail(self._apply_error)
        if not self._conflict_rounds:
            return _ok()

        self._in_progress = operation
        self._files_before_op = dict(self._files)
        self._round_index = 0
        if self._interrupt_during_apply:
            raise KeyboardInterrupt
        return self._enter_round()

    def _enter_round(self) -> GitCommandResult:
        conflict_round = self._conflict_rounds[self._round_index]
        for path, content in conflict_round.files.items():
            self._files[path] = content
            self._tracked.add(path)
            if path not in self._conflicted:
                self._conflicted.append(path)
        stderr = "\n".join(
            f"CONFLICT (content): Merge conflict in {path}" for path in conflict_round.files
        )
        return _fail(stderr)

    def _abort(self, operation: str) -> GitCommandResult:
        if self._in_progress != operation:
            return _fail(f"fatal: No {operation} in progress?")
        self._aborted.append(operation)
        self._in_progress = None
        self._conflicted = []
        self._files = dict(self._files_before_op)
        return _ok()

    def _continue(self, operation: str) -> GitCommandResult:
        self._continued.append(operation)
        if self._in_progress != operation:
            return _fail(f"fatal: No {operation} in progress?")
        if self._conflicted:
            return _fail("error: you need to resolve your current index first")
        if self._continue_error is not None:
            return _fail(self._continue_error)

        self._round_index += 1
        if self._round_index < len(self._conflict_rounds):
            return self._enter_round()

        self._in_progress = None
        return _ok()

    # Tracking properties (for test assertions)

    @property
    def fetches(self) -> list[str]:
        return self._fetches.copy()

    @property
    def fetched_branches(self) -> list[tuple[str, str]]:
        return self._fetched_branches.copy()

    @property
    def fast_forwarded(self) -> list[str]:
        return self._fast_forwarded.copy()

    @property
    def pushes(self) -> list[tuple[str, str, bool, bool, bool]]:
        """(remote, branch, set_upstream, force_with_lease, force) per push."""
        return self._pushes.copy()

    @property
    def stash_pushes(self) -> list[str]:
        return self._stash_pushes.copy()

    @property
    def stash_pops(self) -> list[bool]:
        """The index flag of every stash_pop call."""
        return self._stash_pops.copy()

    @property
    def added_paths(self) -> list[str]:
        return self._added_paths.copy()

    @property
    def written_files(self) -> dict[str, str]:
        return self._written_files.copy()

    @property
    def rebases(self) -> list[str]:
        return self._rebases.copy()

    @property
    def merges(self) -> list[str]:
        return self._merges.copy()

    @property
    def aborted(self) -> list[str]:
        return self._aborted.copy()

    @property
    def continued(self) -> list[str]:
        return self._continued.copy()

    @property
    def staged_files(self) -> list[str]:
        return self._staged.copy()

    @property
    def unstaged_files(self) -> list[str]:
        return self._unstaged.copy()

    @property
    def untracked_files(self) -> list[str]:
        return self._untracked.copy()

    @property
    def files(self) -> dict[str, str]:
        return self._files.copy()
