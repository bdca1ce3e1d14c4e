"""High-level git operations interface.

This module provides a clean abstraction over git subprocess calls, making the
sync engine testable without a real repository.

Architecture:
- Git: Abstract base class defining the interface
- RealGit: Production implementation using subprocess
- FakeGit: In-memory implementation for tests

Error contract:
- Queries return values (bool, int, list, str | None)
- Commands whose failure is a normal, classifiable state (rebase, merge,
  continue, abort, stash pop, push) return GitCommandResult
- Commands whose failure is an environment error (fetch, add, stash push)
  raise RuntimeError with operation context
"""

from abc import ABC, abstractmethod
from pathlib import Path

from smart_git.core.types import GitCommandResult, WorkingTreeStatus

DEFAULT_BRANCH = "main"

# XY codes of `git status --porcelain` that mark an unmerged path
UNMERGED_STATUS_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})


class Git(ABC):
    """Abstract interface for git operations.

    All implementations (real and fake) must implement this interface.
    This interface contains ONLY runtime operations - no test setup methods.
    """

    # Repository and branch queries

    @abstractmethod
    def is_repository(self, cwd: Path) -> bool:
        """Check if cwd is inside a git work tree."""
        ...

    @abstractmethod
    def get_current_branch(self, cwd: Path) -> str:
        """Get the currently checked-out branch.

        Falls back to the symbolic HEAD name for a repository without commits,
        and to DEFAULT_BRANCH when even that cannot be read.
        """
        ...

    @abstractmethod
    def get_upstream_branch(self, cwd: Path) -> str | None:
        """Get the upstream of the current branch (e.g., 'origin/feature'), or None."""
        ...

    @abstractmethod
    def branch_exists(self, cwd: Path, ref: str) -> bool:
        """Check if a ref resolves to a commit."""
        ...

    @abstractmethod
    def remote_branch_exists(self, cwd: Path, remote: str, branch: str) -> bool:
        """Check if a branch exists on the remote (queries the remote, not tracking refs)."""
        ...

    @abstractmethod
    def get_ahead_behind(self, cwd: Path, ref: str, other: str) -> tuple[int, int]:
        """Count commits on each side of two refs.

        Args:
            cwd: Working directory
            ref: The ref being compared
            other: The ref to compare against

        Returns:
            Tuple of (ahead, behind): commits reachable from ref but not other,
            and commits reachable from other but not ref
        """
        ...

    @abstractmethod
    def count_commits(self, cwd: Path, from_ref: str, to_ref: str) -> int:
        """Count commits in from_ref..to_ref (reachable from to_ref, not from_ref)."""
        ...

    @abstractmethod
    def get_commits_between(self, cwd: Path, from_ref: str, to_ref: str) -> list[str]:
        """One-line summaries of commits in from_ref..to_ref, newest first.

        Raises:
            RuntimeError: If either ref does not exist
        """
        ...

    # Remote operations

    @abstractmethod
    def fetch(self, cwd: Path, remote: str) -> None:
        """Fetch all branches from a remote.

        Raises:
            RuntimeError: On network failure or unknown remote
        """
        ...

    @abstractmethod
    def fetch_branch(self, cwd: Path, remote: str, branch: str) -> None:
        """Fetch a single branch from a remote.

        Raises:
            RuntimeError: If the fetch fails
        """
        ...

    @abstractmethod
    def fast_forward_branch(self, cwd: Path, remote: str, branch: str) -> None:
        """Update a local branch that is not checked out to its remote tip.

        Uses `git fetch <remote> <branch>:<branch>`, which git refuses unless
        the update is a fast-forward.

        Raises:
            RuntimeError: If the update is refused or the fetch fails
        """
        ...

    @abstractmethod
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
        """Push a branch. Rejections are returned, not raised."""
        ...

    # Working tree state

    @abstractmethod
    def get_status(self, cwd: Path) -> WorkingTreeStatus:
        """Compute staged/unstaged/untracked flags for the working tree."""
        ...

    @abstractmethod
    def get_staged_files(self, cwd: Path) -> list[str]:
        """List paths currently staged in the index."""
        ...

    @abstractmethod
    def get_unstaged_files(self, cwd: Path) -> list[str]:
        """List tracked paths with changes not yet staged."""
        ...

    @abstractmethod
    def get_untracked_files(self, cwd: Path) -> list[str]:
        """List untracked paths, honoring .gitignore."""
        ...

    @abstractmethod
    def get_conflicted_files(self, cwd: Path) -> list[str]:
        """List unmerged paths (porcelain status codes in UNMERGED_STATUS_CODES)."""
        ...

    @abstractmethod
    def is_tracked(self, cwd: Path, path: str) -> bool:
        """Check if a path is tracked in the index."""
        ...

    @abstractmethod
    def add(self, cwd: Path, paths: list[str]) -> None:
        """Stage the given paths.

        Raises:
            RuntimeError: If git add fails
        """
        ...

    @abstractmethod
    def read_file(self, cwd: Path, path: str) -> str | None:
        """Read a working-tree file, or None if it does not exist."""
        ...

    @abstractmethod
    def write_file(self, cwd: Path, path: str, content: str) -> None:
        """Overwrite a working-tree file."""
        ...

    # Stash

    @abstractmethod
    def stash_push(self, cwd: Path, message: str) -> bool:
        """Stash all changes including untracked files.

        Returns:
            True if something was stashed, False if there was nothing to stash

        Raises:
            RuntimeError: If git stash fails
        """
        ...

    @abstractmethod
    def stash_pop(self, cwd: Path, *, index: bool) -> GitCommandResult:
        """Pop the most recent stash entry.

        Args:
            cwd: Working directory
            index: Pass --index to restore the staged/unstaged split
        """
        ...

    @abstractmethod
    def list_stashes(self, cwd: Path) -> list[str]:
        """List stash entries, most recent first."""
        ...

    # Rebase / merge

    @abstractmethod
    def rebase(self, cwd: Path, onto: str) -> GitCommandResult:
        """Rebase the current branch onto a ref."""
        ...

    @abstractmethod
    def merge(self, cwd: Path, ref: str) -> GitCommandResult:
        """Merge a ref into the current branch with the default message."""
        ...

    @abstractmethod
    def abort_rebase(self, cwd: Path) -> GitCommandResult:
        """Abort an in-progress rebase."""
        ...

    @abstractmethod
    def abort_merge(self, cwd: Path) -> GitCommandResult:
        """Abort an in-progress merge."""
        ...

    @abstractmethod
    def continue_rebase(self, cwd: Path) -> GitCommandResult:
        """Continue an in-progress rebase without opening an editor."""
        ...

    @abstractmethod
    def continue_merge(self, cwd: Path) -> GitCommandResult:
        """Conclude an in-progress merge by committing with the prepared message."""
        ...

    @abstractmethod
    def is_rebase_in_progress(self, cwd: Path) -> bool:
        """Check for rebase-merge/rebase-apply state directories."""
        ...

    @abstractmethod
    def is_merge_in_progress(self, cwd: Path) -> bool:
        """Check for MERGE_HEAD."""
        ...
