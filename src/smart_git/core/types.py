"""Value types for the sync and conflict-resolution engine.

All types are immutable and live for a single CLI invocation. The only durable
state is the git repository itself (and, transiently, its stash list and
rebase/merge-in-progress markers).
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

BRANCH_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_\-/.]+$")


def validate_branch_name(name: str) -> str:
    """Return the branch name unchanged, or raise ValueError if it is not a valid ref name."""
    if not name:
        raise ValueError("Branch name cannot be empty")
    if not BRANCH_NAME_PATTERN.match(name):
        raise ValueError(f"Invalid branch name format: '{name}'")
    return name


class GitCommandResult(NamedTuple):
    """Result from a git command whose failure is an expected, classifiable state.

    Attributes:
        success: True if command exited with code 0, False otherwise
        stdout: Standard output from the command
        stderr: Standard error from the command
    """

    success: bool
    stdout: str
    stderr: str


@dataclass(frozen=True)
class WorkingTreeStatus:
    """Snapshot of uncommitted state. Recomputed on demand, never cached."""

    has_staged: bool
    has_unstaged: bool
    has_untracked: bool

    @property
    def is_dirty(self) -> bool:
        return self.has_staged or self.has_unstaged or self.has_untracked


@dataclass(frozen=True)
class StashRecord:
    """What WorkingTreeGuard.capture() set aside.

    staged_file_paths records which paths were staged before stashing, because
    `git stash pop` without --index does not restore the staged/unstaged split.
    """

    stashed: bool
    staged_file_paths: tuple[str, ...] = ()


@dataclass(frozen=True)
class RestoreResult:
    """Outcome of WorkingTreeGuard.restore()."""

    success: bool
    conflicts_remain: bool
    message: str


@dataclass(frozen=True)
class ConflictBlock:
    """One conflict region of a file.

    start_line and end_line are 0-based, inclusive, and point at the
    `<<<<<<<` and `>>>>>>>` marker lines. current, incoming and ancestor are
    the exact text between the markers, line terminators included.
    """

    start_line: int
    end_line: int
    current: str
    incoming: str
    ancestor: str | None = None
    current_label: str = ""
    incoming_label: str = ""


@dataclass(frozen=True)
class FileConflictSet:
    """Parsed conflicts of a single file, taken once per resolution pass."""

    file_path: str
    original_content: str
    conflicts: tuple[ConflictBlock, ...]


class ResolutionChoice(Enum):
    KEEP_CURRENT = "current"
    KEEP_INCOMING = "incoming"
    KEEP_BOTH = "both"
    SKIP = "skip"
    ABORT_ALL = "abort"


@dataclass(frozen=True)
class ResolutionResult:
    """Summary of one ConflictResolver pass."""

    files_resolved: int
    files_skipped: int
    aborted: bool
    missing_files: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return self.files_skipped == 0 and not self.aborted


class SyncStrategy(Enum):
    REBASE = "rebase"
    MERGE = "merge"


class SyncState(Enum):
    """States of the sync state machine."""

    IDLE = "idle"
    GUARDING = "guarding"
    FETCHING = "fetching"
    APPLYING = "applying"
    CONFLICTED = "conflicted"
    RESOLVING = "resolving"
    CONTINUING = "continuing"
    STILL_CONFLICTED = "still_conflicted"
    SUCCEEDED = "succeeded"
    ABORTED = "aborted"
    MANUAL = "manual"
    FAILED = "failed"
    RESTORING = "restoring"
    DONE = "done"


@dataclass(frozen=True)
class SyncOutcome:
    """Terminal value of one sync attempt.

    Attributes:
        success: The branch is now synchronized with the target
        conflicted: Conflicts were hit at some point during the attempt
        message: Human-readable summary
        state: Terminal state the machine stopped in
        stash_pending: A stash created by this attempt is still in the stash list
        next_steps: Exact commands the operator must run to finish by hand
    """

    success: bool
    conflicted: bool
    message: str
    state: SyncState = SyncState.DONE
    stash_pending: bool = False
    next_steps: tuple[str, ...] = ()


class PushFailureKind(Enum):
    NON_FAST_FORWARD = "non_fast_forward"
    STALE_LEASE = "stale_lease"
    OTHER = "other"
