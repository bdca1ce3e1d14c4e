"""Set aside uncommitted work around a history-rewriting operation.

The guard stashes a dirty working tree (including untracked files) before a
rebase or merge and puts it back afterwards, keeping the staged/unstaged split
whenever git allows it. A stash entry created here is never dropped unless it
was applied cleanly; every failure tells the operator how to get it back.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from smart_git.core.git.abc import Git
from smart_git.core.types import RestoreResult, StashRecord
from smart_git.core.user_feedback import UserFeedback

logger = logging.getLogger(__name__)

STASH_MESSAGE = "sg-auto-stash"
MANUAL_RESTORE_HINT = "Your changes are still in stash. Run 'git stash pop' to restore them."


class GuardHandle:
    """What the guarded block sees of the guard.

    Call defer() to leave the stash in place when the block exits, e.g.
    because a rebase is intentionally left in progress.
    """

    def __init__(self, record: StashRecord) -> None:
        self.record = record
        self.restore_result: RestoreResult | None = None
        self._deferred_reason: str | None = None

    def defer(self, reason: str) -> None:
        self._deferred_reason = reason

    @property
    def deferred(self) -> bool:
        return self._deferred_reason is not None

    @property
    def deferred_reason(self) -> str | None:
        return self._deferred_reason

    @property
    def stash_pending(self) -> bool:
        """True while a stash entry created by this guard is still in the stash list."""
        if not self.record.stashed:
            return False
        if self.restore_result is None:
            return True
        return not self.restore_result.success


class WorkingTreeGuard:
    def __init__(self, git: Git, cwd: Path, feedback: UserFeedback) -> None:
        self._git = git
        self._cwd = cwd
        self._feedback = feedback

    def capture(self) -> StashRecord:
        """Stash uncommitted work if there is any.

        Raises:
            RuntimeError: If the stash command fails; nothing was set aside
        """
        status = self._git.get_status(self._cwd)
        if not status.is_dirty:
            logger.debug("Working tree clean, nothing to stash")
            return StashRecord(stashed=False)

        staged = self._git.get_staged_files(self._cwd)
        self._feedback.info("Stashing local changes...")
        stashed = self._git.stash_push(self._cwd, STASH_MESSAGE)
        if not stashed:
            return StashRecord(stashed=False)

        logger.debug("Stashed working tree; staged paths: %s", staged)
        return StashRecord(stashed=True, staged_file_paths=tuple(staged))

    def restore(self, record: StashRecord) -> RestoreResult:
        """Put stashed work back.

        Tries `git stash pop --index` first. If git refuses, falls back to a
        plain pop and re-stages the paths that were staged at capture time and
        are still tracked.
        """
        if not record.stashed:
            return RestoreResult(success=True, conflicts_remain=False, message="Nothing to restore")

        self._feedback.info("Restoring local changes...")
        indexed = self._git.stash_pop(self._cwd, index=True)
        if indexed.success:
            logger.debug("Restored stash with --index")
            return RestoreResult(
                success=True, conflicts_remain=False, message="Restored local changes"
            )

        logger.debug("stash pop --index failed: %s", indexed.stderr)
        plain = self._git.stash_pop(self._cwd, index=False)
        if not plain.success:
            conflicted = self._git.get_conflicted_files(self._cwd)
            if conflicted:
                return RestoreResult(
                    success=False,
                    conflicts_remain=True,
                    message=(
                        "Conflicts when restoring changes. Your changes are still in stash. "
                        f"Resolve the conflicts in {', '.join(conflicted)}, "
                        "or reset them and run 'git stash pop' manually."
                    ),
                )
            error = plain.stderr or indexed.stderr
            return RestoreResult(
                success=False,
                conflicts_remain=False,
                message=f"Failed to restore local changes: {error}\n{MANUAL_RESTORE_HINT}",
            )

        restage = [path for path in record.staged_file_paths if self._git.is_tracked(self._cwd, path)]
        if restage:
            logger.debug("Re-staging after plain pop: %s", restage)
            self._git.add(self._cwd, restage)
        return RestoreResult(
            success=True,
            conflicts_remain=False,
            message="Restored local changes (staged files re-staged)",
        )

    @contextmanager
    def guarded(self) -> Iterator[GuardHandle]:
        """Capture on entry, restore exactly once on exit unless deferred.

        Restoration runs on normal exit, on exceptions and on
        KeyboardInterrupt. An exception that leaves a rebase or merge in
        progress defers instead, so the stash is never popped into a
        half-finished operation. The original exception always propagates; a
        restoration problem is reported through the handle, never raised
        over it.
        """
        record = self.capture()
        handle = GuardHandle(record)
        try:
            yield handle
        except BaseException:
            if not handle.deferred and self._operation_in_progress():
                handle.defer("rebase or merge still in progress")
            raise
        finally:
            if handle.deferred:
                if record.stashed:
                    logger.debug("Stash restore deferred: %s", handle.deferred_reason)
                    self._feedback.warning(
                        "Local changes were left in stash. "
                        "Run 'git stash pop' after finishing the operation."
                    )
            else:
                handle.restore_result = self._restore_reporting_errors(record)

    def _operation_in_progress(self) -> bool:
        try:
            return self._git.is_rebase_in_progress(self._cwd) or self._git.is_merge_in_progress(
                self._cwd
            )
        except RuntimeError as e:
            # Unknown state; keep the stash
            logger.debug("Could not check for an operation in progress: %s", e)
            return True

    def _restore_reporting_errors(self, record: StashRecord) -> RestoreResult:
        try:
            result = self.restore(record)
        except RuntimeError as e:
            logger.debug("Restore raised: %s", e)
            result = RestoreResult(
                success=False,
                conflicts_remain=False,
                message=f"Failed to restore local changes: {e}\n{MANUAL_RESTORE_HINT}",
            )
        if record.stashed:
            if result.success:
                self._feedback.success("✓ " + result.message)
            else:
                self._feedback.error(result.message)
        return result
