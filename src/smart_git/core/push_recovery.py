"""Push with recovery from the two rejections that have a safe automatic fix.

- Non-fast-forward: the remote branch has commits we lack. Fetch, show them,
  sync with the remote branch, then retry the push exactly once.
- Stale lease: --force-with-lease refused because our tracking ref is out of
  date. Show what would be overwritten and ask before forcing.

Everything else is terminal and raised as PushRejectedError.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from smart_git.core.git.abc import Git
from smart_git.core.prompter import Prompter
from smart_git.core.sync_orchestrator import DEFAULT_REMOTE, SyncOrchestrator
from smart_git.core.types import GitCommandResult, PushFailureKind, SyncStrategy
from smart_git.core.user_feedback import UserFeedback

logger = logging.getLogger(__name__)

NON_FAST_FORWARD_MARKERS = (
    "non-fast-forward",
    "fetch first",
    "tip of your current branch is behind",
)
STALE_LEASE_MARKER = "stale info"


class PushRejectedError(RuntimeError):
    """A push failed and could not be recovered automatically.

    next_steps lists commands the operator can run to finish by hand.
    """

    def __init__(self, message: str, next_steps: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.next_steps = next_steps


@dataclass(frozen=True)
class PushOutcome:
    branch: str
    forced: bool
    synced: bool
    message: str


def classify_push_failure(stderr: str) -> PushFailureKind:
    """Map git's rejection text to the recovery that applies."""
    text = stderr.lower()
    if STALE_LEASE_MARKER in text:
        return PushFailureKind.STALE_LEASE
    if any(marker in text for marker in NON_FAST_FORWARD_MARKERS):
        return PushFailureKind.NON_FAST_FORWARD
    return PushFailureKind.OTHER


class PushRecoveryController:
    """Pushes the current branch and recovers from divergence.

    The retry after a sync is bounded to one attempt; a second rejection is
    raised, never retried.
    """

    def __init__(
        self,
        git: Git,
        cwd: Path,
        feedback: UserFeedback,
        prompter: Prompter,
        orchestrator: SyncOrchestrator,
        *,
        strategy: SyncStrategy = SyncStrategy.REBASE,
        remote: str = DEFAULT_REMOTE,
        interactive: bool = True,
    ) -> None:
        self._git = git
        self._cwd = cwd
        self._feedback = feedback
        self._prompter = prompter
        self._orchestrator = orchestrator
        self._strategy = strategy
        self._remote = remote
        self._interactive = interactive

    def push(
        self,
        branch: str,
        *,
        set_upstream: bool,
        force_with_lease: bool,
        auto_yes: bool,
    ) -> PushOutcome:
        """Push branch, recovering from divergence where that is safe.

        Raises:
            PushRejectedError: If the push fails and cannot be recovered
        """
        self._feedback.info(f"Pushing {branch} to {self._remote}...")
        if force_with_lease:
            self._feedback.info("Using --force-with-lease to safely push rewritten history")
        if set_upstream:
            self._feedback.info(f"Setting upstream to {self._remote}/{branch}")

        result = self._push(branch, set_upstream=set_upstream, force_with_lease=force_with_lease)
        if result.success:
            return self._pushed(branch, forced=False, synced=False)

        kind = classify_push_failure(result.stderr)
        logger.debug("Push rejected (%s): %s", kind.value, result.stderr)
        if kind == PushFailureKind.NON_FAST_FORWARD and not force_with_lease:
            return self.recover_and_retry(branch, set_upstream, auto_yes)
        if kind == PushFailureKind.STALE_LEASE and force_with_lease:
            return self.recover_stale_lease(branch, set_upstream, auto_yes)

        raise PushRejectedError(f"Push failed: {result.stderr or 'unknown error'}")

    def recover_and_retry(self, current_branch: str, set_upstream: bool, auto_yes: bool) -> PushOutcome:
        """Sync with the remote copy of the branch and push once more.

        Raises:
            PushRejectedError: If the operator declines, the sync does not
                succeed, or the retried push is rejected again
        """
        remote_ref = f"{self._remote}/{current_branch}"
        strategy = self._strategy.value
        self._feedback.warning("Push rejected: your branch is behind the remote")
        self._feedback.info("Fetching latest changes...")
        self._git.fetch(self._cwd, self._remote)
        self._show_remote_only_commits(remote_ref)

        if not auto_yes:
            self._feedback.info(f"Recommended: sync with remote using {strategy}")
            if not self._prompter.confirm(
                f"Sync with remote ({strategy}) and retry push?", default=True
            ):
                raise PushRejectedError(
                    "Push failed: branch is behind remote",
                    next_steps=(f"git pull --{strategy}", "git push"),
                )

        self._feedback.info(f"Syncing with {remote_ref} ({strategy})...")
        outcome = self._orchestrator.sync_with_upstream(
            current_branch,
            self._strategy,
            interactive=self._interactive,
            auto_yes=auto_yes,
        )
        if not outcome.success:
            raise PushRejectedError(
                f"Push failed: could not sync with {remote_ref}. {outcome.message}",
                next_steps=(*outcome.next_steps, "git push"),
            )
        self._feedback.success(f"✓ Synced with {remote_ref}")

        self._feedback.info("Retrying push...")
        retry = self._push(current_branch, set_upstream=set_upstream, force_with_lease=False)
        if not retry.success:
            raise PushRejectedError(f"Push failed after sync: {retry.stderr or 'unknown error'}")
        return self._pushed(current_branch, forced=False, synced=True)

    def recover_stale_lease(
        self, current_branch: str, set_upstream: bool, auto_yes: bool
    ) -> PushOutcome:
        """Resolve a --force-with-lease refusal.

        A remote branch that disappeared is pushed as a new branch. Otherwise
        the operator is shown what a force push would overwrite and asked.

        Raises:
            PushRejectedError: If the operator declines or the push fails
        """
        self._feedback.warning("Force-with-lease failed: remote branch has been updated")

        if not self._git.remote_branch_exists(self._cwd, self._remote, current_branch):
            self._feedback.info("Remote branch no longer exists, pushing as a new branch...")
            result = self._push(current_branch, set_upstream=True, force_with_lease=False)
            if not result.success:
                raise PushRejectedError(f"Push failed: {result.stderr or 'unknown error'}")
            return self._pushed(current_branch, forced=False, synced=False)

        self._feedback.info("Fetching latest changes to update tracking info...")
        self._git.fetch_branch(self._cwd, self._remote, current_branch)
        remote_only = self._show_remote_only_commits(f"{self._remote}/{current_branch}")
        if remote_only:
            self._feedback.warning("Your local changes would overwrite these remote commits.")
        else:
            self._feedback.info("Remote tracking info updated. No conflicting commits found.")

        if not auto_yes and not self._prompter.confirm("Force push anyway?", default=False):
            raise PushRejectedError(
                "Push cancelled by user",
                next_steps=(f"git pull --{self._strategy.value}", "git push"),
            )

        self._feedback.info("Force pushing...")
        result = self._git.push(
            self._cwd,
            self._remote,
            current_branch,
            set_upstream=set_upstream,
            force_with_lease=False,
            force=True,
        )
        if not result.success:
            raise PushRejectedError(f"Force push failed: {result.stderr or 'unknown error'}")
        return self._pushed(current_branch, forced=True, synced=False)

    def _push(self, branch: str, *, set_upstream: bool, force_with_lease: bool) -> GitCommandResult:
        return self._git.push(
            self._cwd,
            self._remote,
            branch,
            set_upstream=set_upstream,
            force_with_lease=force_with_lease,
            force=False,
        )

    def _show_remote_only_commits(self, remote_ref: str) -> list[str]:
        if not self._git.branch_exists(self._cwd, remote_ref):
            return []
        commits = self._git.get_commits_between(self._cwd, "HEAD", remote_ref)
        if commits:
            self._feedback.warning(f"Remote has {len(commits)} commit(s) you don't have:")
            for commit in commits:
                self._feedback.info(f"  {commit}")
        return commits

    def _pushed(self, branch: str, *, forced: bool, synced: bool) -> PushOutcome:
        message = f"Pushed {branch} to {self._remote}"
        if forced:
            message = f"Force pushed {branch} to {self._remote}"
        elif synced:
            message = f"Synced and pushed {branch} to {self._remote}"
        self._feedback.success(f"✓ {message}")
        return PushOutcome(branch=branch, forced=forced, synced=synced, message=message)
