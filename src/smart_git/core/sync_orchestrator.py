"""Synchronize the current branch with a remote-tracked branch.

The orchestrator is a small state machine:

    IDLE -> GUARDING -> FETCHING -> APPLYING -> SUCCEEDED
                                             -> CONFLICTED -> RESOLVING -> CONTINUING -> SUCCEEDED
                                                                        -> STILL_CONFLICTED
                                                           -> ABORTED | MANUAL
    any -> FAILED;  SUCCEEDED | ABORTED | FAILED -> RESTORING -> DONE

Uncommitted work is held by WorkingTreeGuard for the whole run. It is put back
whenever the rebase/merge reached a terminal state, and left in the stash
(with instructions) whenever the operation is intentionally left in progress.
"""

import logging
from dataclasses import dataclass, replace
from pathlib import Path

import click

from smart_git.core.conflict_resolver import (
    ConflictResolver,
    InteractiveResolutionStrategy,
    ResolutionStrategy,
)
from smart_git.core.git.abc import Git
from smart_git.core.prompter import Prompter
from smart_git.core.types import GitCommandResult, SyncOutcome, SyncState, SyncStrategy
from smart_git.core.user_feedback import UserFeedback
from smart_git.core.working_tree_guard import GuardHandle, WorkingTreeGuard

logger = logging.getLogger(__name__)

DEFAULT_REMOTE = "origin"

PREVIEW_COMMIT_LIMIT = 10

CONFLICT_ACTIONS = {
    "r": "resolve",
    "a": "abort",
    "m": "manual",
}

_TERMINAL_FOR_RESTORE = frozenset({SyncState.SUCCEEDED, SyncState.ABORTED, SyncState.FAILED})


@dataclass
class _SyncRun:
    """Mutable bookkeeping for one sync attempt."""

    branch: str
    target_ref: str
    strategy: SyncStrategy
    interactive: bool
    auto_yes: bool
    current_branch: str
    replay_bound: int = 1
    conflicted: bool = False


class SyncOrchestrator:
    """Drives rebase-or-merge against a remote branch with conflict handling.

    Args:
        git: Git gateway
        cwd: Repository root
        feedback: Operator-facing output
        prompter: Blocking operator questions
        remote: Remote name the target branch lives on
        resolution_strategy: Per-block decision for the resolver; defaults to
            asking the operator through prompter
    """

    def __init__(
        self,
        git: Git,
        cwd: Path,
        feedback: UserFeedback,
        prompter: Prompter,
        *,
        remote: str = DEFAULT_REMOTE,
        resolution_strategy: ResolutionStrategy | None = None,
    ) -> None:
        self._git = git
        self._cwd = cwd
        self._feedback = feedback
        self._prompter = prompter
        self._remote = remote
        if resolution_strategy is None:
            resolution_strategy = InteractiveResolutionStrategy(prompter)
        self._resolution_strategy = resolution_strategy
        self._state = SyncState.IDLE

    @property
    def state(self) -> SyncState:
        return self._state

    def sync(
        self,
        base_branch: str,
        strategy: SyncStrategy,
        *,
        interactive: bool,
        auto_yes: bool = False,
    ) -> SyncOutcome:
        """Bring the current branch up to date with <remote>/<base_branch>.

        Being on the base branch itself is a successful no-op. The local copy
        of the base branch is fast-forwarded along the way when that is safe.
        """
        self._state = SyncState.IDLE
        current = self._git.get_current_branch(self._cwd)
        if current == base_branch:
            return SyncOutcome(
                success=True,
                conflicted=False,
                message=f"Already on base branch '{base_branch}', nothing to sync",
                state=SyncState.DONE,
            )

        run = _SyncRun(
            branch=base_branch,
            target_ref=f"{self._remote}/{base_branch}",
            strategy=strategy,
            interactive=interactive,
            auto_yes=auto_yes,
            current_branch=current,
        )
        return self._run(run, update_local_base=True)

    def sync_with_upstream(
        self,
        branch: str,
        strategy: SyncStrategy,
        *,
        interactive: bool,
        auto_yes: bool = False,
    ) -> SyncOutcome:
        """Integrate <remote>/<branch> into the current branch.

        Used to catch up with a remote copy of the branch being pushed, so
        there is no on-base short-circuit and no local base update.
        """
        self._state = SyncState.IDLE
        run = _SyncRun(
            branch=branch,
            target_ref=f"{self._remote}/{branch}",
            strategy=strategy,
            interactive=interactive,
            auto_yes=auto_yes,
            current_branch=self._git.get_current_branch(self._cwd),
        )
        return self._run(run, update_local_base=False)

    # State machine

    def _transition(self, state: SyncState) -> None:
        logger.debug("sync state: %s -> %s", self._state.value, state.value)
        self._state = state

    def _run(self, run: _SyncRun, *, update_local_base: bool) -> SyncOutcome:
        guard = WorkingTreeGuard(self._git, self._cwd, self._feedback)
        self._transition(SyncState.GUARDING)
        try:
            with guard.guarded() as handle:
                outcome = self._apply_guarded(run, handle, update_local_base=update_local_base)
                if outcome.state in _TERMINAL_FOR_RESTORE:
                    self._transition(SyncState.RESTORING)
        except RuntimeError as e:
            # Only capture raises out of the guarded block; nothing was stashed
            self._transition(SyncState.FAILED)
            return SyncOutcome(
                success=False,
                conflicted=False,
                message=f"Could not set aside local changes: {e}",
                state=SyncState.FAILED,
            )

        return self._finalize(outcome, handle)

    def _apply_guarded(
        self, run: _SyncRun, handle: GuardHandle, *, update_local_base: bool
    ) -> SyncOutcome:
        try:
            self._transition(SyncState.FETCHING)
            self._feedback.info(f"Fetching latest changes from {self._remote}...")
            self._git.fetch(self._cwd, self._remote)
            if update_local_base:
                self._update_local_base(run)

            if not self._git.branch_exists(self._cwd, run.target_ref):
                return self._fail(run, f"Remote branch '{run.target_ref}' not found")

            if run.strategy == SyncStrategy.REBASE:
                run.replay_bound = max(
                    1, self._git.count_commits(self._cwd, run.target_ref, "HEAD")
                )
            self._show_comparison(run)

            self._transition(SyncState.APPLYING)
            result = self._apply_strategy(run)
            if result.success:
                return self._succeed(run)
            return self._handle_apply_failure(run, handle, result)

        except KeyboardInterrupt:
            logger.debug("Interrupted in state %s", self._state.value)
            self._abort_best_effort(run, handle)
            raise
        except click.Abort:
            # Ctrl-C or EOF at a prompt
            logger.debug("Prompt aborted in state %s", self._state.value)
            self._abort_best_effort(run, handle)
            return self._interrupted(run, handle)
        except (RuntimeError, OSError) as e:
            self._abort_best_effort(run, handle)
            return self._fail(run, str(e) or type(e).__name__)

    def _show_comparison(self, run: _SyncRun) -> None:
        """Tell the operator what the rebase or merge is about to do."""
        ahead, behind = self._git.get_ahead_behind(self._cwd, "HEAD", run.target_ref)
        self._feedback.info(
            f"{run.current_branch} is {ahead} commit(s) ahead of and "
            f"{behind} commit(s) behind {run.target_ref}"
        )
        if behind == 0:
            self._feedback.info(f"Already up to date with {run.target_ref}")
            return

        if ahead > 0:
            self._feedback.info("Commits to be replayed:")
            for commit in self._git.get_commits_between(self._cwd, run.target_ref, "HEAD"):
                self._feedback.info(f"  {commit}")
        new_commits = self._git.get_commits_between(self._cwd, "HEAD", run.target_ref)
        if new_commits:
            self._feedback.info(f"New commits in {run.target_ref}:")
            for commit in new_commits[:PREVIEW_COMMIT_LIMIT]:
                self._feedback.info(f"  {commit}")
            if len(new_commits) > PREVIEW_COMMIT_LIMIT:
                self._feedback.info(f"  ... and {len(new_commits) - PREVIEW_COMMIT_LIMIT} more")

    def _update_local_base(self, run: _SyncRun) -> None:
        """Fast-forward the local base branch when it is strictly behind its remote."""
        branch = run.branch
        try:
            if not self._git.branch_exists(self._cwd, branch):
                return
            ahead, behind = self._git.get_ahead_behind(self._cwd, branch, run.target_ref)
            if behind > 0 and ahead == 0:
                self._git.fast_forward_branch(self._cwd, self._remote, branch)
                self._feedback.info(f"Updated local {branch} ({behind} new commit(s))")
            elif behind > 0 and ahead > 0:
                self._feedback.warning(
                    f"Local {branch} has {ahead} unpushed commit(s), skipping update"
                )
        except RuntimeError as e:
            logger.debug("Local base update failed: %s", e)
            self._feedback.warning(f"Could not update local {branch}: {e}")

    def _apply_strategy(self, run: _SyncRun) -> GitCommandResult:
        if run.strategy == SyncStrategy.REBASE:
            self._feedback.info(f"Rebasing {run.current_branch} onto {run.target_ref}...")
            return self._git.rebase(self._cwd, run.target_ref)
        self._feedback.info(f"Merging {run.target_ref} into {run.current_branch}...")
        return self._git.merge(self._cwd, run.target_ref)

    def _continue_strategy(self, run: _SyncRun) -> GitCommandResult:
        if run.strategy == SyncStrategy.REBASE:
            return self._git.continue_rebase(self._cwd)
        return self._git.continue_merge(self._cwd)

    def _abort_strategy(self, run: _SyncRun) -> GitCommandResult:
        if run.strategy == SyncStrategy.REBASE:
            return self._git.abort_rebase(self._cwd)
        return self._git.abort_merge(self._cwd)

    def _operation_in_progress(self) -> bool:
        return self._git.is_rebase_in_progress(self._cwd) or self._git.is_merge_in_progress(
            self._cwd
        )

    def _abort_best_effort(self, run: _SyncRun, handle: GuardHandle) -> None:
        """Abort whatever operation is in progress; leave the stash alone if that fails."""
        try:
            if self._git.is_rebase_in_progress(self._cwd):
                self._git.abort_rebase(self._cwd)
            if self._git.is_merge_in_progress(self._cwd):
                self._git.abort_merge(self._cwd)
            still_running = self._operation_in_progress()
        except RuntimeError as e:
            logger.debug("Abort failed: %s", e)
            still_running = True
        if still_running:
            handle.defer(f"{run.strategy.value} still in progress")

    # Outcomes

    def _succeed(self, run: _SyncRun) -> SyncOutcome:
        self._transition(SyncState.SUCCEEDED)
        if run.strategy == SyncStrategy.REBASE:
            message = f"Successfully rebased {run.current_branch} onto {run.target_ref}"
        else:
            message = f"Successfully merged {run.target_ref} into {run.current_branch}"
        return SyncOutcome(
            success=True,
            conflicted=run.conflicted,
            message=message,
            state=SyncState.SUCCEEDED,
        )

    def _fail(self, run: _SyncRun, message: str) -> SyncOutcome:
        self._transition(SyncState.FAILED)
        return SyncOutcome(
            success=False,
            conflicted=run.conflicted,
            message=message,
            state=SyncState.FAILED,
        )

    def _interrupted(self, run: _SyncRun, handle: GuardHandle) -> SyncOutcome:
        strategy = run.strategy.value
        if handle.deferred:
            steps = [f"git {strategy} --abort"]
            if handle.record.stashed:
                steps.append("git stash pop")
            self._transition(SyncState.FAILED)
            return SyncOutcome(
                success=False,
                conflicted=run.conflicted,
                message=f"Interrupted, and the {strategy} could not be aborted",
                state=SyncState.FAILED,
                next_steps=tuple(steps),
            )
        self._transition(SyncState.ABORTED)
        return SyncOutcome(
            success=False,
            conflicted=run.conflicted,
            message=f"Interrupted, {strategy} aborted",
            state=SyncState.ABORTED,
        )

    def _abort(self, run: _SyncRun, handle: GuardHandle, message: str) -> SyncOutcome:
        strategy = run.strategy.value
        result = self._abort_strategy(run)
        if not result.success and self._operation_in_progress():
            handle.defer(f"{strategy} --abort failed")
            self._transition(SyncState.FAILED)
            return SyncOutcome(
                success=False,
                conflicted=run.conflicted,
                message=f"Failed to abort {strategy}: {result.stderr}",
                state=SyncState.FAILED,
                next_steps=(f"git {strategy} --abort",),
            )

        self._transition(SyncState.ABORTED)
        return SyncOutcome(
            success=False,
            conflicted=run.conflicted,
            message=message,
            state=SyncState.ABORTED,
        )

    def _leave_in_progress(
        self,
        run: _SyncRun,
        handle: GuardHandle,
        state: SyncState,
        message: str,
    ) -> SyncOutcome:
        handle.defer(message)
        self._transition(state)
        remaining = self._git.get_conflicted_files(self._cwd)
        steps = self._manual_steps(run, handle, remaining)
        self._show_conflict_help(run, remaining, steps)
        return SyncOutcome(
            success=False,
            conflicted=True,
            message=message,
            state=state,
            next_steps=steps,
        )

    def _manual_steps(
        self, run: _SyncRun, handle: GuardHandle, conflicted: list[str]
    ) -> tuple[str, ...]:
        strategy = run.strategy.value
        steps = []
        if conflicted:
            steps.append(f"git add {' '.join(conflicted)}")
        steps.append(f"git {strategy} --continue")
        if handle.record.stashed:
            steps.append("git stash pop")
        return tuple(steps)

    def _show_conflict_help(
        self, run: _SyncRun, conflicted: list[str], steps: tuple[str, ...]
    ) -> None:
        strategy = run.strategy.value
        if conflicted:
            self._feedback.warning("Files with conflicts:")
            for path in conflicted:
                self._feedback.warning(f"  {path}")
        self._feedback.info("")
        self._feedback.info("To finish by hand:")
        self._feedback.info("  1. Edit the files above and remove the conflict markers")
        for number, step in enumerate(steps, start=2):
            self._feedback.info(f"  {number}. {step}")
        self._feedback.info(f"To give up instead: git {strategy} --abort")

    # Conflict handling

    def _handle_apply_failure(
        self, run: _SyncRun, handle: GuardHandle, result: GitCommandResult
    ) -> SyncOutcome:
        conflicted = self._git.get_conflicted_files(self._cwd)
        if not conflicted:
            self._abort_best_effort(run, handle)
            error = result.stderr or result.stdout or "unknown error"
            return self._fail(run, f"{run.strategy.value.capitalize()} failed: {error}")

        run.conflicted = True
        self._transition(SyncState.CONFLICTED)
        strategy = run.strategy.value

        if not run.interactive or run.auto_yes:
            outcome = self._abort(
                run,
                handle,
                f"Conflicts detected during {strategy}. "
                f"Please resolve manually with: git {strategy} {run.target_ref}",
            )
            if outcome.state != SyncState.ABORTED:
                return outcome
            return replace(
                outcome,
                next_steps=(
                    f"git {strategy} {run.target_ref}",
                    "git add <resolved files>",
                    f"git {strategy} --continue",
                ),
            )

        return self._resolution_loop(run, handle, conflicted)

    def _resolution_loop(
        self, run: _SyncRun, handle: GuardHandle, conflicted: list[str]
    ) -> SyncOutcome:
        strategy = run.strategy.value
        resolver = ConflictResolver(
            self._git, self._cwd, self._resolution_strategy, self._feedback
        )

        for round_number in range(1, run.replay_bound + 1):
            self._feedback.warning(f"Conflicts detected in {len(conflicted)} file(s):")
            for path in conflicted:
                self._feedback.warning(f"  {path}")

            key = self._prompter.choose(
                "[r]esolve interactively, [a]bort, or resolve [m]anually",
                list(CONFLICT_ACTIONS),
                default="r",
            )
            action = CONFLICT_ACTIONS[key]
            logger.debug("Conflict round %d: operator chose %s", round_number, action)

            if action == "abort":
                return self._abort(run, handle, f"{strategy.capitalize()} aborted")
            if action == "manual":
                return self._leave_in_progress(
                    run,
                    handle,
                    SyncState.MANUAL,
                    f"{strategy.capitalize()} left in progress for manual resolution",
                )

            self._transition(SyncState.RESOLVING)
            resolution = resolver.resolve_all()
            if resolution.aborted:
                return self._abort(
                    run, handle, f"Conflict resolution aborted, {strategy} aborted"
                )

            remaining = self._git.get_conflicted_files(self._cwd)
            if resolution.files_skipped > 0 or remaining:
                return self._leave_in_progress(
                    run,
                    handle,
                    SyncState.STILL_CONFLICTED,
                    f"Partial resolution: {len(remaining)} file(s) still conflicted. "
                    f"Finish them and continue the {strategy} manually",
                )

            self._transition(SyncState.CONTINUING)
            continued = self._continue_strategy(run)
            if continued.success:
                return self._succeed(run)

            conflicted = self._git.get_conflicted_files(self._cwd)
            if not conflicted:
                self._abort_best_effort(run, handle)
                error = continued.stderr or continued.stdout or "unknown error"
                return self._fail(run, f"Failed to continue {strategy}: {error}")

            self._transition(SyncState.CONFLICTED)
            self._feedback.info("")
            self._feedback.warning("More conflicts in the next commit")

        return self._leave_in_progress(
            run,
            handle,
            SyncState.STILL_CONFLICTED,
            f"Conflicts remain after {run.replay_bound} resolution round(s). "
            f"Finish them and continue the {strategy} manually",
        )

    def _finalize(self, outcome: SyncOutcome, handle: GuardHandle) -> SyncOutcome:
        message = outcome.message
        next_steps = outcome.next_steps
        restore = handle.restore_result
        if handle.record.stashed and restore is not None:
            if restore.success:
                message += ". Local changes restored"
            else:
                message += f"\n{restore.message}"
                if "git stash pop" not in next_steps:
                    next_steps = (*next_steps, "git stash pop")

        if outcome.state in _TERMINAL_FOR_RESTORE:
            self._transition(SyncState.DONE)

        return replace(
            outcome,
            message=message,
            stash_pending=handle.stash_pending,
            next_steps=next_steps,
        )
