"""Read-only comparison of the current branch against its base and upstream."""

import logging
from dataclasses import dataclass
from pathlib import Path

from smart_git.core.git.abc import Git
from smart_git.core.user_feedback import UserFeedback

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BranchStatus:
    """Snapshot behind `sg status`.

    Counts against a ref that does not exist are zero.
    """

    current_branch: str
    base_branch: str
    base_ref: str
    base_ref_exists: bool
    upstream: str | None
    ahead_of_base: int
    behind_base: int
    ahead_of_upstream: int
    behind_upstream: int
    local_base_ahead: int
    local_base_behind: int
    staged: int
    unstaged: int
    untracked: int
    conflicts: int

    @property
    def is_clean(self) -> bool:
        return self.staged == 0 and self.unstaged == 0 and self.untracked == 0

    def suggestions(self) -> list[str]:
        """Next commands worth running, most useful first."""
        result: list[str] = []
        if self.conflicts > 0:
            result.append("Resolve conflicts with 'sg resolve'")
        if self.behind_base > 0:
            result.append(f"Run 'sg sync' to catch up with {self.base_ref}")
        if self.local_base_behind > 0 and self.local_base_ahead == 0:
            result.append(f"Local {self.base_branch} will be fast-forwarded by 'sg sync'")
        if self.upstream is None and self.ahead_of_base > 0:
            result.append("Publish the branch with 'sg push'")
        elif self.ahead_of_upstream > 0:
            result.append("Push changes with 'sg push'")
        return result


def collect_branch_status(
    git: Git,
    cwd: Path,
    feedback: UserFeedback,
    *,
    base_branch: str,
    remote: str,
) -> BranchStatus:
    """Fetch, then compare HEAD with <remote>/<base_branch> and its upstream.

    A failed fetch is reported and the comparison uses the refs already known
    locally.
    """
    try:
        git.fetch(cwd, remote)
    except RuntimeError as e:
        logger.debug("Fetch failed: %s", e)
        feedback.warning(f"Could not fetch from {remote}, showing last known state")

    base_ref = f"{remote}/{base_branch}"
    base_ref_exists = git.branch_exists(cwd, base_ref)
    ahead_of_base, behind_base = (0, 0)
    local_base_ahead, local_base_behind = (0, 0)
    if base_ref_exists:
        ahead_of_base, behind_base = git.get_ahead_behind(cwd, "HEAD", base_ref)
        if git.branch_exists(cwd, base_branch):
            local_base_ahead, local_base_behind = git.get_ahead_behind(cwd, base_branch, base_ref)

    upstream = git.get_upstream_branch(cwd)
    ahead_of_upstream, behind_upstream = (0, 0)
    if upstream is not None and git.branch_exists(cwd, upstream):
        ahead_of_upstream, behind_upstream = git.get_ahead_behind(cwd, "HEAD", upstream)

    return BranchStatus(
        current_branch=git.get_current_branch(cwd),
        base_branch=base_branch,
        base_ref=base_ref,
        base_ref_exists=base_ref_exists,
        upstream=upstream,
        ahead_of_base=ahead_of_base,
        behind_base=behind_base,
        ahead_of_upstream=ahead_of_upstream,
        behind_upstream=behind_upstream,
        local_base_ahead=local_base_ahead,
        local_base_behind=local_base_behind,
        staged=len(git.get_staged_files(cwd)),
        unstaged=len(git.get_unstaged_files(cwd)),
        untracked=len(git.get_untracked_files(cwd)),
        conflicts=len(git.get_conflicted_files(cwd)),
    )
