"""Production Git implementation using subprocess.

This module provides the real Git implementation that executes actual git
commands via subprocess.
"""

from pathlib import Path

from smart_git.core.git.abc import DEFAULT_BRANCH, UNMERGED_STATUS_CODES, Git
from smart_git.core.subprocess import run_git, run_subprocess_with_context
from smart_git.core.types import GitCommandResult, WorkingTreeStatus

NOTHING_TO_STASH = "No local changes to save"


def _to_result(completed) -> GitCommandResult:
    return GitCommandResult(
        success=completed.returncode == 0,
        stdout=completed.stdout.strip(),
        stderr=completed.stderr.strip(),
    )


def _split_lines(output: str) -> list[str]:
    return [line.strip() for line in output.splitlines() if line.strip()]


# ============================================================================
# Production Implementation
# ============================================================================


class RealGit(Git):
    """Production implementation using subprocess.

    All git operations execute actual git commands via subprocess.
    """

    def is_repository(self, cwd: Path) -> bool:
        """Check if cwd is inside a git work tree."""
        result = run_git(["rev-parse", "--is-inside-work-tree"], cwd)
        return result.returncode == 0 and result.stdout.strip() == "true"

    def get_current_branch(self, cwd: Path) -> str:
        """Get the currently checked-out branch."""
        result = run_git(["rev-parse", "--abbrev-ref", "HEAD"], cwd)
        if result.returncode == 0:
            return result.stdout.strip()

        # Unborn HEAD: no commits yet, but HEAD still names a branch
        result = run_git(["symbolic-ref", "--short", "HEAD"], cwd)
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()

        return DEFAULT_BRANCH

    def get_upstream_branch(self, cwd: Path) -> str | None:
        """Get the upstream of the current branch."""
        result = run_git(["rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}"], cwd)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def branch_exists(self, cwd: Path, ref: str) -> bool:
        """Check if a ref resolves to a commit."""
        result = run_git(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], cwd)
        return result.returncode == 0

    def remote_branch_exists(self, cwd: Path, remote: str, branch: str) -> bool:
        """Check if a branch exists on the remote."""
        result = run_git(["ls-remote", "--exit-code", "--heads", remote, branch], cwd)
        return result.returncode == 0

    def get_ahead_behind(self, cwd: Path, ref: str, other: str) -> tuple[int, int]:
        """Count commits on each side of two refs."""
        result = run_subprocess_with_context(
            ["git", "rev-list", "--left-right", "--count", f"{other}...{ref}"],
            operation_context=f"compare '{ref}' with '{other}'",
            cwd=cwd,
        )

        parts = result.stdout.strip().split()
        if len(parts) == 2:
            behind = int(parts[0])
            ahead = int(parts[1])
            return ahead, behind

        return 0, 0

    def count_commits(self, cwd: Path, from_ref: str, to_ref: str) -> int:
        """Count commits in from_ref..to_ref."""
        result = run_subprocess_with_context(
            ["git", "rev-list", "--count", f"{from_ref}..{to_ref}"],
            operation_context=f"count commits in {from_ref}..{to_ref}",
            cwd=cwd,
        )
        count_str = result.stdout.strip()
        if not count_str:
            return 0
        return int(count_str)

    def get_commits_between(self, cwd: Path, from_ref: str, to_ref: str) -> list[str]:
        """One-line summaries of commits in from_ref..to_ref."""
        result = run_subprocess_with_context(
            ["git", "log", "--oneline", f"{from_ref}..{to_ref}"],
            operation_context=f"list commits in {from_ref}..{to_ref}",
            cwd=cwd,
        )
        return _split_lines(result.stdout)

    def fetch(self, cwd: Path, remote: str) -> None:
        """Fetch all branches from a remote."""
        run_subprocess_with_context(
            ["git", "fetch", remote],
            operation_context=f"fetch from remote '{remote}'",
            cwd=cwd,
        )

    def fetch_branch(self, cwd: Path, remote: str, branch: str) -> None:
        """Fetch a single branch from a remote."""
        run_subprocess_with_context(
            ["git", "fetch", remote, branch],
            operation_context=f"fetch branch '{branch}' from remote '{remote}'",
            cwd=cwd,
        )

    def fast_forward_branch(self, cwd: Path, remote: str, branch: str) -> None:
        """Update a local branch that is not checked out to its remote tip."""
        run_subprocess_with_context(
            ["git", "fetch", remote, f"{branch}:{branch}"],
            operation_context=f"fast-forward local '{branch}' to '{remote}/{branch}'",
            cwd=cwd,
        )

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
        """Push a branch, streaming git's progress to the operator."""
        args = ["push"]
        if set_upstream:
            args.append("-u")
        if force:
            args.append("--force")
        elif force_with_lease:
            args.append("--force-with-lease")
        args.extend([remote, branch])
        return _to_result(run_git(args, cwd, stream=True))

    def get_status(self, cwd: Path) -> WorkingTreeStatus:
        """Compute staged/unstaged/untracked flags for the working tree."""
        # `git diff --quiet` exits 1 when there are differences
        staged = run_git(["diff", "--cached", "--quiet"], cwd)
        unstaged = run_git(["diff", "--quiet"], cwd)
        for result, what in ((staged, "staged"), (unstaged, "unstaged")):
            if result.returncode not in (0, 1):
                raise RuntimeError(
                    f"Failed to check for {what} changes\nstderr: {result.stderr.strip()}"
                )

        untracked = run_subprocess_with_context(
            ["git", "ls-files", "--others", "--exclude-standard"],
            operation_context="list untracked files",
            cwd=cwd,
        )
        return WorkingTreeStatus(
            has_staged=staged.returncode == 1,
            has_unstaged=unstaged.returncode == 1,
            has_untracked=bool(untracked.stdout.strip()),
        )

    def get_staged_files(self, cwd: Path) -> list[str]:
        """List paths currently staged in the index."""
        result = run_subprocess_with_context(
            ["git", "diff", "--name-only", "--cached"],
            operation_context="list staged files",
            cwd=cwd,
        )
        return _split_lines(result.stdout)

    def get_unstaged_files(self, cwd: Path) -> list[str]:
        result = run_subprocess_with_context(
            ["git", "diff", "--name-only"],
            operation_context="list unstaged files",
            cwd=cwd,
        )
        return _split_lines(result.stdout)

    def get_untracked_files(self, cwd: Path) -> list[str]:
        result = run_subprocess_with_context(
            ["git", "ls-files", "--others", "--exclude-standard"],
            operation_context="list untracked files",
            cwd=cwd,
        )
        return _split_lines(result.stdout)

    def get_conflicted_files(self, cwd: Path) -> list[str]:
        """List unmerged paths from porcelain status."""
        result = run_subprocess_with_context(
            ["git", "status", "--porcelain=v1", "-z"],
            operation_context="get file status",
            cwd=cwd,
        )

        conflicted: list[str] = []
        for entry in result.stdout.split("\0"):
            if len(entry) < 4:
                continue
            if entry[:2] in UNMERGED_STATUS_CODES:
                conflicted.append(entry[3:])
        return conflicted

    def is_tracked(self, cwd: Path, path: str) -> bool:
        """Check if a path is tracked in the index."""
        result = run_git(["ls-files", "--error-unmatch", "--", path], cwd)
        return result.returncode == 0

    def add(self, cwd: Path, paths: list[str]) -> None:
        """Stage the given paths."""
        if not paths:
            return
        run_subprocess_with_context(
            ["git", "add", "--", *paths],
            operation_context=f"stage {len(paths)} path(s)",
            cwd=cwd,
        )

    def read_file(self, cwd: Path, path: str) -> str | None:
        """Read a working-tree file, or None if it does not exist."""
        file_path = cwd / path
        if not file_path.is_file():
            return None
        # newline="" keeps CRLF files byte-for-byte
        with open(file_path, encoding="utf-8", errors="surrogateescape", newline="") as f:
            return f.read()

    def write_file(self, cwd: Path, path: str, content: str) -> None:
        """Overwrite a working-tree file."""
        with open(cwd / path, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
            f.write(content)

    def stash_push(self, cwd: Path, message: str) -> bool:
        """Stash all changes including untracked files."""
        result = run_subprocess_with_context(
            ["git", "stash", "push", "--include-untracked", "-m", message],
            operation_context="stash local changes",
            cwd=cwd,
        )
        return NOTHING_TO_STASH not in result.stdout

    def stash_pop(self, cwd: Path, *, index: bool) -> GitCommandResult:
        """Pop the most recent stash entry."""
        args = ["stash", "pop"]
        if index:
            args.append("--index")
        return _to_result(run_git(args, cwd))

    def list_stashes(self, cwd: Path) -> list[str]:
        """List stash entries, most recent first."""
        result = run_subprocess_with_context(
            ["git", "stash", "list"],
            operation_context="list stash entries",
            cwd=cwd,
        )
        return _split_lines(result.stdout)

    def rebase(self, cwd: Path, onto: str) -> GitCommandResult:
        """Rebase the current branch onto a ref."""
        return _to_result(run_git(["rebase", onto], cwd))

    def merge(self, cwd: Path, ref: str) -> GitCommandResult:
        """Merge a ref into the current branch with the default message."""
        return _to_result(run_git(["merge", ref, "--no-edit"], cwd))

    def abort_rebase(self, cwd: Path) -> GitCommandResult:
        """Abort an in-progress rebase."""
        return _to_result(run_git(["rebase", "--abort"], cwd))

    def abort_merge(self, cwd: Path) -> GitCommandResult:
        """Abort an in-progress merge."""
        return _to_result(run_git(["merge", "--abort"], cwd))

    def continue_rebase(self, cwd: Path) -> GitCommandResult:
        """Continue an in-progress rebase without opening an editor."""
        return _to_result(run_git(["-c", "core.editor=true", "rebase", "--continue"], cwd))

    def continue_merge(self, cwd: Path) -> GitCommandResult:
        """Conclude an in-progress merge by committing with the prepared message."""
        return _to_result(run_git(["commit", "--no-edit"], cwd))

    def is_rebase_in_progress(self, cwd: Path) -> bool:
        """Check for rebase-merge/rebase-apply state directories."""
        return self._git_path_exists(cwd, "rebase-merge") or self._git_path_exists(
            cwd, "rebase-apply"
        )

    def is_merge_in_progress(self, cwd: Path) -> bool:
        """Check for MERGE_HEAD."""
        return self._git_path_exists(cwd, "MERGE_HEAD")

    def _git_path_exists(self, cwd: Path, name: str) -> bool:
        result = run_git(["rev-parse", "--git-path", name], cwd)
        if result.returncode != 0:
            return False
        git_path = Path(result.stdout.strip())
        if not git_path.is_absolute():
            git_path = cwd / git_path
        return git_path.exists()
