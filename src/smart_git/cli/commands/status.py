import click

from smart_git.cli.ensure import Ensure
from smart_git.cli.json_output import StatusResponse, emit_json, json_error_boundary
from smart_git.cli.output import user_output
from smart_git.core.branch_status import BranchStatus, collect_branch_status
from smart_git.core.context import SgContext
from smart_git.core.types import validate_branch_name


def _sync_indicator(ahead: int, behind: int) -> str:
    if ahead == 0 and behind == 0:
        return click.style("✓ up to date", fg="green")
    parts = []
    if ahead > 0:
        parts.append(click.style(f"↑{ahead}", fg="green"))
    if behind > 0:
        parts.append(click.style(f"↓{behind}", fg="yellow"))
    return " ".join(parts)


def _heading(title: str) -> None:
    user_output("")
    user_output(click.style(title, fg="cyan", bold=True))


def _print_status(status: BranchStatus) -> None:
    _heading("Branch")
    user_output(f"  On branch:  {click.style(status.current_branch, fg='yellow')}")
    if status.upstream is not None:
        indicator = _sync_indicator(status.ahead_of_upstream, status.behind_upstream)
        user_output(f"  Tracking:   {status.upstream} {indicator}")
    else:
        user_output("  Tracking:   " + click.style("(no upstream)", dim=True))

    _heading(f"Base branch ({status.base_branch})")
    if not status.base_ref_exists:
        user_output(f"  {status.base_ref}: " + click.style("not found", fg="red"))
    else:
        indicator = _sync_indicator(status.ahead_of_base, status.behind_base)
        user_output(f"  vs {status.base_ref}: {indicator}")
        if status.local_base_ahead > 0:
            local = click.style(
                f"⚠ has {status.local_base_ahead} unpushed commit(s)", fg="yellow"
            )
        elif status.local_base_behind > 0:
            local = click.style(f"↓ {status.local_base_behind} commit(s) behind remote", fg="cyan")
        else:
            local = click.style("✓ up to date", fg="green")
        user_output(f"  Local {status.base_branch}: {local}")

    _heading("Working tree")
    if status.conflicts > 0:
        user_output(click.style(f"  ✖ {status.conflicts} conflict(s)", fg="red"))
    if status.is_clean:
        user_output(click.style("  ✓ clean", fg="green"))
    if status.staged > 0:
        user_output(click.style(f"  ● {status.staged} staged", fg="green"))
    if status.unstaged > 0:
        user_output(click.style(f"  ○ {status.unstaged} modified", fg="yellow"))
    if status.untracked > 0:
        user_output(click.style(f"  ? {status.untracked} untracked", dim=True))

    suggestions = status.suggestions()
    if suggestions:
        _heading("Suggestions")
        for suggestion in suggestions:
            user_output(f"  → {suggestion}")


@click.command("status")
@click.option(
    "-b",
    "--base",
    "base_branch",
    default=None,
    help="Branch to compare with (default: git.base_branch from config, else 'main').",
)
@click.pass_obj
@json_error_boundary
def status_cmd(ctx: SgContext, base_branch: str | None) -> None:
    """Compare the current branch with its base and upstream."""
    repo_root = Ensure.in_git_repository(ctx)
    base = base_branch if base_branch is not None else ctx.config.base_branch
    try:
        validate_branch_name(base)
    except ValueError as e:
        Ensure.invariant(False, str(e))

    status = collect_branch_status(
        ctx.git,
        repo_root,
        ctx.feedback,
        base_branch=base,
        remote=ctx.config.remote,
    )

    if ctx.json_mode:
        response = StatusResponse(
            success=True,
            current_branch=status.current_branch,
            base_branch=status.base_branch,
            upstream=status.upstream,
            ahead_of_base=status.ahead_of_base,
            behind_base=status.behind_base,
            ahead_of_upstream=status.ahead_of_upstream,
            behind_upstream=status.behind_upstream,
            local_base_ahead=status.local_base_ahead,
            local_base_behind=status.local_base_behind,
            staged=status.staged,
            unstaged=status.unstaged,
            untracked=status.untracked,
            conflicts=status.conflicts,
            suggestions=status.suggestions(),
        )
        emit_json(response.model_dump(mode="json"))
        return

    _print_status(status)
