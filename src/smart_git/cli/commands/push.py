from pathlib import Path

import click

from smart_git.cli.ensure import Ensure
from smart_git.cli.json_output import PushResponse, emit_json, json_error_boundary
from smart_git.core.context import SgContext
from smart_git.core.push_recovery import PushRecoveryController, PushRejectedError
from smart_git.core.sync_orchestrator import SyncOrchestrator


def _needs_upstream(ctx: SgContext, repo_root: Path, current_branch: str) -> bool:
    """Decide whether the push must (re)set the upstream of the current branch."""
    remote = ctx.config.remote
    upstream = ctx.git.get_upstream_branch(repo_root)
    if upstream is None:
        ctx.feedback.warning("Branch has no upstream. Will set upstream on push.")
        return True

    upstream_branch = upstream.removeprefix(f"{remote}/")
    if not ctx.git.remote_branch_exists(repo_root, remote, upstream_branch):
        ctx.feedback.warning(
            f"Remote branch '{upstream_branch}' no longer exists (may have been deleted)"
        )
        return True

    if upstream_branch != current_branch:
        ctx.feedback.warning(
            f"Upstream branch ({upstream_branch}) doesn't match current branch ({current_branch})."
        )
        ctx.feedback.info(f"Will reset upstream to {remote}/{current_branch} on push.")
        return True

    return False


@click.command("push")
@click.option(
    "--force-with-lease/--no-force-with-lease",
    "force_with_lease",
    default=None,
    help="Push rewritten history safely (default: git.force_with_lease from config).",
)
@click.option(
    "-y",
    "--yes",
    "auto_yes",
    is_flag=True,
    help="Assume yes to recovery prompts (sync and retry, force after stale lease).",
)
@click.pass_obj
@json_error_boundary
def push_cmd(ctx: SgContext, force_with_lease: bool | None, auto_yes: bool) -> None:
    """Push the current branch, syncing with the remote first if it moved on."""
    repo_root = Ensure.in_git_repository(ctx)
    Ensure.no_operation_in_progress(ctx, repo_root)

    current_branch = ctx.git.get_current_branch(repo_root)
    Ensure.invariant(current_branch != "HEAD", "Detached HEAD - Check out a branch to push")

    if force_with_lease is None:
        force_with_lease = ctx.config.force_with_lease

    try:
        ctx.git.fetch(repo_root, ctx.config.remote)
    except RuntimeError as e:
        if ctx.json_mode:
            raise
        ctx.feedback.error(f"❌ Could not fetch from {ctx.config.remote}: {e}")
        raise SystemExit(1) from e
    set_upstream = _needs_upstream(ctx, repo_root, current_branch)

    interactive = not ctx.json_mode
    orchestrator = SyncOrchestrator(
        ctx.git,
        repo_root,
        ctx.feedback,
        ctx.prompter,
        remote=ctx.config.remote,
    )
    controller = PushRecoveryController(
        ctx.git,
        repo_root,
        ctx.feedback,
        ctx.prompter,
        orchestrator,
        strategy=ctx.config.sync_strategy,
        remote=ctx.config.remote,
        interactive=interactive,
    )

    try:
        outcome = controller.push(
            current_branch,
            set_upstream=set_upstream,
            force_with_lease=force_with_lease,
            auto_yes=auto_yes,
        )
    except PushRejectedError as e:
        if ctx.json_mode:
            raise
        ctx.feedback.error(f"❌ {e}")
        if e.next_steps:
            ctx.feedback.info("")
            ctx.feedback.info("Next steps:")
            for step in e.next_steps:
                ctx.feedback.info(f"  {step}")
        raise SystemExit(1) from e

    if ctx.json_mode:
        response = PushResponse(
            success=True,
            branch=outcome.branch,
            forced=outcome.forced,
            synced=outcome.synced,
            message=outcome.message,
        )
        emit_json(response.model_dump(mode="json"))
