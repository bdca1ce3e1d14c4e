import click

from smart_git.cli.ensure import Ensure
from smart_git.cli.json_output import SyncResponse, emit_json, json_error_boundary
from smart_git.core.context import SgContext
from smart_git.core.sync_orchestrator import SyncOrchestrator
from smart_git.core.types import SyncOutcome, SyncStrategy, validate_branch_name


def _report(ctx: SgContext, outcome: SyncOutcome) -> None:
    if outcome.success:
        ctx.feedback.success(f"✅ {outcome.message}")
        return

    ctx.feedback.error(f"❌ {outcome.message}")
    if outcome.next_steps:
        ctx.feedback.info("")
        ctx.feedback.info("Next steps:")
        for step in outcome.next_steps:
            ctx.feedback.info(f"  {step}")


@click.command("sync")
@click.option(
    "-b",
    "--base",
    "base_branch",
    default=None,
    help="Branch to sync with (default: git.base_branch from config, else 'main').",
)
@click.option(
    "--strategy",
    type=click.Choice([strategy.value for strategy in SyncStrategy]),
    default=None,
    help="Rebase onto or merge in the base branch (default: git.sync_strategy from config).",
)
@click.option(
    "--non-interactive",
    is_flag=True,
    help="Never prompt; abort and restore on conflicts.",
)
@click.option(
    "-y",
    "--yes",
    "auto_yes",
    is_flag=True,
    help="Assume yes to prompts; conflicts abort the sync.",
)
@click.pass_obj
@json_error_boundary
def sync_cmd(
    ctx: SgContext,
    base_branch: str | None,
    strategy: str | None,
    non_interactive: bool,
    auto_yes: bool,
) -> None:
    """Sync the current branch with the remote base branch.

    Uncommitted changes are stashed first and restored afterwards, with
    staged files kept staged.
    """
    repo_root = Ensure.in_git_repository(ctx)
    Ensure.no_operation_in_progress(ctx, repo_root)

    base = base_branch if base_branch is not None else ctx.config.base_branch
    try:
        validate_branch_name(base)
    except ValueError as e:
        Ensure.invariant(False, str(e))

    if strategy is not None:
        sync_strategy = SyncStrategy(strategy)
    else:
        sync_strategy = ctx.config.sync_strategy

    orchestrator = SyncOrchestrator(
        ctx.git,
        repo_root,
        ctx.feedback,
        ctx.prompter,
        remote=ctx.config.remote,
    )
    outcome = orchestrator.sync(
        base,
        sync_strategy,
        interactive=not non_interactive and not ctx.json_mode,
        auto_yes=auto_yes,
    )

    if ctx.json_mode:
        response = SyncResponse(
            success=outcome.success,
            conflicted=outcome.conflicted,
            message=outcome.message,
            state=outcome.state.value,
            base_branch=base,
            strategy=sync_strategy.value,
            stash_pending=outcome.stash_pending,
            next_steps=list(outcome.next_steps),
        )
        emit_json(response.model_dump(mode="json"))
    else:
        _report(ctx, outcome)

    if not outcome.success:
        raise SystemExit(1)
