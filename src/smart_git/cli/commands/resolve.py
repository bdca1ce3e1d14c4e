from pathlib import Path

import click

from smart_git.cli.ensure import Ensure
from smart_git.cli.json_output import (
    ConflictBlockModel,
    ConflictFileModel,
    ResolveResponse,
    emit_json,
    json_error_boundary,
)
from smart_git.cli.output import user_output
from smart_git.core.conflict_resolver import (
    ConflictResolver,
    InteractiveResolutionStrategy,
    fixed_choice_strategy,
)
from smart_git.core.context import SgContext
from smart_git.core.types import FileConflictSet, ResolutionChoice


def _to_models(conflict_sets: list[FileConflictSet]) -> list[ConflictFileModel]:
    return [
        ConflictFileModel(
            file_path=file_set.file_path,
            conflicts=[
                ConflictBlockModel(
                    start_line=block.start_line,
                    end_line=block.end_line,
                    current_label=block.current_label,
                    incoming_label=block.incoming_label,
                    current=block.current,
                    incoming=block.incoming,
                    ancestor=block.ancestor,
                )
                for block in file_set.conflicts
            ],
        )
        for file_set in conflict_sets
    ]


def _list_conflicts(ctx: SgContext, repo_root: Path) -> None:
    # The strategy is never consulted when only collecting
    resolver = ConflictResolver(
        ctx.git, repo_root, fixed_choice_strategy(ResolutionChoice.SKIP), ctx.feedback
    )
    conflict_sets, missing = resolver.collect_conflicts()

    if ctx.json_mode:
        response = ResolveResponse(
            success=True,
            files=_to_models(conflict_sets),
            missing_files=missing,
        )
        emit_json(response.model_dump(mode="json"))
        return

    if not conflict_sets:
        user_output("No conflict markers found")
        return

    for file_set in conflict_sets:
        user_output(
            click.style(file_set.file_path, bold=True)
            + f" ({len(file_set.conflicts)} conflict(s))"
        )
        for block in file_set.conflicts:
            labels = ""
            if block.current_label or block.incoming_label:
                labels = f"  {block.current_label or '?'} vs {block.incoming_label or '?'}"
            user_output(f"  lines {block.start_line + 1}-{block.end_line + 1}{labels}")


def _continue_hint(ctx: SgContext, repo_root: Path) -> str | None:
    if ctx.git.is_rebase_in_progress(repo_root):
        return "git rebase --continue"
    if ctx.git.is_merge_in_progress(repo_root):
        return "git merge --continue"
    return None


@click.command("resolve")
@click.option("--list", "list_only", is_flag=True, help="Only list the parsed conflicts.")
@click.pass_obj
@json_error_boundary
def resolve_cmd(ctx: SgContext, list_only: bool) -> None:
    """Resolve conflict markers in the working tree block by block."""
    repo_root = Ensure.in_git_repository(ctx)

    if list_only:
        _list_conflicts(ctx, repo_root)
        return

    Ensure.invariant(
        not ctx.json_mode,
        "Interactive resolution cannot run with --json - Use 'sg --json resolve --list'",
    )

    if not ctx.git.get_conflicted_files(repo_root):
        ctx.feedback.info("No conflicts to resolve")
        return

    resolver = ConflictResolver(
        ctx.git,
        repo_root,
        InteractiveResolutionStrategy(ctx.prompter),
        ctx.feedback,
    )
    result = resolver.resolve_all()

    if result.aborted:
        ctx.feedback.error("❌ Conflict resolution aborted; no further files were changed")
        raise SystemExit(1)

    if not result.success:
        ctx.feedback.error(
            f"❌ {result.files_skipped} file(s) still have conflicts; resolve them manually"
        )
        raise SystemExit(1)

    ctx.feedback.success(f"✅ Resolved {result.files_resolved} file(s)")
    hint = _continue_hint(ctx, repo_root)
    if hint is not None and not ctx.git.get_conflicted_files(repo_root):
        ctx.feedback.info(f"Next: {hint}")
