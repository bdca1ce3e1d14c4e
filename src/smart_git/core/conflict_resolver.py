"""Per-block conflict resolution over every unmerged file."""

import logging
from collections.abc import Callable
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from smart_git.core.conflict_parser import apply_resolution, parse_conflicts
from smart_git.core.git.abc import Git
from smart_git.core.prompter import Prompter
from smart_git.core.types import (
    ConflictBlock,
    FileConflictSet,
    ResolutionChoice,
    ResolutionResult,
)
from smart_git.core.user_feedback import UserFeedback

logger = logging.getLogger(__name__)

# (file_conflicts, block, block_number, block_count) -> choice
ResolutionStrategy = Callable[[FileConflictSet, ConflictBlock, int, int], ResolutionChoice]

CHOICE_KEYS = {
    "c": ResolutionChoice.KEEP_CURRENT,
    "i": ResolutionChoice.KEEP_INCOMING,
    "b": ResolutionChoice.KEEP_BOTH,
    "s": ResolutionChoice.SKIP,
    "a": ResolutionChoice.ABORT_ALL,
}


def fixed_choice_strategy(choice: ResolutionChoice) -> ResolutionStrategy:
    """Strategy that answers every block with the same choice."""

    def strategy(
        file_conflicts: FileConflictSet, block: ConflictBlock, number: int, total: int
    ) -> ResolutionChoice:
        return choice

    return strategy


def _side_panel(title: str, label: str, text: str, style: str) -> Panel:
    heading = f"{title} ({label})" if label else title
    body = Text(text.rstrip("\n") if text else "(empty)", style=None if text else "dim")
    return Panel(body, title=heading, title_align="left", border_style=style)


class InteractiveResolutionStrategy:
    """Show both sides of a block and ask the operator what to keep."""

    def __init__(self, prompter: Prompter, console: Console | None = None) -> None:
        self._prompter = prompter
        self._console = console if console is not None else Console(stderr=True)

    def __call__(
        self, file_conflicts: FileConflictSet, block: ConflictBlock, number: int, total: int
    ) -> ResolutionChoice:
        self._console.print()
        self._console.print(
            f"[bold]{file_conflicts.file_path}[/bold] "
            f"conflict {number}/{total} (lines {block.start_line + 1}-{block.end_line + 1})"
        )
        self._console.print(_side_panel("CURRENT", block.current_label, block.current, "green"))
        if block.ancestor is not None:
            self._console.print(_side_panel("BASE", "", block.ancestor, "dim"))
        self._console.print(_side_panel("INCOMING", block.incoming_label, block.incoming, "blue"))

        key = self._prompter.choose(
            "Keep [c]urrent, [i]ncoming, [b]oth, [s]kip, or [a]bort",
            list(CHOICE_KEYS),
            default="s",
        )
        return CHOICE_KEYS[key]


class ConflictResolver:
    """Walks every conflicted file and applies one choice per block.

    Blocks of a file are presented and applied last-to-first, so the line
    numbers of blocks not yet handled stay valid. A file is written back if
    any block was resolved and staged only if none was skipped.
    """

    def __init__(
        self,
        git: Git,
        cwd: Path,
        strategy: ResolutionStrategy,
        feedback: UserFeedback,
    ) -> None:
        self._git = git
        self._cwd = cwd
        self._strategy = strategy
        self._feedback = feedback

    def collect_conflicts(self) -> tuple[list[FileConflictSet], list[str]]:
        """Parse every conflicted file.

        Returns:
            Tuple of (conflict sets for files with at least one block,
            conflicted paths that no longer exist on disk)
        """
        conflict_sets: list[FileConflictSet] = []
        missing: list[str] = []
        for path in self._git.get_conflicted_files(self._cwd):
            content = self._git.read_file(self._cwd, path)
            if content is None:
                self._feedback.warning(f"Conflicted file not found, skipping: {path}")
                missing.append(path)
                continue
            blocks = parse_conflicts(content)
            if not blocks:
                logger.debug("No conflict markers in %s", path)
                continue
            conflict_sets.append(
                FileConflictSet(file_path=path, original_content=content, conflicts=tuple(blocks))
            )
        return conflict_sets, missing

    def resolve_all(self) -> ResolutionResult:
        conflict_sets, missing = self.collect_conflicts()
        if not conflict_sets:
            return ResolutionResult(
                files_resolved=0, files_skipped=0, aborted=False, missing_files=tuple(missing)
            )

        block_count = sum(len(file_set.conflicts) for file_set in conflict_sets)
        self._feedback.info(
            f"Found {block_count} conflict(s) in {len(conflict_sets)} file(s)"
        )

        files_resolved = 0
        files_skipped = 0
        for file_set in conflict_sets:
            total = len(file_set.conflicts)
            content = file_set.original_content
            applied = 0
            skipped = 0

            for number in range(total, 0, -1):
                block = file_set.conflicts[number - 1]
                choice = self._strategy(file_set, block, number, total)
                logger.debug("%s block %d/%d: %s", file_set.file_path, number, total, choice.value)

                if choice == ResolutionChoice.ABORT_ALL:
                    self._feedback.warning("Conflict resolution aborted")
                    return ResolutionResult(
                        files_resolved=files_resolved,
                        files_skipped=files_skipped,
                        aborted=True,
                        missing_files=tuple(missing),
                    )
                if choice == ResolutionChoice.SKIP:
                    skipped += 1
                    continue

                content = apply_resolution(content, block, choice)
                applied += 1

            if applied > 0:
                self._git.write_file(self._cwd, file_set.file_path, content)

            if skipped > 0:
                files_skipped += 1
                self._feedback.warning(
                    f"Skipped {skipped} conflict(s) in {file_set.file_path}; resolve them manually"
                )
            else:
                self._git.add(self._cwd, [file_set.file_path])
                files_resolved += 1
                self._feedback.success(f"✓ Resolved {file_set.file_path}")

        return ResolutionResult(
            files_resolved=files_resolved,
            files_skipped=files_skipped,
            aborted=False,
            missing_files=tuple(missing),
        )
