"""Tests for ConflictResolver over FakeGit."""

import io
from pathlib import Path

from rich.console import Console

from smart_git.core.conflict_parser import parse_conflicts
from smart_git.core.conflict_resolver import (
    ConflictResolver,
    InteractiveResolutionStrategy,
    fixed_choice_strategy,
)
from smart_git.core.git.fake import FakeGit
from smart_git.core.types import ConflictBlock, FileConflictSet, ResolutionChoice
from tests.fakes.prompter import FakePrompter
from tests.fakes.user_feedback import FakeUserFeedback

REPO = Path("/repo")

ONE_BLOCK = "top\n<<<<<<< HEAD\nmine\n=======\ntheirs\n>>>>>>> origin/main\nbottom\n"
TWO_BLOCKS = (
    "<<<<<<< HEAD\na1\n=======\nb1\n>>>>>>> origin/main\n"
    "mid\n"
    "<<<<<<< HEAD\na2\n=======\nb2\n>>>>>>> origin/main\n"
)


class RecordingStrategy:
    """Answers from a list and records the blocks it was shown."""

    def __init__(self, answers: list[ResolutionChoice]) -> None:
        self._answers = list(answers)
        self.seen: list[tuple[str, int, int, ConflictBlock]] = []

    def __call__(
        self, file_conflicts: FileConflictSet, block: ConflictBlock, number: int, total: int
    ) -> ResolutionChoice:
        self.seen.append((file_conflicts.file_path, number, total, block))
        return self._answers.pop(0)


def _resolver(git: FakeGit, strategy, feedback: FakeUserFeedback | None = None) -> ConflictResolver:
    return ConflictResolver(git, REPO, strategy, feedback or FakeUserFeedback())


def test_no_conflicted_files_is_trivially_complete() -> None:
    git = FakeGit()

    result = _resolver(git, fixed_choice_strategy(ResolutionChoice.KEEP_CURRENT)).resolve_all()

    assert result.success
    assert result.files_resolved == 0
    assert git.written_files == {}


def test_keep_incoming_writes_and_stages_file() -> None:
    git = FakeGit(files={"a.txt": ONE_BLOCK}, conflicted_files=["a.txt"])

    result = _resolver(git, fixed_choice_strategy(ResolutionChoice.KEEP_INCOMING)).resolve_all()

    assert result.success
    assert result.files_resolved == 1
    assert git.files["a.txt"] == "top\ntheirs\nbottom\n"
    assert git.added_paths == ["a.txt"]
    assert git.get_conflicted_files(REPO) == []


def test_blocks_are_presented_last_to_first() -> None:
    git = FakeGit(files={"a.txt": TWO_BLOCKS}, conflicted_files=["a.txt"])
    strategy = RecordingStrategy([ResolutionChoice.KEEP_CURRENT, ResolutionChoice.KEEP_INCOMING])

    _resolver(git, strategy).resolve_all()

    assert [(number, total) for _, number, total, _ in strategy.seen] == [(2, 2), (1, 2)]
    # second block kept current, first block took incoming
    assert git.files["a.txt"] == "b1\nmid\na2\n"


def test_skip_preserves_markers_and_does_not_stage() -> None:
    git = FakeGit(files={"a.txt": TWO_BLOCKS}, conflicted_files=["a.txt"])
    strategy = RecordingStrategy([ResolutionChoice.SKIP, ResolutionChoice.KEEP_CURRENT])

    result = _resolver(git, strategy).resolve_all()

    assert not result.success
    assert result.files_skipped == 1
    assert result.files_resolved == 0
    assert git.added_paths == []
    written = git.files["a.txt"]
    # skipped block survives byte-for-byte
    assert written.endswith("<<<<<<< HEAD\na2\n=======\nb2\n>>>>>>> origin/main\n")
    assert len(parse_conflicts(written)) == 1


def test_skipping_every_block_leaves_file_untouched() -> None:
    git = FakeGit(files={"a.txt": ONE_BLOCK}, conflicted_files=["a.txt"])

    result = _resolver(git, fixed_choice_strategy(ResolutionChoice.SKIP)).resolve_all()

    assert result.files_skipped == 1
    assert git.written_files == {}
    assert git.files["a.txt"] == ONE_BLOCK


def test_abort_discards_unwritten_edits_of_current_file() -> None:
    git = FakeGit(
        files={"a.txt": ONE_BLOCK, "b.txt": TWO_BLOCKS},
        conflicted_files=["a.txt", "b.txt"],
    )
    strategy = RecordingStrategy(
        [ResolutionChoice.KEEP_CURRENT, ResolutionChoice.KEEP_INCOMING, ResolutionChoice.ABORT_ALL]
    )

    result = _resolver(git, strategy).resolve_all()

    assert result.aborted
    assert not result.success
    assert result.files_resolved == 1
    assert set(git.written_files) == {"a.txt"}
    assert git.files["b.txt"] == TWO_BLOCKS


def test_missing_file_is_reported_not_fatal() -> None:
    feedback = FakeUserFeedback()
    git = FakeGit(files={"a.txt": ONE_BLOCK}, conflicted_files=["gone.txt", "a.txt"])

    result = _resolver(
        git, fixed_choice_strategy(ResolutionChoice.KEEP_CURRENT), feedback
    ).resolve_all()

    assert result.success
    assert result.missing_files == ("gone.txt",)
    assert result.files_resolved == 1
    assert feedback.contains("gone.txt")


def test_file_without_markers_is_not_part_of_the_pass() -> None:
    git = FakeGit(files={"binary.png": "no markers"}, conflicted_files=["binary.png"])
    strategy = RecordingStrategy([])

    result = _resolver(git, strategy).resolve_all()

    assert strategy.seen == []
    assert result.files_resolved == 0
    assert git.get_conflicted_files(REPO) == ["binary.png"]


def test_collect_conflicts_parses_each_file_once() -> None:
    git = FakeGit(files={"a.txt": ONE_BLOCK, "b.txt": TWO_BLOCKS}, conflicted_files=["a.txt", "b.txt"])

    conflict_sets, missing = _resolver(
        git, fixed_choice_strategy(ResolutionChoice.SKIP)
    ).collect_conflicts()

    assert [(s.file_path, len(s.conflicts)) for s in conflict_sets] == [("a.txt", 1), ("b.txt", 2)]
    assert conflict_sets[0].original_content == ONE_BLOCK
    assert missing == []


def test_interactive_strategy_maps_keys_to_choices() -> None:
    prompter = FakePrompter(choices=["i", "b", "a"])
    console = Console(file=io.StringIO())
    strategy = InteractiveResolutionStrategy(prompter, console=console)
    (block,) = parse_conflicts(ONE_BLOCK)
    file_set = FileConflictSet(file_path="a.txt", original_content=ONE_BLOCK, conflicts=(block,))

    answers = [strategy(file_set, block, 1, 1) for _ in range(3)]

    assert answers == [
        ResolutionChoice.KEEP_INCOMING,
        ResolutionChoice.KEEP_BOTH,
        ResolutionChoice.ABORT_ALL,
    ]
    assert prompter.choose_prompts[0][1] == ["c", "i", "b", "s", "a"]
