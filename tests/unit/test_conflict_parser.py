"""Tests for conflict marker parsing and block replacement."""

import pytest

from smart_git.core.conflict_parser import apply_resolution, has_conflict_markers, parse_conflicts
from smart_git.core.types import ResolutionChoice

TWO_BLOCKS = (
    "header\n"
    "<<<<<<< HEAD\n"
    "mine 1\n"
    "=======\n"
    "theirs 1\n"
    ">>>>>>> origin/main\n"
    "middle\n"
    "<<<<<<< HEAD\n"
    "mine 2a\n"
    "mine 2b\n"
    "=======\n"
    "theirs 2\n"
    ">>>>>>> origin/main\n"
    "footer\n"
)


def test_no_markers_yields_no_blocks() -> None:
    assert parse_conflicts("plain\ntext\n") == []
    assert parse_conflicts("") == []
    assert has_conflict_markers("plain\n") is False


def test_blocks_are_returned_in_source_order_with_line_numbers() -> None:
    blocks = parse_conflicts(TWO_BLOCKS)

    assert len(blocks) == 2
    first, second = blocks
    assert (first.start_line, first.end_line) == (1, 5)
    assert (second.start_line, second.end_line) == (7, 12)
    assert first.current == "mine 1\n"
    assert first.incoming == "theirs 1\n"
    assert second.current == "mine 2a\nmine 2b\n"
    assert second.incoming == "theirs 2\n"
    assert first.current_label == "HEAD"
    assert first.incoming_label == "origin/main"
    assert first.ancestor is None


def test_empty_side_differs_from_blank_line() -> None:
    content = "<<<<<<< HEAD\n=======\n\n>>>>>>> theirs\n"

    (block,) = parse_conflicts(content)

    assert block.current == ""
    assert block.incoming == "\n"


def test_diff3_ancestor_is_not_part_of_current() -> None:
    content = (
        "<<<<<<< HEAD\n"
        "mine\n"
        "||||||| merged common ancestors\n"
        "base\n"
        "=======\n"
        "theirs\n"
        ">>>>>>> feature\n"
    )

    (block,) = parse_conflicts(content)

    assert block.current == "mine\n"
    assert block.ancestor == "base\n"
    assert block.incoming == "theirs\n"


def test_unterminated_block_is_ignored() -> None:
    content = "<<<<<<< HEAD\nmine\n=======\ntheirs\n"

    assert parse_conflicts(content) == []
    assert has_conflict_markers(content) is False


def test_second_separator_belongs_to_incoming() -> None:
    content = "<<<<<<< HEAD\na\n=======\nb\n=======\nc\n>>>>>>> x\n"

    (block,) = parse_conflicts(content)

    assert block.current == "a\n"
    assert block.incoming == "b\n=======\nc\n"


def test_crlf_terminators_are_preserved() -> None:
    content = "<<<<<<< HEAD\r\nmine\r\n=======\r\ntheirs\r\n>>>>>>> x\r\nafter\r\n"

    (block,) = parse_conflicts(content)

    assert block.current == "mine\r\n"
    assert apply_resolution(content, block, ResolutionChoice.KEEP_INCOMING) == "theirs\r\nafter\r\n"


@pytest.mark.parametrize(
    ("choice", "expected"),
    [
        (ResolutionChoice.KEEP_CURRENT, "before\nmine\nafter\n"),
        (ResolutionChoice.KEEP_INCOMING, "before\ntheirs\nafter\n"),
        (ResolutionChoice.KEEP_BOTH, "before\nmine\ntheirs\nafter\n"),
    ],
)
def test_apply_resolution_replaces_marker_span(choice: ResolutionChoice, expected: str) -> None:
    content = "before\n<<<<<<< HEAD\nmine\n=======\ntheirs\n>>>>>>> x\nafter\n"
    (block,) = parse_conflicts(content)

    assert apply_resolution(content, block, choice) == expected


def test_skip_leaves_content_byte_for_byte() -> None:
    (block, _) = parse_conflicts(TWO_BLOCKS)

    assert apply_resolution(TWO_BLOCKS, block, ResolutionChoice.SKIP) == TWO_BLOCKS


def test_abort_is_not_a_resolution() -> None:
    (block, _) = parse_conflicts(TWO_BLOCKS)

    with pytest.raises(ValueError):
        apply_resolution(TWO_BLOCKS, block, ResolutionChoice.ABORT_ALL)


def test_last_to_first_application_keeps_earlier_spans_valid() -> None:
    first, second = parse_conflicts(TWO_BLOCKS)

    content = apply_resolution(TWO_BLOCKS, second, ResolutionChoice.KEEP_CURRENT)
    content = apply_resolution(content, first, ResolutionChoice.KEEP_INCOMING)

    assert content == "header\ntheirs 1\nmiddle\nmine 2a\nmine 2b\nfooter\n"
    assert not has_conflict_markers(content)


def test_resolving_removes_exactly_one_block() -> None:
    first, _ = parse_conflicts(TWO_BLOCKS)

    content = apply_resolution(TWO_BLOCKS, first, ResolutionChoice.KEEP_BOTH)

    assert len(parse_conflicts(content)) == 1


def test_block_at_end_of_file_without_trailing_newline() -> None:
    content = "<<<<<<< HEAD\nmine\n=======\ntheirs\n>>>>>>> x"
    (block,) = parse_conflicts(content)

    assert block.incoming_label == "x"
    assert apply_resolution(content, block, ResolutionChoice.KEEP_CURRENT) == "mine\n"
