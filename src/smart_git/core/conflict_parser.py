"""Parse git conflict markers into structured blocks.

Pure functions, no I/O. Understands the default two-way markers and the diff3
style with an ancestor section:

    <<<<<<< HEAD
    current side
    ||||||| merged common ancestors
    ancestor
    =======
    incoming side
    >>>>>>> origin/main
"""

from smart_git.core.types import ConflictBlock, ResolutionChoice

START_MARKER = "<<<<<<<"
ANCESTOR_MARKER = "|||||||"
SEPARATOR_MARKER = "======="
END_MARKER = ">>>>>>>"


def _marker_label(line: str, marker: str) -> str:
    return line[len(marker) :].strip()


def parse_conflicts(content: str) -> list[ConflictBlock]:
    """Extract every complete conflict block from file content.

    A block is one matched start/end marker pair. Lines between the start
    marker and the first separator are the current side (minus any diff3
    ancestor section); lines after the separator are the incoming side.
    An unterminated block is not a block, and a second start marker before
    the end marker restarts the scan from that line.

    Args:
        content: Full text of a file

    Returns:
        Blocks in source order; empty if the file has no complete block
    """
    lines = content.splitlines(keepends=True)
    blocks: list[ConflictBlock] = []

    start_line: int | None = None
    section = ""
    current: list[str] = []
    ancestor: list[str] | None = None
    incoming: list[str] = []
    current_label = ""

    for index, line in enumerate(lines):
        if line.startswith(START_MARKER):
            start_line = index
            section = "current"
            current = []
            ancestor = None
            incoming = []
            current_label = _marker_label(line, START_MARKER)
            continue

        if start_line is None:
            continue

        if section == "current" and line.startswith(ANCESTOR_MARKER):
            section = "ancestor"
            ancestor = []
        elif section in ("current", "ancestor") and line.startswith(SEPARATOR_MARKER):
            section = "incoming"
        elif section == "incoming" and line.startswith(END_MARKER):
            blocks.append(
                ConflictBlock(
                    start_line=start_line,
                    end_line=index,
                    current="".join(current),
                    incoming="".join(incoming),
                    ancestor="".join(ancestor) if ancestor is not None else None,
                    current_label=current_label,
                    incoming_label=_marker_label(line, END_MARKER),
                )
            )
            start_line = None
            section = ""
        elif section == "current":
            current.append(line)
        elif section == "ancestor" and ancestor is not None:
            ancestor.append(line)
        else:
            incoming.append(line)

    return blocks


def has_conflict_markers(content: str) -> bool:
    """Check whether content still contains at least one complete conflict block."""
    return len(parse_conflicts(content)) > 0


def resolved_text(block: ConflictBlock, choice: ResolutionChoice) -> str:
    """Text that replaces a block's marker span for a resolving choice."""
    if choice == ResolutionChoice.KEEP_CURRENT:
        return block.current
    if choice == ResolutionChoice.KEEP_INCOMING:
        return block.incoming
    if choice == ResolutionChoice.KEEP_BOTH:
        current = block.current
        # Keep the two sides on separate lines when current lacks a terminator
        if current and not current.endswith(("\n", "\r")) and block.incoming:
            current += "\n"
        return current + block.incoming
    raise ValueError(f"{choice.value} does not resolve a conflict block")


def apply_resolution(content: str, block: ConflictBlock, choice: ResolutionChoice) -> str:
    """Replace one block's marker span in content.

    SKIP returns content unchanged. Because replacement shifts the lines after
    the block, callers resolving several blocks of one file apply them
    last-to-first so earlier line numbers stay valid.

    Raises:
        ValueError: If choice is ABORT_ALL
    """
    if choice == ResolutionChoice.SKIP:
        return content
    if choice == ResolutionChoice.ABORT_ALL:
        raise ValueError("abort does not resolve a conflict block")

    lines = content.splitlines(keepends=True)
    replacement = resolved_text(block, choice)
    trailing = "".join(lines[block.end_line + 1 :])
    # The last kept line must stay terminated when text follows it
    if replacement and trailing and not replacement.endswith(("\n", "\r")):
        replacement += "\n"
    return "".join(lines[: block.start_line]) + replacement + trailing
