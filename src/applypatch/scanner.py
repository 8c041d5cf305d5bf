from __future__ import annotations

from typing import List

from .errors import GrammarError
from .models import Chunk, Section

END_PATCH = "*** End Patch"
UPDATE_FILE = "*** Update File:"
DELETE_FILE = "*** Delete File:"
ADD_FILE = "*** Add File:"
END_OF_FILE = "*** End of File"
ANCHOR_PREFIX = "@@"
SECTION_BREAK = "***"

SECTION_TERMINATORS = (
    ANCHOR_PREFIX,
    END_PATCH,
    UPDATE_FILE,
    DELETE_FILE,
    ADD_FILE,
    END_OF_FILE,
)

KEEP = "keep"
ADD = "add"
DELETE = "delete"

_MODES = {"+": ADD, "-": DELETE, " ": KEEP}


def peek_next_section(lines: List[str], index: int) -> Section:
    """
    Scan one hunk body starting at `index`.

    - `context` holds kept and deleted lines in order; this is the text
      that must be found in the current file.
    - Each run of deletions/insertions becomes a Chunk whose orig_index is
      relative to the start of `context`.
    - Scanning stops before the next '@@', file header or end marker. A
      trailing '*** End of File' is consumed and marks the section eof.
    """
    context: List[str] = []
    del_lines: List[str] = []
    ins_lines: List[str] = []
    chunks: List[Chunk] = []
    mode = KEEP
    start_index = index

    def flush() -> None:
        if ins_lines or del_lines:
            chunks.append(
                Chunk(
                    orig_index=len(context) - len(del_lines),
                    del_lines=tuple(del_lines),
                    ins_lines=tuple(ins_lines),
                )
            )
        del_lines.clear()
        ins_lines.clear()

    while index < len(lines):
        line = lines[index]
        if line.startswith(SECTION_TERMINATORS) or line == SECTION_BREAK:
            break
        if line.startswith(SECTION_BREAK):
            raise GrammarError(f"Invalid Line: {line}")
        index += 1

        last_mode = mode
        if line == "":
            line = " "
        mode = _MODES.get(line[0], "")
        if not mode:
            raise GrammarError(f"Invalid Line: {line}")
        line = line[1:]

        if mode == KEEP and last_mode != mode:
            flush()

        if mode == DELETE:
            del_lines.append(line)
            context.append(line)
        elif mode == ADD:
            ins_lines.append(line)
        else:
            context.append(line)

    flush()

    if index < len(lines) and lines[index] == END_OF_FILE:
        return Section(context=context, chunks=chunks, end_index=index + 1, eof=True)

    if index == start_index:
        current = lines[index] if index < len(lines) else ""
        raise GrammarError(f"Nothing in this section - index={index} {current}")

    return Section(context=context, chunks=chunks, end_index=index, eof=False)
