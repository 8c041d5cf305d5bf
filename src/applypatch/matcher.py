from __future__ import annotations

from typing import Callable, List, Sequence, Tuple

from .logger import logger

# Fuzz penalties added to the parse total.
FUZZ_RSTRIP = 1
FUZZ_STRIP = 100
FUZZ_EOF = 10000
FUZZ_ANCHOR = 1

NOT_FOUND = -1


def _identity(line: str) -> str:
    return line


def _rstrip(line: str) -> str:
    return line.rstrip()


def _strip(line: str) -> str:
    return line.strip()


# Passes in priority order: (normalizer, fuzz penalty)
_PASSES: Tuple[Tuple[Callable[[str], str], int], ...] = (
    (_identity, 0),
    (_rstrip, FUZZ_RSTRIP),
    (_strip, FUZZ_STRIP),
)


def find_context_core(
    lines: Sequence[str], context: Sequence[str], start: int
) -> Tuple[int, int]:
    """
    Find `context` in `lines` at or after `start`.
    Returns (index, fuzz); index is NOT_FOUND on a miss.
    A pass that matches anywhere wins over any later, looser pass.
    """
    if not context:
        logger.debug("Empty context", start=start)
        return start, 0

    start = max(start, 0)
    width = len(context)
    for normalize, fuzz in _PASSES:
        needle = [normalize(c) for c in context]
        for i in range(start, len(lines)):
            window = lines[i : i + width]
            if len(window) == width and [normalize(w) for w in window] == needle:
                return i, fuzz
    return NOT_FOUND, 0


def find_context(
    lines: Sequence[str], context: Sequence[str], start: int, eof: bool
) -> Tuple[int, int]:
    if eof:
        new_index, fuzz = find_context_core(lines, context, len(lines) - len(context))
        if new_index != NOT_FOUND:
            return new_index, fuzz
        new_index, fuzz = find_context_core(lines, context, start)
        return new_index, fuzz + FUZZ_EOF
    return find_context_core(lines, context, start)


def seek_anchor(lines: List[str], anchor: str, start: int) -> Tuple[int, int]:
    """
    Advance past the first line matching an '@@ <anchor>' label.
    Each lookup is skipped when a matching line already lies before `start`.
    Returns (new_start, fuzz); new_start equals `start` when nothing moved.
    """
    if not anchor.strip():
        return start, 0

    if anchor not in lines[:start]:
        for i in range(start, len(lines)):
            if lines[i] == anchor:
                return i + 1, 0

    wanted = anchor.strip()
    if not any(line.strip() == wanted for line in lines[:start]):
        for i in range(start, len(lines)):
            if lines[i].strip() == wanted:
                return i + 1, FUZZ_ANCHOR
    return start, 0
