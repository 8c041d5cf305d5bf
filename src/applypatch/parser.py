from __future__ import annotations

from typing import Dict, List, Mapping, Sequence, Tuple

from .errors import ContextError, GrammarError
from .logger import logger
from .matcher import NOT_FOUND, find_context, seek_anchor
from .models import ActionType, Patch, PatchAction
from .scanner import (
    ADD_FILE,
    ANCHOR_PREFIX,
    DELETE_FILE,
    END_OF_FILE,
    END_PATCH,
    UPDATE_FILE,
    peek_next_section,
)

BEGIN_PATCH = "*** Begin Patch"
MOVE_TO = "*** Move to: "

# Header prefixes as they appear in front of a path.
UPDATE_FILE_PREFIX = UPDATE_FILE + " "
DELETE_FILE_PREFIX = DELETE_FILE + " "
ADD_FILE_PREFIX = ADD_FILE + " "

FILE_HEADERS = (END_PATCH, UPDATE_FILE, DELETE_FILE, ADD_FILE)
UPDATE_TERMINATORS = FILE_HEADERS + (END_OF_FILE,)


def _read_prefixed(lines: Sequence[str], index: int, prefix: str) -> Tuple[str, int]:
    """
    Return (text after prefix, next index) when lines[index] starts with prefix,
    else ("", index).
    """
    if index < len(lines) and lines[index].startswith(prefix):
        return lines[index][len(prefix) :], index + 1
    return "", index


class Parser:
    """
    Forward-only parser over the patch lines.
    The line cursor is passed explicitly between methods; only the resulting
    Patch and the fuzz total are accumulated on the instance.
    """

    def __init__(self, lines: List[str], current_files: Mapping[str, str]) -> None:
        self.lines = lines
        self.current_files = current_files
        self.patch = Patch()
        self.fuzz = 0

    def _is_done(self, index: int, prefixes: Tuple[str, ...]) -> bool:
        if index >= len(self.lines):
            return True
        return self.lines[index].startswith(prefixes)

    def _check_new_path(self, kind: str, path: str, *, must_exist: bool) -> None:
        if path in self.patch.actions:
            raise GrammarError(f"{kind} File Error: Duplicate Path: {path}")
        if must_exist and path not in self.current_files:
            raise GrammarError(f"{kind} File Error: Missing File: {path}")

    def parse(self, index: int) -> int:
        while not self._is_done(index, (END_PATCH,)):
            path, index = _read_prefixed(self.lines, index, UPDATE_FILE_PREFIX)
            if path:
                self._check_new_path("Update", path, must_exist=True)
                move_to, index = _read_prefixed(self.lines, index, MOVE_TO)
                action, index = self._parse_update_file(
                    self.current_files[path], index
                )
                action.move_path = move_to or None
                self.patch.actions[path] = action
                logger.debug(
                    "Parsed update",
                    path=path,
                    chunks=len(action.chunks),
                    move_path=action.move_path,
                )
                continue

            path, index = _read_prefixed(self.lines, index, DELETE_FILE_PREFIX)
            if path:
                self._check_new_path("Delete", path, must_exist=True)
                self.patch.actions[path] = PatchAction(type=ActionType.DELETE)
                logger.debug("Parsed delete", path=path)
                continue

            path, index = _read_prefixed(self.lines, index, ADD_FILE_PREFIX)
            if path:
                self._check_new_path("Add", path, must_exist=False)
                action, index = self._parse_add_file(index)
                self.patch.actions[path] = action
                logger.debug("Parsed add", path=path)
                continue

            raise GrammarError(f"Unknown Line: {self.lines[index]}")

        if index >= len(self.lines) or not self.lines[index].startswith(END_PATCH):
            raise GrammarError("Missing End Patch")
        return index + 1

    def _parse_update_file(self, text: str, index: int) -> Tuple[PatchAction, int]:
        action = PatchAction(type=ActionType.UPDATE)
        lines = text.split("\n")
        cursor = 0

        while not self._is_done(index, UPDATE_TERMINATORS):
            def_str, index = _read_prefixed(self.lines, index, ANCHOR_PREFIX + " ")
            bare_anchor = False
            if not def_str and self.lines[index] == ANCHOR_PREFIX:
                bare_anchor = True
                index += 1
            # Only the first hunk of a file may omit the '@@' line.
            if not (def_str or bare_anchor or cursor == 0):
                raise GrammarError(f"Invalid Line:\n{self.lines[index]}")

            cursor, anchor_fuzz = seek_anchor(lines, def_str, cursor)
            self.fuzz += anchor_fuzz

            section = peek_next_section(self.lines, index)
            new_index, fuzz = find_context(lines, section.context, cursor, section.eof)
            if new_index == NOT_FOUND:
                context_text = "\n".join(section.context)
                if section.eof:
                    raise ContextError(f"Invalid EOF Context {cursor}:\n{context_text}")
                raise ContextError(f"Invalid Context {cursor}:\n{context_text}")
            if fuzz:
                logger.debug("Fuzzy context match", index=new_index, fuzz=fuzz)
            self.fuzz += fuzz

            action.chunks.extend(chunk.shifted(new_index) for chunk in section.chunks)
            cursor = new_index + len(section.context)
            index = section.end_index

        return action, index

    def _parse_add_file(self, index: int) -> Tuple[PatchAction, int]:
        lines: List[str] = []
        while not self._is_done(index, FILE_HEADERS):
            line = self.lines[index]
            index += 1
            if not line.startswith("+"):
                raise GrammarError(f"Invalid Add File Line: {line}")
            lines.append(line[1:])
        return PatchAction(type=ActionType.ADD, new_file="\n".join(lines)), index


def text_to_patch(text: str, orig: Mapping[str, str]) -> Tuple[Patch, int]:
    """
    Parse patch text against the already loaded originals.
    Returns the Patch and the cumulative fuzz of all context matches.
    """
    lines = text.strip().split("\n")
    if (
        len(lines) < 2
        or not lines[0].startswith(BEGIN_PATCH)
        or lines[-1] != END_PATCH
    ):
        raise GrammarError("Invalid patch text")

    parser = Parser(lines, orig)
    parser.parse(1)
    return parser.patch, parser.fuzz


def _identify_paths(text: str, prefixes: Tuple[str, ...]) -> List[str]:
    seen: Dict[str, None] = {}
    for line in text.strip().split("\n"):
        for prefix in prefixes:
            if line.startswith(prefix):
                seen.setdefault(line[len(prefix) :], None)
    return list(seen)


def identify_files_needed(text: str) -> List[str]:
    """Paths the patch updates or deletes, i.e. the files that must be read first."""
    return _identify_paths(text, (UPDATE_FILE_PREFIX, DELETE_FILE_PREFIX))


def identify_files_added(text: str) -> List[str]:
    return _identify_paths(text, (ADD_FILE_PREFIX,))
