from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Tuple


class ActionType(str, Enum):
    ADD = "add"
    DELETE = "delete"
    UPDATE = "update"


@dataclass(frozen=True)
class Chunk:
    # Position of the first deleted line. Relative to the hunk context while
    # scanning, absolute within the original file once the hunk is located.
    orig_index: int = -1
    del_lines: Tuple[str, ...] = ()
    ins_lines: Tuple[str, ...] = ()

    def shifted(self, offset: int) -> "Chunk":
        return replace(self, orig_index=self.orig_index + offset)


@dataclass
class Section:
    """One scanned hunk body: its context text, chunks and where scanning stopped."""

    context: List[str]
    chunks: List[Chunk]
    end_index: int
    eof: bool = False


@dataclass
class PatchAction:
    type: ActionType
    new_file: Optional[str] = None
    chunks: List[Chunk] = field(default_factory=list)
    move_path: Optional[str] = None


@dataclass
class Patch:
    # Insertion order follows the order of sections in the patch text.
    actions: Dict[str, PatchAction] = field(default_factory=dict)


@dataclass
class FileChange:
    type: ActionType
    old_content: Optional[str] = None
    new_content: Optional[str] = None
    move_path: Optional[str] = None


@dataclass
class Commit:
    changes: Dict[str, FileChange] = field(default_factory=dict)
