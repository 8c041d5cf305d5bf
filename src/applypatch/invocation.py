from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .parser import BEGIN_PATCH
from .scanner import END_PATCH

APPLY_PATCH = "apply_patch"
HEREDOC_RE = re.compile(r"apply_patch\s+<<\s*(['\"]?)(?P<token>[A-Za-z0-9_-]+)\1")
DIRECT_FILE_RE = re.compile(r"^\*\*\* (Add|Update|Delete) File: (.+)$", re.MULTILINE)
MOVE_FILE_RE = re.compile(r"^\*\*\* Move to: (.+)$", re.MULTILINE)


class UnsafePathError(ValueError):
    """A patch path points outside the workspace."""


@dataclass
class PatchInvocation:
    patch_text: str
    changed_files: List[str] = field(default_factory=list)


def sanitize_patch_path(path: str) -> str:
    return path.replace("\\", "/")


def is_safe_relative_path(path: str) -> bool:
    if path.startswith("/") or path.startswith("\\"):
        return False
    normalized = posixpath.normpath(path)
    if normalized == ".." or normalized.startswith("../") or "/../" in normalized:
        return False
    return True


def list_patch_paths(text: str) -> List[str]:
    """Every path a patch touches, Move targets included, in order of appearance."""
    files: Dict[str, None] = {}
    for m in DIRECT_FILE_RE.finditer(text):
        files.setdefault(sanitize_patch_path(m.group(2).strip()), None)
    for m in MOVE_FILE_RE.finditer(text):
        files.setdefault(sanitize_patch_path(m.group(1).strip()), None)
    return list(files)


def extract_patch_paths(text: str) -> List[str]:
    """Like list_patch_paths, but every path must stay inside the workspace."""
    for m in DIRECT_FILE_RE.finditer(text):
        raw_path = sanitize_patch_path(m.group(2).strip())
        if not is_safe_relative_path(raw_path):
            raise UnsafePathError(
                f'Failed: patch path "{raw_path}" must stay within the workspace.'
            )
    for m in MOVE_FILE_RE.finditer(text):
        move_path = sanitize_patch_path(m.group(1).strip())
        if not is_safe_relative_path(move_path):
            raise UnsafePathError(
                f'Failed: move target "{move_path}" must stay within the workspace.'
            )
    return list_patch_paths(text)


def ensure_patch_envelope(text: str) -> None:
    stripped = text.strip()
    if not stripped.startswith(BEGIN_PATCH) or not stripped.endswith(END_PATCH):
        raise ValueError("Failed: invalid patch envelope.")


def _detect_direct(command: Sequence[str]) -> Optional[PatchInvocation]:
    if command[0] != APPLY_PATCH or len(command) < 2:
        return None
    candidate = "\n".join(command[1:])
    if BEGIN_PATCH not in candidate or END_PATCH not in candidate:
        return None
    return PatchInvocation(candidate, extract_patch_paths(candidate))


def _detect_heredoc(command: Sequence[str]) -> Optional[PatchInvocation]:
    if len(command) < 2:
        return None
    script = command[-1]
    if APPLY_PATCH not in script or BEGIN_PATCH not in script:
        return None
    m = HEREDOC_RE.search(script)
    if m is None:
        return None
    token = m.group("token")
    first_newline = script.find("\n")
    if first_newline == -1:
        return None

    lines = re.split(r"\r?\n", script[first_newline + 1 :])
    # The closing token is the last line equal to it.
    closing = max((i for i, line in enumerate(lines) if line == token), default=-1)
    if closing == -1:
        return None
    patch_text = "\n".join(lines[:closing])
    if BEGIN_PATCH not in patch_text or END_PATCH not in patch_text:
        return None
    return PatchInvocation(patch_text, extract_patch_paths(patch_text))


def detect_patch_invocation(command: Sequence[str]) -> Optional[PatchInvocation]:
    """
    Recognize a shell command that applies a patch:
    - ["apply_patch", "<patch text>"]
    - [..., "apply_patch <<'EOF'\\n<patch text>\\nEOF"] (heredoc script as last argument)
    Returns None for anything else.
    """
    if not command:
        return None
    return _detect_direct(command) or _detect_heredoc(command)
