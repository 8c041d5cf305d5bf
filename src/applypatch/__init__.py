from __future__ import annotations

from .commit import apply_commit, assemble_changes, get_updated_file, patch_to_commit
from .engine import SUCCESS, load_files, process_patch, run_patch
from .errors import ContextError, DiffError, GrammarError, PatchInvariantError
from .fileops import (
    PatchFileOps,
    WorkspaceFileOps,
    open_file,
    remove_file,
    write_file,
)
from .models import ActionType, Chunk, Commit, FileChange, Patch, PatchAction
from .parser import identify_files_added, identify_files_needed, text_to_patch

__all__ = [
    "ActionType",
    "Chunk",
    "Commit",
    "ContextError",
    "DiffError",
    "FileChange",
    "GrammarError",
    "Patch",
    "PatchAction",
    "PatchFileOps",
    "PatchInvariantError",
    "SUCCESS",
    "WorkspaceFileOps",
    "apply_commit",
    "assemble_changes",
    "get_updated_file",
    "identify_files_added",
    "identify_files_needed",
    "load_files",
    "open_file",
    "patch_to_commit",
    "process_patch",
    "remove_file",
    "run_patch",
    "text_to_patch",
    "write_file",
]
