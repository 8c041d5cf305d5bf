from __future__ import annotations

from typing import Callable, Dict, Iterable

from .commit import RemoveFn, WriteFn, apply_commit, patch_to_commit
from .errors import DiffError, check
from .logger import logger
from .parser import BEGIN_PATCH, identify_files_needed, text_to_patch

OpenFn = Callable[[str], str]

SUCCESS = "Done!"


def load_files(paths: Iterable[str], open_fn: OpenFn) -> Dict[str, str]:
    """Read every path; reader errors propagate unchanged."""
    return {path: open_fn(path) for path in paths}


def process_patch(
    text: str,
    open_fn: OpenFn,
    write_fn: WriteFn,
    remove_fn: RemoveFn,
) -> str:
    """
    Parse, resolve and apply a patch.
    Returns "Done!" on success. DiffError subclasses describe bad input;
    PatchInvariantError and I/O errors propagate as they are.
    """
    check(text.startswith(BEGIN_PATCH), "patch text must start with " + BEGIN_PATCH)
    paths = identify_files_needed(text)
    orig = load_files(paths, open_fn)
    patch, fuzz = text_to_patch(text, orig)
    logger.info("Patch parsed", files=len(patch.actions), fuzz=fuzz)
    commit = patch_to_commit(patch, orig)
    apply_commit(commit, write_fn, remove_fn)
    return SUCCESS


def run_patch(
    text: str,
    open_fn: OpenFn,
    write_fn: WriteFn,
    remove_fn: RemoveFn,
) -> str:
    """Like process_patch, but a DiffError is returned as its bare message."""
    try:
        return process_patch(text, open_fn, write_fn, remove_fn)
    except DiffError as e:
        logger.info("Patch rejected", error=str(e))
        return str(e)
