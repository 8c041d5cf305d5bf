from __future__ import annotations

from typing import Callable, List, Mapping, Optional

from .errors import ContextError, check
from .logger import logger
from .models import ActionType, Commit, FileChange, Patch, PatchAction

WriteFn = Callable[[str, str], None]
RemoveFn = Callable[[str], None]


def get_updated_file(text: str, action: PatchAction, path: str) -> str:
    """
    Rebuild a file from its original text and the located chunks.
    Chunks must be sorted by orig_index and must not overlap.
    """
    check(action.type == ActionType.UPDATE)
    orig_lines = text.split("\n")
    dest_lines: List[str] = []
    orig_index = 0

    for chunk in action.chunks:
        if chunk.orig_index > len(orig_lines):
            raise ContextError(
                f"_get_updated_file: {path}: chunk.orig_index {chunk.orig_index}"
                f" > len(lines) {len(orig_lines)}"
            )
        if orig_index > chunk.orig_index:
            raise ContextError(
                f"_get_updated_file: {path}: orig_index {orig_index}"
                f" > chunk.orig_index {chunk.orig_index}"
            )
        dest_lines.extend(orig_lines[orig_index : chunk.orig_index])
        dest_lines.extend(chunk.ins_lines)
        orig_index = chunk.orig_index + len(chunk.del_lines)

    dest_lines.extend(orig_lines[orig_index:])

    expected = len(orig_lines) + sum(
        len(c.ins_lines) - len(c.del_lines) for c in action.chunks
    )
    check(
        orig_index <= len(orig_lines),
        f"{path}: consumed {orig_index} of {len(orig_lines)} lines",
    )
    check(
        len(dest_lines) == expected,
        f"{path}: rebuilt {len(dest_lines)} lines, expected {expected}",
    )
    return "\n".join(dest_lines)


def patch_to_commit(patch: Patch, orig: Mapping[str, str]) -> Commit:
    commit = Commit()
    for path, action in patch.actions.items():
        if action.type == ActionType.DELETE:
            commit.changes[path] = FileChange(
                type=ActionType.DELETE, old_content=orig[path]
            )
        elif action.type == ActionType.ADD:
            commit.changes[path] = FileChange(
                type=ActionType.ADD, new_content=action.new_file
            )
        elif action.type == ActionType.UPDATE:
            new_content = get_updated_file(orig[path], action, path)
            commit.changes[path] = FileChange(
                type=ActionType.UPDATE,
                old_content=orig[path],
                new_content=new_content,
                move_path=action.move_path,
            )
    return commit


def assemble_changes(
    orig: Mapping[str, Optional[str]], dest: Mapping[str, Optional[str]]
) -> Commit:
    """
    Build a Commit from whole-file contents before and after.
    A missing key and an empty string are different states.
    """
    commit = Commit()
    for path in sorted(set(orig) | set(dest)):
        old_content = orig.get(path)
        new_content = dest.get(path)
        if old_content == new_content:
            continue
        if old_content is not None and new_content is not None:
            commit.changes[path] = FileChange(
                type=ActionType.UPDATE,
                old_content=old_content,
                new_content=new_content,
            )
        elif new_content:
            commit.changes[path] = FileChange(
                type=ActionType.ADD, new_content=new_content
            )
        elif old_content:
            commit.changes[path] = FileChange(
                type=ActionType.DELETE, old_content=old_content
            )
        else:
            check(False, f"{path}: no content on either side")
    return commit


def apply_commit(commit: Commit, write_fn: WriteFn, remove_fn: RemoveFn) -> None:
    """
    Replay a commit through the injected primitives, one effect per path.
    A move writes the new path before removing the old one.
    Failures propagate; earlier effects stay in place.
    """
    for path, change in commit.changes.items():
        if change.type == ActionType.DELETE:
            logger.debug("Removing file", path=path)
            remove_fn(path)
        elif change.type == ActionType.ADD:
            logger.debug("Writing file", path=path)
            write_fn(path, change.new_content or "")
        elif change.type == ActionType.UPDATE:
            if change.move_path:
                logger.debug("Moving file", path=path, move_path=change.move_path)
                write_fn(change.move_path, change.new_content or "")
                remove_fn(path)
            else:
                logger.debug("Writing file", path=path)
                write_fn(path, change.new_content or "")
