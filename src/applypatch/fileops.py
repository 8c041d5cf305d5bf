from __future__ import annotations

import os
import pathlib
from abc import ABC, abstractmethod
from typing import Dict

from .errors import GrammarError
from .logger import logger

ABSOLUTE_PATH_NOTICE = "We do not support absolute paths."


def open_file(path: str, encoding: str = "utf-8") -> str:
    with open(path, "rt", encoding=encoding) as fh:
        return fh.read()


def write_file(path: str, content: str, encoding: str = "utf-8") -> None:
    """Write content, creating parent directories. Absolute paths are skipped with a notice."""
    if path.startswith("/"):
        logger.warning(ABSOLUTE_PATH_NOTICE, path=path)
        return
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "wt", encoding=encoding) as fh:
        fh.write(content)


def remove_file(path: str) -> None:
    os.remove(path)


class PatchFileOps(ABC):
    """
    Abstract contract for the I/O primitives used by the engine.
    `open` and `remove` must raise for a missing path.
    """

    @abstractmethod
    def open(self, rel: str) -> str: ...

    @abstractmethod
    def write(self, rel: str, content: str) -> None: ...

    @abstractmethod
    def remove(self, rel: str) -> None: ...

    @property
    @abstractmethod
    def changes_map(self) -> Dict[str, str]:
        """
        A map of relative file paths to change kind: 'created' | 'updated' | 'deleted'.
        """
        ...


class WorkspaceFileOps(PatchFileOps):
    """
    File-backed implementation rooted at base_path.
    Relative paths resolve under the root; paths escaping it are rejected.
    """

    def __init__(self, base_path: pathlib.Path, encoding: str = "utf-8"):
        self._base_path = pathlib.Path(base_path)
        self._encoding = encoding
        self._changes: Dict[str, str] = {}

    def _resolve_safe_path(self, rel: str) -> pathlib.Path:
        normalized = rel.strip().replace("\\", "/")
        abs_path = (self._base_path / normalized).resolve()
        base_resolved = self._base_path.resolve()
        if abs_path == base_resolved or base_resolved in abs_path.parents:
            return abs_path
        raise GrammarError(f"Path escapes workspace: {rel}")

    def _record(self, rel: str, change: str) -> None:
        prev = self._changes.get(rel)
        if prev is None:
            self._changes[rel] = change
            return
        if change == "deleted":
            self._changes[rel] = change
        elif change == "updated" and prev != "deleted":
            self._changes[rel] = change

    def open(self, rel: str) -> str:
        path = self._resolve_safe_path(rel)
        return open_file(str(path), encoding=self._encoding)

    def write(self, rel: str, content: str) -> None:
        if os.path.isabs(rel):
            logger.warning(ABSOLUTE_PATH_NOTICE, path=rel)
            return
        path = self._resolve_safe_path(rel)
        existed = path.exists()
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wt", encoding=self._encoding) as fh:
            fh.write(content)
        self._record(rel, "updated" if existed else "created")

    def remove(self, rel: str) -> None:
        path = self._resolve_safe_path(rel)
        path.unlink()
        self._record(rel, "deleted")

    @property
    def changes_map(self) -> Dict[str, str]:
        return self._changes
