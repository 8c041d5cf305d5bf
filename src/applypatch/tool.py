from __future__ import annotations

import pathlib
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .engine import process_patch
from .errors import DiffError
from .fileops import WorkspaceFileOps
from .invocation import list_patch_paths
from .logger import logger
from .settings import Settings

APPLY_PATCH_TOOL_NAME = "apply_patch"

PATCH_FORMAT_INSTRUCTION = r"""# Patch format

Wrap all changes of all files in one envelope:

*** Begin Patch
[FILE SECTIONS]
*** End Patch

Each file appears exactly once. Section headers:
- `*** Add File: <relative/path>` followed by the file content, every line prefixed with '+'.
- `*** Delete File: <relative/path>` with no body.
- `*** Update File: <relative/path>` followed by change blocks.
  An optional `*** Move to: <relative/new/path>` line may follow the Update header directly.

Change blocks in Update sections:
- Context lines start with a single space followed by the exact file text.
- Removed lines start with '-', added lines start with '+'.
- An empty line is treated as an empty context line.
- Give about 3 lines of context before and after each change.
- Separate change blocks with a line `@@`. To disambiguate, name the enclosing
  class or function: `@@ class BaseClass` or `@@     def method(self):`.
  Only the first block of a file may omit the `@@` line.
- Order blocks top-to-bottom as they appear in the file.
- When the change touches the end of the file, finish the block with `*** End of File`.

## Example
*** Begin Patch
*** Update File: pkg/mod.py
@@ def greet():
     name = "world"
-    print("hi")
+    print(f"hello {name}")
*** Add File: pkg/notes.txt
+first line
+second line
*** Delete File: scripts/old_tool.py
*** End Patch
"""


class ToolResponseType(str, Enum):
    text = "text"


class ToolTextResponse(BaseModel):
    type: ToolResponseType = Field(default=ToolResponseType.text)
    text: Optional[str] = None
    # Relative path -> 'created' | 'updated' | 'deleted'
    changes: Dict[str, str] = Field(default_factory=dict)


class ApplyPatchInput(BaseModel):
    model_config = {"extra": "forbid"}

    patch: str
    workdir: Optional[str] = None
    # Accepted for compatibility; execution time limits belong to the host.
    timeout_ms: Optional[int] = Field(default=None, ge=250, le=120000)

    @field_validator("patch")
    @classmethod
    def _validate_patch(cls, v: str) -> str:
        if not v:
            raise ValueError("patch cannot be empty")
        return v

    @field_validator("workdir")
    @classmethod
    def _validate_workdir(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v:
            raise ValueError("workdir cannot be empty")
        return v


class PreparedInvocation(BaseModel):
    invocation_message: str
    confirmation_title: str
    confirmation_message: str


class WorkdirError(Exception):
    """The requested working directory cannot be used."""


def format_path_preview(paths: List[str], limit: int) -> str:
    if not paths:
        return "(paths unavailable)"
    if len(paths) > limit:
        shown = paths[: limit - 1]
        return f"{', '.join(shown)}, … (+{len(paths) - len(shown)} more)"
    return ", ".join(paths)


def _validation_message(e: ValidationError) -> str:
    return "; ".join(err["msg"] for err in e.errors())


class ApplyPatchTool:
    """
    Apply a patch to files under a workspace root.
    Returns "Done!" on success or the bare patch error message.
    Errors other than patch errors propagate to the host.
    """

    name = APPLY_PATCH_TOOL_NAME

    def __init__(
        self, base_path: pathlib.Path, settings: Optional[Settings] = None
    ) -> None:
        self.base_path = pathlib.Path(base_path)
        self.settings = settings or Settings()

    def resolve_workdir(self, requested: Optional[str]) -> pathlib.Path:
        base = self.base_path.resolve()
        requested = requested or self.settings.tool.workdir
        if not requested or not requested.strip():
            target = base
        else:
            candidate = pathlib.Path(requested)
            if not candidate.is_absolute():
                candidate = base / candidate
            target = candidate.resolve()
            if target != base and base not in target.parents:
                raise WorkdirError(
                    "Failed: workdir must stay inside the current workspace."
                )
        if not target.exists():
            raise WorkdirError(f"Failed: directory {target} does not exist.")
        if not target.is_dir():
            raise WorkdirError(f"Failed: {target} is not a directory.")
        return target

    def prepare_invocation(self, args: Any) -> PreparedInvocation:
        inp = ApplyPatchInput.model_validate(args)
        workdir = self.resolve_workdir(inp.workdir)
        touched = list_patch_paths(inp.patch)
        preview = format_path_preview(touched, self.settings.tool.preview_limit)
        return PreparedInvocation(
            invocation_message=f"Applying patch ({len(touched)} file(s))",
            confirmation_title="Apply patch",
            confirmation_message=f"Apply patch to `{preview}` from `{workdir}`?",
        )

    async def run(self, args: Any) -> ToolTextResponse:
        try:
            inp = ApplyPatchInput.model_validate(args)
        except ValidationError as e:
            return ToolTextResponse(text=f"Failed: {_validation_message(e)}")

        try:
            workdir = self.resolve_workdir(inp.workdir)
        except WorkdirError as e:
            return ToolTextResponse(text=str(e))

        ops = WorkspaceFileOps(workdir, encoding=self.settings.tool.encoding)
        try:
            text = process_patch(inp.patch, ops.open, ops.write, ops.remove)
        except DiffError as e:
            logger.info("Patch rejected", workdir=str(workdir), error=str(e))
            text = str(e)
        return ToolTextResponse(text=text, changes=dict(ops.changes_map))

    def openapi_spec(self) -> Dict[str, Any]:
        description = (
            "Apply a patch to files in the current workspace. "
            "Returns 'Done!' on success or the reason the patch was rejected."
            "\n\n"
            "Patch content must follow these format-specific instructions:\n"
            + PATCH_FORMAT_INSTRUCTION
        )
        return {
            "name": self.name,
            "description": description,
            "parameters": {
                "type": "object",
                "properties": {
                    "patch": {
                        "type": "string",
                        "description": "Patch content to apply.",
                    },
                    "workdir": {
                        "type": "string",
                        "description": "Workspace-relative directory to apply the patch from.",
                    },
                    "timeout_ms": {
                        "type": "integer",
                        "minimum": 250,
                        "maximum": 120000,
                    },
                },
                "required": ["patch"],
                "additionalProperties": False,
            },
        }
