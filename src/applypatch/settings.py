from __future__ import annotations

import json
import logging
import os
import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Set, Tuple, Union

import json5  # type: ignore
import yaml
from pydantic import BaseModel, Field, field_validator

# Variable replacement pattern.
# Supports:
#   - ${NAME}
#   - ${env:NAME}
# Ignores '$${NAME}' so it can be used to escape a literal '${NAME}'.
VAR_PATTERN = re.compile(
    r"(?<!\$)\$\{([A-Za-z_][A-Za-z0-9_]*(?::[A-Za-z_][A-Za-z0-9_]*)?)\}"
)

# Number of touched paths listed in a confirmation preview.
PREVIEW_LIMIT_DEFAULT = 5


class LogLevel(str, Enum):
    debug = "debug"
    info = "info"
    warning = "warning"
    error = "error"
    critical = "critical"

    def to_logging(self) -> int:
        return logging.getLevelName(self.value.upper())


class LoggingSettings(BaseModel):
    # Level for the applypatch logger if not overridden.
    default_level: LogLevel = LogLevel.warning
    # Mapping of logger name -> level override (e.g., {"applypatch": "debug"})
    enabled_loggers: Dict[str, LogLevel] = Field(default_factory=dict)


class ToolSettings(BaseModel):
    # Workspace-relative directory patches are applied from when a request
    # does not name one.
    workdir: Optional[str] = None
    encoding: str = "utf-8"
    preview_limit: int = PREVIEW_LIMIT_DEFAULT

    @field_validator("preview_limit")
    @classmethod
    def _validate_preview_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError("preview_limit must be at least 1")
        return v


class Settings(BaseModel):
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    tool: ToolSettings = Field(default_factory=ToolSettings)


def _lookup_var_value(name: str, vars_map: Dict[str, Any]) -> Tuple[bool, Any]:
    """
    Resolve a variable or environment-backed placeholder name.
    Returns (found, value); callers leave the placeholder unchanged when
    found is False.
    """
    if name.startswith("env:"):
        env_name = name[4:]
        val = os.getenv(env_name) if env_name else None
        if val is None:
            return False, None
        return True, val

    if name in vars_map:
        return True, vars_map[name]

    return False, None


def _resolve_variables(vars_map: Dict[str, Any]) -> Dict[str, Any]:
    """
    Resolve full-match references between variables (a: ${b}).
    Unknown references stay as placeholder strings. Cycles raise ValueError.
    """
    resolved: Dict[str, Any] = {}
    resolving: Set[str] = set()

    def resolve_one(name: str) -> Any:
        if name in resolved:
            return resolved[name]
        if name in resolving:
            raise ValueError(f"Detected variable resolution cycle at '{name}'")
        resolving.add(name)
        val = vars_map.get(name)
        res = val
        if isinstance(val, str):
            m = VAR_PATTERN.fullmatch(val)
            if m:
                ref = m.group(1)
                if ref.startswith("env:"):
                    found, env_val = _lookup_var_value(ref, vars_map)
                    res = env_val if found else val
                elif ref in vars_map:
                    res = resolve_one(ref)
        resolved[name] = res
        resolving.remove(name)
        return res

    for k in vars_map.keys():
        resolve_one(k)
    return resolved


def _interpolate_string(s: str, vars_map: Dict[str, Any]) -> str:
    def repl(m: re.Match) -> str:
        found, val = _lookup_var_value(m.group(1), vars_map)
        if not found:
            return m.group(0)
        if val is None:
            return ""
        if isinstance(val, (dict, list)):
            return json.dumps(val, ensure_ascii=False)
        return str(val)

    interpolated = VAR_PATTERN.sub(repl, s)
    # Escaped '$${' renders as a literal '${'.
    return interpolated.replace("$${", "${")


def _apply_variables(obj: Any, vars_map: Dict[str, Any]) -> Any:
    if isinstance(obj, str):
        m = VAR_PATTERN.fullmatch(obj)
        if m:
            found, val = _lookup_var_value(m.group(1), vars_map)
            return val if found else obj
        return _interpolate_string(obj, vars_map)
    if isinstance(obj, dict):
        return {k: _apply_variables(v, vars_map) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_apply_variables(v, vars_map) for v in obj]
    return obj


def _load_raw_file(path: Path) -> Any:
    ext = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    data: Any = None
    if ext in {".yaml", ".yml"}:
        data = yaml.safe_load(text)
    elif ext in {".json5", ".jsonc", ".json"}:
        data = json5.loads(text)
    else:
        raise ValueError(f"Unsupported config file extension: {ext}")
    if data is None:
        return {}
    return data


def load_settings(path: Union[str, Path]) -> Settings:
    data = _load_raw_file(Path(path))
    if not isinstance(data, dict):
        raise ValueError("Root configuration must be a mapping/object")

    data = dict(data)
    vars_spec = data.pop("variables", None) or {}
    if not isinstance(vars_spec, dict):
        raise ValueError("'variables' must be a mapping")
    vars_map = _resolve_variables({str(k): v for k, v in vars_spec.items()})

    return Settings.model_validate(_apply_variables(data, vars_map))
