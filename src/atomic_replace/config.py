"""atomic-replace configuration.

Config files:
  - Global:  ~/.config/atomic-replace/config.json
  - Project: .atomic-replace.json (current directory)

Merge order: global → project → environment variables (highest priority).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, Dict

from .file_io import atomic_write_text

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "atomic-replace"


class Scope(str, Enum):
    GLOBAL = "global"
    PROJECT = "project"


def config_path(scope: Scope) -> Path:
    if scope is Scope.PROJECT:
        return Path.cwd() / ".atomic-replace.json"
    return CONFIG_DIR / "config.json"


def _read_json(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    return json.loads(path.read_text(encoding="utf-8"))


_ENV_OVERRIDES: list[tuple[str, str]] = [
    ("scratch_dir", "ATOMIC_REPLACE_SCRATCH_DIR"),
    ("debug", "ATOMIC_REPLACE_DEBUG"),
    ("fsync", "ATOMIC_REPLACE_FSYNC"),
    ("log_file", "ATOMIC_REPLACE_LOG_FILE"),
]

_BOOL_KEYS = {"debug", "fsync"}


def load_config() -> Dict[str, Any]:
    """Load merged config: global → project → env vars."""
    merged: Dict[str, Any] = {**_read_json(config_path(Scope.GLOBAL))}
    merged.update(_read_json(config_path(Scope.PROJECT)))
    _apply_env_overrides(merged)
    return merged


def load_raw_config(scope: Scope) -> Dict[str, Any]:
    """Load config for a specific scope without merge/env overrides."""
    return _read_json(config_path(scope))


def parse_bool(value: str) -> bool | None:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    return None


def _apply_env_overrides(merged: Dict[str, Any]) -> None:
    for config_key, env_var in _ENV_OVERRIDES:
        val = os.environ.get(env_var)
        if not val:
            continue
        if config_key in _BOOL_KEYS:
            parsed = parse_bool(val)
            if parsed is None:
                logger.warning("Invalid %s value %r; ignoring", env_var, val)
                continue
            merged[config_key] = parsed
        else:
            merged[config_key] = val


def save_config(data: Dict[str, Any], scope: Scope) -> None:
    """Save config to the specified scope."""
    path = config_path(scope)
    atomic_write_text(
        path,
        json.dumps(data, indent=2, ensure_ascii=False) + "\n",
        override_mode=0o600,
        scratch_dir=path.parent,
    )


def resolve_scratch_dir(config: Dict[str, Any]) -> Path:
    configured = config.get("scratch_dir")
    if configured:
        return Path(str(configured)).expanduser()
    return Path(tempfile.gettempdir())


def resolve_log_file(config: Dict[str, Any]) -> Path:
    configured = config.get("log_file")
    if configured:
        return Path(str(configured)).expanduser()
    return CONFIG_DIR / "atomic-replace.log"
