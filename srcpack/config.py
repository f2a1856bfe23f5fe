"""Persistent JSON config helpers.

Holds default exclude patterns and packing preferences. All access is
defensive: malformed or missing config falls back to built-in defaults.
"""

from __future__ import annotations

import json
from pathlib import Path

from platformdirs import user_config_dir

from .archive import DEFAULT_COMPRESSION_LEVEL
from .gitignore import IGNORE_FILENAMES

APP_NAME = "srcpack"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def _load_bool(data: dict[str, object], key: str, default: bool) -> bool:
    value = data.get(key)
    return value if isinstance(value, bool) else default


def _load_string_list(data: dict[str, object], key: str) -> tuple[str, ...] | None:
    """Read a list of non-empty strings; ``None`` when unset or not a list."""
    value = data.get(key)
    if not isinstance(value, list):
        return None
    return tuple(item for item in value if isinstance(item, str) and item.strip())


def load_extra_excludes(data: dict[str, object] | None = None) -> tuple[str, ...]:
    """Exclude patterns applied on top of ignore files."""
    if data is None:
        data = load_config()
    return _load_string_list(data, "exclude") or ()


def load_use_default_excludes(data: dict[str, object] | None = None) -> bool:
    """Whether the built-in build-artifact excludes are active (default ``True``)."""
    if data is None:
        data = load_config()
    return _load_bool(data, "default_excludes", True)


def load_follow_symlinks(data: dict[str, object] | None = None) -> bool:
    """Whether symlinked directories are descended into (default ``True``)."""
    if data is None:
        data = load_config()
    return _load_bool(data, "follow_symlinks", True)


def load_compression_level(data: dict[str, object] | None = None) -> int:
    """Deflate level in ``0..9``; booleans and out-of-range values use the default."""
    if data is None:
        data = load_config()
    value = data.get("compression_level")
    if isinstance(value, bool) or not isinstance(value, int):
        return DEFAULT_COMPRESSION_LEVEL
    if value < 0 or value > 9:
        return DEFAULT_COMPRESSION_LEVEL
    return value


def load_ignore_filenames(data: dict[str, object] | None = None) -> tuple[str, ...]:
    """Names of per-directory ignore files, in precedence order."""
    if data is None:
        data = load_config()
    names = _load_string_list(data, "ignore_filenames")
    if names is None:
        return IGNORE_FILENAMES
    return tuple(name for name in names if "/" not in name)


__all__ = [
    "APP_NAME",
    "CONFIG_PATH",
    "load_config",
    "load_extra_excludes",
    "load_use_default_excludes",
    "load_follow_symlinks",
    "load_compression_level",
    "load_ignore_filenames",
]
