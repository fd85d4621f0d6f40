"""Generic helper utilities used across the project."""
from __future__ import annotations

import os
from typing import Optional

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def resolve_path(value: str, base_dir: str) -> str:
    """Resolve a path relative to base_dir when value is not absolute."""
    if not os.path.isabs(value):
        return os.path.join(base_dir, value)
    return value


def parse_int_env(
    name: str,
    default: int,
    *,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> int:
    """Parse an integer environment variable with optional bounds."""
    try:
        value = int(os.getenv(name, str(default)))
    except ValueError:
        value = default
    if min_value is not None:
        value = max(min_value, value)
    if max_value is not None:
        value = min(max_value, value)
    return value


def parse_flag(value: object) -> bool | None:
    """Map a textual on/off flag to a bool, or None when it is not a flag."""
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return None


def quote_identifier(name: str) -> str:
    """Quote an SQL identifier, doubling embedded quotes."""
    return '"' + str(name).replace('"', '""') + '"'
