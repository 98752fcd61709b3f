"""Helpers for reading telemetry settings from environment variables."""

from __future__ import annotations

import os

ENV_DISABLE_TRACING = "DISABLE_TRACING"

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def get_env(key: str, default: str) -> str:
    """Value of the environment variable ``key``, or ``default`` if unset."""
    return os.environ.get(key, default)


def parse_bool(value: str) -> bool:
    """Parse the boolean spellings 1, t, T, TRUE, true, True and their false forms."""
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"invalid boolean value: {value!r}")


def get_env_as_bool(name: str, default: bool) -> bool:
    """Boolean value of an environment variable, ``default`` if unset or invalid."""
    try:
        return parse_bool(get_env(name, ""))
    except ValueError:
        return default