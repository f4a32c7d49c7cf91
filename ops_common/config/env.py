"""Helpers for reading ``OPS_*`` environment variables.

Each helper takes the raw value (usually ``os.environ.get(...)``) and
returns ``None`` or an empty result when the variable is unset, so callers
can fall back to their own defaults.
"""

from __future__ import annotations

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def parse_bool_env(value: str | None) -> bool | None:
    """True for 1/true/yes/on in any case, False for anything else set."""
    if value is None:
        return None
    return value.strip().lower() in _TRUTHY


def parse_float_env(value: str | None) -> float | None:
    """Seconds-style numeric value; unparseable or blank input reads as unset."""
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError:
        return None


def parse_list_env(value: str | None) -> list[str]:
    """Comma-separated entries, trimmed, blanks dropped, order kept."""
    if not value:
        return []
    return [entry for entry in (token.strip() for token in value.split(",")) if entry]
