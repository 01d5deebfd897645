"""Tolerant coercion and path lookup for loosely shaped API payloads."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

_MISSING = object()


def safe_float(value: Any) -> float | None:
    """Parse number-like input into a finite float, returning None when invalid."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            parsed = float(raw)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def safe_int(value: Any) -> int | None:
    """Parse number-like input into int, returning None when invalid."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value)
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        if raw.startswith("+"):
            raw = raw[1:]
        try:
            return int(raw)
        except ValueError:
            parsed = safe_float(raw)
            return int(parsed) if parsed is not None else None
    return None


def safe_bool(value: Any) -> bool | None:
    """Parse bool-like input (bools and true/false strings)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes"}:
            return True
        if lowered in {"false", "0", "no"}:
            return False
    return None


def safe_prob(value: Any) -> float | None:
    """Parse a probability, rejecting values outside [0, 1]."""
    parsed = safe_float(value)
    if parsed is None or parsed < 0.0 or parsed > 1.0:
        return None
    return parsed


def to_price(value: Any) -> int | None:
    """Parse an American-odds price; fractional prices are malformed and yield None."""
    parsed = safe_float(value)
    if parsed is None or not parsed.is_integer():
        return None
    return int(parsed)


def dig(payload: Any, path: str) -> Any:
    """Follow a dotted path through nested mappings; return None when any hop is absent."""
    current = payload
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part, _MISSING)
        if current is _MISSING:
            return None
    return current


def first_present(payload: Any, paths: Iterable[str]) -> Any:
    """Return the first non-None value found under the ordered dotted paths."""
    for path in paths:
        value = dig(payload, path)
        if value is not None:
            return value
    return None
