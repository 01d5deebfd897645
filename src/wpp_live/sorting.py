"""Column sorting for play tables."""

from __future__ import annotations

import locale
from collections.abc import Iterable
from dataclasses import dataclass, fields
from functools import cmp_to_key
from typing import Any, Literal

from wpp_live.errors import ValidationError
from wpp_live.rows import PlayRow

SortDirection = Literal["asc", "desc"]

MATCHUP_KEY = "matchup"
SORT_KEYS: tuple[str, ...] = (
    "side",
    MATCHUP_KEY,
    "market_spread_home",
    "fair_home_spread",
    "required_buy_points",
    "buy_to_line",
    "p_current",
    "p_target",
    "p_buy",
    "price_est",
    "price_max_ok",
    "ev_ok",
)
DEFAULT_SORT_KEY = "required_buy_points"
_ROW_FIELDS = frozenset(field.name for field in fields(PlayRow))


def _validate_key(key: str) -> str:
    if key != MATCHUP_KEY and key not in _ROW_FIELDS:
        raise ValidationError(f"unknown sort key: {key!r}")
    return key


def _validate_direction(direction: str) -> SortDirection:
    if direction == "asc":
        return "asc"
    if direction == "desc":
        return "desc"
    raise ValidationError(f"sort direction must be 'asc' or 'desc', got {direction!r}")


def sort_value(row: PlayRow, key: str) -> Any:
    """Value compared for `key`; `matchup` is synthesized and never stored."""
    if key == MATCHUP_KEY:
        return row.matchup
    return getattr(row, _validate_key(key))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _compare_values(left: Any, right: Any) -> int:
    if _is_number(left) and _is_number(right):
        return (left > right) - (left < right)
    return locale.strcoll(_as_text(left), _as_text(right))


def sort_rows(
    rows: Iterable[PlayRow],
    key: str = DEFAULT_SORT_KEY,
    direction: str = "asc",
) -> list[PlayRow]:
    """Return rows ordered by `key`; nulls always sink to the end.

    Only the non-null comparison is inverted for `desc`. The input is not
    mutated and ties keep their input order.
    """
    _validate_key(key)
    sign = 1 if _validate_direction(direction) == "asc" else -1

    def compare(a: PlayRow, b: PlayRow) -> int:
        va = sort_value(a, key)
        vb = sort_value(b, key)
        if va is None and vb is None:
            return 0
        if va is None:
            return 1
        if vb is None:
            return -1
        return _compare_values(va, vb) * sign

    return sorted(rows, key=cmp_to_key(compare))


@dataclass(frozen=True)
class SortState:
    """Current sort column and direction of a table."""

    key: str = DEFAULT_SORT_KEY
    direction: SortDirection = "asc"

    def toggle(self, key: str) -> SortState:
        """Same column flips direction; a new column starts ascending."""
        _validate_key(key)
        if key == self.key:
            return SortState(key=key, direction="desc" if self.direction == "asc" else "asc")
        return SortState(key=key, direction="asc")

    def apply(self, rows: Iterable[PlayRow]) -> list[PlayRow]:
        return sort_rows(rows, self.key, self.direction)
