"""Flattened play rows and their human-readable tier explanations."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from wpp_live.errors import ParseError, ValidationError
from wpp_live.util.parsing import (
    first_present,
    safe_bool,
    safe_float,
    safe_prob,
    to_price,
)

Tier = Literal["Fire", "Watch", "Garbage"]
TIERS: tuple[Tier, ...] = ("Fire", "Watch", "Garbage")
DEFAULT_TIER: Tier = "Garbage"
MISSING_MARK = "—"

# Ordered lookup chains: nested backend shapes first, flat row keys last.
_FIELD_PATHS: dict[str, tuple[str, ...]] = {
    "side": ("recommendation", "side"),
    "away": ("game.away", "away"),
    "home": ("game.home", "home"),
    "market_spread_home": ("market.spread_home", "market.spread.home", "market_spread_home"),
    "fair_home_spread": ("fair.home_spread", "fair_home_spread"),
    "required_buy_points": ("required.buy_points", "required_buy_points"),
    "buy_to_line": ("required.buy_to_line", "buy_to_line"),
    "p_current": ("prob.current", "p_current"),
    "p_target": ("prob.target", "p_target"),
    "p_buy": ("prob.buy", "p_buy"),
    "price_est": ("pricing.final_price", "price_est"),
    "price_max_ok": ("pricing.max_acceptable_price", "price_max_ok"),
    "ev_ok": ("pricing.ev_ok", "ev_ok"),
    "reason": ("reason",),
}


@dataclass(frozen=True)
class PlayRow:
    """Display-ready record for one play."""

    tier: Tier = DEFAULT_TIER
    side: str = "none"
    away: str = ""
    home: str = ""
    market_spread_home: float | None = None
    fair_home_spread: float | None = None
    required_buy_points: float | None = None
    buy_to_line: float | None = None
    p_current: float | None = None
    p_target: float | None = None
    p_buy: float | None = None
    price_est: int | None = None
    price_max_ok: int | None = None
    ev_ok: bool | None = None
    reason: str | None = None

    @property
    def matchup(self) -> str:
        return f"{self.away} @ {self.home}"

    @property
    def has_prices(self) -> bool:
        return self.price_est is not None and self.price_max_ok is not None


def normalize_tier(value: Any) -> Tier:
    """Map a raw tier label onto the known tiers, defaulting to Garbage."""
    if isinstance(value, str):
        for tier in TIERS:
            if value.strip().lower() == tier.lower():
                return tier
    return DEFAULT_TIER


def _as_text(value: Any, *, default: str) -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return fmt_num(value)
    return default


def normalize_play(raw: Any) -> PlayRow:
    """Flatten one raw play payload into a PlayRow.

    Each field is looked up along its ordered path chain; anything absent or
    malformed becomes None. `ev_ok` is kept only when both prices are known.
    """
    if not isinstance(raw, Mapping):
        raise ParseError(f"play must be an object, got {type(raw).__name__}")

    def pick(field: str) -> Any:
        return first_present(raw, _FIELD_PATHS[field])

    price_est = to_price(pick("price_est"))
    price_max_ok = to_price(pick("price_max_ok"))
    ev_ok = safe_bool(pick("ev_ok"))
    if price_est is None or price_max_ok is None:
        ev_ok = None

    reason = pick("reason")
    return PlayRow(
        tier=normalize_tier(raw.get("tier")),
        side=_as_text(pick("side"), default="none"),
        away=_as_text(pick("away"), default=""),
        home=_as_text(pick("home"), default=""),
        market_spread_home=safe_float(pick("market_spread_home")),
        fair_home_spread=safe_float(pick("fair_home_spread")),
        required_buy_points=safe_float(pick("required_buy_points")),
        buy_to_line=safe_float(pick("buy_to_line")),
        p_current=safe_prob(pick("p_current")),
        p_target=safe_prob(pick("p_target")),
        p_buy=safe_prob(pick("p_buy")),
        price_est=price_est,
        price_max_ok=price_max_ok,
        ev_ok=ev_ok,
        reason=reason if isinstance(reason, str) and reason else None,
    )


def normalize_plays(items: Any) -> tuple[PlayRow, ...]:
    """Normalize a list of raw plays; a non-list payload yields no rows."""
    if not isinstance(items, list):
        return ()
    return tuple(normalize_play(item) for item in items)


def fmt_prob(value: float | None) -> str:
    if value is None:
        return MISSING_MARK
    return f"{value * 100:.1f}%"


def fmt_num(value: float | int | None) -> str:
    """Render a number the way the feed prints it (integral floats lose `.0`)."""
    if value is None:
        return MISSING_MARK
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def fmt_price(value: int | None) -> str:
    if value is None:
        return MISSING_MARK
    return f"+{value}" if value > 0 else str(value)


def _ev_clause(row: PlayRow) -> str:
    if not row.has_prices or row.ev_ok is None:
        return ""
    verdict = "OK" if row.ev_ok else "FAIL"
    return (
        f" EV check at est price {fmt_price(row.price_est)} "
        f"vs max {fmt_price(row.price_max_ok)}: {verdict}."
    )


def explain(row: PlayRow) -> str:
    """Return the tooltip rationale for a row's tier."""
    if row.tier == "Fire":
        base = (
            f"Fire because p(now) {fmt_prob(row.p_current)} "
            f"≥ p(target) {fmt_prob(row.p_target)} (no/cheap buys)."
        )
        return base + _ev_clause(row)
    if row.tier == "Watch":
        base = (
            "Watch because it needs buys to reach target: "
            f"buy {fmt_num(row.required_buy_points)} pts to {fmt_num(row.buy_to_line)}; "
            f"p(buy) {fmt_prob(row.p_buy)} ≥ p(target) {fmt_prob(row.p_target)}."
        )
        return base + _ev_clause(row)

    # Garbage: the backend reason is authoritative.
    if row.reason:
        return row.reason
    if row.p_buy is not None and row.p_target is not None and row.p_buy < row.p_target:
        return (
            f"Garbage because even after buying, p(buy) {fmt_prob(row.p_buy)} "
            f"< p(target) {fmt_prob(row.p_target)}."
        )
    return "Garbage because required buy or price violates rules, or value insufficient."


def tier_label(value: str) -> Tier:
    """Resolve a user-supplied tier name (any case) or raise."""
    for tier in TIERS:
        if value.strip().lower() == tier.lower():
            return tier
    raise ValidationError(f"unknown tier: {value!r} (expected one of {', '.join(TIERS)})")
