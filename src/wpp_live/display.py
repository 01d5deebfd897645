"""Text rendering for the CLI views."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from wpp_live.fetch import FetchResult
from wpp_live.params import METRIC_LABELS
from wpp_live.rows import MISSING_MARK, TIERS, PlayRow, explain, fmt_num
from wpp_live.sorting import SORT_KEYS, SortState
from wpp_live.time_utils import local_time_str

COLUMN_LABELS: dict[str, str] = {
    "side": "Side",
    "matchup": "Matchup",
    "market_spread_home": "Market (home)",
    "fair_home_spread": "Fair (home)",
    "required_buy_points": "Buy Pts",
    "buy_to_line": "Buy To",
    "p_current": "p(now)",
    "p_target": "p(target)",
    "p_buy": "p(buy)",
    "price_est": "Price est",
    "price_max_ok": "Price max",
    "ev_ok": "EV ok",
}

# Watch vs Garbage buy rules, shown beside the Garbage count.
BUY_RULES: tuple[str, ...] = (
    "-3.5 → -2.5 allowed if ≤ ~-145",
    "+2.5 → +3 allowed if ≤ ~-135",
    "-7.5 → -6.5 allowed if ≤ ~-125",
    "No non-key buys",
)


def _cell(row: PlayRow, key: str) -> str:
    if key == "matchup":
        return row.matchup
    value = getattr(row, key)
    if value is None:
        return MISSING_MARK
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, (int, float)):
        return fmt_num(value)
    return str(value).replace("|", "\\|")


def render_status_line(result: FetchResult | None, last_updated: datetime | None = None) -> str:
    if result is None:
        return "Rate: 0/0 | Cache: MISS (TTL 0s)"
    line = (
        f"Rate: {result.rate.remaining}/{result.rate.limit} | "
        f"Cache: {result.cache.status} (TTL {result.cache.ttl}s)"
    )
    if last_updated is not None:
        line += f" | Updated: {local_time_str(last_updated)}"
    return line


def render_tier_counts(result: FetchResult) -> str:
    counts = " | ".join(f"{tier}: {result.tier_count(tier)}" for tier in TIERS)
    return f"{counts} (rules: {'; '.join(BUY_RULES)})"


def render_rows_markdown(
    title: str, rows: Iterable[PlayRow], sort: SortState | None = None
) -> str:
    state = sort or SortState()
    ordered = state.apply(rows)
    labels = []
    for key in SORT_KEYS:
        label = COLUMN_LABELS[key]
        if key == state.key:
            label += " ▲" if state.direction == "asc" else " ▼"
        labels.append(label)
    labels.append("Why?")

    lines = [f"## {title}", ""]
    if not ordered:
        lines.append("_no plays_")
        return "\n".join(lines)
    lines.append("| " + " | ".join(labels) + " |")
    lines.append("| " + " | ".join("---" for _ in labels) + " |")
    for row in ordered:
        cells = [_cell(row, key) for key in SORT_KEYS]
        cells.append(explain(row).replace("|", "\\|"))
        lines.append("| " + " | ".join(cells) + " |")
    return "\n".join(lines)


def render_result(
    result: FetchResult,
    *,
    sort: SortState | None = None,
    last_updated: datetime | None = None,
) -> str:
    """Full report view: header, diagnostics, tier counts and the three tables."""
    params = result.params
    blocks = [
        f"# WPP live picks: {METRIC_LABELS[params.metric]} @ p*={params.target_prob:.2f}",
        "",
        render_status_line(result, last_updated or result.fetched_at),
        render_tier_counts(result),
        "",
    ]
    for tier in TIERS:
        blocks.append(render_rows_markdown(tier, result.rows_for(tier), sort))
        blocks.append("")
    return "\n".join(blocks)
