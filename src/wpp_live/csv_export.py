"""CSV export of play tables."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from wpp_live.params import RefreshParameters
from wpp_live.rows import PlayRow, Tier, fmt_num

# Tier is left out: each export already covers a single tier.
CSV_COLUMNS: tuple[str, ...] = (
    "side",
    "away",
    "home",
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


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return fmt_num(value)
    return str(value)


def rows_to_csv(rows: Iterable[PlayRow]) -> str:
    """Serialize rows to CSV text: bare header, fully quoted data lines, `\\n` separated."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        writer.writerow([_cell(getattr(row, column)) for column in CSV_COLUMNS])
    body = buffer.getvalue()
    lines = [",".join(CSV_COLUMNS)]
    if body:
        lines.append(body.removesuffix("\n"))
    return "\n".join(lines)


def export_filename(tier: Tier, params: RefreshParameters) -> str:
    return f"wpp-{tier.lower()}-{params.metric}-p{params.target_prob:.2f}.csv"


def write_csv_export(
    rows: Iterable[PlayRow], *, tier: Tier, params: RefreshParameters, out_dir: Path
) -> Path:
    """Write one tier's rows to `out_dir` under the standard export filename."""
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / export_filename(tier, params)
    path.write_text(rows_to_csv(rows), encoding="utf-8", newline="")
    return path
