import csv
import io
from pathlib import Path

from wpp_live.csv_export import CSV_COLUMNS, export_filename, rows_to_csv, write_csv_export
from wpp_live.params import RefreshParameters
from wpp_live.rows import PlayRow
from wpp_live.sorting import sort_rows


def _rows() -> list[PlayRow]:
    return [
        PlayRow(
            tier="Watch",
            side='BUF "alt" -2.5',
            away="MIA",
            home="BUF",
            market_spread_home=-3.5,
            required_buy_points=1.0,
            buy_to_line=-2.5,
            p_buy=0.67,
            p_target=0.65,
            price_est=-145,
            price_max_ok=-150,
            ev_ok=True,
        ),
        PlayRow(tier="Watch", side="NE, +3", away="NYJ", home="NE", price_est=120),
    ]


def test_header_excludes_tier_and_lists_data_keys() -> None:
    text = rows_to_csv([])
    assert text == ",".join(CSV_COLUMNS)
    assert "tier" not in text.split(",")
    assert text.startswith("side,away,home,market_spread_home")


def test_data_lines_are_fully_quoted_with_doubled_quotes() -> None:
    lines = rows_to_csv(_rows()).split("\n")
    assert len(lines) == 3
    assert lines[1] == (
        '"BUF ""alt"" -2.5","MIA","BUF","-3.5","","1","-2.5","","0.65","0.67",'
        '"-145","-150","true"'
    )
    assert lines[2] == '"NE, +3","NYJ","NE","","","","","","","","120","",""'


def test_csv_reparses_to_original_values() -> None:
    rows = sort_rows(_rows(), "price_est", "desc")
    parsed = list(csv.reader(io.StringIO(rows_to_csv(rows))))
    assert parsed[0] == list(CSV_COLUMNS)
    assert len(parsed) == len(rows) + 1
    first = dict(zip(parsed[0], parsed[1], strict=True))
    assert first["side"] == "NE, +3"
    assert int(first["price_est"]) == 120
    second = dict(zip(parsed[0], parsed[2], strict=True))
    assert second["side"] == 'BUF "alt" -2.5'
    assert float(second["p_buy"]) == 0.67
    assert second["ev_ok"] == "true"
    assert second["fair_home_spread"] == ""


def test_export_filename_and_write(tmp_path: Path) -> None:
    params = RefreshParameters.build("ml", 0.6)
    assert export_filename("Garbage", params) == "wpp-garbage-ml-p0.60.csv"

    path = write_csv_export(_rows(), tier="Watch", params=params, out_dir=tmp_path / "out")
    assert path.name == "wpp-watch-ml-p0.60.csv"
    assert path.read_text(encoding="utf-8") == rows_to_csv(_rows())
