import pytest

from wpp_live.errors import ParseError, ValidationError
from wpp_live.rows import (
    PlayRow,
    explain,
    fmt_num,
    fmt_price,
    fmt_prob,
    normalize_play,
    normalize_plays,
    tier_label,
)


def _nested_play(**overrides: object) -> dict[str, object]:
    play: dict[str, object] = {
        "tier": "Watch",
        "recommendation": "BUF -2.5",
        "game": {"away": "MIA", "home": "BUF"},
        "market": {"spread_home": -3.5},
        "fair": {"home_spread": -4.0},
        "required": {"buy_points": 1.0, "buy_to_line": -2.5},
        "prob": {"current": 0.61, "target": 0.65, "buy": 0.67},
        "pricing": {"final_price": -145, "max_acceptable_price": -150, "ev_ok": True},
    }
    play.update(overrides)
    return play


def test_normalize_fire_example() -> None:
    raw = {
        "tier": "Fire",
        "recommendation": "home",
        "game": {"away": "A", "home": "B"},
        "prob": {"current": 0.7, "target": 0.65},
    }
    row = normalize_play(raw)

    assert row.tier == "Fire"
    assert row.side == "home"
    assert row.matchup == "A @ B"
    assert row.p_current == 0.7
    assert row.p_target == 0.65
    assert row.p_buy is None
    assert row.market_spread_home is None
    assert explain(row) == "Fire because p(now) 70.0% ≥ p(target) 65.0% (no/cheap buys)."


def test_normalize_reads_both_market_shapes() -> None:
    flat_shape = normalize_play(_nested_play(market={"spread_home": -3.5}))
    nested_shape = normalize_play(_nested_play(market={"spread": {"home": -3.5}}))
    assert flat_shape.market_spread_home == -3.5
    assert nested_shape.market_spread_home == -3.5
    assert flat_shape == nested_shape


def test_normalize_accepts_flattened_rows() -> None:
    flat = {
        "tier": "Fire",
        "side": "away",
        "away": "NYJ",
        "home": "NE",
        "market_spread_home": 2.5,
        "p_current": 0.66,
        "p_target": 0.65,
        "price_est": -120,
        "price_max_ok": -130,
        "ev_ok": True,
    }
    row = normalize_play(flat)
    assert row.side == "away"
    assert row.matchup == "NYJ @ NE"
    assert row.market_spread_home == 2.5
    assert row.price_est == -120
    assert row.ev_ok is True


def test_normalize_defaults_missing_fields() -> None:
    row = normalize_play({})
    assert row == PlayRow()
    assert row.tier == "Garbage"
    assert row.side == "none"
    assert row.away == ""


def test_normalize_drops_malformed_values() -> None:
    row = normalize_play(
        _nested_play(
            tier="legendary",
            prob={"current": "n/a", "target": 1.5, "buy": 0.6},
            pricing={"final_price": "+110", "ev_ok": True},
        )
    )
    assert row.tier == "Garbage"
    assert row.p_current is None
    assert row.p_target is None
    assert row.p_buy == 0.6
    assert row.price_est == 110
    assert row.price_max_ok is None
    assert row.ev_ok is None


def test_normalize_fractional_prices_are_malformed() -> None:
    row = normalize_play(
        {"pricing": {"final_price": 110.5, "max_acceptable_price": "-145.9", "ev_ok": True}}
    )
    assert row.price_est is None
    assert row.price_max_ok is None
    assert row.ev_ok is None


def test_normalize_rejects_non_objects() -> None:
    with pytest.raises(ParseError, match="play must be an object"):
        normalize_play(["not", "a", "play"])
    assert normalize_plays(None) == ()
    assert len(normalize_plays([{}, {"tier": "Fire"}])) == 2


def test_rows_are_immutable() -> None:
    row = normalize_play(_nested_play())
    with pytest.raises(AttributeError):
        row.tier = "Fire"  # type: ignore[misc]


def test_explain_watch_with_ev_clause() -> None:
    row = normalize_play(_nested_play())
    assert explain(row) == (
        "Watch because it needs buys to reach target: buy 1 pts to -2.5; "
        "p(buy) 67.0% ≥ p(target) 65.0%. "
        "EV check at est price -145 vs max -150: OK."
    )


def test_explain_fire_ev_fail_with_positive_price() -> None:
    row = PlayRow(
        tier="Fire",
        p_current=0.705,
        p_target=0.65,
        price_est=115,
        price_max_ok=105,
        ev_ok=False,
    )
    assert explain(row).endswith("EV check at est price +115 vs max +105: FAIL.")


def test_explain_garbage_prefers_backend_reason() -> None:
    row = normalize_play(
        {"tier": "Garbage", "reason": "non-key buy", "prob": {"buy": 0.5, "target": 0.65}}
    )
    assert explain(row) == "non-key buy"


def test_explain_garbage_fallbacks() -> None:
    below = PlayRow(tier="Garbage", p_buy=0.6, p_target=0.65)
    assert explain(below) == "Garbage because even after buying, p(buy) 60.0% < p(target) 65.0%."

    generic = PlayRow(tier="Garbage", p_buy=0.7, p_target=0.65)
    assert explain(generic) == (
        "Garbage because required buy or price violates rules, or value insufficient."
    )
    assert explain(PlayRow()) == explain(generic)


def test_explain_is_never_empty() -> None:
    rows = [PlayRow(tier=tier) for tier in ("Fire", "Watch", "Garbage")]
    rows.append(PlayRow(tier="Garbage", reason="server says no"))
    for row in rows:
        assert explain(row)


def test_formatters() -> None:
    assert fmt_prob(0.6543) == "65.4%"
    assert fmt_prob(None) == "—"
    assert fmt_num(-3.0) == "-3"
    assert fmt_num(-2.5) == "-2.5"
    assert fmt_num(None) == "—"
    assert fmt_price(120) == "+120"
    assert fmt_price(-110) == "-110"
    assert fmt_price(0) == "0"
    assert fmt_price(None) == "—"


def test_tier_label() -> None:
    assert tier_label("fire") == "Fire"
    assert tier_label(" GARBAGE ") == "Garbage"
    with pytest.raises(ValidationError, match="unknown tier"):
        tier_label("lukewarm")
