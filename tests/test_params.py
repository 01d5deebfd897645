import pytest

from wpp_live.errors import ValidationError
from wpp_live.params import RefreshParameters, clamp_target_prob, parse_metric


def test_clamp_target_prob_to_slider_range() -> None:
    assert clamp_target_prob(0.5) == 0.55
    assert clamp_target_prob(0.9) == 0.75
    assert clamp_target_prob(0.6500001) == 0.65


def test_parse_metric_accepts_aliases() -> None:
    assert parse_metric("Spread") == "spread"
    assert parse_metric("moneyline") == "ml"
    assert parse_metric("total") == "total"
    with pytest.raises(ValidationError, match="unknown metric"):
        parse_metric("props")


def test_parameters_compare_by_value() -> None:
    params = RefreshParameters.build("spread", 0.65)
    assert params == RefreshParameters()
    assert params.with_metric("ml") != params
    assert params.with_target_prob(0.80).target_prob == 0.75
