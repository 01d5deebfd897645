"""Refresh parameters: which metric and target probability to fetch."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from wpp_live.errors import ValidationError

Metric = Literal["spread", "ml", "total"]
METRICS: tuple[Metric, ...] = ("spread", "ml", "total")
METRIC_LABELS: dict[Metric, str] = {
    "spread": "Spread",
    "ml": "Moneyline",
    "total": "Total",
}

TARGET_PROB_MIN = 0.55
TARGET_PROB_MAX = 0.75
DEFAULT_TARGET_PROB = 0.65


def clamp_target_prob(value: float) -> float:
    """Clamp into the supported slider range, rounded so fingerprints compare exactly."""
    clamped = min(TARGET_PROB_MAX, max(TARGET_PROB_MIN, float(value)))
    return round(clamped, 4)


def parse_metric(value: str) -> Metric:
    lowered = value.strip().lower()
    aliases = {"moneyline": "ml", "spreads": "spread", "totals": "total"}
    lowered = aliases.get(lowered, lowered)
    for metric in METRICS:
        if lowered == metric:
            return metric
    raise ValidationError(f"unknown metric: {value!r} (expected one of {', '.join(METRICS)})")


@dataclass(frozen=True)
class RefreshParameters:
    """Inputs that determine one fetch cycle."""

    metric: Metric = "spread"
    target_prob: float = DEFAULT_TARGET_PROB

    @classmethod
    def build(
        cls, metric: str = "spread", target_prob: float = DEFAULT_TARGET_PROB
    ) -> RefreshParameters:
        return cls(metric=parse_metric(metric), target_prob=clamp_target_prob(target_prob))

    def with_metric(self, metric: str) -> RefreshParameters:
        return RefreshParameters(metric=parse_metric(metric), target_prob=self.target_prob)

    def with_target_prob(self, target_prob: float) -> RefreshParameters:
        return RefreshParameters(metric=self.metric, target_prob=clamp_target_prob(target_prob))
