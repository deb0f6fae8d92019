"""Breakout strategy — band breaks confirmed by volume."""

from typing import Mapping, Optional

from signalforge.strategy.base import ScoreTally, merge_weights
from signalforge.strategy.models import (
    IndicatorSnapshot,
    LONG,
    SHORT,
    StrategySignal,
)


BREAKOUT_WEIGHTS: dict[str, float] = {
    "band_break": 30.0,
    "rsi_momentum": 20.0,
}


class BreakoutStrategy:
    name = "Breakout"

    def __init__(
        self,
        weights: Optional[Mapping[str, float]] = None,
        volume_threshold: float = 1.5,
    ) -> None:
        self.weights = merge_weights(BREAKOUT_WEIGHTS, weights)
        self.volume_threshold = volume_threshold

    def compute(self, ind: IndicatorSnapshot) -> StrategySignal:
        w = self.weights
        tally = ScoreTally(self.name)
        high_volume = ind.volume_ratio > self.volume_threshold

        if ind.close > ind.bb_upper and high_volume:
            tally.award(LONG, w["band_break"], "Bullish breakout with volume")
        if 50 < ind.rsi < 80:
            tally.award(LONG, w["rsi_momentum"], f"Positive momentum (RSI {ind.rsi:.1f})")

        if ind.close < ind.bb_lower and high_volume:
            tally.award(SHORT, w["band_break"], "Bearish breakout with volume")
        if 20 < ind.rsi < 50:
            tally.award(SHORT, w["rsi_momentum"], f"Negative momentum (RSI {ind.rsi:.1f})")

        return tally.result()
