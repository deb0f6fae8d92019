"""Mean-reversion strategy — fade the Bollinger extremes in ranging markets."""

from typing import Mapping, Optional

from signalforge.strategy.base import ScoreTally, merge_weights
from signalforge.strategy.models import (
    IndicatorSnapshot,
    LONG,
    SHORT,
    StrategySignal,
)


MEAN_REVERSION_WEIGHTS: dict[str, float] = {
    "band_touch": 25.0,
    "rsi_extreme": 25.0,
    "stoch_cross": 20.0,
}


class MeanReversionStrategy:
    """Oversold bounce / overbought rejection scorer.

    Long:  close at/below lower band (+25), RSI < 30 (+25),
           Stoch RSI K < 20 and turning up (+20).
    Short: close at/above upper band (+25), RSI > 70 (+25),
           Stoch RSI K > 80 and turning down (+20).
    """

    name = "MeanReversion"

    def __init__(
        self,
        weights: Optional[Mapping[str, float]] = None,
        rsi_oversold: float = 30.0,
        rsi_overbought: float = 70.0,
    ) -> None:
        self.weights = merge_weights(MEAN_REVERSION_WEIGHTS, weights)
        self.rsi_oversold = rsi_oversold
        self.rsi_overbought = rsi_overbought

    def compute(self, ind: IndicatorSnapshot) -> StrategySignal:
        w = self.weights
        tally = ScoreTally(self.name)

        if ind.close <= ind.bb_lower:
            tally.award(LONG, w["band_touch"], "Price at lower BB")
        if ind.rsi < self.rsi_oversold:
            tally.award(LONG, w["rsi_extreme"], f"RSI oversold ({ind.rsi:.1f})")
        if ind.stoch_rsi_k < 20 and ind.stoch_rsi_k > ind.stoch_rsi_k_prev:
            tally.award(LONG, w["stoch_cross"], "Stoch RSI bullish cross")

        if ind.close >= ind.bb_upper:
            tally.award(SHORT, w["band_touch"], "Price at upper BB")
        if ind.rsi > self.rsi_overbought:
            tally.award(SHORT, w["rsi_extreme"], f"RSI overbought ({ind.rsi:.1f})")
        if ind.stoch_rsi_k > 80 and ind.stoch_rsi_k < ind.stoch_rsi_k_prev:
            tally.award(SHORT, w["stoch_cross"], "Stoch RSI bearish cross")

        return tally.result()
