"""Momentum strategy — trend-following bias for trending markets.

Point table (per side, summed):

    ema_alignment  close/EMA50/EMA21 stacked on the side of EMA200   +20
    macd_cross     MACD above (below) signal and above (below) zero   +20
    rsi_band       RSI in 40-70 (long) / 30-60 (short)                +15
    volume         volume ratio > 1.2                                 +15
    adx            ADX > 25                                           +15
    dmi            +DI > -DI (long) / -DI > +DI (short)               +10
    obv            OBV rising (long) / falling (short)                +5
"""

from typing import Mapping, Optional

from signalforge.strategy.base import ScoreTally, merge_weights
from signalforge.strategy.models import (
    IndicatorSnapshot,
    LONG,
    SHORT,
    StrategySignal,
)


MOMENTUM_WEIGHTS: dict[str, float] = {
    "ema_alignment": 20.0,
    "macd_cross": 20.0,
    "rsi_band": 15.0,
    "volume": 15.0,
    "adx": 15.0,
    "dmi": 10.0,
    "obv": 5.0,
}


class MomentumStrategy:
    """EMA stack + MACD + DMI trend-following scorer."""

    name = "Momentum"

    def __init__(
        self,
        weights: Optional[Mapping[str, float]] = None,
        volume_threshold: float = 1.2,
        adx_threshold: float = 25.0,
    ) -> None:
        self.weights = merge_weights(MOMENTUM_WEIGHTS, weights)
        self.volume_threshold = volume_threshold
        self.adx_threshold = adx_threshold

    def compute(self, ind: IndicatorSnapshot) -> StrategySignal:
        w = self.weights
        tally = ScoreTally(self.name)

        # Long conditions
        if ind.close > ind.ema200 and ind.ema50 > ind.ema200 and ind.ema21 > ind.ema50:
            tally.award(LONG, w["ema_alignment"], "Bullish EMA alignment")
        if ind.macd > ind.macd_signal and ind.macd > 0:
            tally.award(LONG, w["macd_cross"], "MACD bullish crossover")
        if 40 < ind.rsi < 70:
            tally.award(LONG, w["rsi_band"], f"RSI optimal ({ind.rsi:.1f})")
        if ind.volume_ratio > self.volume_threshold:
            tally.award(LONG, w["volume"], f"Volume {ind.volume_ratio:.1f}x avg")
        if ind.adx > self.adx_threshold:
            tally.award(LONG, w["adx"], f"Strong trend (ADX {ind.adx:.1f})")
        if ind.plus_di > ind.minus_di:
            tally.award(LONG, w["dmi"], "Buying pressure (DMI)")
        if ind.obv > ind.obv_prev:
            tally.award(LONG, w["obv"], "OBV rising")

        # Short conditions
        if ind.close < ind.ema200 and ind.ema50 < ind.ema200 and ind.ema21 < ind.ema50:
            tally.award(SHORT, w["ema_alignment"], "Bearish EMA alignment")
        if ind.macd < ind.macd_signal and ind.macd < 0:
            tally.award(SHORT, w["macd_cross"], "MACD bearish crossover")
        if 30 < ind.rsi < 60:
            tally.award(SHORT, w["rsi_band"], f"RSI optimal ({ind.rsi:.1f})")
        if ind.volume_ratio > self.volume_threshold:
            tally.award(SHORT, w["volume"], f"Volume {ind.volume_ratio:.1f}x avg")
        if ind.adx > self.adx_threshold:
            tally.award(SHORT, w["adx"], f"Strong trend (ADX {ind.adx:.1f})")
        if ind.minus_di > ind.plus_di:
            tally.award(SHORT, w["dmi"], "Selling pressure (DMI)")
        if ind.obv < ind.obv_prev:
            tally.award(SHORT, w["obv"], "OBV falling")

        return tally.result()
