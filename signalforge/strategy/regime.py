"""Market regime classification from an indicator snapshot.

Branches are evaluated in a fixed order and the first match wins:

    1. TRENDING        ADX > 25, volatility < 3 %, close/EMA50 on one side of EMA200
    2. HIGH_VOLATILITY volatility > 3 % or Bollinger width > 0.06
    3. RANGING         ADX < 20
    4. BREAKOUT        width > 0.05, volume ratio > 1.5, close outside a band
    5. NEUTRAL         everything else
"""

from dataclasses import dataclass

from signalforge.strategy.models import IndicatorSnapshot, Regime


@dataclass(frozen=True)
class RegimeThresholds:
    trend_adx: float = 25.0
    ranging_adx: float = 20.0
    max_trend_volatility_pct: float = 3.0
    high_volatility_pct: float = 3.0
    high_volatility_bb_width: float = 0.06
    breakout_bb_width: float = 0.05
    breakout_volume_ratio: float = 1.5


DEFAULT_THRESHOLDS = RegimeThresholds()


def classify_regime(
    ind: IndicatorSnapshot,
    thresholds: RegimeThresholds = DEFAULT_THRESHOLDS,
) -> Regime:
    """Label the current market condition.  Always returns exactly one regime."""
    t = thresholds
    volatility = ind.volatility_pct

    if ind.adx > t.trend_adx and volatility < t.max_trend_volatility_pct:
        bullish = ind.close > ind.ema200 and ind.ema50 > ind.ema200
        bearish = ind.close < ind.ema200 and ind.ema50 < ind.ema200
        if bullish:
            return Regime("TRENDING", "UP")
        if bearish:
            return Regime("TRENDING", "DOWN")

    if volatility > t.high_volatility_pct or ind.bb_width > t.high_volatility_bb_width:
        return Regime("HIGH_VOLATILITY")

    if ind.adx < t.ranging_adx:
        return Regime("RANGING")

    if ind.bb_width > t.breakout_bb_width and ind.volume_ratio > t.breakout_volume_ratio:
        if ind.close > ind.bb_upper:
            return Regime("BREAKOUT", "UP")
        if ind.close < ind.bb_lower:
            return Regime("BREAKOUT", "DOWN")

    return Regime("NEUTRAL")
