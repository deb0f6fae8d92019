"""Fibonacci retracement levels from the dominant swing in a lookback window."""

from typing import Optional

from signalforge.strategy.models import CandleData
from signalforge.structure.models import (
    ENTRY_RATIOS,
    FIB_RATIOS,
    FibonacciEntry,
    FibonacciLevels,
)


SPOT_ON_PCT = 0.2
NEAR_PCT = 0.5


def calculate_retracements(
    candles: list[CandleData], lookback: int = 60
) -> Optional[FibonacciLevels]:
    """Retracement levels of the extreme high/low pair in the last *lookback* candles.

    If the low came before the high the move was UP and levels are measured
    down from the high; otherwise the move was DOWN and levels are measured
    up from the low.  Returns ``None`` when the window is short or flat.
    """
    if len(candles) < lookback:
        return None

    recent = candles[-lookback:]
    high_idx = max(range(len(recent)), key=lambda i: recent[i].high)
    low_idx = min(range(len(recent)), key=lambda i: recent[i].low)
    swing_high = recent[high_idx].high
    swing_low = recent[low_idx].low

    span = swing_high - swing_low
    if span <= 0:
        return None

    if low_idx < high_idx:
        trend = "UP"
        levels = {r: swing_high - span * r for r in FIB_RATIOS}
    else:
        trend = "DOWN"
        levels = {r: swing_low + span * r for r in FIB_RATIOS}

    return FibonacciLevels(
        trend=trend, swing_high=swing_high, swing_low=swing_low, levels=levels
    )


def analyze_fibonacci(
    candles: list[CandleData],
    current_price: float,
    lookback: int = 60,
) -> Optional[FibonacciEntry]:
    """Nearest of the 0.382 / 0.5 / 0.618 levels to *current_price*.

    Proximity: SPOT_ON under 0.2 %, NEAR under 0.5 %, FAR otherwise.
    """
    fibs = calculate_retracements(candles, lookback)
    if fibs is None or current_price <= 0:
        return None

    ratio = min(ENTRY_RATIOS, key=lambda r: abs(fibs.levels[r] - current_price))
    price = fibs.levels[ratio]
    dist = abs(price - current_price) / current_price * 100

    if dist < SPOT_ON_PCT:
        proximity = "SPOT_ON"
    elif dist < NEAR_PCT:
        proximity = "NEAR"
    else:
        proximity = "FAR"

    return FibonacciEntry(
        levels=fibs,
        ratio=ratio,
        price=price,
        distance_percent=dist,
        proximity=proximity,
    )
