"""Regular RSI divergence over the trailing pivots.

Bullish: price prints a lower low while RSI prints a higher low.
Bearish: price prints a higher high while RSI prints a lower high.
"""

import math

from signalforge.strategy.indicators import calculate_rsi
from signalforge.strategy.models import CandleData
from signalforge.structure.models import Divergence


MIN_CANDLES = 30


def _pivots(
    values: list[float], rsi: list[float], lowest: bool, first: int, last: int
) -> list[tuple[int, float, float]]:
    """``(index, price, rsi)`` for pivots *first*..*last* candles back, newest first."""
    n = len(values)
    found: list[tuple[int, float, float]] = []
    for offset in range(first, last + 1):
        i = n - 1 - offset
        if i < 1 or math.isnan(rsi[i]):
            continue
        v = values[i]
        if lowest:
            is_pivot = v < values[i - 1] and v < values[i + 1]
        else:
            is_pivot = v > values[i - 1] and v > values[i + 1]
        if is_pivot:
            found.append((i, v, rsi[i]))
    return found


def detect_divergences(
    candles: list[CandleData],
    rsi_period: int = 14,
    window: int = 20,
) -> list[Divergence]:
    """Compare the two most recent price pivots in the last *window* candles
    against RSI at the same candles.

    The latest candle and the one before it are never pivots (a pivot needs a
    closed candle on its right).  Returns ``[]`` below 30 candles.
    """
    if len(candles) < MIN_CANDLES:
        return []

    rsi = calculate_rsi(candles, rsi_period)
    lows = [c.low for c in candles]
    highs = [c.high for c in candles]
    found: list[Divergence] = []

    pivot_lows = _pivots(lows, rsi, True, 2, window - 1)
    if len(pivot_lows) >= 2:
        (cur_i, cur_p, cur_r), (prev_i, prev_p, prev_r) = pivot_lows[0], pivot_lows[1]
        if cur_p < prev_p and cur_r > prev_r:
            found.append(Divergence("bullish", abs(cur_r - prev_r), (prev_i, cur_i)))

    pivot_highs = _pivots(highs, rsi, False, 2, window - 1)
    if len(pivot_highs) >= 2:
        (cur_i, cur_p, cur_r), (prev_i, prev_p, prev_r) = pivot_highs[0], pivot_highs[1]
        if cur_p > prev_p and cur_r < prev_r:
            found.append(Divergence("bearish", abs(prev_r - cur_r), (prev_i, cur_i)))

    return found
