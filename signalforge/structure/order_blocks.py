"""Order block detection — the last opposite candle before a strong move.

A bearish candle followed by a rally of at least ``min_move`` is a bullish
block (body ``open``..``close``); a bullish candle followed by a drop is a
bearish block.
"""

import logging

from signalforge.strategy.models import CandleData
from signalforge.structure.models import OrderBlock, OrderBlockMap


logger = logging.getLogger("signalforge")

MS_PER_DAY = 1000 * 60 * 60 * 24


def _move_after(
    candles: list[CandleData], index: int, kind: str, horizon: int, min_move: float
) -> float:
    """Size of the qualifying move after *index*, or 0.0 if none."""
    origin = candles[index]
    extreme = origin.high if kind == "bullish" else origin.low

    for j in range(index + 1, min(index + 1 + horizon, len(candles))):
        if kind == "bullish":
            extreme = max(extreme, candles[j].high)
            move = (extreme - origin.low) / origin.low
        else:
            extreme = min(extreme, candles[j].low)
            move = (origin.high - extreme) / origin.high
        if move >= min_move:
            return move
    return 0.0


def _score_block(
    candles: list[CandleData],
    index: int,
    kind: str,
    move: float,
    avg_volume: float,
    max_tests: int,
) -> OrderBlock:
    origin = candles[index]
    if kind == "bullish":
        top, bottom = origin.open, origin.close
    else:
        top, bottom = origin.close, origin.open

    score = min(move * 100, 30.0)

    if origin.volume > avg_volume * 1.5:
        score += 20
    elif origin.volume > avg_volume:
        score += 10

    days = (candles[-1].timestamp - origin.timestamp) / MS_PER_DAY
    if days < 1:
        score += 15
    elif days < 7:
        score += 10
    elif days < 30:
        score += 5

    later = candles[index + 1 :]
    if kind == "bullish":
        tests = sum(1 for c in later if bottom <= c.low <= top)
        broke_through = any(c.close < bottom for c in later)
    else:
        tests = sum(1 for c in later if bottom <= c.high <= top)
        broke_through = any(c.close > top for c in later)

    valid = True
    if tests == 0:
        score += 15
    elif tests == 1:
        score += 10
    elif tests > max_tests:
        score -= 10
        valid = False

    if broke_through:
        valid = False
        score = 0.0

    return OrderBlock(
        kind=kind,
        top=top,
        bottom=bottom,
        high=origin.high,
        low=origin.low,
        move_size=move,
        timestamp=origin.timestamp,
        test_count=tests,
        tested=tests > 0,
        strength=score,
        valid=valid,
    )


def find_order_blocks(
    candles: list[CandleData],
    lookback: int = 100,
    min_move: float = 0.02,
    horizon: int = 10,
    max_tests: int = 3,
) -> list[OrderBlock]:
    """Every candidate block in the last *lookback* candles, valid or not,
    strongest first."""
    n = len(candles)
    if n < 4:
        return []

    avg_volume = sum(c.volume for c in candles) / n
    start = max(3, n - lookback)
    blocks: list[OrderBlock] = []

    # The latest candle has no follow-through yet
    for i in range(start, n - 1):
        candle = candles[i]
        if candle.close < candle.open:
            move = _move_after(candles, i, "bullish", horizon, min_move)
            if move:
                blocks.append(_score_block(candles, i, "bullish", move, avg_volume, max_tests))
        elif candle.close > candle.open:
            move = _move_after(candles, i, "bearish", horizon, min_move)
            if move:
                blocks.append(_score_block(candles, i, "bearish", move, avg_volume, max_tests))

    blocks.sort(key=lambda b: b.strength, reverse=True)
    return blocks


def analyze_order_blocks(
    candles: list[CandleData],
    current_price: float,
    lookback: int = 100,
    min_move: float = 0.02,
) -> OrderBlockMap:
    """Active order blocks around *current_price*.

    ``bullish``: up to 3 valid bullish blocks whose top is below price,
    closest first.  ``bearish``: up to 3 valid bearish blocks whose bottom is
    above price, closest first.  ``nearest`` is measured by block midpoint.
    """
    blocks = find_order_blocks(candles, lookback=lookback, min_move=min_move)
    valid = [b for b in blocks if b.valid]

    bullish = sorted(
        (b for b in valid if b.kind == "bullish" and b.top < current_price),
        key=lambda b: b.top,
        reverse=True,
    )[:3]
    bearish = sorted(
        (b for b in valid if b.kind == "bearish" and b.bottom > current_price),
        key=lambda b: b.bottom,
    )[:3]
    nearest = min(valid, key=lambda b: abs(b.midpoint - current_price)) if valid else None

    logger.debug(
        "Order blocks: %d candidates, %d valid (%d bullish / %d bearish in range)",
        len(blocks), len(valid), len(bullish), len(bearish),
    )
    return OrderBlockMap(bullish=bullish, bearish=bearish, nearest=nearest, all=valid)
