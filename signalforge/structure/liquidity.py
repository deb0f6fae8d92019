"""Liquidity zone detection — pure functions.

Swing highs and lows are clustered into zones where resting stops are
likely to sit.  Zones with a single touch are dropped; nearby round
numbers are added as extra zones.
"""

import math
from dataclasses import dataclass
from typing import Callable, Sequence, TypeVar

from signalforge.strategy.models import CandleData
from signalforge.structure.models import LiquidityMap, LiquidityZone


T = TypeVar("T")

MS_PER_DAY = 1000 * 60 * 60 * 24
ROUND_MULTIPLIERS = (0.5, 1, 2, 5, 10)


@dataclass(frozen=True)
class SwingPoint:
    kind: str  # "high" | "low"
    price: float
    index: int
    timestamp: int
    volume: float


def find_swing_points(candles: list[CandleData], window: int = 5) -> list[SwingPoint]:
    """Identify swing highs and lows.

    A swing high is a candle whose high is strictly higher than the highs of
    the *window* candles on each side (swing lows mirror this).  Returned in
    candle order.
    """
    points: list[SwingPoint] = []
    for i in range(window, len(candles) - window):
        current = candles[i]
        neighbours = [candles[j] for j in range(i - window, i + window + 1) if j != i]

        if all(c.high < current.high for c in neighbours):
            points.append(
                SwingPoint("high", current.high, i, current.timestamp, current.volume)
            )
        if all(c.low > current.low for c in neighbours):
            points.append(
                SwingPoint("low", current.low, i, current.timestamp, current.volume)
            )
    return points


def _group_by_price(
    items: Sequence[T], price: Callable[[T], float], tolerance: float
) -> list[list[T]]:
    """Chain price-sorted items into groups.

    An item joins the current group when it is within *tolerance* (relative
    to the previous item's price) of the last member.
    """
    if not items:
        return []

    ordered = sorted(items, key=price)
    groups: list[list[T]] = []
    current: list[T] = [ordered[0]]

    for item in ordered[1:]:
        prev = price(current[-1])
        if prev > 0 and abs(price(item) - prev) / prev <= tolerance:
            current.append(item)
        else:
            groups.append(current)
            current = [item]
    groups.append(current)
    return groups


def cluster_price_levels(
    levels: list[float], tolerance: float = 0.005
) -> list[tuple[float, int]]:
    """Cluster nearby price levels into zones.

    Returns ``(average_price, touch_count)`` tuples sorted by price.
    Re-clustering the averages with the same tolerance leaves them
    unchanged: neighbouring clusters are always more than *tolerance* apart.
    """
    return [
        (sum(g) / len(g), len(g))
        for g in _group_by_price(levels, lambda p: p, tolerance)
    ]


def round_number_levels(price: float) -> list[float]:
    """Psychological round numbers within 10 % of *price*."""
    if price <= 0:
        return []
    magnitude = 10 ** math.floor(math.log10(price))
    numbers: list[float] = []
    for mult in ROUND_MULTIPLIERS:
        step = magnitude * mult
        candidate = round(price / step) * step
        if candidate > 0 and abs(candidate - price) / price < 0.1 and candidate not in numbers:
            numbers.append(candidate)
    return numbers


def _side(price: float, current_price: float) -> str:
    if price > current_price:
        return "above"
    if price < current_price:
        return "below"
    return "at"


def analyze_liquidity(
    candles: list[CandleData],
    current_price: float,
    swing_window: int = 5,
    tolerance: float = 0.005,
    min_touches: int = 2,
) -> LiquidityMap:
    """Build the liquidity map for the current price.

    Scoring per zone:
        touches × 10, round number +15,
        recency ``max(0, 20 − 2 × days since last touch)``,
        touch volume > 1.5 × window average +10,
        untested (no close within 0.2 % in the last 20 candles) +10.

    Recency is measured against the last candle's timestamp.  Returns an
    empty map when the window is too short for swing detection.
    """
    if len(candles) < 2 * swing_window + 1 or current_price <= 0:
        return LiquidityMap()

    swings = find_swing_points(candles, swing_window)
    groups = [
        g for g in _group_by_price(swings, lambda s: s.price, tolerance)
        if len(g) >= min_touches
    ]

    now = candles[-1].timestamp
    avg_volume = sum(c.volume for c in candles) / len(candles)
    recent_closes = [c.close for c in candles[-20:]]

    def _tested(price: float) -> bool:
        return any(abs(close - price) / price < 0.002 for close in recent_closes)

    def _zone(price: float, touches: list[SwingPoint], is_round: bool) -> LiquidityZone:
        score = len(touches) * 10.0
        if is_round:
            score += 15
        if touches:
            last_touch = max(t.timestamp for t in touches)
            days = (now - last_touch) / MS_PER_DAY
            score += max(0.0, 20 - days * 2)
            touch_volume = sum(t.volume for t in touches) / len(touches)
            if touch_volume > avg_volume * 1.5:
                score += 10
        tested = _tested(price)
        if not tested:
            score += 10
        return LiquidityZone(
            price=price,
            side=_side(price, current_price),
            touch_count=len(touches),
            is_round_number=is_round,
            tested=tested,
            strength=score,
        )

    zones = [
        _zone(sum(s.price for s in g) / len(g), g, False) for g in groups
    ]

    for level in round_number_levels(current_price):
        if not any(abs(z.price - level) / level < 0.001 for z in zones):
            zones.append(_zone(level, [], True))

    zones.sort(key=lambda z: z.strength, reverse=True)

    above = sorted((z for z in zones if z.price > current_price), key=lambda z: z.price)[:5]
    below = sorted(
        (z for z in zones if z.price < current_price), key=lambda z: z.price, reverse=True
    )[:5]
    nearest = min(zones, key=lambda z: abs(z.price - current_price)) if zones else None

    return LiquidityMap(
        above=above,
        below=below,
        nearest=nearest,
        strongest=zones[0] if zones else None,
        zones=zones,
    )
