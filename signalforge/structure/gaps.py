"""Gap and fair-value-gap detection.

    gap  (2 candles): ``prev.high < cur.low`` (bullish) or ``prev.low > cur.high``
    fvg  (3 candles): ``c[i-2].high < c[i].low`` (bullish) or ``c[i-2].low > c[i].high``

Only imbalances larger than ``min_size_pct`` percent are kept.  Fill is the
deepest retrace into the gap by any later candle; at 95 % the gap is dead.
"""

from signalforge.strategy.models import CandleData
from signalforge.structure.models import Gap, GapMap


MS_PER_DAY = 1000 * 60 * 60 * 24
FILLED_THRESHOLD = 0.95
FVG_BONUS = 5.0


def _fill_ratio(kind: str, top: float, bottom: float, later: list[CandleData]) -> float:
    size = top - bottom
    max_fill = 0.0
    for c in later:
        if kind == "bullish":
            if c.low <= bottom:
                return 1.0
            if c.low <= top:
                max_fill = max(max_fill, (top - c.low) / size)
        else:
            if c.high >= top:
                return 1.0
            if c.high >= bottom:
                max_fill = max(max_fill, (c.high - bottom) / size)
    return max_fill


def _score(size_pct: float, volume: float, avg_volume: float, days: float, filled: float) -> float:
    if size_pct > 2:
        score = 30.0
    elif size_pct > 1:
        score = 20.0
    elif size_pct > 0.5:
        score = 10.0
    else:
        score = 5.0

    if volume > avg_volume * 2:
        score += 20
    elif volume > avg_volume * 1.5:
        score += 10

    if days < 1:
        score += 20
    elif days < 3:
        score += 15
    elif days < 7:
        score += 10
    elif days > 30:
        score -= 10

    if filled == 0:
        score += 15
    elif filled < 0.5:
        score += 10
    else:
        score += 5
    return score


def find_gaps(candles: list[CandleData], min_size_pct: float = 0.2) -> list[Gap]:
    """All gaps and FVGs in the window, valid or not, strongest first."""
    n = len(candles)
    if n < 2:
        return []

    avg_volume = sum(c.volume for c in candles) / n
    now = candles[-1].timestamp
    raw: list[tuple[str, str, float, float, int, float]] = []

    for i in range(1, n):
        prev, cur = candles[i - 1], candles[i]
        if prev.high < cur.low:
            raw.append(("bullish", "gap", cur.low, prev.high, i, cur.volume))
        if prev.low > cur.high:
            raw.append(("bearish", "gap", prev.low, cur.high, i, cur.volume))

        if i >= 2:
            first, middle = candles[i - 2], candles[i - 1]
            # Middle candle carries the displacement volume
            if first.high < cur.low:
                raw.append(("bullish", "fvg", cur.low, first.high, i, middle.volume))
            if first.low > cur.high:
                raw.append(("bearish", "fvg", first.low, cur.high, i, middle.volume))

    gaps: list[Gap] = []
    for kind, pattern, top, bottom, idx, volume in raw:
        size = top - bottom
        size_pct = size / bottom * 100 if bottom > 0 else 0.0
        if size_pct <= min_size_pct:
            continue

        filled = _fill_ratio(kind, top, bottom, candles[idx + 1 :])
        valid = filled < FILLED_THRESHOLD
        strength = 0.0
        if valid:
            days = (now - candles[idx].timestamp) / MS_PER_DAY
            strength = _score(size_pct, volume, avg_volume, days, filled)
            if pattern == "fvg":
                strength += FVG_BONUS

        gaps.append(
            Gap(
                kind=kind,
                pattern=pattern,
                top=top,
                bottom=bottom,
                size=size,
                size_percent=size_pct,
                timestamp=candles[idx].timestamp,
                filled=filled,
                strength=strength,
                valid=valid,
            )
        )

    gaps.sort(key=lambda g: g.strength, reverse=True)
    return gaps


def analyze_gaps(
    candles: list[CandleData],
    current_price: float,
    min_size_pct: float = 0.2,
) -> GapMap:
    """Active gaps around *current_price*: up to 3 per side, closest first."""
    valid = [g for g in find_gaps(candles, min_size_pct) if g.valid]

    bullish = sorted(
        (g for g in valid if g.kind == "bullish" and g.bottom < current_price),
        key=lambda g: g.bottom,
        reverse=True,
    )[:3]
    bearish = sorted(
        (g for g in valid if g.kind == "bearish" and g.top > current_price),
        key=lambda g: g.top,
    )[:3]
    nearest = min(valid, key=lambda g: abs(g.midpoint - current_price)) if valid else None

    return GapMap(bullish=bullish, bearish=bearish, nearest=nearest, all=valid)
