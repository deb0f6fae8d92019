"""Stop-loss and take-profit calculation — structure-anchored, no I/O.

Take-profit:
    Candidate targets are opposite-side structure: liquidity zones beyond
    entry, the midpoint of opposing order blocks and the midpoint of
    opposing gaps.  Targets between 1 % and 10 % from entry are scored by
    ``strength / distance %`` and the best one wins; otherwise
    TP = entry ± 3 × ATR.

Stop-loss:
    The nearest same-side level (liquidity zone price, or the far edge of a
    supporting order block) plus a 0.3 % buffer.  Without structure,
    SL = entry ∓ 1.5 × ATR.  Either way the stop distance is clamped to
    [0.5 %, 3 %] of entry.
"""

from dataclasses import dataclass

from signalforge.structure.models import StructureReport


TP_MIN_DISTANCE = 0.01
TP_MAX_DISTANCE = 0.10
TP_ATR_MULT = 3.0

SL_BUFFER = 0.003
SL_MIN_DISTANCE = 0.005
SL_MAX_DISTANCE = 0.03
SL_ATR_MULT = 1.5


@dataclass
class RiskLevels:
    """Computed stop-loss and take-profit for a trade."""
    sl: float
    tp: float
    tp_source: str  # "liquidity", "orderblock", "gap" or "atr_fallback"
    sl_source: str  # "liquidity", "orderblock" or "atr_fallback"
    risk_reward: float


def _check_direction(direction: str) -> None:
    if direction not in ("LONG", "SHORT"):
        raise ValueError(f"direction must be 'LONG' or 'SHORT', got '{direction}'")


def calculate_take_profit(
    direction: str,
    entry_price: float,
    atr: float,
    structure: StructureReport,
) -> tuple[float, str]:
    """Pick the take-profit price.

    Args:
        direction: ``"LONG"`` or ``"SHORT"``.
        entry_price: Trade entry price (the latest close).
        atr: Current ATR(14) value, used for the fallback.
        structure: This cycle's structure report.

    Returns:
        ``(tp_price, source)``.  ``source`` is ``"atr_fallback"`` when no
        structure target lies in the 1-10 % band.
    """
    _check_direction(direction)

    if direction == "LONG":
        targets = (
            [(z.price, z.strength, "liquidity") for z in structure.liquidity.above]
            + [(b.midpoint, b.strength, "orderblock") for b in structure.order_blocks.bearish]
            + [(g.midpoint, g.strength, "gap") for g in structure.gaps.bearish]
        )
        targets = [t for t in targets if t[0] > entry_price]
    else:
        targets = (
            [(z.price, z.strength, "liquidity") for z in structure.liquidity.below]
            + [(b.midpoint, b.strength, "orderblock") for b in structure.order_blocks.bullish]
            + [(g.midpoint, g.strength, "gap") for g in structure.gaps.bullish]
        )
        targets = [t for t in targets if t[0] < entry_price]

    best = None
    best_score = float("-inf")
    for price, strength, source in targets:
        dist = abs(price - entry_price) / entry_price
        if not TP_MIN_DISTANCE <= dist <= TP_MAX_DISTANCE:
            continue
        # Strength per percent of distance
        score = strength / (dist * 100)
        if score > best_score:
            best, best_score = (price, source), score

    if best is not None:
        return best

    if direction == "LONG":
        return entry_price + atr * TP_ATR_MULT, "atr_fallback"
    return entry_price - atr * TP_ATR_MULT, "atr_fallback"


def calculate_stop_loss(
    direction: str,
    entry_price: float,
    atr: float,
    structure: StructureReport,
) -> tuple[float, str]:
    """Pick the stop-loss price.

    - **LONG**:  nearest of liquidity-below prices and bullish order block
      lows, minus 0.3 % of entry.
    - **SHORT**: nearest of liquidity-above prices and bearish order block
      highs, plus 0.3 % of entry.

    The result is clamped so the stop sits between 0.5 % and 3 % from
    entry, using the nearer bound when it falls outside.

    Returns:
        ``(sl_price, source)``.
    """
    _check_direction(direction)

    if direction == "LONG":
        levels = (
            [(z.price, "liquidity") for z in structure.liquidity.below]
            + [(b.low, "orderblock") for b in structure.order_blocks.bullish]
        )
        levels = [lv for lv in levels if lv[0] < entry_price]
    else:
        levels = (
            [(z.price, "liquidity") for z in structure.liquidity.above]
            + [(b.high, "orderblock") for b in structure.order_blocks.bearish]
        )
        levels = [lv for lv in levels if lv[0] > entry_price]

    buffer = entry_price * SL_BUFFER
    if levels:
        price, source = min(levels, key=lambda lv: abs(lv[0] - entry_price))
        sl_price = price - buffer if direction == "LONG" else price + buffer
    else:
        source = "atr_fallback"
        offset = atr * SL_ATR_MULT
        sl_price = entry_price - offset if direction == "LONG" else entry_price + offset

    dist = abs(sl_price - entry_price) / entry_price
    clamped = min(max(dist, SL_MIN_DISTANCE), SL_MAX_DISTANCE)
    if clamped != dist:
        sl_price = (
            entry_price * (1 - clamped) if direction == "LONG" else entry_price * (1 + clamped)
        )

    return sl_price, source


def calculate_risk_levels(
    direction: str,
    entry_price: float,
    atr: float,
    structure: StructureReport,
) -> RiskLevels:
    """Stop, target and risk:reward (target % ÷ stop %) for one setup."""
    tp, tp_source = calculate_take_profit(direction, entry_price, atr, structure)
    sl, sl_source = calculate_stop_loss(direction, entry_price, atr, structure)

    if direction == "LONG":
        sl_pct = (entry_price - sl) / entry_price * 100
        tp_pct = (tp - entry_price) / entry_price * 100
    else:
        sl_pct = (sl - entry_price) / entry_price * 100
        tp_pct = (entry_price - tp) / entry_price * 100

    rr = tp_pct / sl_pct if sl_pct > 0 else 0.0
    return RiskLevels(sl=sl, tp=tp, tp_source=tp_source, sl_source=sl_source, risk_reward=rr)
