"""Feature engineering — 20-feature decision vector for the decision agent.

The order of the fields below is the model contract: saved weights are
only valid against this exact ordering.
"""

from __future__ import annotations

from dataclasses import dataclass, fields

import numpy as np

from signalforge.strategy.models import IndicatorSnapshot, Regime
from signalforge.structure.models import StructureReport


# ── Utility helpers ──────────────────────────────────────────────────────


def clip_feature(value: float, low: float, high: float) -> float:
    """Clip a feature to [low, high]."""
    return max(low, min(high, value))


def safe_div(a: float, b: float, default: float = 0.0) -> float:
    """Safe division — returns *default* when divisor is zero/near-zero."""
    if abs(b) < 1e-12:
        return default
    return a / b


REGIME_CODES: dict[str, float] = {
    "TRENDING": 1.0,
    "BREAKOUT": 0.8,
    "RANGING": 0.5,
}


# ── 20-feature state vector ─────────────────────────────────────────────


STATE_DIM = 20


@dataclass
class DecisionState:
    """The 20 features the decision agent observes."""

    # Momentum (4)
    rsi: float = 0.0
    rsi_prev: float = 0.0
    macd_histogram: float = 0.0
    macd_histogram_prev: float = 0.0

    # Trend (5)
    adx: float = 0.0
    plus_di: float = 0.0
    minus_di: float = 0.0
    above_ema50: float = 0.0
    above_ema200: float = 0.0

    # Volatility / volume (3)
    bb_width: float = 0.0
    atr_pct: float = 0.0
    volume_ratio: float = 0.0

    # Regime (1)
    regime: float = 0.0

    # Structure (5)
    liquidity_above_strength: float = 0.0
    liquidity_below_strength: float = 0.0
    bullish_ob_strength: float = 0.0
    bearish_ob_strength: float = 0.0
    gap_count: float = 0.0

    # Candidate quality (2)
    score: float = 0.0
    risk_reward: float = 0.0

    def to_array(self) -> np.ndarray:
        """Convert to float32 numpy array of shape (20,)."""
        values = [getattr(self, f.name) for f in fields(self)]
        arr = np.array(values, dtype=np.float32)
        # Safety: replace NaN/Inf with 0
        arr = np.nan_to_num(arr, nan=0.0, posinf=0.0, neginf=0.0)
        return arr


def build_decision_state(
    ind: IndicatorSnapshot,
    regime: Regime,
    structure: StructureReport,
    score: float = 0.0,
    risk_reward: float = 0.0,
) -> DecisionState:
    """Normalise one cycle's view of the market into a ``DecisionState``.

    *score* and *risk_reward* are 0 when there is no candidate (e.g. while
    a position is being tracked).
    """
    liq = structure.liquidity
    obs = structure.order_blocks
    gaps = structure.gaps

    return DecisionState(
        rsi=ind.rsi / 100,
        rsi_prev=ind.rsi_prev / 100,
        macd_histogram=ind.macd_histogram / 100,
        macd_histogram_prev=ind.macd_histogram_prev / 100,
        adx=ind.adx / 50,
        plus_di=ind.plus_di / 50,
        minus_di=ind.minus_di / 50,
        above_ema50=1.0 if ind.close > ind.ema50 else 0.0,
        above_ema200=1.0 if ind.close > ind.ema200 else 0.0,
        bb_width=ind.bb_width,
        atr_pct=safe_div(ind.atr, ind.close),
        volume_ratio=clip_feature(ind.volume_ratio, 0.0, 5.0),
        regime=REGIME_CODES.get(regime.kind, 0.0),
        liquidity_above_strength=liq.above[0].strength / 100 if liq.above else 0.0,
        liquidity_below_strength=liq.below[0].strength / 100 if liq.below else 0.0,
        bullish_ob_strength=obs.bullish[0].strength / 100 if obs.bullish else 0.0,
        bearish_ob_strength=obs.bearish[0].strength / 100 if obs.bearish else 0.0,
        gap_count=clip_feature((len(gaps.bullish) + len(gaps.bearish)) / 5, 0.0, 1.0),
        score=score / 100,
        risk_reward=clip_feature(risk_reward / 10, 0.0, 1.0),
    )
