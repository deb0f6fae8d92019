"""Tests for the indicator snapshot and the regime classifier."""

import dataclasses
import math

import pytest

from signalforge.errors import InsufficientDataError
from signalforge.strategy.models import CandleData, IndicatorSnapshot, Regime
from signalforge.strategy.regime import RegimeThresholds, classify_regime
from signalforge.strategy.snapshot import MIN_CANDLES, compute_snapshot


# ── Helpers ──────────────────────────────────────────────────────────────


def _make_candles(n: int, step: float = 0.1, volume: float = 1000.0) -> list[CandleData]:
    """*n* steadily rising candles starting at 100."""
    candles = []
    for i in range(n):
        o = 100 + step * i
        c = o + step * 0.8
        candles.append(
            CandleData(
                timestamp=i * 900_000,
                open=o,
                high=c + 0.45,
                low=o - 0.45,
                close=c,
                volume=volume,
            )
        )
    return candles


def _ind(**overrides) -> IndicatorSnapshot:
    """A neutral snapshot: mid-range everything, 1 % volatility."""
    defaults = dict(
        close=100.0, ema9=100.0, ema21=100.0, ema50=100.0, ema200=100.0,
        rsi=50.0, rsi_prev=50.0,
        macd=0.0, macd_signal=0.0, macd_histogram=0.0, macd_prev=0.0,
        macd_histogram_prev=0.0,
        bb_upper=102.0, bb_middle=100.0, bb_lower=98.0, bb_width=0.04,
        atr=1.0, adx=22.0, plus_di=20.0, minus_di=20.0,
        stoch_rsi_k=50.0, stoch_rsi_d=50.0, stoch_rsi_k_prev=50.0,
        obv=0.0, obv_prev=0.0, volume_avg=1000.0, volume_ratio=1.0,
    )
    defaults.update(overrides)
    return IndicatorSnapshot(**defaults)


# ── Snapshot ─────────────────────────────────────────────────────────────


class TestComputeSnapshot:
    def test_rejects_short_window(self):
        with pytest.raises(InsufficientDataError) as exc_info:
            compute_snapshot(_make_candles(MIN_CANDLES - 1))
        assert exc_info.value.required == 200
        assert exc_info.value.available == 199

    def test_uptrend_values(self):
        ind = compute_snapshot(_make_candles(250))
        assert ind.close == pytest.approx(_make_candles(250)[-1].close)
        assert ind.ema9 > ind.ema21 > ind.ema50 > ind.ema200
        assert ind.rsi > 50
        assert ind.plus_di > ind.minus_di
        assert ind.macd > 0

    def test_every_field_is_finite(self):
        ind = compute_snapshot(_make_candles(MIN_CANDLES))
        for f in dataclasses.fields(ind):
            assert math.isfinite(getattr(ind, f.name)), f.name

    def test_constant_volume_ratio_is_one(self):
        ind = compute_snapshot(_make_candles(220))
        assert ind.volume_ratio == pytest.approx(1.0)
        assert ind.volume_avg == pytest.approx(1000.0)

    def test_volume_spike_ratio(self):
        candles = _make_candles(220)
        last = candles[-1]
        candles[-1] = dataclasses.replace(last, volume=3000.0)
        ind = compute_snapshot(candles)
        # 20-candle average includes the spike: (19 × 1000 + 3000) / 20
        assert ind.volume_ratio == pytest.approx(3000 / 1100)

    def test_deterministic(self):
        candles = _make_candles(230)
        assert compute_snapshot(candles) == compute_snapshot(list(candles))

    def test_volatility_pct(self):
        assert _ind(atr=2.5, close=100.0).volatility_pct == pytest.approx(2.5)


# ── Regime ───────────────────────────────────────────────────────────────


class TestClassifyRegime:
    def test_neutral_default(self):
        assert classify_regime(_ind()) == Regime("NEUTRAL")

    def test_trending_up(self):
        regime = classify_regime(_ind(adx=30, close=105, ema50=102, ema200=100))
        assert regime == Regime("TRENDING", "UP")
        assert str(regime) == "TRENDING/UP"

    def test_trending_down(self):
        regime = classify_regime(_ind(adx=30, close=95, ema50=98, ema200=100))
        assert regime == Regime("TRENDING", "DOWN")

    def test_strong_adx_without_alignment_is_not_trending(self):
        regime = classify_regime(_ind(adx=30, close=105, ema50=98, ema200=100))
        assert regime.kind == "NEUTRAL"

    def test_high_volatility_blocks_trend(self):
        regime = classify_regime(_ind(adx=30, close=105, ema50=102, ema200=100, atr=4.0))
        assert regime == Regime("HIGH_VOLATILITY")

    def test_wide_bands_are_high_volatility(self):
        assert classify_regime(_ind(bb_width=0.07)).kind == "HIGH_VOLATILITY"

    def test_ranging(self):
        assert classify_regime(_ind(adx=15)) == Regime("RANGING")

    def test_breakout_up(self):
        regime = classify_regime(
            _ind(bb_width=0.055, volume_ratio=2.0, close=103.0, bb_upper=102.0)
        )
        assert regime == Regime("BREAKOUT", "UP")

    def test_breakout_down(self):
        regime = classify_regime(
            _ind(bb_width=0.055, volume_ratio=2.0, close=97.0, bb_lower=98.0)
        )
        assert regime == Regime("BREAKOUT", "DOWN")

    def test_breakout_needs_volume(self):
        regime = classify_regime(
            _ind(bb_width=0.055, volume_ratio=1.2, close=103.0, bb_upper=102.0)
        )
        assert regime.kind == "NEUTRAL"

    def test_ranging_checked_before_breakout(self):
        regime = classify_regime(
            _ind(adx=15, bb_width=0.055, volume_ratio=2.0, close=103.0, bb_upper=102.0)
        )
        assert regime.kind == "RANGING"

    def test_custom_thresholds(self):
        strict = RegimeThresholds(ranging_adx=25.0)
        assert classify_regime(_ind(adx=22), strict).kind == "RANGING"
