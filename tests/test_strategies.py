"""Tests for the strategy generators and the regime → strategy registry."""

import pytest

from signalforge.strategy.base import ScoreTally, StrategyProtocol, merge_weights
from signalforge.strategy.breakout import BreakoutStrategy
from signalforge.strategy.mean_reversion import MeanReversionStrategy
from signalforge.strategy.models import IndicatorSnapshot, Regime, StrategySignal
from signalforge.strategy.momentum import MOMENTUM_WEIGHTS, MomentumStrategy
from signalforge.strategy.registry import (
    STRATEGY_REGISTRY,
    get_strategy,
    select_signal,
)


def _ind(**overrides) -> IndicatorSnapshot:
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


def _bullish_trend() -> IndicatorSnapshot:
    return _ind(
        close=105.0, ema21=103.0, ema50=102.0, ema200=100.0,
        macd=0.5, macd_signal=0.3, rsi=55.0, volume_ratio=1.4,
        adx=30.0, plus_di=28.0, minus_di=15.0, obv=1200.0, obv_prev=1000.0,
    )


def _oversold() -> IndicatorSnapshot:
    return _ind(close=97.5, rsi=25.0, stoch_rsi_k=15.0, stoch_rsi_k_prev=10.0)


# ── Base helpers ─────────────────────────────────────────────────────────


class TestBase:
    def test_merge_weights_overrides(self):
        merged = merge_weights({"a": 1.0, "b": 2.0}, {"b": 5})
        assert merged == {"a": 1.0, "b": 5.0}

    def test_merge_weights_unknown_key(self):
        with pytest.raises(KeyError, match="Unknown condition"):
            merge_weights({"a": 1.0}, {"z": 1.0})

    def test_tally_ignores_zero_points(self):
        tally = ScoreTally("X")
        tally.award("LONG", 0.0, "nothing")
        tally.award("SHORT", 10.0, "something")
        result = tally.result()
        assert result.long_score == 0.0
        assert result.long_reasons == ()
        assert result.short_reasons == ("something",)

    def test_all_strategies_satisfy_protocol(self):
        for cls in STRATEGY_REGISTRY.values():
            assert isinstance(cls(), StrategyProtocol)


class TestStrategySignal:
    def test_direction_tie_is_none(self):
        assert StrategySignal("X", 40, 40).direction is None

    def test_direction_nothing_scored(self):
        assert StrategySignal("X").direction is None

    def test_direction_short(self):
        assert StrategySignal("X", 10, 30).direction == "SHORT"


# ── Momentum ─────────────────────────────────────────────────────────────


class TestMomentum:
    def test_full_bullish_score(self):
        sig = MomentumStrategy().compute(_bullish_trend())
        assert sig.strategy == "Momentum"
        assert sig.long_score == sum(MOMENTUM_WEIGHTS.values())
        assert "Bullish EMA alignment" in sig.long_reasons
        assert "RSI optimal (55.0)" in sig.long_reasons
        assert sig.direction == "LONG"

    def test_short_side_shares_neutral_conditions(self):
        sig = MomentumStrategy().compute(_bullish_trend())
        # RSI 30-60, volume and ADX count for both sides
        assert sig.short_score == 45.0

    def test_bearish(self):
        sig = MomentumStrategy().compute(
            _ind(
                close=95.0, ema21=97.0, ema50=98.0, ema200=100.0,
                macd=-0.5, macd_signal=-0.3, rsi=40.0,
                plus_di=12.0, minus_di=25.0, obv=800.0, obv_prev=1000.0,
            )
        )
        assert sig.direction == "SHORT"
        assert "Bearish EMA alignment" in sig.short_reasons
        assert "OBV falling" in sig.short_reasons

    def test_custom_weights(self):
        sig = MomentumStrategy(weights={"obv": 0}).compute(_bullish_trend())
        assert "OBV rising" not in sig.long_reasons
        assert sig.long_score == 95.0


# ── Mean reversion ───────────────────────────────────────────────────────


class TestMeanReversion:
    def test_oversold_long(self):
        sig = MeanReversionStrategy().compute(_oversold())
        assert sig.long_score == 70.0
        assert sig.short_score == 0.0
        assert sig.long_reasons == (
            "Price at lower BB",
            "RSI oversold (25.0)",
            "Stoch RSI bullish cross",
        )

    def test_overbought_short(self):
        sig = MeanReversionStrategy().compute(
            _ind(close=102.5, rsi=78.0, stoch_rsi_k=85.0, stoch_rsi_k_prev=90.0)
        )
        assert sig.short_score == 70.0
        assert sig.direction == "SHORT"

    def test_stoch_must_turn(self):
        sig = MeanReversionStrategy().compute(
            _ind(stoch_rsi_k=15.0, stoch_rsi_k_prev=18.0)
        )
        assert sig.long_score == 0.0


# ── Breakout ─────────────────────────────────────────────────────────────


class TestBreakout:
    def test_bullish_breakout(self):
        sig = BreakoutStrategy().compute(_ind(close=103.0, volume_ratio=2.0, rsi=65.0))
        assert sig.long_score == 50.0
        assert sig.short_score == 0.0
        assert "Bullish breakout with volume" in sig.long_reasons

    def test_band_break_needs_volume(self):
        sig = BreakoutStrategy().compute(_ind(close=103.0, volume_ratio=1.0, rsi=65.0))
        assert sig.long_score == 20.0

    def test_bearish_breakout(self):
        sig = BreakoutStrategy().compute(_ind(close=96.0, volume_ratio=2.0, rsi=35.0))
        assert sig.short_score == 50.0
        assert sig.direction == "SHORT"


# ── Registry ─────────────────────────────────────────────────────────────


class TestRegistry:
    def test_get_strategy(self):
        assert isinstance(get_strategy("Breakout"), BreakoutStrategy)

    def test_unknown_strategy(self):
        with pytest.raises(KeyError, match="Unknown strategy"):
            get_strategy("Scalper")

    def test_trending_runs_momentum(self):
        sig = select_signal(Regime("TRENDING", "UP"), _bullish_trend())
        assert sig.strategy == "Momentum"

    def test_ranging_runs_mean_reversion(self):
        sig = select_signal(Regime("RANGING"), _oversold())
        assert sig.strategy == "MeanReversion"

    def test_breakout_runs_breakout(self):
        sig = select_signal(Regime("BREAKOUT", "UP"), _ind(close=103.0, volume_ratio=2.0))
        assert sig.strategy == "Breakout"

    def test_neutral_combines_best_sides(self):
        sig = select_signal(Regime("NEUTRAL"), _oversold())
        assert sig.long_score == 70.0
        assert sig.long_strategy == "MeanReversion"
        assert sig.short_score == 20.0
        assert sig.short_strategy == "Breakout"
        assert sig.strategy == "MeanReversion"
        assert sig.direction == "LONG"
        # Reasons come from the winning generator of each side only
        assert sig.long_reasons == MeanReversionStrategy().compute(_oversold()).long_reasons
        assert sig.strategy_for("SHORT") == "Breakout"

    def test_high_volatility_combines(self):
        sig = select_signal(Regime("HIGH_VOLATILITY"), _oversold())
        assert sig.long_strategy == "MeanReversion"

    def test_tie_goes_to_later_generator(self):
        strategies = {"Momentum": MomentumStrategy(weights={"rsi_band": 20.0})}
        sig = select_signal(Regime("NEUTRAL"), _ind(rsi=55.0), strategies)
        # Momentum and Breakout both score 20 long
        assert sig.long_score == 20.0
        assert sig.long_strategy == "Breakout"
        assert sig.short_strategy == "Momentum"
        assert sig.strategy == "Breakout"

    def test_injected_instance_used(self):
        strategies = {"Momentum": MomentumStrategy(weights={"ema_alignment": 0.0})}
        sig = select_signal(Regime("TRENDING", "UP"), _bullish_trend(), strategies)
        assert "Bullish EMA alignment" not in sig.long_reasons
