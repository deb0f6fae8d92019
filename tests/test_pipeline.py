"""End-to-end tests for the signal pipeline.

candles → snapshot → regime → strategy → structure → stop/target → scorer → gate
"""

import pytest

from signalforge.risk.scorer import STRUCTURE_BONUSES, SignalScorer
from signalforge.rl.agent import Action
from signalforge.rl.gate import DecisionGate
from signalforge.pipeline import SignalPipeline
from signalforge.strategy.models import CandleData, IndicatorSnapshot


# ── Fixtures ─────────────────────────────────────────────────────────────


def _trend_candles(n: int = 250) -> list[CandleData]:
    """A steady, gap-free uptrend with a constant true range of 0.98.

    Every candle is bullish with overlapping ranges, so there are no swing
    points, order blocks or gaps; the last candle has 1.4× volume.
    """
    candles = []
    for i in range(n):
        o = 100 + 0.1 * i
        c = o + 0.08
        candles.append(
            CandleData(
                timestamp=1_700_000_000_000 + i * 900_000,
                open=o,
                high=c + 0.45,
                low=o - 0.45,
                close=c,
                volume=1400.0 if i == n - 1 else 1000.0,
            )
        )
    return candles


def _ranging_candles(n: int = 250) -> list[CandleData]:
    """A tight zigzag between closes of 100 and 101 ending in a flush to 98.5.

    Highs and lows alternate by 0.1 so +DM and -DM cancel out and ADX stays
    in single digits; the last candle closes under the lower Bollinger band.
    """
    candles = []
    for i in range(n):
        if i % 2 == 0:
            o, c, h, l = 100.0, 101.0, 101.5, 99.6
        else:
            o, c, h, l = 101.0, 100.0, 101.4, 99.5
        if i == n - 1:
            c, l = 98.5, 98.3
        candles.append(
            CandleData(
                timestamp=1_700_000_000_000 + i * 900_000,
                open=o, high=h, low=l, close=c, volume=1000.0,
            )
        )
    return candles


def _snapshot(close: float, **overrides) -> IndicatorSnapshot:
    """Strong uptrend snapshot (ADX 30, aligned EMAs, MACD above signal)."""
    defaults = dict(
        close=close, ema9=close - 0.4, ema21=close - 1.0, ema50=close - 2.5,
        ema200=close - 10.0,
        rsi=55.0, rsi_prev=54.0,
        macd=0.4, macd_signal=0.3, macd_histogram=0.1, macd_prev=0.38,
        macd_histogram_prev=0.09,
        bb_upper=close + 2.0, bb_middle=close - 0.5, bb_lower=close - 3.0,
        bb_width=0.03, atr=0.98, adx=30.0, plus_di=28.0, minus_di=14.0,
        stoch_rsi_k=60.0, stoch_rsi_d=55.0, stoch_rsi_k_prev=58.0,
        obv=52_000.0, obv_prev=50_000.0, volume_avg=1020.0, volume_ratio=1.4,
    )
    defaults.update(overrides)
    return IndicatorSnapshot(**defaults)


class ScriptedAgent:
    def __init__(self, actions):
        self._actions = list(actions)
        self.learned = []

    def act(self, state):
        return self._actions.pop(0)

    def learn(self, experience):
        self.learned.append(experience)


@pytest.fixture
def candles():
    return _trend_candles()


@pytest.fixture
def snapshot(candles):
    return _snapshot(candles[-1].close)


# ── Scenarios ────────────────────────────────────────────────────────────


class TestTrendingLong:
    def test_emits_momentum_long(self, candles, snapshot):
        result = SignalPipeline().evaluate("BTCUSDT", candles, snapshot)

        assert result.action == "signal"
        assert str(result.regime) == "TRENDING/UP"
        signal = result.signal
        assert signal.symbol == "BTCUSDT"
        assert signal.direction == "LONG"
        assert signal.strategy == "Momentum"
        assert signal.stop < signal.entry < signal.target
        assert signal.entry == pytest.approx(candles[-1].close)
        assert signal.score >= 60
        assert signal.status == "OPEN"
        assert signal.timeframe == "15m"
        assert "Bullish EMA alignment" in signal.reasons
        assert "Favorable regime (TRENDING)" in signal.reasons

    def test_atr_based_levels(self, candles, snapshot):
        result = SignalPipeline().evaluate("BTCUSDT", candles, snapshot)
        candidate = result.candidate
        entry = candidate.entry_price
        # No structure in a clean trend: 1.5 × ATR stop, 3 × ATR target
        assert candidate.tp_source == "atr_fallback"
        assert candidate.stop_loss == pytest.approx(entry - 1.47)
        assert candidate.take_profit == pytest.approx(entry + 2.94)
        assert candidate.risk_reward == pytest.approx(2.0)

    def test_position_size(self, candles, snapshot):
        pipeline = SignalPipeline(position_size=250.0, timeframe="1h")
        signal = pipeline.evaluate("ETHUSDT", candles, snapshot).signal
        assert signal.size == 250.0
        assert signal.timeframe == "1h"

    def test_insight(self, candles, snapshot):
        result = SignalPipeline().evaluate("BTCUSDT", candles, snapshot)
        assert result.insight["regime"] == "TRENDING/UP"
        assert result.insight["strategy"] == "Momentum"
        assert result.insight["long_score"] == 100.0
        assert result.insight["risk_reward"] == 2.0


class TestRejections:
    def test_ranging_without_extremes_has_no_bias(self, candles):
        snap = _snapshot(candles[-1].close, adx=12.0, rsi=50.0, stoch_rsi_k=50.0)
        result = SignalPipeline().evaluate("BTCUSDT", candles, snap)
        assert result.action == "rejected"
        assert result.reason == "No directional bias"
        assert result.signal is None
        assert str(result.regime) == "RANGING"

    def test_weak_trend_score_too_low(self, candles):
        snap = _snapshot(
            candles[-1].close,
            macd=-0.1, macd_signal=0.0, rsi=75.0, volume_ratio=1.0, obv=50_000.0,
        )
        result = SignalPipeline().evaluate("BTCUSDT", candles, snap)
        assert result.action == "rejected"
        assert result.reason.startswith("Score too low")

    def test_strict_risk_reward(self, candles, snapshot):
        pipeline = SignalPipeline(scorer=SignalScorer(min_risk_reward=2.5))
        result = pipeline.evaluate("BTCUSDT", candles, snapshot)
        assert result.action == "rejected"
        assert result.reason.startswith("Risk:Reward too low")

    def test_insufficient_data_skips(self):
        result = SignalPipeline().evaluate("BTCUSDT", _trend_candles(150))
        assert result.action == "skipped"
        assert "200" in result.reason

    def test_accepted_signals_meet_thresholds(self, candles):
        pipeline = SignalPipeline()
        for adx, rsi, vol in [(30, 55, 1.4), (30, 65, 1.0), (18, 50, 1.0), (26, 45, 2.0)]:
            snap = _snapshot(candles[-1].close, adx=float(adx), rsi=float(rsi), volume_ratio=vol)
            result = pipeline.evaluate("BTCUSDT", candles, snap)
            if result.action == "signal":
                assert result.candidate.score >= 60
                assert result.candidate.risk_reward >= 1.5


class TestRangingMarket:
    def test_regime_and_mean_reversion_on_raw_candles(self):
        result = SignalPipeline().evaluate("BTCUSDT", _ranging_candles())
        assert str(result.regime) == "RANGING"
        assert result.insight["adx"] < 20
        assert result.insight["strategy"] == "MeanReversion"
        # Lower band touch only: RSI ~44, Stoch RSI K falling
        assert result.insight["long_score"] == 25.0
        assert result.insight["short_score"] == 0.0

    def test_lone_band_touch_scores_too_low(self):
        scorer = SignalScorer(bonuses={name: 0.0 for name in STRUCTURE_BONUSES})
        result = SignalPipeline(scorer=scorer).evaluate("BTCUSDT", _ranging_candles())
        assert result.action == "rejected"
        assert result.reason == "Score too low: 25 < 60"
        assert result.insight["score"] == 25.0
        assert result.signal is None


class TestComputedSnapshot:
    def test_runs_on_raw_candles(self, candles):
        result = SignalPipeline().evaluate("BTCUSDT", candles)
        assert result.action in ("signal", "rejected")
        assert result.regime is not None

    def test_market_view(self, candles):
        view = SignalPipeline().market_view(candles)
        state = view.decision_state()
        assert state.to_array().shape == (20,)
        assert state.score == 0.0


class TestDecisionGate:
    def test_hold_drops_candidate(self, candles, snapshot):
        agent = ScriptedAgent([Action.HOLD])
        pipeline = SignalPipeline(gate=DecisionGate(agent))
        result = pipeline.evaluate("BTCUSDT", candles, snapshot)
        assert result.action == "held"
        assert result.signal is None
        assert result.candidate is not None
        assert len(agent.learned) == 1

    def test_confirm_publishes_full_size(self, candles, snapshot):
        gate = DecisionGate(ScriptedAgent([Action.CONFIRM_LONG]))
        result = SignalPipeline(gate=gate).evaluate("BTCUSDT", candles, snapshot)
        assert result.action == "signal"
        assert result.signal.size == 100.0
        assert gate.pending("BTCUSDT") is not None

    def test_override_flips_direction_and_levels(self, candles, snapshot):
        gate = DecisionGate(ScriptedAgent([Action.CONFIRM_SHORT]), override_size_factor=0.5)
        result = SignalPipeline(gate=gate).evaluate("BTCUSDT", candles, snapshot)

        signal = result.signal
        assert result.action == "signal"
        assert signal.direction == "SHORT"
        assert signal.size == 50.0
        assert signal.target < signal.entry < signal.stop
        assert signal.reasons[-1] == "Agent override → SHORT"
        assert result.gate.overridden
