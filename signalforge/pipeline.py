"""Signal pipeline — one evaluation of one instrument.

indicators → regime → strategy → structure → stop/target → scorer → gate

Every step except the gate is a pure function of the candle window.  The
result is returned as a plain ``EvaluationResult``; nothing is persisted
or sent from here.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from signalforge.errors import InsufficientDataError
from signalforge.models.signal import Signal
from signalforge.risk.scorer import SignalScorer
from signalforge.risk.sl_tp import calculate_risk_levels
from signalforge.rl.features import DecisionState, build_decision_state
from signalforge.rl.gate import DecisionGate, GateDecision
from signalforge.strategy.base import StrategyProtocol
from signalforge.strategy.models import (
    CandidateSignal,
    CandleData,
    IndicatorSnapshot,
    Regime,
)
from signalforge.strategy.regime import classify_regime
from signalforge.strategy.registry import select_signal
from signalforge.strategy.snapshot import compute_snapshot
from signalforge.structure.analyzer import analyze_structure
from signalforge.structure.models import StructureReport

logger = logging.getLogger("signalforge")


@dataclass(frozen=True)
class MarketView:
    """Indicators, regime and structure for one candle window."""

    snapshot: IndicatorSnapshot
    regime: Regime
    structure: StructureReport

    def decision_state(self, score: float = 0.0, risk_reward: float = 0.0) -> DecisionState:
        return build_decision_state(
            self.snapshot, self.regime, self.structure, score, risk_reward
        )


@dataclass
class EvaluationResult:
    """What happened to one instrument this cycle.

    ``action`` is one of ``"signal"``, ``"skipped"`` (not enough data),
    ``"rejected"`` (no bias or a threshold failed) or ``"held"`` (the
    decision agent dropped the candidate).
    """

    action: str
    reason: str
    symbol: str
    regime: Optional[Regime] = None
    candidate: Optional[CandidateSignal] = None
    signal: Optional[Signal] = None
    gate: Optional[GateDecision] = None
    insight: dict = field(default_factory=dict)


class SignalPipeline:
    """Runs the full rule pipeline and the decision gate for one symbol.

    Args:
        scorer: Score / risk:reward filter.
        gate: Decision gate; ``None`` publishes every accepted candidate.
        strategies: Optional pre-configured strategy instances by name.
        position_size: Nominal size (USDT) of a confirmed signal.
        timeframe: Candle interval recorded on each signal.
    """

    def __init__(
        self,
        scorer: Optional[SignalScorer] = None,
        gate: Optional[DecisionGate] = None,
        strategies: Optional[dict[str, StrategyProtocol]] = None,
        position_size: float = 100.0,
        timeframe: str = "15m",
    ) -> None:
        self.scorer = scorer or SignalScorer()
        self.gate = gate
        self.strategies = strategies
        self.position_size = position_size
        self.timeframe = timeframe

    def market_view(
        self,
        candles: list[CandleData],
        snapshot: Optional[IndicatorSnapshot] = None,
    ) -> MarketView:
        """Indicators, regime and structure for *candles*.

        Raises ``InsufficientDataError`` when *snapshot* is not supplied
        and the window is shorter than 200 candles.
        """
        ind = snapshot if snapshot is not None else compute_snapshot(candles)
        regime = classify_regime(ind)
        structure = analyze_structure(candles, ind.close)
        return MarketView(ind, regime, structure)

    def evaluate(
        self,
        symbol: str,
        candles: list[CandleData],
        snapshot: Optional[IndicatorSnapshot] = None,
    ) -> EvaluationResult:
        """Evaluate *symbol* on *candles*.

        *snapshot* replaces the computed indicators when given (the candle
        window is still used for structure).
        """
        try:
            ind = snapshot if snapshot is not None else compute_snapshot(candles)
        except InsufficientDataError as exc:
            logger.info("%s: skipped — %s", symbol, exc)
            return EvaluationResult(action="skipped", reason=str(exc), symbol=symbol)

        regime = classify_regime(ind)
        strategy_signal = select_signal(regime, ind, self.strategies)
        direction = strategy_signal.direction

        insight = {
            "regime": str(regime),
            "strategy": strategy_signal.strategy,
            "long_score": strategy_signal.long_score,
            "short_score": strategy_signal.short_score,
            "close": ind.close,
            "adx": round(ind.adx, 2),
            "rsi": round(ind.rsi, 2),
        }
        logger.debug(
            "%s: regime %s, %s long=%.0f short=%.0f",
            symbol, regime, strategy_signal.strategy,
            strategy_signal.long_score, strategy_signal.short_score,
        )

        if direction is None:
            return EvaluationResult(
                action="rejected",
                reason="No directional bias",
                symbol=symbol,
                regime=regime,
                insight=insight,
            )

        view = MarketView(ind, regime, analyze_structure(candles, ind.close))
        risk = calculate_risk_levels(direction, ind.close, ind.atr, view.structure)
        scored = self.scorer.evaluate(
            direction, strategy_signal, regime, view.structure, ind.close, ind.atr, risk
        )
        insight.update(score=scored.score, risk_reward=round(risk.risk_reward, 2))

        if scored.candidate is None:
            logger.info("%s: %s %s rejected — %s", symbol, regime, direction, scored.rejection)
            return EvaluationResult(
                action="rejected",
                reason=scored.rejection,
                symbol=symbol,
                regime=regime,
                insight=insight,
            )

        candidate = scored.candidate
        decision: Optional[GateDecision] = None
        size_factor = 1.0

        if self.gate is not None:
            state = view.decision_state(candidate.score, candidate.risk_reward)
            decision = self.gate.review(symbol, candidate, state)
            if not decision.publish:
                return EvaluationResult(
                    action="held",
                    reason="Decision agent HOLD",
                    symbol=symbol,
                    regime=regime,
                    candidate=candidate,
                    gate=decision,
                    insight=insight,
                )
            size_factor = decision.size_factor
            if decision.overridden:
                candidate = self._flip(candidate, decision.direction, view)

        signal = Signal(
            timestamp=datetime.now(timezone.utc).isoformat(),
            symbol=symbol,
            direction=candidate.direction,
            regime=str(regime),
            strategy=candidate.strategy_name,
            entry=candidate.entry_price,
            stop=candidate.stop_loss,
            target=candidate.take_profit,
            size=self.position_size * size_factor,
            score=candidate.score,
            atr=candidate.atr,
            timeframe=self.timeframe,
            reasons=list(candidate.reasons),
        )
        logger.info(
            "%s: %s %s via %s (score %.0f, R:R %.2f, TP from %s)",
            symbol, signal.direction, regime, signal.strategy,
            signal.score, candidate.risk_reward, candidate.tp_source,
        )
        return EvaluationResult(
            action="signal",
            reason=f"{candidate.direction} {candidate.strategy_name}",
            symbol=symbol,
            regime=regime,
            candidate=candidate,
            signal=signal,
            gate=decision,
            insight=insight,
        )

    @staticmethod
    def _flip(candidate: CandidateSignal, direction: str, view: MarketView) -> CandidateSignal:
        """Re-derive stop and target for the agent's direction."""
        risk = calculate_risk_levels(
            direction, candidate.entry_price, candidate.atr, view.structure
        )
        return dataclasses.replace(
            candidate,
            direction=direction,
            stop_loss=risk.sl,
            take_profit=risk.tp,
            risk_reward=risk.risk_reward,
            tp_source=risk.tp_source,
            reasons=[*candidate.reasons, f"Agent override → {direction}"],
        )
