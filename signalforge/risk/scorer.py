"""Signal scorer and risk filter.

Adds structural bonuses to the winning strategy score, then applies the
minimum score and minimum risk:reward thresholds.  A failed threshold is
not an error: the result simply carries no candidate and says why.
"""

from dataclasses import dataclass, field
from typing import Mapping, Optional

from signalforge.risk.sl_tp import RiskLevels
from signalforge.strategy.base import merge_weights
from signalforge.strategy.models import CandidateSignal, LONG, Regime, StrategySignal
from signalforge.structure.models import StructureReport


STRUCTURE_BONUSES: dict[str, float] = {
    "regime": 10.0,            # TRENDING in the trade's direction
    "order_block": 15.0,       # nearest supporting block strength > 50
    "liquidity": 10.0,         # nearest liquidity zone strength > 50
    "gap": 10.0,               # nearest active gap strength > 50
    "fibonacci_spot_on": 10.0,
    "fibonacci_near": 5.0,
    "divergence": 10.0,        # divergence agreeing with the trade
}

STRONG_STRUCTURE = 50.0


@dataclass(frozen=True)
class ScoreResult:
    """Outcome of the filter.  ``candidate`` is ``None`` when rejected."""

    score: float
    reasons: list[str] = field(default_factory=list)
    candidate: Optional[CandidateSignal] = None
    rejection: str = ""

    @property
    def accepted(self) -> bool:
        return self.candidate is not None


class SignalScorer:
    """Applies structure bonuses and the score / R:R thresholds.

    Args:
        min_score: Minimum combined score (profile default 60-75).
        min_risk_reward: Minimum target % ÷ stop % (profile default 1.3-1.5).
        bonuses: Overrides for ``STRUCTURE_BONUSES`` entries.
    """

    def __init__(
        self,
        min_score: float = 60.0,
        min_risk_reward: float = 1.5,
        bonuses: Optional[Mapping[str, float]] = None,
    ) -> None:
        self.min_score = min_score
        self.min_risk_reward = min_risk_reward
        self.bonuses = merge_weights(STRUCTURE_BONUSES, bonuses)

    def structure_bonus(
        self, direction: str, regime: Regime, structure: StructureReport
    ) -> tuple[float, list[str]]:
        """Sum of the bonuses that apply, with one reason per bonus."""
        b = self.bonuses
        total = 0.0
        reasons: list[str] = []

        favorable = "UP" if direction == LONG else "DOWN"
        if regime.kind == "TRENDING" and regime.direction == favorable:
            total += b["regime"]
            reasons.append(f"Favorable regime ({regime.kind})")

        block = structure.order_blocks.nearest_of("bullish" if direction == LONG else "bearish")
        if block is not None and block.strength > STRONG_STRUCTURE:
            total += b["order_block"]
            reasons.append(f"Strong order block ({block.strength:.0f})")

        zone = structure.liquidity.nearest
        if zone is not None and zone.strength > STRONG_STRUCTURE:
            total += b["liquidity"]
            reasons.append("Liquidity zone detected")

        gap = structure.gaps.nearest
        if gap is not None and gap.strength > STRONG_STRUCTURE:
            total += b["gap"]
            reasons.append(f"Fair value gap ({gap.size_percent:.1f}%)")

        fib = structure.fibonacci
        if fib is not None and fib.proximity == "SPOT_ON":
            total += b["fibonacci_spot_on"]
            reasons.append(f"At Fibonacci {fib.ratio}")
        elif fib is not None and fib.proximity == "NEAR":
            total += b["fibonacci_near"]
            reasons.append(f"Near Fibonacci {fib.ratio}")

        wanted = "bullish" if direction == LONG else "bearish"
        if any(d.direction == wanted for d in structure.divergences):
            total += b["divergence"]
            reasons.append(f"{wanted.capitalize()} RSI divergence")

        return total, reasons

    def evaluate(
        self,
        direction: str,
        signal: StrategySignal,
        regime: Regime,
        structure: StructureReport,
        entry_price: float,
        atr: float,
        risk: RiskLevels,
    ) -> ScoreResult:
        """Score one directional setup and accept or reject it."""
        bonus, bonus_reasons = self.structure_bonus(direction, regime, structure)
        score = signal.score_for(direction) + bonus
        reasons = signal.reasons_for(direction) + bonus_reasons

        if score < self.min_score:
            return ScoreResult(
                score=score,
                reasons=reasons,
                rejection=f"Score too low: {score:.0f} < {self.min_score:.0f}",
            )
        if risk.risk_reward < self.min_risk_reward:
            return ScoreResult(
                score=score,
                reasons=reasons,
                rejection=(
                    f"Risk:Reward too low: 1:{risk.risk_reward:.2f} "
                    f"< 1:{self.min_risk_reward:.2f}"
                ),
            )

        candidate = CandidateSignal(
            direction=direction,
            strategy_name=signal.strategy_for(direction),
            regime=regime,
            entry_price=entry_price,
            stop_loss=risk.sl,
            take_profit=risk.tp,
            risk_reward=risk.risk_reward,
            score=score,
            atr=atr,
            reasons=reasons,
            tp_source=risk.tp_source,
        )
        return ScoreResult(score=score, reasons=reasons, candidate=candidate)
