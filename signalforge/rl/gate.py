"""Decision gate — puts the learned agent between the rule pipeline and a
published signal.

Provides:
- ``DecisionGate``: per-symbol pending decisions, review / observe / resolve / discard.
- ``DecisionJournal``: JSONL record of decisions and outcomes.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

import numpy as np

from signalforge.rl.agent import Action, DecisionAgentProtocol, Experience
from signalforge.rl.features import DecisionState
from signalforge.rl.rewards import (
    RewardConfig,
    TradeOutcomeForReward,
    calculate_reward,
    shaping_reward,
)
from signalforge.strategy.models import CandidateSignal, LONG, SHORT

logger = logging.getLogger("signalforge.rl.gate")

StateLike = Union[DecisionState, np.ndarray]


def _as_array(state: StateLike) -> np.ndarray:
    if isinstance(state, DecisionState):
        return state.to_array()
    return np.asarray(state, dtype=np.float32)


@dataclass(frozen=True)
class GateDecision:
    """What to do with a candidate.  ``direction`` is ``None`` on HOLD."""

    action: Action
    direction: Optional[str]
    size_factor: float
    overridden: bool = False

    @property
    def publish(self) -> bool:
        return self.action != Action.HOLD


@dataclass
class PendingDecision:
    """An open position the agent is waiting to be rewarded for."""

    state: np.ndarray
    action: Action
    direction: str


class DecisionJournal:
    """Records gate decisions and outcomes for later analysis.

    Writes JSONL format to ``data/decision_journal.jsonl``.
    """

    def __init__(self, log_path: str = "data/decision_journal.jsonl"):
        self._path = Path(log_path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def _append(self, record: dict) -> None:
        with open(self._path, "a") as f:
            f.write(json.dumps(record) + "\n")

    def log(
        self,
        symbol: str,
        rule_direction: str,
        entry_price: float,
        action: Action,
        size_factor: float,
    ) -> None:
        """Append a gate decision to the journal."""
        self._append({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "symbol": symbol,
            "rule_direction": rule_direction,
            "entry_price": entry_price,
            "agent_action": action.name,
            "size_factor": round(size_factor, 3),
        })

    def log_outcome(self, symbol: str, outcome: str, pnl_percent: float, reward: float) -> None:
        """Log the realised outcome and the reward it produced."""
        self._append({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "symbol": symbol,
            "outcome": outcome,
            "pnl_percent": round(pnl_percent, 3),
            "reward": round(reward, 4),
            "type": "outcome",
        })


class DecisionGate:
    """Wraps any ``{act, learn}`` agent with per-symbol decision tracking.

    Each symbol has at most one pending decision; decisions for different
    symbols never share state.  With ``agent=None`` every candidate is
    confirmed in its rule-based direction and nothing is learned.

    Args:
        agent: Decision agent, or ``None`` for rule-only operation.
        override_size_factor: Position size multiplier when the agent flips
            the rule-based direction.
        reward_config: Reward shaping parameters.
        journal: Optional ``DecisionJournal``.
    """

    def __init__(
        self,
        agent: Optional[DecisionAgentProtocol] = None,
        override_size_factor: float = 0.5,
        reward_config: Optional[RewardConfig] = None,
        journal: Optional[DecisionJournal] = None,
    ) -> None:
        self.agent = agent
        self.override_size_factor = override_size_factor
        self.reward_config = reward_config or RewardConfig()
        self.journal = journal
        self._pending: dict[str, PendingDecision] = {}

    def pending(self, symbol: str) -> Optional[PendingDecision]:
        return self._pending.get(symbol)

    def review(
        self, symbol: str, candidate: CandidateSignal, state: StateLike
    ) -> GateDecision:
        """Let the agent confirm, flip or drop *candidate*."""
        if self.agent is None:
            return GateDecision(
                action=Action.CONFIRM_LONG if candidate.direction == LONG else Action.CONFIRM_SHORT,
                direction=candidate.direction,
                size_factor=1.0,
            )

        if symbol in self._pending:
            logger.warning("%s: unresolved decision replaced by a new candidate", symbol)
            self.discard(symbol)

        arr = _as_array(state)
        action = Action(self.agent.act(arr))

        if action == Action.HOLD:
            # Discarded candidates close their episode immediately
            self.agent.learn(
                Experience(arr, int(action), self.reward_config.hold_reward, arr, True)
            )
            decision = GateDecision(action=action, direction=None, size_factor=0.0)
            logger.info("%s: agent HOLD on %s candidate", symbol, candidate.direction)
        else:
            direction = LONG if action == Action.CONFIRM_LONG else SHORT
            overridden = direction != candidate.direction
            size_factor = self.override_size_factor if overridden else 1.0
            self._pending[symbol] = PendingDecision(arr, action, direction)
            decision = GateDecision(
                action=action,
                direction=direction,
                size_factor=size_factor,
                overridden=overridden,
            )
            if overridden:
                logger.info(
                    "%s: agent override %s → %s (size ×%.2f)",
                    symbol, candidate.direction, direction, size_factor,
                )
            else:
                logger.info("%s: agent confirmed %s", symbol, direction)

        if self.journal is not None:
            self.journal.log(
                symbol, candidate.direction, candidate.entry_price, action, decision.size_factor
            )
        return decision

    def observe(
        self, symbol: str, state: StateLike, unrealized_pnl_percent: float
    ) -> Optional[float]:
        """Record a non-terminal shaping step for an open position."""
        pending = self._pending.get(symbol)
        if pending is None or self.agent is None:
            return None

        arr = _as_array(state)
        reward = shaping_reward(unrealized_pnl_percent, self.reward_config)
        self.agent.learn(Experience(pending.state, int(pending.action), reward, arr, False))
        pending.state = arr
        return reward

    def discard(self, symbol: str) -> bool:
        """Close *symbol*'s pending decision without a trade outcome.

        Used when the decided signal never became a tracked position.  The
        episode ends with the neutral HOLD reward.  Returns whether a
        decision was pending.
        """
        pending = self._pending.pop(symbol, None)
        if pending is None:
            return False
        if self.agent is not None:
            self.agent.learn(
                Experience(
                    pending.state,
                    int(pending.action),
                    self.reward_config.hold_reward,
                    pending.state,
                    True,
                )
            )
        return True

    def resolve(
        self,
        symbol: str,
        outcome: TradeOutcomeForReward,
        next_state: Optional[StateLike] = None,
    ) -> Optional[float]:
        """Record the terminal reward for *symbol* and clear its slot."""
        pending = self._pending.pop(symbol, None)
        if pending is None or self.agent is None:
            return None

        reward = calculate_reward(outcome, self.reward_config)
        arr = _as_array(next_state) if next_state is not None else pending.state
        self.agent.learn(Experience(pending.state, int(pending.action), reward, arr, True))

        logger.info(
            "%s: outcome %s (%.2f%%) → reward %.3f",
            symbol, outcome.exit_reason, outcome.pnl_percent, reward,
        )
        if self.journal is not None:
            self.journal.log_outcome(symbol, outcome.exit_reason, outcome.pnl_percent, reward)
        return reward
