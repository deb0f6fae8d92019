"""Reward shaping for the decision agent.

Terminal reward (position closed):
1. Realised PnL percent, scaled
2. Target-hit bonus / stop-hit penalty
3. Quick-exit penalty for very short holds

Non-terminal reward (position still open): small, clipped share of the
unrealised PnL.  A HOLD decision is terminal with a neutral reward.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np


# ── Trade outcome ─────────────────────────────────────────────────────────


@dataclass
class TradeOutcomeForReward:
    """Minimal trade result for reward computation."""

    pnl_percent: float = 0.0
    hold_minutes: float = 0.0
    exit_reason: str = ""  # "TP_HIT" or "SL_HIT"


# ── Reward config ────────────────────────────────────────────────────────


@dataclass
class RewardConfig:
    """Tunable reward parameters."""

    # PnL percent per unit of reward (3 % at scale 2.0 → 1.5)
    pnl_scale: float = 2.0

    tp_bonus: float = 0.5
    sl_penalty: float = -0.3

    # Holds shorter than this many minutes are penalised
    quick_hold_minutes: float = 30.0
    quick_hold_penalty: float = -0.2

    # Shaping while a position is open
    shaping_scale: float = 0.02
    shaping_cap: float = 0.1

    # Reward for discarding a candidate (HOLD)
    hold_reward: float = 0.0

    # Reward clipping
    reward_min: float = -2.0
    reward_max: float = 2.0


# ── Reward functions ─────────────────────────────────────────────────────


def calculate_reward(
    outcome: TradeOutcomeForReward,
    config: Optional[RewardConfig] = None,
) -> float:
    """Terminal reward for a closed position.

    Returns:
        Scalar reward clipped to [config.reward_min, config.reward_max].
    """
    if config is None:
        config = RewardConfig()

    reward = outcome.pnl_percent / config.pnl_scale

    if outcome.exit_reason == "TP_HIT":
        reward += config.tp_bonus
    elif outcome.exit_reason == "SL_HIT":
        reward += config.sl_penalty

    if outcome.hold_minutes < config.quick_hold_minutes:
        reward += config.quick_hold_penalty

    return float(np.clip(reward, config.reward_min, config.reward_max))


def shaping_reward(
    unrealized_pnl_percent: float,
    config: Optional[RewardConfig] = None,
) -> float:
    """Small intermediate reward while a position remains open."""
    if config is None:
        config = RewardConfig()
    reward = unrealized_pnl_percent * config.shaping_scale
    return float(np.clip(reward, -config.shaping_cap, config.shaping_cap))
