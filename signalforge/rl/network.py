"""Neural network architecture for the decision agent.

Q-value network: 20 → 128 → 128 → 64 → 3 with LayerNorm + LeakyReLU,
one output per action (HOLD, CONFIRM_LONG, CONFIRM_SHORT).
"""

from __future__ import annotations

from typing import Any

import torch
import torch.nn as nn

from signalforge.rl.features import STATE_DIM


N_ACTIONS = 3


class QNetwork(nn.Module):
    """State → action-value head.  ~28K parameters."""

    def __init__(self, state_dim: int = STATE_DIM, n_actions: int = N_ACTIONS) -> None:
        super().__init__()
        self.net = nn.Sequential(
            nn.Linear(state_dim, 128),
            nn.LayerNorm(128),
            nn.LeakyReLU(0.01),

            nn.Linear(128, 128),
            nn.LayerNorm(128),
            nn.LeakyReLU(0.01),

            nn.Linear(128, 64),
            nn.LayerNorm(64),
            nn.LeakyReLU(0.01),

            nn.Linear(64, n_actions),
        )

    def forward(self, observations: torch.Tensor) -> torch.Tensor:
        return self.net(observations)


# ── DQN hyperparameters ──────────────────────────────────────────────────

DQN_CONFIG: dict[str, Any] = {
    "learning_rate": 1e-3,
    "gamma": 0.95,
    "epsilon_start": 1.0,
    "epsilon_min": 0.01,
    "epsilon_decay": 0.995,
    "buffer_size": 2000,
    "batch_size": 32,
    "seed": 42,
}


def count_parameters(model: nn.Module) -> int:
    """Count total trainable parameters."""
    return sum(p.numel() for p in model.parameters() if p.requires_grad)
