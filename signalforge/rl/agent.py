"""DQN decision agent — learns whether to confirm, flip or drop a candidate.

The pipeline only depends on ``DecisionAgentProtocol`` (``act`` +
``learn``); ``DecisionAgent`` is the DQN implementation.  Experiences are
stored in a Stable Baselines 3 ``ReplayBuffer`` (bounded, oldest entries
overwritten first, uniform sampling).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

import numpy as np
import torch
import torch.nn as nn
from gymnasium import spaces
from stable_baselines3.common.buffers import ReplayBuffer

from signalforge.rl.features import STATE_DIM
from signalforge.rl.network import DQN_CONFIG, N_ACTIONS, QNetwork

logger = logging.getLogger("signalforge.rl.agent")


class Action(IntEnum):
    HOLD = 0
    CONFIRM_LONG = 1
    CONFIRM_SHORT = 2


@dataclass
class Experience:
    """One transition.  ``next_state`` defaults to ``state`` when omitted."""

    state: np.ndarray
    action: int
    reward: float
    next_state: Optional[np.ndarray] = None
    terminal: bool = True


@runtime_checkable
class DecisionAgentProtocol(Protocol):
    """Interface the decision gate relies on."""

    def act(self, state: np.ndarray) -> int:
        ...

    def learn(self, experience: Experience) -> Optional[float]:
        ...


class DecisionAgent:
    """Epsilon-greedy DQN over ``QNetwork``.

    Exploration starts at ``epsilon_start`` and is multiplied by
    ``epsilon_decay`` after every training step, never dropping below
    ``epsilon_min``.  A training step runs only once the buffer holds at
    least ``batch_size`` experiences.

    ``seed`` seeds torch and the global numpy RNG (network init and replay
    sampling) as well as the private generator used for exploration.
    """

    def __init__(
        self,
        state_dim: int = STATE_DIM,
        *,
        learning_rate: float = DQN_CONFIG["learning_rate"],
        gamma: float = DQN_CONFIG["gamma"],
        epsilon_start: float = DQN_CONFIG["epsilon_start"],
        epsilon_min: float = DQN_CONFIG["epsilon_min"],
        epsilon_decay: float = DQN_CONFIG["epsilon_decay"],
        buffer_size: int = DQN_CONFIG["buffer_size"],
        batch_size: int = DQN_CONFIG["batch_size"],
        seed: Optional[int] = DQN_CONFIG["seed"],
    ) -> None:
        if seed is not None:
            torch.manual_seed(seed)
            np.random.seed(seed)
        self.state_dim = state_dim
        self.gamma = gamma
        self.epsilon = epsilon_start
        self.epsilon_min = epsilon_min
        self.epsilon_decay = epsilon_decay
        self.batch_size = batch_size
        self.train_steps = 0

        self.q_network = QNetwork(state_dim, N_ACTIONS)
        self.optimizer = torch.optim.Adam(self.q_network.parameters(), lr=learning_rate)
        self.loss_fn = nn.MSELoss()
        self._rng = np.random.default_rng(seed)

        self.memory = ReplayBuffer(
            buffer_size,
            spaces.Box(low=-np.inf, high=np.inf, shape=(state_dim,), dtype=np.float32),
            spaces.Discrete(N_ACTIONS),
            device="cpu",
        )

    # ── Policy ───────────────────────────────────────────────────────────

    def _check_state(self, state: np.ndarray) -> np.ndarray:
        arr = np.asarray(state, dtype=np.float32)
        if arr.shape != (self.state_dim,):
            raise ValueError(f"Expected state shape ({self.state_dim},), got {arr.shape}")
        return arr

    def q_values(self, state: np.ndarray) -> np.ndarray:
        arr = self._check_state(state)
        with torch.no_grad():
            q = self.q_network(torch.as_tensor(arr).unsqueeze(0))
        return q.numpy()[0]

    def greedy_action(self, state: np.ndarray) -> int:
        return int(np.argmax(self.q_values(state)))

    def act(self, state: np.ndarray) -> int:
        """Epsilon-greedy action for *state*."""
        self._check_state(state)
        if self._rng.random() <= self.epsilon:
            return int(self._rng.integers(N_ACTIONS))
        return self.greedy_action(state)

    def action_probabilities(self, state: np.ndarray) -> np.ndarray:
        """Probability of each action under the current epsilon-greedy policy."""
        probs = np.full(N_ACTIONS, self.epsilon / N_ACTIONS, dtype=np.float64)
        probs[self.greedy_action(state)] += 1.0 - self.epsilon
        return probs

    # ── Learning ─────────────────────────────────────────────────────────

    def remember(self, experience: Experience) -> None:
        state = self._check_state(experience.state)
        next_state = (
            self._check_state(experience.next_state)
            if experience.next_state is not None
            else state
        )
        self.memory.add(
            state.reshape(1, -1),
            next_state.reshape(1, -1),
            np.array([experience.action]),
            np.array([experience.reward], dtype=np.float32),
            np.array([experience.terminal], dtype=np.float32),
            [{}],
        )

    def replay(self) -> Optional[float]:
        """One batched DQN update.  Returns the loss, or ``None`` if the
        buffer is still smaller than a batch."""
        if self.memory.size() < self.batch_size:
            return None

        batch = self.memory.sample(self.batch_size)
        actions = batch.actions.long().view(-1, 1)
        rewards = batch.rewards.view(-1)
        dones = batch.dones.view(-1)

        q_taken = self.q_network(batch.observations).gather(1, actions).squeeze(1)
        with torch.no_grad():
            next_q = self.q_network(batch.next_observations).max(dim=1).values
            target = rewards + self.gamma * (1.0 - dones) * next_q

        loss = self.loss_fn(q_taken, target)
        self.optimizer.zero_grad()
        loss.backward()
        self.optimizer.step()

        self.train_steps += 1
        if self.epsilon > self.epsilon_min:
            self.epsilon = max(self.epsilon_min, self.epsilon * self.epsilon_decay)

        return float(loss.item())

    def learn(self, experience: Experience) -> Optional[float]:
        """Store *experience* and run one training step."""
        self.remember(experience)
        loss = self.replay()
        if loss is not None:
            logger.debug(
                "Train step %d: loss=%.4f epsilon=%.3f buffer=%d",
                self.train_steps, loss, self.epsilon, self.memory.size(),
            )
        return loss

    # ── Persistence ──────────────────────────────────────────────────────

    def save(self, path: str) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        torch.save(
            {
                "q_network": self.q_network.state_dict(),
                "optimizer": self.optimizer.state_dict(),
                "epsilon": self.epsilon,
                "train_steps": self.train_steps,
            },
            target,
        )
        logger.info("Decision agent saved to %s (epsilon=%.3f)", path, self.epsilon)

    def load(self, path: str) -> None:
        checkpoint = torch.load(path, map_location="cpu")
        self.q_network.load_state_dict(checkpoint["q_network"])
        self.optimizer.load_state_dict(checkpoint["optimizer"])
        self.epsilon = float(checkpoint["epsilon"])
        self.train_steps = int(checkpoint.get("train_steps", 0))
        logger.info("Decision agent loaded from %s (epsilon=%.3f)", path, self.epsilon)
