"""
Deep Q-Network agent on top of FeedforwardNetwork.

The online network picks actions and is trained; the target network
supplies TD targets and is hard-synced from the online network every
`target_update_every` training steps.

replay() trains one sampled experience at a time on the live weights,
so later samples in a batch see the updates made by earlier ones.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from fleet_maintenance_ml.network.errors import InvalidInputShape, ModelFormatError
from fleet_maintenance_ml.network.feedforward import (
    FeedforwardNetwork,
    decode_record,
    encode_record,
)
from fleet_maintenance_ml.preprocessing.schema import Experience, TrainingData
from fleet_maintenance_ml.rl.replay import ReplayBuffer
from fleet_maintenance_ml.storage.model_store import ModelStore

logger = logging.getLogger(__name__)


class DQNAgent:
    def __init__(
        self,
        state_size: int,
        action_size: int,
        hidden_sizes: Sequence[int] = (24, 16),
        learning_rate: float = 0.05,
        gamma: float = 0.95,
        epsilon: float = 1.0,
        epsilon_min: float = 0.01,
        epsilon_decay: float = 0.995,
        batch_size: int = 32,
        memory_size: int = 10_000,
        target_update_every: int = 100,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ) -> None:
        if state_size < 1 or action_size < 1:
            raise ValueError("state_size and action_size must be >= 1")
        if not (0.0 <= epsilon_min <= epsilon <= 1.0):
            raise ValueError("need 0 <= epsilon_min <= epsilon <= 1")
        if batch_size < 1 or target_update_every < 1:
            raise ValueError("batch_size and target_update_every must be >= 1")

        self.state_size = int(state_size)
        self.action_size = int(action_size)
        self.gamma = float(gamma)
        self.epsilon_start = float(epsilon)
        self.epsilon = float(epsilon)
        self.epsilon_min = float(epsilon_min)
        self.epsilon_decay = float(epsilon_decay)
        self.batch_size = int(batch_size)
        self.target_update_every = int(target_update_every)
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        sizes = [self.state_size, *[int(h) for h in hidden_sizes], self.action_size]
        self.online = FeedforwardNetwork(sizes, learning_rate=learning_rate, rng=self.rng)
        self.target = FeedforwardNetwork(sizes, learning_rate=learning_rate, rng=self.rng)
        self.update_target_network()

        self.memory = ReplayBuffer(memory_size)
        self.steps = 0

    def _check_state(self, state: Sequence[float]) -> Tuple[float, ...]:
        s = tuple(float(v) for v in state)
        if len(s) != self.state_size:
            raise InvalidInputShape(f"expected state of length {self.state_size}, got {len(s)}")
        return s

    def q_values(self, state: Sequence[float]) -> np.ndarray:
        return self.online.forward(self._check_state(state))

    def select_action(self, state: Sequence[float]) -> int:
        """Epsilon-greedy; greedy ties go to the lowest index."""
        s = self._check_state(state)
        if self.rng.random() < self.epsilon:
            return int(self.rng.integers(0, self.action_size))
        return int(np.argmax(self.online.forward(s)))

    def remember(
        self,
        state: Sequence[float],
        action: int,
        reward: float,
        next_state: Sequence[float],
        done: bool,
    ) -> None:
        if not (0 <= int(action) < self.action_size):
            raise ValueError(f"action {action} outside [0, {self.action_size})")
        self.memory.push(Experience(
            state=self._check_state(state),
            action=int(action),
            reward=float(reward),
            next_state=self._check_state(next_state),
            done=bool(done),
        ))

    def td_target(self, exp: Experience) -> float:
        if exp.done:
            return exp.reward
        return exp.reward + self.gamma * float(np.max(self.target.forward(exp.next_state)))

    def replay(self) -> Optional[float]:
        """
        One training step over a sampled batch.

        Returns the mean per-example error, or None when the buffer holds
        fewer than batch_size experiences.
        """
        if len(self.memory) < self.batch_size:
            return None

        batch = self.memory.sample(self.batch_size, self.rng)
        total = 0.0
        for exp in batch:
            target = self.online.forward(exp.state).copy()
            target[exp.action] = self.td_target(exp)
            total += self.online.train(
                [TrainingData(inputs=exp.state, outputs=tuple(target.tolist()))], epochs=1
            )

        self.epsilon = max(self.epsilon_min, self.epsilon * self.epsilon_decay)
        self.steps += 1
        if self.steps % self.target_update_every == 0:
            self.update_target_network()
            logger.debug("Synced target network at step %d", self.steps)

        return total / len(batch)

    def update_target_network(self) -> None:
        self.target.copy_from(self.online)

    def reset(self) -> None:
        self.online = FeedforwardNetwork(
            self.online.layer_sizes, learning_rate=self.online.learning_rate, rng=self.rng
        )
        self.update_target_network()
        self.memory.clear()
        self.epsilon = self.epsilon_start
        self.steps = 0

    # ---- persistence ----

    def to_record(self) -> Dict[str, Any]:
        record = self.online.to_record()
        record["epsilon"] = self.epsilon
        record["steps"] = self.steps
        return record

    def apply_record(self, record: Dict[str, Any]) -> None:
        eps = record.get("epsilon")
        steps = record.get("steps")
        if isinstance(eps, bool) or not isinstance(eps, (int, float)) or not (0.0 <= eps <= 1.0):
            raise ModelFormatError(f"invalid epsilon: {eps!r}")
        if isinstance(steps, bool) or not isinstance(steps, int) or steps < 0:
            raise ModelFormatError(f"invalid steps: {steps!r}")
        self.online.apply_record(record)
        self.epsilon = float(eps)
        self.steps = steps
        self.update_target_network()

    def save(self, key: str, store: ModelStore) -> None:
        store.set(key, encode_record(self.to_record()))
        logger.info("Saved agent under key %r (epsilon=%.4f, steps=%d)", key, self.epsilon, self.steps)

    def load(self, key: str, store: ModelStore) -> bool:
        raw = store.get(key)
        if raw is None:
            return False
        self.apply_record(decode_record(raw))
        logger.info("Loaded agent from key %r (epsilon=%.4f, steps=%d)", key, self.epsilon, self.steps)
        return True
