from __future__ import annotations

from collections import deque
from typing import Deque, List

import numpy as np

from fleet_maintenance_ml.preprocessing.schema import Experience


class ReplayBuffer:
    """Fixed-capacity FIFO of experiences; the oldest entry is evicted first."""

    def __init__(self, capacity: int = 10_000) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = int(capacity)
        self._buffer: Deque[Experience] = deque(maxlen=self.capacity)

    def push(self, experience: Experience) -> None:
        self._buffer.append(experience)

    def sample(self, batch_size: int, rng: np.random.Generator) -> List[Experience]:
        """Uniform sample with replacement."""
        if not self._buffer:
            raise ValueError("cannot sample from an empty buffer")
        items = list(self._buffer)
        idx = rng.integers(0, len(items), size=batch_size)
        return [items[int(i)] for i in idx]

    def clear(self) -> None:
        self._buffer.clear()

    def oldest(self) -> Experience:
        return self._buffer[0]

    def __len__(self) -> int:
        return len(self._buffer)
