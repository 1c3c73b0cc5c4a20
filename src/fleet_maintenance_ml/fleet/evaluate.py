from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from fleet_maintenance_ml.preprocessing.schema import Experience


@dataclass(frozen=True)
class RLPerformanceMetrics:
    maintenance_accuracy: float   # 0..95
    average_reward: float
    learning_progress: float      # 0..100
    decision_confidence: float    # 60..100


def average_reward(log: Dict[str, List[Experience]]) -> float:
    rewards = [e.reward for entries in log.values() for e in entries]
    if not rewards:
        return 0.0
    return sum(rewards) / len(rewards)


def rl_performance_metrics(
    log: Dict[str, List[Experience]],
    steps: int,
    epsilon: float,
) -> RLPerformanceMetrics:
    """
    Summary of the maintenance agent's learning state.
    Accuracy and progress grow with training steps and are capped;
    confidence follows exploitation share (1 - epsilon), floored at 60.
    """
    return RLPerformanceMetrics(
        maintenance_accuracy=min(95.0, 60.0 + steps / 10.0),
        average_reward=average_reward(log),
        learning_progress=min(100.0, steps / 10.0),
        decision_confidence=max(60.0, (1.0 - epsilon) * 100.0),
    )
