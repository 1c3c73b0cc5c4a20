from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

ACTION_TYPES = ("maintain", "inspect", "replace", "defer", "optimize_route")
URGENCIES = ("immediate", "scheduled", "planned")


@dataclass(frozen=True)
class TrainingData:
    """One labeled example. Inputs are already normalized to [0, 1]."""
    inputs: Tuple[float, ...]
    outputs: Tuple[float, ...]


@dataclass(frozen=True)
class PredictionResult:
    probability: int           # 0..100
    confidence: int            # 0..100
    days_until_failure: int    # >= 1
    component: str
    severity: str              # critical | high | medium | low
    recommendation: str


@dataclass(frozen=True)
class RLState:
    vehicle_health: float      # [0..1]
    maintenance_cost: float    # >= 0
    downtime: float            # hours
    efficiency: float          # [0..1]
    alerts: int

    def __post_init__(self) -> None:
        if not (0.0 <= self.vehicle_health <= 1.0):
            raise ValueError("vehicle_health must be between 0 and 1")
        if not (0.0 <= self.efficiency <= 1.0):
            raise ValueError("efficiency must be between 0 and 1")
        if self.maintenance_cost < 0 or self.downtime < 0 or self.alerts < 0:
            raise ValueError("maintenance_cost, downtime and alerts must be >= 0")


@dataclass(frozen=True)
class RLAction:
    type: str
    urgency: str
    cost: float
    component: Optional[str] = None

    def __post_init__(self) -> None:
        if self.type not in ACTION_TYPES:
            raise ValueError(f"Unknown action type: {self.type}")
        if self.urgency not in URGENCIES:
            raise ValueError(f"Unknown urgency: {self.urgency}")
        if self.cost < 0:
            raise ValueError("action cost must be >= 0")


@dataclass(frozen=True)
class RewardBreakdown:
    cost_saving: float
    downtime_reduction: float
    safety_improvement: float
    efficiency_gain: float


@dataclass(frozen=True)
class RLReward:
    value: float
    breakdown: RewardBreakdown


@dataclass(frozen=True)
class Experience:
    state: Tuple[float, ...]
    action: int
    reward: float
    next_state: Tuple[float, ...]
    done: bool


@dataclass(frozen=True)
class EngineConfig:
    training_epochs: int = 500
    training_samples: int = 200
    seed: Optional[int] = None
    key_prefix: str = "fleet_ml"
