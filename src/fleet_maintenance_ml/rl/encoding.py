from __future__ import annotations

from typing import Tuple

from fleet_maintenance_ml.preprocessing.features import normalize
from fleet_maintenance_ml.preprocessing.schema import RLState

# Scale references for the unbounded state fields
COST_REF = 5000.0       # currency units
DOWNTIME_REF_H = 168.0  # one week
ALERTS_REF = 10.0

STATE_SIZE = 5


def encode_state(state: RLState) -> Tuple[float, ...]:
    """RLState -> network input in [0, 1]^5."""
    return (
        normalize(state.vehicle_health, 0.0, 1.0),
        normalize(state.maintenance_cost, 0.0, COST_REF),
        normalize(state.downtime, 0.0, DOWNTIME_REF_H),
        normalize(state.efficiency, 0.0, 1.0),
        normalize(state.alerts, 0.0, ALERTS_REF),
    )
