from __future__ import annotations

from typing import Dict, Tuple

from fleet_maintenance_ml.preprocessing.schema import (
    RewardBreakdown,
    RLAction,
    RLReward,
    RLState,
)

# Nominal cost per action type
ACTION_COSTS: Dict[str, float] = {
    "maintain": 500.0,
    "inspect": 100.0,
    "replace": 2000.0,
    "defer": 0.0,
    "optimize_route": 50.0,
}

# Output index of the maintenance agent -> canonical action
MAINTENANCE_ACTIONS: Tuple[RLAction, ...] = (
    RLAction(type="maintain", urgency="scheduled", cost=ACTION_COSTS["maintain"]),
    RLAction(type="inspect", urgency="planned", cost=ACTION_COSTS["inspect"]),
    RLAction(type="replace", urgency="immediate", cost=ACTION_COSTS["replace"]),
    RLAction(type="defer", urgency="planned", cost=ACTION_COSTS["defer"]),
    RLAction(type="optimize_route", urgency="scheduled", cost=ACTION_COSTS["optimize_route"]),
)

DOWNTIME_HOUR_VALUE = 50.0


def action_index(action: RLAction) -> int:
    for i, a in enumerate(MAINTENANCE_ACTIONS):
        if a.type == action.type:
            return i
    raise ValueError(f"Unknown action type: {action.type}")


def calculate_maintenance_reward(before: RLState, after: RLState, action: RLAction) -> RLReward:
    """
    Pure reward function:
        cost_saving        = downtime saved * 50 - action cost
        downtime_reduction = hours of downtime saved
        safety_improvement = max(0, health gain) * 100
        efficiency_gain    = efficiency change * 200
        value = 0.3*cost_saving + 0.3*downtime_reduction
              + 0.2*safety_improvement + 0.2*efficiency_gain
    """
    downtime_reduction = before.downtime - after.downtime
    cost_saving = downtime_reduction * DOWNTIME_HOUR_VALUE - action.cost
    safety_improvement = max(0.0, after.vehicle_health - before.vehicle_health) * 100.0
    efficiency_gain = (after.efficiency - before.efficiency) * 200.0

    value = (
        cost_saving * 0.3
        + downtime_reduction * 0.3
        + safety_improvement * 0.2
        + efficiency_gain * 0.2
    )
    return RLReward(
        value=float(value),
        breakdown=RewardBreakdown(
            cost_saving=float(cost_saving),
            downtime_reduction=float(downtime_reduction),
            safety_improvement=float(safety_improvement),
            efficiency_gain=float(efficiency_gain),
        ),
    )


def is_terminal(state: RLState, min_health: float = 0.2, max_downtime_h: float = 120.0) -> bool:
    """Episode ends when the vehicle is near failure or effectively out of service."""
    return state.vehicle_health < min_health or state.downtime > max_downtime_h
