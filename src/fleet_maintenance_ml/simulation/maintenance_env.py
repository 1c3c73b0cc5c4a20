from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np

from fleet_maintenance_ml.preprocessing.schema import RLAction, RLState


@dataclass(frozen=True)
class OutcomeParams:
    """Per-period deterioration and the effect of each action type."""
    mu_wear: float = 0.05            # mean health loss per period
    sigma: float = 0.02
    breakdown_health: float = 0.3    # below this, unplanned downtime occurs
    breakdown_downtime_h: float = 48.0
    shop_downtime_h: Tuple[Tuple[str, float], ...] = (
        ("maintain", 8.0),
        ("inspect", 2.0),
        ("replace", 24.0),
        ("defer", 0.0),
        ("optimize_route", 0.0),
    )

    def downtime_for(self, action_type: str) -> float:
        return dict(self.shop_downtime_h).get(action_type, 0.0)


def _period_wear(rng: np.random.Generator, params: OutcomeParams, scale: float = 1.0) -> float:
    """
    Sample the health deterioration for one period.

    delta ~ Normal(mu_wear * scale, sigma), truncated at 0 (no negative deterioration)
    """
    delta = rng.normal(loc=params.mu_wear * scale, scale=params.sigma)
    return float(max(0.0, delta))


def simulate_action_outcome(
    state: RLState,
    action: RLAction,
    rng: np.random.Generator,
    params: OutcomeParams = OutcomeParams(),
) -> RLState:
    """
    State at the next decision epoch after taking `action` in `state`.

    Convention:
      - The action is applied first (shop work resets or restores health),
        then one period of deterioration is sampled.
      - downtime of the result is the downtime incurred during the period.
      - maintenance_cost accumulates the action cost.
    """
    h = state.vehicle_health
    eff = state.efficiency
    alerts = state.alerts
    wear_scale = 1.0

    if action.type == "maintain":
        h = min(1.0, h + 0.3)
        eff = min(1.0, eff + 0.05)
        alerts = max(0, alerts - 2)
    elif action.type == "inspect":
        alerts = max(0, alerts - 1)
    elif action.type == "replace":
        h = 1.0
        alerts = 0
    elif action.type == "defer":
        wear_scale = 2.0
    elif action.type == "optimize_route":
        eff = min(1.0, eff + 0.1)
        wear_scale = 0.5

    h = max(0.0, h - _period_wear(rng, params, wear_scale))
    downtime = params.downtime_for(action.type)
    if h < params.breakdown_health:
        downtime += params.breakdown_downtime_h
        alerts += 1
        eff = max(0.0, eff - 0.1)

    return RLState(
        vehicle_health=h,
        maintenance_cost=state.maintenance_cost + action.cost,
        downtime=downtime,
        efficiency=eff,
        alerts=alerts,
    )


def sample_initial_states(
    n_vehicles: int,
    rng: np.random.Generator,
) -> Dict[str, RLState]:
    """Random starting states for a fleet of simulated vehicles V01..Vnn."""
    if n_vehicles < 1:
        raise ValueError("n_vehicles must be >= 1")
    states: Dict[str, RLState] = {}
    for i in range(n_vehicles):
        states[f"V{i + 1:02d}"] = RLState(
            vehicle_health=float(rng.uniform(0.4, 1.0)),
            maintenance_cost=0.0,
            downtime=0.0,
            efficiency=float(rng.uniform(0.6, 1.0)),
            alerts=int(rng.integers(0, 4)),
        )
    return states


def health_path(
    state: RLState,
    actions: List[RLAction],
    rng: np.random.Generator,
    params: OutcomeParams = OutcomeParams(),
) -> List[float]:
    """Health at the start of each period when `actions` are applied in order."""
    path = [state.vehicle_health]
    s = state
    for a in actions:
        s = simulate_action_outcome(s, a, rng, params)
        path.append(s.vehicle_health)
    return path
