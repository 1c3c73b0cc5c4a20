from __future__ import annotations

import logging
import threading
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np

from fleet_maintenance_ml.fleet.costs import (
    MAINTENANCE_ACTIONS,
    action_index,
    calculate_maintenance_reward,
    is_terminal,
)
from fleet_maintenance_ml.fleet.evaluate import RLPerformanceMetrics, rl_performance_metrics
from fleet_maintenance_ml.fleet.vehicle import VehicleSnapshot
from fleet_maintenance_ml.network.errors import ModelFormatError
from fleet_maintenance_ml.predictors.base import ComponentPredictor
from fleet_maintenance_ml.predictors.components import build_predictors
from fleet_maintenance_ml.preprocessing.features import (
    BatteryReadings,
    BrakeReadings,
    EngineReadings,
    FuelReadings,
    TireReadings,
)
from fleet_maintenance_ml.preprocessing.schema import (
    EngineConfig,
    Experience,
    PredictionResult,
    RLAction,
    RLReward,
    RLState,
)
from fleet_maintenance_ml.rl.dqn import DQNAgent
from fleet_maintenance_ml.rl.encoding import STATE_SIZE, encode_state
from fleet_maintenance_ml.storage.model_store import ModelStore

logger = logging.getLogger(__name__)

# agent name -> (state_size, action_size)
AGENT_DIMENSIONS: Dict[str, tuple] = {
    "maintenance": (STATE_SIZE, len(MAINTENANCE_ACTIONS)),
    "route": (6, 4),
    "resource": (4, 3),
}


def _coerce(readings, cls):
    if isinstance(readings, cls):
        return readings
    if isinstance(readings, Mapping):
        return cls(**readings)
    raise TypeError(f"expected {cls.__name__} or a mapping, got {type(readings).__name__}")


class FleetMLEngine:
    """
    Owns the five component predictors and the three DQN agents, their
    persistence in a ModelStore, and the per-vehicle experience log.

    Create one instance per host application and pass it around.
    """

    def __init__(
        self,
        store: ModelStore,
        config: EngineConfig = EngineConfig(),
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.store = store
        self.config = config
        self.rng = rng if rng is not None else np.random.default_rng(config.seed)

        self.predictors: Dict[str, ComponentPredictor] = build_predictors(self.rng)
        self.agents: Dict[str, DQNAgent] = {
            name: DQNAgent(state_size=s, action_size=a, rng=self.rng)
            for name, (s, a) in AGENT_DIMENSIONS.items()
        }
        self.experience_log: Dict[str, List[Experience]] = {}

        self._init_lock = threading.Lock()
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def predictor_key(self, name: str) -> str:
        return f"{self.config.key_prefix}_{name}"

    def agent_key(self, name: str) -> str:
        return f"{self.config.key_prefix}_rl_{name}"

    # ---- lifecycle ----

    def initialize(self) -> None:
        """
        Load every model from the store; train and persist predictors
        whose record is missing or unusable. Agents without a usable
        record start fresh. Safe to call repeatedly and from several
        threads: later callers wait for the first and then return.
        """
        with self._init_lock:
            if self._initialized:
                return

            trained = []
            for name, predictor in self.predictors.items():
                if self._load_predictor(name, predictor):
                    continue
                predictor.fit(self.config.training_samples, self.config.training_epochs)
                predictor.save(self.predictor_key(name), self.store)
                trained.append(name)

            for name, agent in self.agents.items():
                if not self._load_agent(name, agent):
                    agent.reset()

            self._initialized = True
            logger.info(
                "ML engine ready (%d predictors trained, %d loaded)",
                len(trained),
                len(self.predictors) - len(trained),
            )

    def _load_predictor(self, name: str, predictor: ComponentPredictor) -> bool:
        key = self.predictor_key(name)
        try:
            return predictor.load(key, self.store)
        except ModelFormatError as exc:
            logger.warning("Discarding model record %r: %s", key, exc)
            return False

    def _load_agent(self, name: str, agent: DQNAgent) -> bool:
        key = self.agent_key(name)
        try:
            return agent.load(key, self.store)
        except ModelFormatError as exc:
            logger.warning("Discarding agent record %r: %s", key, exc)
            return False

    def save_models(self) -> None:
        for name, predictor in self.predictors.items():
            predictor.save(self.predictor_key(name), self.store)
        for name, agent in self.agents.items():
            agent.save(self.agent_key(name), self.store)

    def reset_models(self) -> None:
        """Drop persisted records and in-memory state; the next initialize() retrains."""
        with self._init_lock:
            for name in self.predictors:
                self.store.remove(self.predictor_key(name))
            for name in self.agents:
                self.store.remove(self.agent_key(name))
            self.predictors = build_predictors(self.rng)
            for agent in self.agents.values():
                agent.reset()
            self.experience_log.clear()
            self._initialized = False

    # ---- predictions ----

    def predict_engine_failure(self, readings: EngineReadings | Mapping) -> PredictionResult:
        return self.predictors["engine"].predict(_coerce(readings, EngineReadings))

    def predict_brake_wear(self, readings: BrakeReadings | Mapping) -> PredictionResult:
        return self.predictors["brake"].predict(_coerce(readings, BrakeReadings))

    def predict_battery_health(self, readings: BatteryReadings | Mapping) -> PredictionResult:
        return self.predictors["battery"].predict(_coerce(readings, BatteryReadings))

    def predict_tire_wear(self, readings: TireReadings | Mapping) -> PredictionResult:
        return self.predictors["tire"].predict(_coerce(readings, TireReadings))

    def predict_fuel_efficiency(self, readings: FuelReadings | Mapping) -> float:
        """Expected fuel efficiency in km/L (5..15)."""
        return self.predictors["fuel"].predict(_coerce(readings, FuelReadings))

    def get_vehicle_predictions(self, snapshot: VehicleSnapshot) -> List[PredictionResult]:
        return [
            self.predict_engine_failure(snapshot.engine_readings()),
            self.predict_brake_wear(snapshot.brake_readings()),
            self.predict_battery_health(snapshot.battery_readings()),
            self.predict_tire_wear(snapshot.tire_readings()),
        ]

    # ---- reinforcement learning ----

    def select_action(self, agent_name: str, state: Sequence[float]) -> int:
        if agent_name not in self.agents:
            raise KeyError(f"Unknown agent: {agent_name}")
        return self.agents[agent_name].select_action(state)

    def get_optimal_maintenance_action(self, state: RLState) -> RLAction:
        idx = self.agents["maintenance"].select_action(encode_state(state))
        return MAINTENANCE_ACTIONS[idx]

    def learn_from_maintenance_action(
        self,
        vehicle_id: str,
        before: RLState,
        action: RLAction,
        after: RLState,
        reward: RLReward,
    ) -> None:
        """
        Record one transition for `vehicle_id` and run a replay step.

        The reward value goes into the buffer unscaled while Q-values come
        from a sigmoid output in (0, 1). Rewards in the hundreds saturate
        the Q-head, and the greedy policy tends to settle on a single action.
        """
        agent = self.agents["maintenance"]
        exp = Experience(
            state=encode_state(before),
            action=action_index(action),
            reward=reward.value,
            next_state=encode_state(after),
            done=is_terminal(after),
        )
        agent.remember(exp.state, exp.action, exp.reward, exp.next_state, exp.done)
        agent.replay()
        self.experience_log.setdefault(vehicle_id, []).append(exp)

    def calculate_maintenance_reward(
        self, before: RLState, after: RLState, action: RLAction
    ) -> RLReward:
        return calculate_maintenance_reward(before, after, action)

    def get_rl_performance_metrics(self) -> RLPerformanceMetrics:
        agent = self.agents["maintenance"]
        return rl_performance_metrics(self.experience_log, agent.steps, agent.epsilon)
