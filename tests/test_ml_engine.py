"""
Tests for FleetMLEngine: lazy training, persistence, predictions and RL plumbing.

A small training config keeps these fast; predictor quality is covered
in test_predictors.py.
"""

import threading

import numpy as np
import pytest

from fleet_maintenance_ml.fleet.costs import MAINTENANCE_ACTIONS
from fleet_maintenance_ml.fleet.vehicle import VehicleSnapshot
from fleet_maintenance_ml.network.feedforward import FeedforwardNetwork
from fleet_maintenance_ml.orchestration.ml_engine import FleetMLEngine
from fleet_maintenance_ml.predictors.base import ComponentPredictor
from fleet_maintenance_ml.preprocessing.schema import EngineConfig, RLState
from fleet_maintenance_ml.storage.model_store import InMemoryModelStore

FAST = EngineConfig(training_epochs=5, training_samples=20, seed=1)

SNAPSHOT = VehicleSnapshot(
    vehicle_id="TRK-002",
    engine_temp=104.0,
    oil_pressure=27.0,
    mileage=212_000.0,
    vehicle_age=9.0,
    battery_voltage=12.0,
    tire_pressure=29.0,
    engine_hours=6800.0,
)

HEALTHY = RLState(vehicle_health=0.9, maintenance_cost=0.0, downtime=0.0, efficiency=0.85, alerts=0)
WORN = RLState(vehicle_health=0.6, maintenance_cost=0.0, downtime=4.0, efficiency=0.7, alerts=2)
BROKEN = RLState(vehicle_health=0.1, maintenance_cost=0.0, downtime=48.0, efficiency=0.5, alerts=4)

PREDICTOR_KEYS = ["fleet_ml_engine", "fleet_ml_brake", "fleet_ml_battery", "fleet_ml_tire", "fleet_ml_fuel"]
AGENT_KEYS = ["fleet_ml_rl_maintenance", "fleet_ml_rl_route", "fleet_ml_rl_resource"]


@pytest.fixture
def fit_calls(monkeypatch):
    calls = []
    original = ComponentPredictor.fit

    def counting_fit(self, *args, **kwargs):
        calls.append(self.name)
        return original(self, *args, **kwargs)

    monkeypatch.setattr(ComponentPredictor, "fit", counting_fit)
    return calls


@pytest.fixture
def engine():
    e = FleetMLEngine(InMemoryModelStore(), config=FAST)
    e.initialize()
    return e


class TestInitialize:

    def test_trains_and_persists_every_predictor(self, fit_calls):
        store = InMemoryModelStore()
        engine = FleetMLEngine(store, config=FAST)
        engine.initialize()

        assert sorted(fit_calls) == sorted(["engine", "brake", "battery", "tire", "fuel"])
        assert all(store.get(k) is not None for k in PREDICTOR_KEYS)
        assert engine.is_initialized

    def test_is_idempotent(self, fit_calls):
        engine = FleetMLEngine(InMemoryModelStore(), config=FAST)
        engine.initialize()
        engine.initialize()
        assert len(fit_calls) == 5

    def test_concurrent_callers_train_once(self, fit_calls):
        engine = FleetMLEngine(InMemoryModelStore(), config=FAST)
        threads = [threading.Thread(target=engine.initialize) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(fit_calls) == 5

    def test_reload_skips_training_and_reproduces_predictions(self, fit_calls):
        store = InMemoryModelStore()
        first = FleetMLEngine(store, config=FAST)
        first.initialize()
        expected = first.get_vehicle_predictions(SNAPSHOT)
        fit_calls.clear()

        second = FleetMLEngine(store, config=EngineConfig(training_epochs=5, training_samples=20, seed=2))
        second.initialize()

        assert fit_calls == []
        assert second.get_vehicle_predictions(SNAPSHOT) == expected

    @pytest.mark.parametrize("payload", [
        b"not json at all",
        b'{"weights": [], "biases": [], "layer_sizes": [6, 2], "learning_rate": 0.05}',
    ])
    def test_corrupted_record_triggers_retraining(self, fit_calls, payload):
        store = InMemoryModelStore()
        FleetMLEngine(store, config=FAST).initialize()
        store.set("fleet_ml_engine", payload)
        fit_calls.clear()

        engine = FleetMLEngine(store, config=FAST)
        engine.initialize()

        assert fit_calls == ["engine"]
        # the bad record has been replaced by a loadable one
        net = FeedforwardNetwork([6, 12, 8, 2], seed=0)
        assert net.load("fleet_ml_engine", store) is True

    def test_record_for_other_architecture_triggers_retraining(self, fit_calls):
        store = InMemoryModelStore()
        FeedforwardNetwork([5, 10, 6, 2], seed=0).save("fleet_ml_engine", store)
        engine = FleetMLEngine(store, config=FAST)
        engine.initialize()
        assert "engine" in fit_calls

    def test_agents_start_fresh_without_records(self, engine):
        for agent in engine.agents.values():
            assert agent.epsilon == 1.0
            assert agent.steps == 0
            assert len(agent.memory) == 0

    def test_agent_dimensions(self, engine):
        dims = {name: (a.state_size, a.action_size) for name, a in engine.agents.items()}
        assert dims == {"maintenance": (5, 5), "route": (6, 4), "resource": (4, 3)}

    def test_corrupted_agent_record_starts_fresh(self):
        store = InMemoryModelStore()
        store.set("fleet_ml_rl_maintenance", b"[1, 2, 3]")
        engine = FleetMLEngine(store, config=FAST)
        engine.initialize()
        assert engine.agents["maintenance"].epsilon == 1.0

    def test_saved_agents_are_restored(self):
        store = InMemoryModelStore()
        engine = FleetMLEngine(store, config=FAST)
        engine.initialize()
        agent = engine.agents["maintenance"]
        agent.epsilon = 0.42
        agent.steps = 17
        engine.save_models()
        assert all(store.get(k) is not None for k in AGENT_KEYS)

        other = FleetMLEngine(store, config=FAST)
        other.initialize()
        assert other.agents["maintenance"].epsilon == 0.42
        assert other.agents["maintenance"].steps == 17

    def test_reset_models(self, fit_calls):
        store = InMemoryModelStore()
        engine = FleetMLEngine(store, config=FAST)
        engine.initialize()
        engine.save_models()
        engine.reset_models()

        assert len(store) == 0
        assert not engine.is_initialized
        engine.initialize()
        assert len(fit_calls) == 10


class TestPredictions:

    def test_vehicle_predictions(self, engine):
        results = engine.get_vehicle_predictions(SNAPSHOT)
        assert [r.component for r in results] == ["Engine", "Brakes", "Battery", "Tires"]
        for r in results:
            assert 0 <= r.probability <= 100
            assert 0 <= r.confidence <= 100
            assert r.days_until_failure >= 1
            assert r.severity in ("critical", "high", "medium", "low")
            assert r.recommendation

    def test_snapshot_defaults(self):
        assert SNAPSHOT.engine_readings().avg_load == 0.6
        brake = SNAPSHOT.brake_readings()
        assert brake.terrain_type == 0.3
        assert brake.mileage_since_service == 212_000.0 % 30_000.0
        assert SNAPSHOT.tire_readings().alignment_score == 0.85
        assert SNAPSHOT.battery_readings().charge_cycles == pytest.approx(424.0)

    def test_mapping_input(self, engine):
        readings = dict(
            engine_temp=130, oil_pressure=15, mileage=250_000,
            vehicle_age=14, avg_load=0.9, engine_hours=9000,
        )
        result = engine.predict_engine_failure(readings)
        assert result.component == "Engine"

    def test_fuel_efficiency(self, engine):
        kml = engine.predict_fuel_efficiency(dict(
            avg_speed=70, load_factor=0.3, terrain_grade=0.0,
            ambient_temp=20, tire_condition=0.9, engine_efficiency=0.9,
        ))
        assert 5.0 <= kml <= 15.0

    def test_bad_readings_type(self, engine):
        with pytest.raises(TypeError):
            engine.predict_tire_wear([32, 1000, 0.5, 0.3, 0.85])


class TestReinforcementLearning:

    def test_optimal_action_is_canonical(self, engine):
        for state in (HEALTHY, WORN, BROKEN):
            assert engine.get_optimal_maintenance_action(state) in MAINTENANCE_ACTIONS

    def test_select_action_on_named_agent(self, engine):
        a = engine.select_action("route", (0.1, 0.2, 0.3, 0.4, 0.5, 0.6))
        assert 0 <= a < 4
        with pytest.raises(KeyError):
            engine.select_action("pricing", (0.1,))

    def test_learning_logs_and_replays(self, engine):
        agent = engine.agents["maintenance"]
        action = MAINTENANCE_ACTIONS[0]
        reward = engine.calculate_maintenance_reward(WORN, HEALTHY, action)

        for _ in range(31):
            engine.learn_from_maintenance_action("V01", WORN, action, HEALTHY, reward)
        assert agent.steps == 0

        engine.learn_from_maintenance_action("V02", WORN, action, HEALTHY, reward)
        assert agent.steps == 1
        assert agent.epsilon == pytest.approx(0.995)

        assert len(engine.experience_log["V01"]) == 31
        assert len(engine.experience_log["V02"]) == 1
        assert engine.experience_log["V01"][0].reward == reward.value

    def test_terminal_transition(self, engine):
        action = MAINTENANCE_ACTIONS[3]
        reward = engine.calculate_maintenance_reward(WORN, BROKEN, action)
        engine.learn_from_maintenance_action("V01", WORN, action, BROKEN, reward)
        exp = engine.experience_log["V01"][-1]
        assert exp.done is True
        assert exp.action == 3

    def test_metrics(self, engine):
        m = engine.get_rl_performance_metrics()
        assert m.average_reward == 0.0
        assert m.decision_confidence == 60.0

        action = MAINTENANCE_ACTIONS[1]
        reward = engine.calculate_maintenance_reward(WORN, HEALTHY, action)
        engine.learn_from_maintenance_action("V01", WORN, action, HEALTHY, reward)
        m = engine.get_rl_performance_metrics()
        assert m.average_reward == pytest.approx(reward.value)
        assert 60.0 <= m.maintenance_accuracy <= 95.0
        assert 0.0 <= m.learning_progress <= 100.0

    def test_reward_is_pure(self, engine):
        action = MAINTENANCE_ACTIONS[2]
        a = engine.calculate_maintenance_reward(BROKEN, HEALTHY, action)
        b = engine.calculate_maintenance_reward(BROKEN, HEALTHY, action)
        assert a == b


def test_seeded_engines_are_reproducible():
    a = FleetMLEngine(InMemoryModelStore(), config=FAST)
    b = FleetMLEngine(InMemoryModelStore(), config=FAST)
    a.initialize()
    b.initialize()
    assert a.get_vehicle_predictions(SNAPSHOT) == b.get_vehicle_predictions(SNAPSHOT)
    assert np.array_equal(
        a.agents["maintenance"].q_values((0.5,) * 5),
        b.agents["maintenance"].q_values((0.5,) * 5),
    )
