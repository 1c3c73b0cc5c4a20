import logging

import numpy as np

from fleet_maintenance_ml.fleet.costs import is_terminal
from fleet_maintenance_ml.orchestration.ml_engine import FleetMLEngine
from fleet_maintenance_ml.preprocessing.schema import EngineConfig
from fleet_maintenance_ml.simulation.maintenance_env import sample_initial_states, simulate_action_outcome
from fleet_maintenance_ml.storage.model_store import InMemoryModelStore


def main() -> None:
    logging.basicConfig(level=logging.WARNING)

    seed = 123
    engine = FleetMLEngine(
        store=InMemoryModelStore(),
        config=EngineConfig(training_epochs=50, training_samples=100, seed=seed),
    )
    engine.initialize()

    rng = np.random.default_rng(seed)
    states = sample_initial_states(n_vehicles=10, rng=rng)
    n_periods = 60

    for t in range(1, n_periods + 1):
        for vid, before in list(states.items()):
            action = engine.get_optimal_maintenance_action(before)
            after = simulate_action_outcome(before, action, rng)
            reward = engine.calculate_maintenance_reward(before, after, action)
            engine.learn_from_maintenance_action(vid, before, action, after, reward)
            # failed vehicles come back from the shop as new
            states[vid] = after if not is_terminal(after) else sample_initial_states(1, rng)["V01"]

        if t % 10 == 0:
            m = engine.get_rl_performance_metrics()
            avg_h = sum(s.vehicle_health for s in states.values()) / len(states)
            print(
                f"t={t:02d}  health avg={avg_h:.3f}  reward avg={m.average_reward:8.2f}  "
                f"epsilon={engine.agents['maintenance'].epsilon:.3f}  "
                f"confidence={m.decision_confidence:.1f}"
            )

    engine.save_models()
    m = engine.get_rl_performance_metrics()
    print("Accuracy:", round(m.maintenance_accuracy, 1), " Progress:", round(m.learning_progress, 1))


if __name__ == "__main__":
    main()
