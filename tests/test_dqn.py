"""
Tests for the DQN agent and its replay buffer.
"""

import numpy as np
import pytest

from fleet_maintenance_ml.network.errors import InvalidInputShape, ModelFormatError
from fleet_maintenance_ml.network.feedforward import encode_record
from fleet_maintenance_ml.preprocessing.schema import Experience
from fleet_maintenance_ml.rl.dqn import DQNAgent
from fleet_maintenance_ml.rl.replay import ReplayBuffer
from fleet_maintenance_ml.storage.model_store import InMemoryModelStore

STATE = (0.6, 0.2, 0.1, 0.8, 0.3)
NEXT_STATE = (0.5, 0.25, 0.2, 0.75, 0.4)


def _fill(agent, n, reward=0.5, done=False, action=0):
    for _ in range(n):
        agent.remember(STATE, action, reward, NEXT_STATE, done)


class TestReplayBuffer:

    def _exp(self, i):
        return Experience(state=(float(i),), action=0, reward=float(i), next_state=(0.0,), done=False)

    def test_never_exceeds_capacity_and_evicts_oldest(self):
        buf = ReplayBuffer(capacity=10_000)
        for i in range(10_000):
            buf.push(self._exp(i))
        assert len(buf) == 10_000
        assert buf.oldest().reward == 0.0

        buf.push(self._exp(10_000))
        assert len(buf) == 10_000
        assert buf.oldest().reward == 1.0

    def test_sample_with_replacement(self):
        buf = ReplayBuffer(capacity=5)
        buf.push(self._exp(1))
        batch = buf.sample(32, np.random.default_rng(0))
        assert len(batch) == 32
        assert all(e.reward == 1.0 for e in batch)

    def test_sample_from_full_buffer(self):
        buf = ReplayBuffer(capacity=100)
        for i in range(150):
            buf.push(self._exp(i))
        batch = buf.sample(32, np.random.default_rng(3))
        assert len(batch) == 32
        assert all(50.0 <= e.reward < 150.0 for e in batch)

    def test_sample_empty_raises(self):
        with pytest.raises(ValueError):
            ReplayBuffer().sample(1, np.random.default_rng(0))


class TestActionSelection:

    @pytest.mark.parametrize("epsilon", [1.0, 0.5, 0.0])
    def test_action_always_in_range(self, epsilon):
        agent = DQNAgent(5, 5, epsilon=epsilon, epsilon_min=0.0, seed=1)
        rng = np.random.default_rng(2)
        for _ in range(200):
            a = agent.select_action(rng.uniform(0, 1, size=5))
            assert isinstance(a, int)
            assert 0 <= a < 5

    def test_exploration_covers_all_actions(self):
        agent = DQNAgent(4, 3, epsilon=1.0, seed=1)
        seen = {agent.select_action((0.1, 0.2, 0.3, 0.4)) for _ in range(200)}
        assert seen == {0, 1, 2}

    def test_greedy_ties_go_to_lowest_index(self):
        agent = DQNAgent(5, 5, epsilon=0.0, epsilon_min=0.0, seed=1)
        agent.online.weights = [np.zeros_like(w) for w in agent.online.weights]
        agent.online.biases = [np.zeros_like(b) for b in agent.online.biases]
        assert agent.select_action(STATE) == 0

    def test_greedy_picks_argmax(self):
        agent = DQNAgent(5, 5, epsilon=0.0, epsilon_min=0.0, seed=1)
        agent.online.biases[-1][:] = [0.0, 0.0, 0.0, 5.0, 0.0]
        agent.online.weights[-1][:] = 0.0
        assert agent.select_action(STATE) == 3

    def test_same_seed_same_decisions(self):
        a = DQNAgent(5, 5, epsilon=0.5, seed=7)
        b = DQNAgent(5, 5, epsilon=0.5, seed=7)
        assert [a.select_action(STATE) for _ in range(50)] == [b.select_action(STATE) for _ in range(50)]

    def test_wrong_state_size(self):
        agent = DQNAgent(5, 5, seed=1)
        with pytest.raises(InvalidInputShape):
            agent.select_action((0.1, 0.2))


class TestReplay:

    def test_noop_below_batch_size(self):
        agent = DQNAgent(5, 5, seed=1)
        _fill(agent, 31)
        assert agent.replay() is None
        assert agent.epsilon == 1.0
        assert agent.steps == 0

    def test_epsilon_non_increasing_and_floored(self):
        agent = DQNAgent(5, 5, epsilon_decay=0.9, seed=1)
        _fill(agent, 32)
        history = [agent.epsilon]
        for _ in range(100):
            agent.replay()
            history.append(agent.epsilon)
        assert all(b <= a for a, b in zip(history, history[1:]))
        assert min(history) >= 0.01
        assert history[-1] == pytest.approx(0.01)

    def test_default_decay_rate(self):
        agent = DQNAgent(5, 5, seed=1)
        _fill(agent, 32)
        agent.replay()
        assert agent.epsilon == pytest.approx(0.995)
        assert agent.steps == 1

    def test_repeated_terminal_experience_converges_to_reward(self):
        agent = DQNAgent(5, 5, seed=3)
        reward = 0.9
        action = 2
        _fill(agent, 32, reward=reward, done=True, action=action)

        initial = abs(agent.q_values(STATE)[action] - reward)
        for _ in range(50):
            agent.replay()
        final = abs(agent.q_values(STATE)[action] - reward)

        assert final <= 0.5 * initial

    def test_large_rewards_saturate_bounded_q_values(self):
        agent = DQNAgent(5, 5, seed=3)
        _fill(agent, 32, reward=500.0, done=True, action=1)
        for _ in range(5):
            agent.replay()

        q = agent.q_values(STATE)
        assert np.all((q >= 0.0) & (q <= 1.0))
        assert q[1] > 0.9

    def test_only_taken_action_gets_a_new_target(self):
        agent = DQNAgent(5, 5, seed=3)
        agent.remember(STATE, 1, 0.8, NEXT_STATE, False)
        exp = agent.memory.oldest()
        expected = 0.8 + 0.95 * float(np.max(agent.target.forward(NEXT_STATE)))
        assert agent.td_target(exp) == pytest.approx(expected)

        done = Experience(exp.state, exp.action, 0.8, exp.next_state, True)
        assert agent.td_target(done) == 0.8

    def test_target_network_hard_sync(self):
        agent = DQNAgent(5, 5, target_update_every=2, seed=1)
        _fill(agent, 32, reward=0.9)

        agent.replay()
        assert not np.array_equal(agent.online.forward(STATE), agent.target.forward(STATE))

        agent.replay()
        assert agent.steps == 2
        assert np.array_equal(agent.online.forward(STATE), agent.target.forward(STATE))

    def test_remember_validates_action(self):
        agent = DQNAgent(5, 5, seed=1)
        with pytest.raises(ValueError):
            agent.remember(STATE, 5, 0.0, NEXT_STATE, False)


class TestPersistence:

    def test_save_load_restores_epsilon_steps_and_weights(self):
        store = InMemoryModelStore()
        agent = DQNAgent(5, 5, seed=1)
        _fill(agent, 32, reward=0.7)
        for _ in range(3):
            agent.replay()
        agent.save("rl_maintenance", store)

        fresh = DQNAgent(5, 5, seed=99)
        assert fresh.load("rl_maintenance", store) is True
        assert fresh.epsilon == agent.epsilon
        assert fresh.steps == 3
        assert np.array_equal(fresh.q_values(STATE), agent.q_values(STATE))
        # target rebuilt from the online network
        assert np.array_equal(fresh.target.forward(STATE), fresh.online.forward(STATE))
        assert len(fresh.memory) == 0

    def test_missing_record(self):
        assert DQNAgent(5, 5, seed=1).load("none", InMemoryModelStore()) is False

    @pytest.mark.parametrize("field,value", [("epsilon", 1.5), ("epsilon", None), ("steps", -1), ("steps", 2.5)])
    def test_bad_agent_fields(self, field, value):
        store = InMemoryModelStore()
        agent = DQNAgent(5, 5, seed=1)
        record = agent.to_record()
        record[field] = value
        store.set("k", encode_record(record))
        with pytest.raises(ModelFormatError):
            DQNAgent(5, 5, seed=2).load("k", store)

    def test_reset(self):
        agent = DQNAgent(5, 5, seed=1)
        _fill(agent, 32)
        agent.replay()
        agent.reset()
        assert agent.epsilon == 1.0
        assert agent.steps == 0
        assert len(agent.memory) == 0
