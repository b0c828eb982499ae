"""Tests for QLearner: phases, step ordering, target sync, failures."""

import threading

import equinox as eqx
import jax
import jax.numpy as jnp
import numpy as np
import pytest

from qlearn.algorithms.dqn import DQNConfig, ReplayConfig
from qlearn.dataprotocol import PrioritizedReplayBuffer, ReplayBuffer
from qlearn.env import (
    OPTIMAL_ACTIONS,
    CartPole,
    CartPoleParams,
    GridWorld,
    GridWorldParams,
    TwoState,
    TwoStateParams,
)
from qlearn.errors import (
    EnvironmentFailure,
    InvalidConfiguration,
    NumericDivergence,
    TransientEnvironmentError,
)
from qlearn.policies import EpsilonGreedyConfig
from qlearn.runner import Phase, QLearner


def _config(**overrides) -> DQNConfig:
    kwargs = dict(
        hidden_sizes=(32,),
        lr=1e-2,
        gamma=0.5,
        batch_size=8,
        target_update_freq=5,
        max_episode_steps=8,
        exploration_steps=16,
        exploration=EpsilonGreedyConfig(epsilon_floor=0.05, epsilon_decay=0.01),
        replay=ReplayConfig(capacity=500),
    )
    kwargs.update(overrides)
    return DQNConfig(**kwargs)


def _leaves(model):
    return jax.tree.leaves(eqx.filter(model, eqx.is_array))


def _same(a, b) -> bool:
    return all(jnp.array_equal(x, y) for x, y in zip(_leaves(a), _leaves(b), strict=True))


class FlakyTwoState(TwoState):
    """Raises on chosen step calls; used with ``jit_env=False``."""

    def __init__(self, fail_on=(), error=RuntimeError, stop_event=None, stop_after=None):
        self.fail_on = set(fail_on)
        self.error = error
        self.stop_event = stop_event
        self.stop_after = stop_after
        self.calls = 0

    def step(self, key, state, action, params):
        self.calls += 1
        if self.calls in self.fail_on:
            raise self.error(f"step {self.calls} failed")
        if self.stop_event is not None and self.calls == self.stop_after:
            self.stop_event.set()
        return super().step(key, state, action, params)


class NaNRewardTwoState(TwoState):
    def step(self, key, state, action, params):
        obs, state, reward, done, info = super().step(key, state, action, params)
        return obs, state, reward * jnp.nan, done, info


class TestPhases:
    def test_starts_exploring(self):
        learner = QLearner(TwoState(), config=_config())
        assert learner.phase is Phase.EXPLORING
        assert learner.total_steps == 0

    def test_no_learning_before_exploration_steps(self):
        learner = QLearner(TwoState(), config=_config(exploration_steps=20), seed=1)
        before = learner.online_params
        ret = learner.episode()
        assert learner.total_steps == 8
        assert learner.updates == 0
        assert learner.phase is Phase.EXPLORING
        assert _same(learner.online_params, before)
        assert 0.0 <= ret <= 2.0
        assert np.isfinite(ret)

    def test_enters_learning_once_enough_stored(self):
        learner = QLearner(TwoState(), config=_config(exploration_steps=12))
        learner.episode()
        learner.episode()
        assert learner.phase is Phase.LEARNING
        # learning starts on the step that stores the 12th transition
        assert learner.updates == 16 - 12 + 1

    def test_converged_stops_learning(self):
        learner = QLearner(TwoState(), config=_config(exploration_steps=8))
        learner.episode()
        learner.episode()
        updates = learner.updates
        assert updates > 0
        learner.mark_converged()
        learner.episode()
        assert learner.phase is Phase.CONVERGED
        assert learner.updates == updates
        assert learner.total_steps == 24

    def test_mark_failed(self):
        learner = QLearner(TwoState(), config=_config())
        learner.mark_failed()
        assert learner.phase is Phase.FAILED


class TestStep:
    def test_target_synced_only_at_multiples(self):
        learner = QLearner(TwoState(), config=_config(target_update_freq=5, exploration_steps=8))
        previous_target = learner.target_params
        for _ in range(40):
            result = learner.step()
            if learner.total_steps % 5 == 0:
                assert result.synced
                assert _same(learner.target_params, learner.online_params)
            else:
                assert not result.synced
                assert _same(learner.target_params, previous_target)
            previous_target = learner.target_params

    def test_train_freq(self):
        learner = QLearner(TwoState(), config=_config(train_freq=4, exploration_steps=8))
        learned = [learner.step().learned for _ in range(24)]
        assert learned == [(i + 1) >= 8 and (i + 1) % 4 == 0 for i in range(24)]
        assert learner.updates == sum(learned)

    def test_episode_capped_at_max_episode_steps(self):
        learner = QLearner(
            TwoState(), TwoStateParams(episode_length=100), config=_config(max_episode_steps=5),
        )
        learner.episode()
        assert learner.last_episode.length == 5
        sample = learner.buffer.sample(5)
        # a step-cap cut is not a terminal transition
        assert not bool(jnp.any(sample.transitions.done))

    def test_truncation_is_not_terminal(self):
        learner = QLearner(
            GridWorld(), GridWorldParams(size=5, max_steps=3), config=_config(max_episode_steps=50),
        )
        learner.episode()
        assert learner.last_episode.length == 3
        assert not bool(jnp.any(learner.buffer.sample(3).transitions.done))

    def test_termination_is_terminal(self):
        learner = QLearner(TwoState(), TwoStateParams(episode_length=4), config=_config())
        learner.episode()
        dones = np.asarray(learner.buffer.sample(4).transitions.done)
        assert dones.sum() == 1

    def test_discounted_return(self):
        # CartPole pays 1 per step and cannot fail within 3 steps of reset
        learner = QLearner(CartPole(), CartPoleParams(max_steps=3), config=_config(gamma=0.5))
        ret = learner.episode()
        assert ret == pytest.approx(1.0 + 0.5 + 0.25)
        assert learner.last_episode.discounted_return == ret
        assert learner.last_episode.total_reward == pytest.approx(3.0)


class TestEndToEnd:
    def test_two_state_learns_optimal_policy(self):
        learner = QLearner(TwoState(), config=_config(target_update_freq=20), seed=0)
        for _ in range(60):
            learner.episode()
        for position, best in enumerate(OPTIMAL_ACTIONS):
            obs = TwoState.observe(jnp.int32(position))
            assert learner.greedy_action(obs) == best

        metrics = learner.evaluate(n_episodes=4)
        assert float(metrics.mean_return) == pytest.approx(8.0)
        assert float(metrics.mean_length) == pytest.approx(8.0)

    def test_epsilon_decays(self):
        learner = QLearner(TwoState(), config=_config())
        start = learner.epsilon
        for _ in range(3):
            learner.episode()
        assert learner.epsilon < start
        assert learner.epsilon >= 0.05

    def test_prioritized_replay(self):
        config = _config(replay=ReplayConfig(capacity=200, prioritized=True, beta_steps=50))
        learner = QLearner(TwoState(), config=config)
        assert isinstance(learner.buffer, PrioritizedReplayBuffer)
        for _ in range(5):
            learner.episode()
        assert learner.updates > 0
        buffer = learner.buffer
        assert any(buffer.priority(i) != 1.0 for i in range(len(buffer)))

    def test_injected_buffer(self):
        buffer = ReplayBuffer(capacity=64, obs_shape=(2,), seed=0)
        learner = QLearner(TwoState(), config=_config(), buffer=buffer)
        learner.episode()
        assert learner.buffer is buffer
        assert len(buffer) == 8

    def test_injected_buffer_too_small_to_start_learning(self):
        buffer = ReplayBuffer(capacity=10, obs_shape=(2,))
        with pytest.raises(InvalidConfiguration, match="cannot hold"):
            QLearner(TwoState(), config=_config(exploration_steps=16), buffer=buffer)

    def test_learning_starts_with_exploration_equal_to_capacity(self):
        config = _config(exploration_steps=40, replay=ReplayConfig(capacity=40))
        learner = QLearner(TwoState(), config=config)
        for _ in range(6):
            learner.episode()
        assert learner.phase is Phase.LEARNING
        assert learner.updates == 48 - 40 + 1

    def test_same_seed_same_run(self):
        a = QLearner(TwoState(), config=_config(), seed=3)
        b = QLearner(TwoState(), config=_config(), seed=3)
        returns_a = [a.episode() for _ in range(4)]
        returns_b = [b.episode() for _ in range(4)]
        assert returns_a == returns_b
        assert _same(a.online_params, b.online_params)


class TestStop:
    def test_stop_before_episode(self):
        event = threading.Event()
        learner = QLearner(TwoState(), config=_config(), stop_event=event)
        event.set()
        assert learner.episode() == 0.0
        assert learner.last_episode.stopped
        assert learner.last_episode.length == 0
        assert learner.total_steps == 0
        assert learner.episodes == 0

    def test_stop_mid_episode(self):
        event = threading.Event()
        env = FlakyTwoState(stop_event=event, stop_after=3)
        learner = QLearner(env, config=_config(), stop_event=event, jit_env=False)
        learner.episode()
        assert learner.last_episode.stopped
        assert learner.last_episode.length == 3
        assert learner.total_steps == 3
        assert learner.episodes == 0
        assert learner.last_episode.episode == 1
        # the next episode starts fresh and is counted
        event.clear()
        learner.episode()
        assert learner.episodes == 1
        assert not learner.last_episode.stopped

    def test_request_stop(self):
        learner = QLearner(TwoState(), config=_config())
        learner.request_stop()
        assert learner.stop_requested
        learner.episode()
        assert learner.last_episode.stopped


class TestFailures:
    def test_environment_failure_discards_transition(self):
        env = FlakyTwoState(fail_on={3})
        learner = QLearner(env, config=_config(), jit_env=False)
        with pytest.raises(EnvironmentFailure):
            learner.episode()
        assert len(learner.buffer) == 2
        assert learner.total_steps == 2
        # the learner recovers with a fresh episode
        learner.episode()
        assert len(learner.buffer) == 10

    def test_environment_failure_is_runtime_error(self):
        env = FlakyTwoState(fail_on={1}, error=ValueError)
        learner = QLearner(env, config=_config(), jit_env=False)
        with pytest.raises(RuntimeError):
            learner.step()

    def test_transient_error_retried(self):
        env = FlakyTwoState(fail_on={2, 3}, error=TransientEnvironmentError)
        learner = QLearner(env, config=_config(env_step_retries=2), jit_env=False)
        learner.episode()
        assert learner.last_episode.length == 8
        assert len(learner.buffer) == 8

    def test_transient_error_without_retries(self):
        env = FlakyTwoState(fail_on={1}, error=TransientEnvironmentError)
        learner = QLearner(env, config=_config(), jit_env=False)
        with pytest.raises(EnvironmentFailure):
            learner.step()
        assert len(learner.buffer) == 0

    def test_numeric_divergence(self):
        learner = QLearner(NaNRewardTwoState(), config=_config(exploration_steps=8))
        with pytest.raises(NumericDivergence):
            for _ in range(3):
                learner.episode()
        assert learner.phase is Phase.FAILED

    def test_numeric_divergence_is_floating_point_error(self):
        learner = QLearner(NaNRewardTwoState(), config=_config(exploration_steps=8))
        with pytest.raises(FloatingPointError):
            for _ in range(3):
                learner.episode()


class TestPersistence:
    def test_save_and_load(self, tmp_path):
        trained = QLearner(TwoState(), config=_config(exploration_steps=8), seed=0)
        for _ in range(3):
            trained.episode()
        path = trained.save(tmp_path / "q.eqx")

        fresh = QLearner(TwoState(), config=_config(exploration_steps=8), seed=1)
        assert not _same(fresh.online_params, trained.online_params)
        fresh.load(path)
        assert _same(fresh.online_params, trained.online_params)
        assert _same(fresh.target_params, trained.online_params)

    def test_evaluate_changes_nothing(self):
        learner = QLearner(TwoState(), config=_config())
        before = learner.online_params
        metrics = learner.evaluate(n_episodes=3)
        assert float(metrics.mean_length) == pytest.approx(8.0)
        assert 0.0 <= float(metrics.mean_return) <= 8.0
        assert learner.total_steps == 0
        assert len(learner.buffer) == 0
        assert _same(learner.online_params, before)
