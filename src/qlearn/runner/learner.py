"""Stateful Q-learning core.

``QLearner`` owns one environment, one replay buffer and one
``DQNState`` and runs the interaction loop one episode at a time.  The
Python loop handles buffer bookkeeping, phase changes and error checks;
action selection, the gradient update and target synchronisation are
jitted pure functions from :class:`~qlearn.algorithms.dqn.DQN`.

Each step, in order:

a. online action values for the current observation
b. epsilon-greedy action
c. environment step
d. transition stored
e. one gradient update, when learning and ``total_steps % train_freq == 0``
f. target <- online, when ``total_steps % target_update_freq == 0``
g. discounted reward accumulated

Usage::

    env, env_params = make("TwoState-v0")
    learner = QLearner(env, env_params, DQNConfig(exploration_steps=64), seed=0)
    for _ in range(100):
        ret = learner.episode()
"""

from __future__ import annotations

import enum
import logging
import math
import threading
from pathlib import Path
from typing import Any, NamedTuple

import chex
import jax
import numpy as np

from qlearn.algorithms.dqn import value_function as vf
from qlearn.algorithms.dqn.agent import DQN
from qlearn.algorithms.dqn.config import DQNConfig, ReplayConfig
from qlearn.algorithms.dqn.types import DQNState
from qlearn.dataprotocol.prioritized_buffer import PrioritizedReplayBuffer
from qlearn.dataprotocol.replay_buffer import ReplayBuffer, ReplayMemory
from qlearn.env.base import EnvParams, EnvState, Environment
from qlearn.errors import (
    EnvironmentFailure,
    InsufficientData,
    NumericDivergence,
    QLearnError,
    TransientEnvironmentError,
    require,
)
from qlearn.runner.evaluator import EvalMetrics, jit_evaluate
from qlearn.seeding import make_rng, split_keys
from qlearn.types import Params

logger = logging.getLogger(__name__)


class Phase(enum.Enum):
    UNINITIALIZED = "uninitialized"
    EXPLORING = "exploring"
    LEARNING = "learning"
    CONVERGED = "converged"
    FAILED = "failed"


class StepResult(NamedTuple):
    """Outcome of a single :meth:`QLearner.step`."""

    action: int
    reward: float
    terminated: bool
    episode_over: bool
    learned: bool
    synced: bool


class EpisodeStats(NamedTuple):
    """Summary of the most recent :meth:`QLearner.episode`."""

    episode: int
    discounted_return: float
    total_reward: float
    length: int
    updates: int  # gradient updates during this episode
    epsilon: float
    phase: Phase
    loss: float | None
    stopped: bool


def make_replay_buffer(
    config: ReplayConfig,
    obs_shape: tuple[int, ...],
    *,
    seed: int | None = None,
) -> ReplayMemory:
    """Build the buffer variant selected by *config*."""
    if config.prioritized:
        return PrioritizedReplayBuffer(
            config.capacity,
            obs_shape,
            alpha=config.alpha,
            beta_start=config.beta_start,
            beta_steps=config.beta_steps,
            epsilon=config.priority_epsilon,
            seed=seed,
        )
    return ReplayBuffer(config.capacity, obs_shape, seed=seed)


class QLearner:
    """Episode-driven Q-learning with replay and a target network.

    Parameters
    ----------
    env:
        Pure-JAX environment with a discrete action space.
    env_params:
        Environment parameters. ``None`` uses ``env.default_params()``.
    config:
        Learning hyperparameters. ``None`` uses ``DQNConfig()``.
    seed:
        Seeds network init, exploration, environment keys and replay
        sampling.
    buffer:
        Replay buffer to use instead of the one built from
        ``config.replay``.
    stop_event:
        Event checked at every step and episode boundary; setting it
        makes the current episode return early.
    jit_env:
        Compile ``env.reset`` / ``env.step``. Disable for environments
        that call out of JAX (e.g. a bridge to an external simulator).
    """

    def __init__(
        self,
        env: Environment,
        env_params: EnvParams | None = None,
        config: DQNConfig | None = None,
        *,
        seed: int = 0,
        obs_shape: tuple[int, ...] | None = None,
        n_actions: int | None = None,
        buffer: ReplayMemory | None = None,
        stop_event: threading.Event | None = None,
        jit_env: bool = True,
    ) -> None:
        self.phase = Phase.UNINITIALIZED
        self.env = env
        self.env_params = env_params if env_params is not None else env.default_params()
        self.config = config if config is not None else DQNConfig()

        if obs_shape is None:
            obs_shape = tuple(env.observation_space(self.env_params).shape)
        if n_actions is None:
            n_actions = env.action_space(self.env_params).n
        self.obs_shape = obs_shape
        self.n_actions = n_actions

        _, agent_key, env_key = split_keys(make_rng(seed), n=2)
        self._agent_state = DQN.init(agent_key, obs_shape, n_actions, self.config)
        self._rng = env_key
        self.buffer = buffer if buffer is not None else make_replay_buffer(
            self.config.replay, obs_shape, seed=seed,
        )
        require(
            self.buffer.capacity >= self.config.learning_starts,
            f"replay buffer capacity {self.buffer.capacity} cannot hold the "
            f"{self.config.learning_starts} transitions needed before learning starts",
        )

        self._reset_fn = jax.jit(env.reset) if jit_env else env.reset
        self._step_fn = jax.jit(env.step) if jit_env else env.step
        self._stop = stop_event if stop_event is not None else threading.Event()

        self._obs: chex.Array | None = None
        self._env_state: EnvState | None = None
        self._episode_steps = 0
        self._total_steps = 0
        self._episodes = 0
        self._updates = 0
        self._last_loss: float | None = None
        self.last_episode: EpisodeStats | None = None

        self._set_phase(Phase.EXPLORING)
        self._maybe_start_learning()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def agent_state(self) -> DQNState:
        return self._agent_state

    @property
    def online_params(self) -> Params:
        return self._agent_state.params

    @property
    def target_params(self) -> Params:
        return self._agent_state.target_params

    @property
    def epsilon(self) -> float:
        return float(self._agent_state.policy.epsilon)

    @property
    def total_steps(self) -> int:
        return self._total_steps

    @property
    def episodes(self) -> int:
        return self._episodes

    @property
    def updates(self) -> int:
        return self._updates

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    # ------------------------------------------------------------------
    # Phase control
    # ------------------------------------------------------------------

    def request_stop(self) -> None:
        self._stop.set()

    def mark_converged(self) -> None:
        """Caller's convergence criterion was met; learning stops."""
        self._set_phase(Phase.CONVERGED)

    def mark_failed(self) -> None:
        """Caller's budget ran out without convergence."""
        self._set_phase(Phase.FAILED)

    def _set_phase(self, phase: Phase) -> None:
        if phase is not self.phase:
            logger.info("phase %s -> %s", self.phase.value, phase.value)
            self.phase = phase

    def _maybe_start_learning(self) -> None:
        if self.phase is Phase.EXPLORING and len(self.buffer) >= self.config.learning_starts:
            self._set_phase(Phase.LEARNING)

    # ------------------------------------------------------------------
    # Interaction loop
    # ------------------------------------------------------------------

    def reset_episode(self) -> chex.Array:
        """Start a new episode and return its first observation."""
        self._rng, key = jax.random.split(self._rng)
        try:
            obs, env_state = self._reset_fn(key, self.env_params)
        except QLearnError:
            raise
        except Exception as exc:
            raise EnvironmentFailure(f"{self.env.name}.reset failed: {exc}") from exc
        self._obs, self._env_state = obs, env_state
        self._episode_steps = 0
        return obs

    def step(self) -> StepResult:
        """Advance one environment step, learning and syncing as scheduled."""
        if self._obs is None:
            self.reset_episode()
        cfg = self.config

        action, q_values, self._agent_state = DQN.act(
            self._agent_state, self._obs, config=cfg, explore=True,
        )
        if not np.all(np.isfinite(np.asarray(q_values))):
            self._diverged(f"non-finite action values {np.asarray(q_values)}")
        action_id = int(action)

        try:
            next_obs, env_state, reward, done, info = self._env_step(action)
        except EnvironmentFailure:
            self._obs = None
            raise

        reward = float(reward)
        terminated = bool(info.get("terminated", done))
        self.buffer.push(np.asarray(self._obs), action_id, reward, np.asarray(next_obs), terminated)
        self._obs, self._env_state = next_obs, env_state
        self._total_steps += 1
        self._episode_steps += 1
        self._maybe_start_learning()

        learned = False
        if self.phase is Phase.LEARNING and self._total_steps % cfg.train_freq == 0:
            self._learn()
            learned = True

        synced = False
        if self._total_steps % cfg.target_update_freq == 0:
            self._agent_state = DQN.sync_target(self._agent_state, config=cfg)
            synced = True
            logger.debug("target synced at step %d", self._total_steps)

        episode_over = bool(done) or self._episode_steps >= cfg.max_episode_steps
        if episode_over:
            self._obs = None
        return StepResult(
            action=action_id,
            reward=reward,
            terminated=terminated,
            episode_over=episode_over,
            learned=learned,
            synced=synced,
        )

    def episode(self) -> float:
        """Run one episode and return its discounted return.

        An episode cut short by a stop request is reported in
        ``last_episode`` with ``stopped=True`` but not counted in
        :attr:`episodes`.
        """
        gamma = self.config.gamma
        discounted, discount, total_reward, length = 0.0, 1.0, 0.0, 0
        updates_before = self._updates
        stopped = self.stop_requested

        if not stopped:
            self.reset_episode()
            while self._obs is not None:
                if self.stop_requested:
                    stopped = True
                    break
                result = self.step()
                discounted += discount * result.reward
                discount *= gamma
                total_reward += result.reward
                length += 1

        if stopped:
            logger.info("stop requested after %d steps of episode %d", length, self._episodes + 1)
        else:
            self._episodes += 1
        self.last_episode = EpisodeStats(
            episode=self._episodes + int(stopped),
            discounted_return=discounted,
            total_reward=total_reward,
            length=length,
            updates=self._updates - updates_before,
            epsilon=self.epsilon,
            phase=self.phase,
            loss=self._last_loss,
            stopped=stopped,
        )
        return discounted

    def _env_step(self, action: chex.Array) -> tuple[Any, EnvState, Any, Any, dict[str, Any]]:
        attempts = 0
        while True:
            self._rng, key = jax.random.split(self._rng)
            try:
                return self._step_fn(key, self._env_state, action, self.env_params)
            except TransientEnvironmentError as exc:
                if attempts >= self.config.env_step_retries:
                    raise EnvironmentFailure(
                        f"{self.env.name}.step failed after {attempts + 1} attempts: {exc}"
                    ) from exc
                attempts += 1
                logger.warning("transient environment error, retry %d: %s", attempts, exc)
            except QLearnError:
                raise
            except Exception as exc:
                raise EnvironmentFailure(f"{self.env.name}.step failed: {exc}") from exc

    def _learn(self) -> None:
        batch_size = self.config.batch_size
        if len(self.buffer) < batch_size:
            raise InsufficientData(
                f"learning step with {len(self.buffer)} stored transitions, need {batch_size}"
            )
        sample = self.buffer.sample(batch_size)
        self._agent_state, metrics = DQN.update(
            self._agent_state, sample.transitions, sample.weights, config=self.config,
        )
        loss = float(metrics.loss)
        td_error = np.asarray(metrics.td_error)
        if not math.isfinite(loss) or not np.all(np.isfinite(td_error)):
            self._diverged(f"non-finite loss {loss} at update {self._updates + 1}")
        self.buffer.update_priorities(sample.indices, td_error)
        self._updates += 1
        self._last_loss = loss

    def _diverged(self, message: str) -> None:
        self._set_phase(Phase.FAILED)
        raise NumericDivergence(message)

    # ------------------------------------------------------------------
    # Evaluation and persistence
    # ------------------------------------------------------------------

    def greedy_action(self, obs: chex.Array) -> int:
        return int(DQN.greedy_action(self._agent_state.params, obs))

    def evaluate(self, n_episodes: int = 10, max_steps: int | None = None) -> EvalMetrics:
        """Greedy rollouts of the online network; stores and learns nothing."""
        self._rng, key = jax.random.split(self._rng)
        return jit_evaluate(
            self._agent_state.params,
            self.env,
            self.env_params,
            n_episodes=n_episodes,
            max_steps=max_steps or self.config.max_episode_steps,
            gamma=self.config.gamma,
            rng=key,
        )

    def save(self, path: str | Path) -> Path:
        """Save the online network's parameters."""
        return vf.save_params(path, self._agent_state.params)

    def load(self, path: str | Path) -> None:
        """Load online parameters and copy them into the target network."""
        params = vf.load_params(path, self._agent_state.params)
        self._agent_state = self._agent_state._replace(
            params=params, target_params=vf.clone_params(params),
        )
