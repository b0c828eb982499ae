"""Pure-functional DQN / Double DQN.

All methods are static pure functions; state is threaded explicitly
through ``DQNState``.  Target synchronisation is a separate call so the
caller decides *when* it happens (the learner does it every
``target_update_freq`` environment steps).

Usage::

    config = DQNConfig()
    state = DQN.init(rng, obs_shape=(4,), n_actions=2, config=config)
    action, q_values, state = DQN.act(state, obs, config=config)
    state, metrics = DQN.update(state, batch, weights, config=config)
    state = DQN.sync_target(state, config=config)
"""

from __future__ import annotations

import math
from functools import partial

import chex
import equinox as eqx
import jax
import jax.numpy as jnp

from qlearn.algorithms.dqn import value_function as vf
from qlearn.algorithms.dqn.config import DQNConfig
from qlearn.algorithms.dqn.network import QNetwork
from qlearn.algorithms.dqn.types import DQNMetrics, DQNState
from qlearn.policies.epsilon_greedy import EpsilonGreedy
from qlearn.types import Params, Transition


class DQN:
    """Namespace for DQN pure functions. Not instantiated."""

    @staticmethod
    def init(
        rng: chex.PRNGKey,
        obs_shape: tuple[int, ...],
        n_actions: int,
        config: DQNConfig,
    ) -> DQNState:
        """Create initial state; the target starts as an exact copy of the online net."""
        obs_dim = math.prod(obs_shape)
        net_key, policy_key = jax.random.split(rng)

        q_net = QNetwork(obs_dim, n_actions, config.hidden_sizes, key=net_key)
        optimizer = vf.make_optimizer(config.lr, config.max_grad_norm)

        return DQNState(
            params=q_net,
            target_params=vf.clone_params(q_net),
            opt_state=optimizer.init(eqx.filter(q_net, eqx.is_array)),
            policy=EpsilonGreedy.init(config.exploration, policy_key),
            step=jnp.zeros((), dtype=jnp.int32),
        )

    @staticmethod
    @partial(jax.jit, static_argnames=("config", "explore"))
    def act(
        state: DQNState,
        obs: chex.Array,
        *,
        config: DQNConfig,
        explore: bool = True,
    ) -> tuple[chex.Array, chex.Array, DQNState]:
        """Epsilon-greedy action for a single observation.

        Returns:
            ``(action, q_values, new_state)``; *q_values* are the online
            network's estimates the decision was based on.
        """
        q_values = state.params(obs)
        action, policy = EpsilonGreedy.select(
            state.policy, q_values, config=config.exploration, explore=explore,
        )
        return action, q_values, state._replace(policy=policy)

    @staticmethod
    @jax.jit
    def greedy_action(params: Params, obs: chex.Array) -> chex.Array:
        return jnp.argmax(params(obs)).astype(jnp.int32)

    @staticmethod
    def td_targets(
        online: Params,
        target: Params,
        batch: Transition,
        *,
        gamma: float,
        double_q: bool,
    ) -> chex.Array:
        """Regression targets for a batch of transitions.

        - terminal:  ``r``
        - standard:  ``r + gamma * max_a' Q_target(s', a')``
        - double:    ``r + gamma * Q_target(s', argmax_a' Q_online(s', a'))``
        """
        next_q_target = vf.predict(target, batch.next_obs)  # (B, n_actions)
        if double_q:
            next_actions = jnp.argmax(vf.predict(online, batch.next_obs), axis=-1)
            next_values = jnp.take_along_axis(
                next_q_target, next_actions[:, None], axis=-1,
            ).squeeze(-1)
        else:
            next_values = jnp.max(next_q_target, axis=-1)
        reward = batch.reward.astype(jnp.float32)
        return jnp.where(batch.done, reward, reward + gamma * next_values)

    @staticmethod
    @partial(jax.jit, static_argnames=("config",))
    def update(
        state: DQNState,
        batch: Transition,
        weights: chex.Array,
        *,
        config: DQNConfig,
    ) -> tuple[DQNState, DQNMetrics]:
        """One gradient step on a batch of transitions (pure function).

        Args:
            state: Current DQN state.
            batch: Batched transitions, each field has shape ``(B, ...)``.
            weights: Importance-sampling weights, shape ``(B,)``.
            config: DQN hyperparameters (static).

        Returns:
            (new_state, metrics) tuple.
        """
        optimizer = vf.make_optimizer(config.lr, config.max_grad_norm)
        targets = DQN.td_targets(
            state.params, state.target_params, batch,
            gamma=config.gamma, double_q=config.double_q,
        )
        new_params, new_opt_state, loss, q_taken, td_error = vf.gradient_step(
            state.params, state.opt_state, optimizer,
            batch.obs, targets, batch.action, weights,
        )
        new_state = state._replace(
            params=new_params,
            opt_state=new_opt_state,
            step=state.step + 1,
        )
        metrics = DQNMetrics(loss=loss, q_mean=jnp.mean(q_taken), td_error=td_error)
        return new_state, metrics

    @staticmethod
    @partial(jax.jit, static_argnames=("config",))
    def sync_target(state: DQNState, *, config: DQNConfig) -> DQNState:
        """Copy (or Polyak-average, if ``config.tau < 1``) online into target."""
        return state._replace(
            target_params=vf.copy_params(state.params, state.target_params, config.tau),
        )
