"""Greedy evaluation with vmap-parallel episodes.

Each episode runs inside a ``lax.while_loop`` bounded by *max_steps*, and
the episodes are vmapped, so a whole evaluation is one compiled call.
Nothing is stored and no parameters change.
"""

from __future__ import annotations

from typing import NamedTuple

import chex
import jax
import jax.numpy as jnp

from qlearn.env.base import EnvParams, EnvState, Environment
from qlearn.types import Params


class EvalMetrics(NamedTuple):
    """Aggregated evaluation results."""

    mean_return: chex.Array
    std_return: chex.Array
    mean_discounted_return: chex.Array
    mean_length: chex.Array


class _EpisodeCarry(NamedTuple):
    obs: chex.Array
    env_state: EnvState
    rng: chex.PRNGKey
    total_reward: chex.Array
    discounted: chex.Array
    discount: chex.Array
    length: chex.Array
    done: chex.Array


def evaluate(
    params: Params,
    env: Environment,
    env_params: EnvParams,
    *,
    n_episodes: int,
    max_steps: int,
    gamma: float,
    rng: chex.PRNGKey,
) -> EvalMetrics:
    """Roll out the greedy policy of Q-network *params* for *n_episodes*.

    Args:
        params: Online Q-network.
        env: Pure-JAX environment.
        env_params: Environment parameters.
        n_episodes: Number of parallel episodes.
        max_steps: Step limit per episode (static).
        gamma: Discount for the discounted return.
        rng: PRNG key, split across episodes.
    """

    def _run_episode(key: chex.PRNGKey) -> tuple[chex.Array, chex.Array, chex.Array]:
        key_reset, key_steps = jax.random.split(key)
        obs, env_state = env.reset(key_reset, env_params)
        carry = _EpisodeCarry(
            obs=obs,
            env_state=env_state,
            rng=key_steps,
            total_reward=jnp.float32(0.0),
            discounted=jnp.float32(0.0),
            discount=jnp.float32(1.0),
            length=jnp.int32(0),
            done=jnp.bool_(False),
        )

        def _cond(c: _EpisodeCarry) -> chex.Array:
            return ~c.done & (c.length < max_steps)

        def _body(c: _EpisodeCarry) -> _EpisodeCarry:
            action = jnp.argmax(params(c.obs)).astype(jnp.int32)
            rng, step_key = jax.random.split(c.rng)
            obs, env_state, reward, done, _info = env.step(step_key, c.env_state, action, env_params)
            reward = jnp.asarray(reward, dtype=jnp.float32)
            return _EpisodeCarry(
                obs=obs,
                env_state=env_state,
                rng=rng,
                total_reward=c.total_reward + reward,
                discounted=c.discounted + c.discount * reward,
                discount=c.discount * jnp.float32(gamma),
                length=c.length + 1,
                done=jnp.asarray(done, dtype=jnp.bool_),
            )

        final = jax.lax.while_loop(_cond, _body, carry)
        return final.total_reward, final.discounted, final.length

    keys = jax.random.split(rng, n_episodes)
    returns, discounted, lengths = jax.vmap(_run_episode)(keys)

    return EvalMetrics(
        mean_return=jnp.mean(returns),
        std_return=jnp.std(returns),
        mean_discounted_return=jnp.mean(discounted),
        mean_length=jnp.mean(lengths.astype(jnp.float32)),
    )


jit_evaluate = jax.jit(
    evaluate, static_argnames=("env", "n_episodes", "max_steps", "gamma"),
)
