"""Deterministic two-state, two-action task with a known optimal policy.

The agent alternates between states 0 and 1 regardless of what it does.
In each state exactly one action pays ``+1``; the other pays ``0``.
The episode terminates after ``episode_length`` steps.  The optimal
greedy policy is ``OPTIMAL_ACTIONS[state]``.
"""

from __future__ import annotations

from typing import Any

import equinox as eqx
import jax
import jax.numpy as jnp

from qlearn.env.base import Environment, EnvParams, EnvState
from qlearn.env.spaces import Box, Discrete

# state -> rewarded action
OPTIMAL_ACTIONS = (1, 0)


class TwoStateState(EnvState):
    position: jax.Array  # 0 or 1


class TwoStateParams(EnvParams):
    episode_length: int = eqx.field(static=True, default=8)
    random_start: bool = eqx.field(static=True, default=True)


class TwoState(Environment):
    """Observation: one-hot of the current state. Actions: ``0`` or ``1``."""

    def default_params(self) -> TwoStateParams:
        return TwoStateParams()

    def reset(
        self,
        key: jax.Array,
        params: TwoStateParams,
    ) -> tuple[jax.Array, TwoStateState]:
        position = jnp.where(
            params.random_start,
            jax.random.randint(key, (), 0, 2, dtype=jnp.int32),
            jnp.int32(0),
        )
        state = TwoStateState(position=position, time=jnp.int32(0))
        return self.observe(position), state

    def step(
        self,
        key: jax.Array,
        state: TwoStateState,
        action: jax.Array,
        params: TwoStateParams,
    ) -> tuple[jax.Array, TwoStateState, jax.Array, jax.Array, dict[str, Any]]:
        optimal = jnp.array(OPTIMAL_ACTIONS, dtype=jnp.int32)[state.position]
        reward = jnp.where(action == optimal, jnp.float32(1.0), jnp.float32(0.0))
        time = state.time + 1
        new_state = TwoStateState(position=1 - state.position, time=time)
        terminated = time >= params.episode_length
        info = {"terminated": terminated, "truncated": jnp.bool_(False)}
        return self.observe(new_state.position), new_state, reward, terminated, info

    def observation_space(self, params: TwoStateParams) -> Box:
        return Box(low=0.0, high=1.0, shape=(2,))

    def action_space(self, params: TwoStateParams) -> Discrete:
        return Discrete(n=2)

    @staticmethod
    def observe(position: jax.Array) -> jax.Array:
        return jax.nn.one_hot(position, 2, dtype=jnp.float32)
