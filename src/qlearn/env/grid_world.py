"""Grid navigation with optional slippery moves.

The agent starts at ``(0, 0)`` and must reach ``(size-1, size-1)``.
With probability ``slip_prob`` the chosen move is replaced by a uniformly
random one, which makes the task stochastic but still reproducible from
the step key.
"""

from __future__ import annotations

from typing import Any

import equinox as eqx
import jax
import jax.numpy as jnp

from qlearn.env.base import Environment, EnvParams, EnvState
from qlearn.env.spaces import Box, Discrete


class GridWorldState(EnvState):
    row: jax.Array
    col: jax.Array


class GridWorldParams(EnvParams):
    size: int = eqx.field(static=True, default=5)
    max_steps: int = eqx.field(static=True, default=100)
    slip_prob: float = eqx.field(static=True, default=0.0)
    goal_reward: float = eqx.field(static=True, default=1.0)
    step_penalty: float = eqx.field(static=True, default=-0.01)


# up, right, down, left
_MOVES = jnp.array([[-1, 0], [0, 1], [1, 0], [0, -1]], dtype=jnp.int32)


class GridWorld(Environment):
    """Observation: ``[row, col] / (size-1)``. Actions: up, right, down, left."""

    def default_params(self) -> GridWorldParams:
        return GridWorldParams()

    def reset(
        self,
        key: jax.Array,
        params: GridWorldParams,
    ) -> tuple[jax.Array, GridWorldState]:
        state = GridWorldState(row=jnp.int32(0), col=jnp.int32(0), time=jnp.int32(0))
        return self._get_obs(state, params), state

    def step(
        self,
        key: jax.Array,
        state: GridWorldState,
        action: jax.Array,
        params: GridWorldParams,
    ) -> tuple[jax.Array, GridWorldState, jax.Array, jax.Array, dict[str, Any]]:
        key_slip, key_move = jax.random.split(key)
        slipped = jax.random.uniform(key_slip) < params.slip_prob
        move = jnp.where(slipped, jax.random.randint(key_move, (), 0, 4), action)

        last = params.size - 1
        row = jnp.clip(state.row + _MOVES[move, 0], 0, last)
        col = jnp.clip(state.col + _MOVES[move, 1], 0, last)
        new_state = GridWorldState(row=row, col=col, time=state.time + 1)

        terminated = (row == last) & (col == last)
        truncated = ~terminated & (new_state.time >= params.max_steps)
        reward = jnp.where(
            terminated, jnp.float32(params.goal_reward), jnp.float32(params.step_penalty),
        )
        info = {"terminated": terminated, "truncated": truncated}
        return self._get_obs(new_state, params), new_state, reward, terminated | truncated, info

    def observation_space(self, params: GridWorldParams) -> Box:
        return Box(low=0.0, high=1.0, shape=(2,))

    def action_space(self, params: GridWorldParams) -> Discrete:
        return Discrete(n=4)

    @staticmethod
    def _get_obs(state: GridWorldState, params: GridWorldParams) -> jax.Array:
        denom = max(params.size - 1, 1)
        return jnp.stack([state.row, state.col]).astype(jnp.float32) / denom
