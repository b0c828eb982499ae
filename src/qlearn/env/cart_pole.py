"""Cart-pole balancing (Barto, Sutton & Anderson, 1983).

Physics and thresholds follow the common CartPole-v1 defaults: Euler
integration at 50 Hz, failure beyond 12 degrees or 2.4 units, +1 reward
per step survived, truncation after ``max_steps``.
"""

from __future__ import annotations

from typing import Any

import equinox as eqx
import jax
import jax.numpy as jnp

from qlearn.env.base import Environment, EnvParams, EnvState
from qlearn.env.spaces import Box, Discrete


class CartPoleState(EnvState):
    physics: jax.Array  # [x, x_dot, theta, theta_dot]


class CartPoleParams(EnvParams):
    gravity: float = eqx.field(static=True, default=9.8)
    masscart: float = eqx.field(static=True, default=1.0)
    masspole: float = eqx.field(static=True, default=0.1)
    length: float = eqx.field(static=True, default=0.5)  # half the pole length
    force_mag: float = eqx.field(static=True, default=10.0)
    tau: float = eqx.field(static=True, default=0.02)
    theta_threshold: float = eqx.field(static=True, default=0.2094395)
    x_threshold: float = eqx.field(static=True, default=2.4)
    max_steps: int = eqx.field(static=True, default=500)


class CartPole(Environment):
    """Observation: ``[x, x_dot, theta, theta_dot]``. Actions: push left / push right."""

    def default_params(self) -> CartPoleParams:
        return CartPoleParams()

    def reset(
        self,
        key: jax.Array,
        params: CartPoleParams,
    ) -> tuple[jax.Array, CartPoleState]:
        physics = jax.random.uniform(key, shape=(4,), minval=-0.05, maxval=0.05)
        return physics, CartPoleState(physics=physics, time=jnp.int32(0))

    def step(
        self,
        key: jax.Array,
        state: CartPoleState,
        action: jax.Array,
        params: CartPoleParams,
    ) -> tuple[jax.Array, CartPoleState, jax.Array, jax.Array, dict[str, Any]]:
        x, x_dot, theta, theta_dot = state.physics
        force = jnp.where(action == 1, params.force_mag, -params.force_mag)

        total_mass = params.masscart + params.masspole
        pole_moment = params.masspole * params.length
        cos_th, sin_th = jnp.cos(theta), jnp.sin(theta)

        temp = (force + pole_moment * theta_dot**2 * sin_th) / total_mass
        theta_acc = (params.gravity * sin_th - cos_th * temp) / (
            params.length * (4.0 / 3.0 - params.masspole * cos_th**2 / total_mass)
        )
        x_acc = temp - pole_moment * theta_acc * cos_th / total_mass

        physics = jnp.stack([
            x + params.tau * x_dot,
            x_dot + params.tau * x_acc,
            theta + params.tau * theta_dot,
            theta_dot + params.tau * theta_acc,
        ]).astype(jnp.float32)
        new_state = CartPoleState(physics=physics, time=state.time + 1)

        terminated = (jnp.abs(physics[0]) > params.x_threshold) | (
            jnp.abs(physics[2]) > params.theta_threshold
        )
        truncated = ~terminated & (new_state.time >= params.max_steps)
        info = {"terminated": terminated, "truncated": truncated}
        return physics, new_state, jnp.float32(1.0), terminated | truncated, info

    def observation_space(self, params: CartPoleParams) -> Box:
        big = float(jnp.finfo(jnp.float32).max)
        high = jnp.array(
            [params.x_threshold * 2, big, params.theta_threshold * 2, big],
            dtype=jnp.float32,
        )
        return Box(low=-high, high=high)

    def action_space(self, params: CartPoleParams) -> Discrete:
        return Discrete(n=2)
