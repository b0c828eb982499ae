"""Epsilon-greedy action selection with step-wise decay.

The policy is a namespace of pure functions over an explicit
``EpsilonGreedyState``, matching how agents thread their state::

    config = EpsilonGreedyConfig(epsilon_start=1.0, epsilon_floor=0.05,
                                 epsilon_decay=0.01, decay_interval=10)
    state = EpsilonGreedy.init(config, rng)
    action, state = EpsilonGreedy.select(state, q_values, config=config)

Every ``decay_interval`` exploring decisions, epsilon drops by
``epsilon_decay`` and is clamped at ``epsilon_floor``.  Greedy
(``explore=False``) calls leave the schedule untouched.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from typing import NamedTuple

import chex
import jax
import jax.numpy as jnp

from qlearn.errors import require


@dataclass(frozen=True)
class EpsilonGreedyConfig:
    """Exploration schedule."""

    epsilon_start: float = 1.0
    epsilon_floor: float = 0.05
    epsilon_decay: float = 1e-3
    decay_interval: int = 1

    def __post_init__(self) -> None:
        require(
            0.0 <= self.epsilon_start <= 1.0,
            f"epsilon_start must be in [0, 1], got {self.epsilon_start}",
        )
        require(
            0.0 <= self.epsilon_floor <= self.epsilon_start,
            f"epsilon_floor must be in [0, epsilon_start={self.epsilon_start}], "
            f"got {self.epsilon_floor}",
        )
        require(self.epsilon_decay > 0.0, f"epsilon_decay must be > 0, got {self.epsilon_decay}")
        require(self.decay_interval > 0, f"decay_interval must be > 0, got {self.decay_interval}")


class EpsilonGreedyState(NamedTuple):
    """Fields:
    epsilon:   Current exploration rate, scalar float32.
    countdown: Exploring decisions left before the next decay, scalar int32.
    rng:       PRNG key for the exploration coin and random action.
    """

    epsilon: chex.Array
    countdown: chex.Array
    rng: chex.PRNGKey


class EpsilonGreedy:
    """Namespace for epsilon-greedy pure functions. Not instantiated."""

    @staticmethod
    def init(config: EpsilonGreedyConfig, rng: chex.PRNGKey) -> EpsilonGreedyState:
        return EpsilonGreedyState(
            epsilon=jnp.float32(config.epsilon_start),
            countdown=jnp.int32(config.decay_interval),
            rng=rng,
        )

    @staticmethod
    @partial(jax.jit, static_argnames=("config", "explore"))
    def select(
        state: EpsilonGreedyState,
        q_values: chex.Array,
        *,
        config: EpsilonGreedyConfig,
        explore: bool = True,
    ) -> tuple[chex.Array, EpsilonGreedyState]:
        """Pick an action from a vector of action values.

        Args:
            state: Current policy state.
            q_values: Action values for one state, shape ``(n_actions,)``.
            config: Exploration schedule (static).
            explore: If False, act greedily and leave the schedule alone.

        Returns:
            (action, new_state). ``jnp.argmax`` returns the first maximum,
            so ties go to the lowest action index.
        """
        greedy_action = jnp.argmax(q_values).astype(jnp.int32)
        if not explore:
            return greedy_action, state

        rng, key_eps, key_rand = jax.random.split(state.rng, 3)
        n_actions = q_values.shape[-1]
        random_action = jax.random.randint(key_rand, (), 0, n_actions, dtype=jnp.int32)
        use_random = jax.random.uniform(key_eps) < state.epsilon
        action = jnp.where(use_random, random_action, greedy_action)

        countdown = state.countdown - 1
        at_boundary = countdown <= 0
        epsilon = jnp.where(
            at_boundary,
            jnp.maximum(state.epsilon - config.epsilon_decay, config.epsilon_floor),
            state.epsilon,
        ).astype(jnp.float32)
        countdown = jnp.where(at_boundary, config.decay_interval, countdown).astype(jnp.int32)

        return action, EpsilonGreedyState(epsilon=epsilon, countdown=countdown, rng=rng)
