"""Functional environment interface.

Environments are pure: ``step`` returns a new state instead of mutating,
and the same key, state and action always give the same result.  That
keeps episodes reproducible and lets evaluation roll out many episodes
under ``jax.vmap``::

    env = TwoState()
    params = env.default_params()
    obs, state = env.reset(key, params)
    obs, state, reward, done, info = env.step(key, state, action, params)

``done`` ends the episode; ``info["terminated"]`` says whether it ended
because the task terminated (no bootstrapping) rather than because a
time limit truncated it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import equinox as eqx
import jax

from qlearn.env.spaces import Box, Discrete


class EnvState(eqx.Module):
    """Base class for immutable environment states."""

    time: jax.Array  # current timestep within the episode


class EnvParams(eqx.Module):
    """Base class for environment parameters (static configuration)."""


class Environment(ABC):
    """Abstract base for pure-JAX environments with discrete actions."""

    @abstractmethod
    def reset(
        self,
        key: jax.Array,
        params: EnvParams,
    ) -> tuple[jax.Array, EnvState]:
        """Start a new episode and return ``(obs, state)``."""
        ...

    @abstractmethod
    def step(
        self,
        key: jax.Array,
        state: EnvState,
        action: jax.Array,
        params: EnvParams,
    ) -> tuple[jax.Array, EnvState, jax.Array, jax.Array, dict[str, Any]]:
        """Advance one timestep, returning ``(obs, state, reward, done, info)``."""
        ...

    @abstractmethod
    def default_params(self) -> EnvParams:
        ...

    @abstractmethod
    def observation_space(self, params: EnvParams) -> Box:
        ...

    @abstractmethod
    def action_space(self, params: EnvParams) -> Discrete:
        ...

    @property
    def name(self) -> str:
        return self.__class__.__name__
