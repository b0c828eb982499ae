"""Seed management.

Device-side randomness (network init, exploration, environment resets)
flows through explicit ``jax.random`` keys.  Host-side randomness
(replay sampling) uses a numpy ``Generator`` derived from the same
integer seed, so one seed reproduces a whole run.

Usage::

    from qlearn.seeding import make_rng, split_keys

    rng = make_rng(42)
    rng, agent_key, env_key = split_keys(rng, n=2)
"""

from __future__ import annotations

import jax
import numpy as np


def make_rng(seed: int) -> jax.Array:
    """Create a JAX PRNG key from an integer seed."""
    return jax.random.PRNGKey(seed)


def split_keys(rng: jax.Array, n: int) -> tuple[jax.Array, ...]:
    """Split *rng* into ``n + 1`` keys: ``(new_rng, key_1, ..., key_n)``."""
    keys = jax.random.split(rng, n + 1)
    return tuple(keys)  # type: ignore[return-value]


def numpy_generator(seed: int | None, stream: int = 0) -> np.random.Generator:
    """Return a numpy ``Generator`` for host-side sampling.

    *stream* separates independent consumers seeded from the same
    integer (e.g. two buffers in one process).
    """
    if seed is None:
        return np.random.default_rng()
    return np.random.default_rng([seed, stream])
