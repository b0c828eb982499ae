"""Pure-function schedules.

A schedule maps ``step -> value`` and carries no Python-side state, so
it can be evaluated on the host or inside ``jax.jit``.  Prioritized
replay anneals its importance-sampling exponent with one::

    beta = linear_schedule(start=0.4, end=1.0, steps=100_000)
    float(beta(n_sample_calls))
"""

from __future__ import annotations

from collections.abc import Callable

import jax.numpy as jnp

Schedule = Callable[[int | jnp.ndarray], jnp.ndarray]


def linear_schedule(start: float, end: float, steps: int) -> Schedule:
    """Linearly interpolate from *start* to *end* over *steps*, then hold.

    ``steps <= 0`` is treated as 1.
    """
    _start = jnp.float32(start)
    _end = jnp.float32(end)
    _steps = jnp.float32(max(steps, 1))

    def _schedule(step: int | jnp.ndarray) -> jnp.ndarray:
        frac = jnp.clip(jnp.float32(step) / _steps, 0.0, 1.0)
        return _start + frac * (_end - _start)

    return _schedule
