"""Action and observation spaces.

Only two are needed for value-based control: a finite set of action
indices and a bounded real-valued observation vector.  Both are
equinox modules whose fields are all static, so a space is hashable and
has no array leaves.
"""

from __future__ import annotations

import equinox as eqx
import jax
import jax.numpy as jnp
import numpy as np

from qlearn.errors import require


class Discrete(eqx.Module):
    """Action indices ``0 .. n-1``."""

    n: int = eqx.field(static=True)

    def __check_init__(self) -> None:
        require(self.n >= 1, f"a discrete space needs at least one action, got n={self.n}")

    @property
    def shape(self) -> tuple[int, ...]:
        return ()

    def sample(self, key: jax.Array) -> jax.Array:
        return jax.random.randint(key, (), 0, self.n, dtype=jnp.int32)

    def contains(self, x: jax.Array) -> jax.Array:
        x = jnp.asarray(x)
        return (x == jnp.round(x)) & (x >= 0) & (x < self.n)


class Box(eqx.Module):
    """Real vectors with elementwise bounds.

    *low* and *high* may be scalars (then *shape* is required) or arrays
    of the observation shape.
    """

    shape: tuple[int, ...] = eqx.field(static=True)
    bounds: tuple[tuple[float, float], ...] = eqx.field(static=True)

    def __init__(
        self,
        low: float | jax.Array,
        high: float | jax.Array,
        shape: tuple[int, ...] | None = None,
    ) -> None:
        lo, hi = np.asarray(low, dtype=np.float32), np.asarray(high, dtype=np.float32)
        if shape is None:
            shape = lo.shape
        lo, hi = np.broadcast_to(lo, shape), np.broadcast_to(hi, shape)
        self.shape = tuple(int(d) for d in shape)
        self.bounds = tuple(zip(lo.ravel().tolist(), hi.ravel().tolist(), strict=True))

    @property
    def low(self) -> jax.Array:
        return jnp.array([b[0] for b in self.bounds], dtype=jnp.float32).reshape(self.shape)

    @property
    def high(self) -> jax.Array:
        return jnp.array([b[1] for b in self.bounds], dtype=jnp.float32).reshape(self.shape)

    def contains(self, x: jax.Array) -> jax.Array:
        x = jnp.asarray(x)
        return jnp.all((x >= self.low) & (x <= self.high))
