"""Q-network implemented with Equinox."""

from __future__ import annotations

import equinox as eqx
import jax


class QNetwork(eqx.Module):
    """ReLU MLP mapping one observation to a vector of ``n_actions`` values.

    Observations of any shape are flattened first, so ``obs_dim`` is the
    product of the observation shape.
    """

    hidden: tuple[eqx.nn.Linear, ...]
    head: eqx.nn.Linear

    def __init__(
        self,
        obs_dim: int,
        n_actions: int,
        hidden_sizes: tuple[int, ...] = (128, 128),
        *,
        key: jax.Array,
    ) -> None:
        *hidden_keys, head_key = jax.random.split(key, len(hidden_sizes) + 1)
        widths = (obs_dim, *hidden_sizes)
        self.hidden = tuple(
            eqx.nn.Linear(w_in, w_out, key=k)
            for w_in, w_out, k in zip(widths[:-1], widths[1:], hidden_keys, strict=True)
        )
        self.head = eqx.nn.Linear(widths[-1], n_actions, key=head_key)

    def __call__(self, obs: jax.Array) -> jax.Array:
        h = obs.reshape(-1)
        for layer in self.hidden:
            h = jax.nn.relu(layer(h))
        return self.head(h)
