"""Core type definitions for qlearn.

All state containers are NamedTuples for zero-overhead JAX pytree compatibility.
"""

from __future__ import annotations

from typing import Any, NamedTuple, TypeAlias

import chex
import numpy as np

# ---------------------------------------------------------------------------
# Scalar / array type aliases
# ---------------------------------------------------------------------------
Action: TypeAlias = chex.Array
Value: TypeAlias = chex.Array
Reward: TypeAlias = chex.Array
Done: TypeAlias = chex.Array

# Generic pytree aliases
Params: TypeAlias = Any  # network parameter pytree
OptState: TypeAlias = Any  # optax optimizer state pytree


# ---------------------------------------------------------------------------
# Transition containers
# ---------------------------------------------------------------------------
class Transition(NamedTuple):
    """A single (s, a, r, s', done) experience tuple.

    ``done`` is the *terminal* flag: true only when the episode ended
    because the task terminated, not because a step limit was hit.
    For batched transitions every field has a leading batch dimension.

    Fields:
        obs:      Observation.          scalar: (*obs_shape,)  batched: (B, *obs_shape)
        action:   Action index.         scalar: ()             batched: (B,)
        reward:   Scalar reward.        scalar: ()             batched: (B,)
        next_obs: Next observation.     scalar: (*obs_shape,)  batched: (B, *obs_shape)
        done:     Terminal flag.        scalar: ()             batched: (B,)
    """

    obs: chex.Array
    action: chex.Array
    reward: chex.Array
    next_obs: chex.Array
    done: chex.Array


class ReplaySample(NamedTuple):
    """A sampled minibatch plus the bookkeeping prioritized replay needs.

    Fields:
        transitions: Batched ``Transition`` of jax arrays.
        indices:     Buffer slots the samples came from, shape ``(B,)``.
        weights:     Importance-sampling weights, shape ``(B,)``. All ones
                     for uniform replay.
    """

    transitions: Transition
    indices: np.ndarray
    weights: chex.Array


# A batched Transition is the Batch type.
Batch = Transition
