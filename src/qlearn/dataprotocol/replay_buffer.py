"""Replay buffers for off-policy Q-learning.

Storage lives in pre-allocated numpy arrays (mutated on the host);
``sample()`` returns jax arrays ready for a jitted update step.  The
buffers are not jit-compatible themselves and sit in the Python outer
loop::

    for step in range(total_steps):
        action, state = jit_act(state, obs)
        next_obs, reward, done = env.step(action)
        buffer.push(obs, action, reward, next_obs, done)
        if len(buffer) >= warmup:
            sample = buffer.sample(batch_size)
            state, metrics = jit_update(state, sample.transitions, sample.weights)
            buffer.update_priorities(sample.indices, metrics.td_error)

Uniform sampling is **without replacement**: a batch never contains the
same slot twice, and asking for more transitions than are stored raises
``InsufficientData``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import jax.numpy as jnp
import numpy as np

from qlearn.errors import InsufficientData, require
from qlearn.seeding import numpy_generator
from qlearn.types import ReplaySample, Transition


@runtime_checkable
class ReplayMemory(Protocol):
    """Capability contract shared by every replay buffer."""

    capacity: int

    def push(
        self,
        obs: np.ndarray,
        action: int | np.ndarray,
        reward: float,
        next_obs: np.ndarray,
        done: bool,
    ) -> int: ...

    def sample(self, batch_size: int) -> ReplaySample: ...

    def update_priorities(self, indices: np.ndarray, td_errors: np.ndarray) -> None: ...

    def __len__(self) -> int: ...


class TransitionRing:
    """Fixed-capacity circular storage for transitions.

    Slot ``i`` is overwritten every ``capacity`` pushes, so the logically
    oldest transition is always the one evicted.
    """

    def __init__(self, capacity: int, obs_shape: tuple[int, ...]) -> None:
        require(capacity > 0, f"capacity must be > 0, got {capacity}")
        self.capacity = capacity
        self.size = 0
        self.ptr = 0
        self.total_pushed = 0

        self.obs = np.zeros((capacity, *obs_shape), dtype=np.float32)
        self.actions = np.zeros(capacity, dtype=np.int32)
        self.rewards = np.zeros(capacity, dtype=np.float32)
        self.next_obs = np.zeros((capacity, *obs_shape), dtype=np.float32)
        self.dones = np.zeros(capacity, dtype=np.bool_)

    def push(
        self,
        obs: np.ndarray,
        action: int | np.ndarray,
        reward: float,
        next_obs: np.ndarray,
        done: bool,
    ) -> int:
        """Write one transition and return the slot it landed in."""
        idx = self.ptr
        self.obs[idx] = obs
        self.actions[idx] = action
        self.rewards[idx] = reward
        self.next_obs[idx] = next_obs
        self.dones[idx] = done
        self.ptr = (self.ptr + 1) % self.capacity
        self.size = min(self.size + 1, self.capacity)
        self.total_pushed += 1
        return idx

    def gather(self, indices: np.ndarray) -> Transition:
        return Transition(
            obs=jnp.asarray(self.obs[indices]),
            action=jnp.asarray(self.actions[indices]),
            reward=jnp.asarray(self.rewards[indices]),
            next_obs=jnp.asarray(self.next_obs[indices]),
            done=jnp.asarray(self.dones[indices]),
        )


class ReplayBuffer:
    """Fixed-size circular buffer with uniform sampling without replacement.

    Parameters
    ----------
    capacity:
        Maximum number of stored transitions.
    obs_shape:
        Shape of a single observation.
    seed:
        Seed for the sampling generator. ``None`` draws fresh entropy.
    """

    def __init__(
        self,
        capacity: int,
        obs_shape: tuple[int, ...],
        *,
        seed: int | None = None,
    ) -> None:
        self._ring = TransitionRing(capacity, obs_shape)
        self._rng = numpy_generator(seed)

    @property
    def capacity(self) -> int:
        return self._ring.capacity

    @property
    def total_pushed(self) -> int:
        """Number of transitions ever pushed, including evicted ones."""
        return self._ring.total_pushed

    def push(
        self,
        obs: np.ndarray,
        action: int | np.ndarray,
        reward: float,
        next_obs: np.ndarray,
        done: bool,
    ) -> int:
        """Store a single transition, returning its slot index."""
        return self._ring.push(obs, action, reward, next_obs, done)

    def push_transition(self, t: Transition) -> int:
        """Store a Transition (accepts jax arrays)."""
        return self.push(
            obs=np.asarray(t.obs),
            action=np.asarray(t.action),
            reward=np.asarray(t.reward),
            next_obs=np.asarray(t.next_obs),
            done=np.asarray(t.done),
        )

    def sample(self, batch_size: int) -> ReplaySample:
        """Draw *batch_size* distinct transitions uniformly at random."""
        require(batch_size > 0, f"batch_size must be > 0, got {batch_size}")
        if batch_size > len(self):
            raise InsufficientData(
                f"cannot sample {batch_size} transitions from a buffer holding {len(self)}"
            )
        indices = self._rng.choice(len(self), size=batch_size, replace=False)
        return ReplaySample(
            transitions=self._ring.gather(indices),
            indices=indices,
            weights=jnp.ones(batch_size, dtype=jnp.float32),
        )

    def update_priorities(self, indices: np.ndarray, td_errors: np.ndarray) -> None:
        """Uniform replay ignores TD errors."""

    def __len__(self) -> int:
        return self._ring.size
