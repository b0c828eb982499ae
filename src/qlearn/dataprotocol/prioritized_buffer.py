"""Proportional prioritized experience replay (Schaul et al., 2015)."""

from __future__ import annotations

import jax.numpy as jnp
import numpy as np

from qlearn.dataprotocol.replay_buffer import TransitionRing
from qlearn.errors import InsufficientData, require
from qlearn.schedule import linear_schedule
from qlearn.seeding import numpy_generator
from qlearn.types import ReplaySample, Transition


class SumTree:
    """Binary tree where parent = sum of children. Enables O(log n) proportional sampling.

    Leaves hold the sampling mass of each buffer slot; node ``0`` holds
    the total.  Empty slots have zero mass and are never selected.
    """

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self.tree = np.zeros(2 * capacity - 1, dtype=np.float64)

    def update(self, data_idx: int, mass: float) -> None:
        tree_idx = data_idx + self.capacity - 1
        delta = mass - self.tree[tree_idx]
        self.tree[tree_idx] = mass
        while tree_idx > 0:
            tree_idx = (tree_idx - 1) // 2
            self.tree[tree_idx] += delta

    def find(self, value: float) -> int:
        """Return the slot whose cumulative-mass interval covers *value*."""
        idx = 0
        while idx < self.capacity - 1:
            left = 2 * idx + 1
            right = left + 1
            # never descend into a subtree with no mass
            if value < self.tree[left] or self.tree[right] <= 0.0:
                idx = left
            else:
                value -= self.tree[left]
                idx = right
        return idx - (self.capacity - 1)

    def leaf(self, data_idx: int) -> float:
        return float(self.tree[data_idx + self.capacity - 1])

    @property
    def total(self) -> float:
        return float(self.tree[0])


class PrioritizedReplayBuffer:
    """Replay buffer that samples in proportion to ``priority ** alpha``.

    New transitions are stored with the largest priority seen so far, so
    each is likely to be replayed at least once before its priority is
    corrected by :meth:`update_priorities`.  Importance-sampling weights
    ``(N * P(i)) ** -beta``, normalised to a batch maximum of 1, undo the
    bias of non-uniform sampling.

    Parameters
    ----------
    capacity:
        Maximum number of stored transitions.
    obs_shape:
        Shape of a single observation.
    alpha:
        Degree of prioritization. ``0`` recovers uniform sampling.
    beta_start:
        Initial importance-sampling exponent, annealed to 1 over
        *beta_steps* calls to :meth:`sample` when ``beta`` is not passed.
    beta_steps:
        Number of sample calls over which beta reaches 1.
    epsilon:
        Added to ``|td_error|`` so no transition gets zero priority.
    seed:
        Seed for the sampling generator.
    """

    def __init__(
        self,
        capacity: int,
        obs_shape: tuple[int, ...],
        *,
        alpha: float = 0.6,
        beta_start: float = 0.4,
        beta_steps: int = 100_000,
        epsilon: float = 1e-6,
        seed: int | None = None,
    ) -> None:
        require(alpha >= 0.0, f"alpha must be >= 0, got {alpha}")
        require(0.0 <= beta_start <= 1.0, f"beta_start must be in [0, 1], got {beta_start}")
        require(epsilon > 0.0, f"epsilon must be > 0, got {epsilon}")
        self._ring = TransitionRing(capacity, obs_shape)
        self._tree = SumTree(capacity)
        self._rng = numpy_generator(seed, stream=1)
        self.alpha = alpha
        self.epsilon = epsilon
        self._beta = linear_schedule(beta_start, 1.0, beta_steps)
        self._sample_calls = 0
        self._priorities = np.zeros(capacity, dtype=np.float64)
        self._max_priority = 1.0

    @property
    def capacity(self) -> int:
        return self._ring.capacity

    @property
    def total_pushed(self) -> int:
        return self._ring.total_pushed

    @property
    def max_priority(self) -> float:
        return self._max_priority

    def push(
        self,
        obs: np.ndarray,
        action: int | np.ndarray,
        reward: float,
        next_obs: np.ndarray,
        done: bool,
    ) -> int:
        """Store a transition at the current maximum priority."""
        idx = self._ring.push(obs, action, reward, next_obs, done)
        self._set_priority(idx, self._max_priority)
        return idx

    def push_transition(self, t: Transition) -> int:
        return self.push(
            obs=np.asarray(t.obs),
            action=np.asarray(t.action),
            reward=np.asarray(t.reward),
            next_obs=np.asarray(t.next_obs),
            done=np.asarray(t.done),
        )

    def sample(self, batch_size: int, beta: float | None = None) -> ReplaySample:
        """Stratified proportional sample of *batch_size* transitions.

        The total mass is split into *batch_size* equal segments and one
        slot is drawn from each, which lowers variance versus independent
        draws.  Slots may repeat when one transition dominates the mass.
        """
        require(batch_size > 0, f"batch_size must be > 0, got {batch_size}")
        if batch_size > len(self):
            raise InsufficientData(
                f"cannot sample {batch_size} transitions from a buffer holding {len(self)}"
            )
        if beta is None:
            beta = float(self._beta(self._sample_calls))
        self._sample_calls += 1

        total = self._tree.total
        segment = total / batch_size
        indices = np.zeros(batch_size, dtype=np.int64)
        for i in range(batch_size):
            value = self._rng.uniform(segment * i, segment * (i + 1))
            indices[i] = self._tree.find(value)

        masses = np.array([self._tree.leaf(int(i)) for i in indices])
        probs = masses / total
        weights = (len(self) * probs) ** (-beta)
        weights /= weights.max()

        return ReplaySample(
            transitions=self._ring.gather(indices),
            indices=indices,
            weights=jnp.asarray(weights, dtype=jnp.float32),
        )

    def update_priorities(self, indices: np.ndarray, td_errors: np.ndarray) -> None:
        """Set priorities to ``|td_error| + epsilon`` for the sampled slots."""
        priorities = np.abs(np.asarray(td_errors, dtype=np.float64)) + self.epsilon
        for idx, p in zip(np.asarray(indices), priorities, strict=True):
            self._set_priority(int(idx), float(p))

    def probabilities(self) -> np.ndarray:
        """Current sampling probability of every stored slot."""
        masses = self._tree.tree[self.capacity - 1 : self.capacity - 1 + len(self)]
        return masses / self._tree.total

    def priority(self, idx: int) -> float:
        return float(self._priorities[idx])

    def _set_priority(self, idx: int, priority: float) -> None:
        self._priorities[idx] = priority
        self._max_priority = max(self._max_priority, priority)
        self._tree.update(idx, priority**self.alpha)

    def __len__(self) -> int:
        return self._ring.size
