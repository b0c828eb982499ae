"""DQN hyperparameters."""

from __future__ import annotations

from dataclasses import dataclass, field

from qlearn.errors import require
from qlearn.policies.epsilon_greedy import EpsilonGreedyConfig


@dataclass(frozen=True)
class ReplayConfig:
    """Replay buffer settings. ``alpha``/``beta_*`` only apply when prioritized."""

    capacity: int = 100_000
    prioritized: bool = False
    alpha: float = 0.6
    beta_start: float = 0.4
    beta_steps: int = 100_000
    priority_epsilon: float = 1e-6

    def __post_init__(self) -> None:
        require(self.capacity > 0, f"capacity must be > 0, got {self.capacity}")
        require(self.alpha >= 0.0, f"alpha must be >= 0, got {self.alpha}")
        require(
            0.0 <= self.beta_start <= 1.0,
            f"beta_start must be in [0, 1], got {self.beta_start}",
        )
        require(self.beta_steps > 0, f"beta_steps must be > 0, got {self.beta_steps}")
        require(
            self.priority_epsilon > 0.0,
            f"priority_epsilon must be > 0, got {self.priority_epsilon}",
        )


@dataclass(frozen=True)
class DQNConfig:
    """All Q-learning hyperparameters in one place.

    Frozen dataclass, safe to pass into jitted functions as a static
    argument.  Validated on construction; any out-of-range value raises
    ``InvalidConfiguration``.
    """

    # Network
    hidden_sizes: tuple[int, ...] = (128, 128)

    # Optimization
    lr: float = 1e-3
    gamma: float = 0.99
    batch_size: int = 64
    max_grad_norm: float = 10.0
    train_freq: int = 1  # env steps between gradient updates

    # Target network
    target_update_freq: int = 1_000  # env steps between syncs
    tau: float = 1.0  # 1.0 = hard copy, < 1.0 = Polyak averaging at each sync
    double_q: bool = False

    # Episodes
    max_episode_steps: int = 500
    exploration_steps: int = 1_000  # stored transitions before learning starts
    env_step_retries: int = 0

    exploration: EpsilonGreedyConfig = field(default_factory=EpsilonGreedyConfig)
    replay: ReplayConfig = field(default_factory=ReplayConfig)

    def __post_init__(self) -> None:
        require(self.lr > 0.0, f"lr must be > 0, got {self.lr}")
        require(0.0 <= self.gamma < 1.0, f"gamma must be in [0, 1), got {self.gamma}")
        require(self.batch_size > 0, f"batch_size must be > 0, got {self.batch_size}")
        require(self.max_grad_norm > 0.0, f"max_grad_norm must be > 0, got {self.max_grad_norm}")
        require(self.train_freq > 0, f"train_freq must be > 0, got {self.train_freq}")
        require(
            self.target_update_freq > 0,
            f"target_update_freq must be > 0, got {self.target_update_freq}",
        )
        require(0.0 < self.tau <= 1.0, f"tau must be in (0, 1], got {self.tau}")
        require(
            self.max_episode_steps > 0,
            f"max_episode_steps must be > 0, got {self.max_episode_steps}",
        )
        require(
            self.exploration_steps >= 0,
            f"exploration_steps must be >= 0, got {self.exploration_steps}",
        )
        require(
            self.env_step_retries >= 0,
            f"env_step_retries must be >= 0, got {self.env_step_retries}",
        )
        require(
            self.replay.capacity >= self.batch_size,
            f"replay capacity {self.replay.capacity} is smaller than batch_size {self.batch_size}",
        )
        require(
            self.replay.capacity >= self.exploration_steps,
            f"replay capacity {self.replay.capacity} is smaller than "
            f"exploration_steps {self.exploration_steps}; learning could never start",
        )
        require(
            all(h > 0 for h in self.hidden_sizes),
            f"hidden_sizes must be positive, got {self.hidden_sizes}",
        )

    @property
    def learning_starts(self) -> int:
        """Stored transitions needed before the first gradient update."""
        return max(self.exploration_steps, self.batch_size)
