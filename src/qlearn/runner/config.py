"""Runner configuration."""

from __future__ import annotations

from dataclasses import dataclass

from qlearn.errors import require


@dataclass(frozen=True)
class RunnerConfig:
    """Settings for the caller-side training loop.

    Controls the episode budget, the convergence criterion, evaluation and
    logging.  Learning hyperparameters live in ``DQNConfig``.
    """

    # Episode budget
    max_episodes: int = 500

    # Convergence: mean undiscounted episode reward over the last
    # ``solved_window`` episodes reaching ``solved_return``. None disables.
    solved_return: float | None = None
    solved_window: int = 20

    # Evaluation (greedy rollouts), every N episodes; 0 disables
    eval_every: int = 0
    eval_episodes: int = 10

    # Logging
    log_interval: int = 10
    metrics_path: str | None = None  # JSONL file, None = no file

    # Seeding
    seed: int = 0

    # Online-network parameters saved here after training, None = no save
    checkpoint_path: str | None = None

    def __post_init__(self) -> None:
        require(self.max_episodes > 0, f"max_episodes must be > 0, got {self.max_episodes}")
        require(self.solved_window > 0, f"solved_window must be > 0, got {self.solved_window}")
        require(self.eval_every >= 0, f"eval_every must be >= 0, got {self.eval_every}")
        require(self.eval_episodes > 0, f"eval_episodes must be > 0, got {self.eval_episodes}")
        require(self.log_interval > 0, f"log_interval must be > 0, got {self.log_interval}")
