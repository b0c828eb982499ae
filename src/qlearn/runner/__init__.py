"""Training runners.

The loop is hybrid: a Python outer loop owns the replay buffer, phase
bookkeeping and logging, while action selection, gradient updates and
target syncs are ``jax.jit``-compiled pure functions.

- ``QLearner``: the stateful core, one ``episode()`` at a time.
- ``train_dqn``: a caller loop with convergence and budget handling.
- ``evaluate`` / ``jit_evaluate``: greedy vmapped rollouts.
"""

from qlearn.runner.config import RunnerConfig
from qlearn.runner.evaluator import EvalMetrics, evaluate, jit_evaluate
from qlearn.runner.learner import EpisodeStats, Phase, QLearner, StepResult, make_replay_buffer
from qlearn.runner.train_dqn import DQNTrainResult, train_dqn

__all__ = [
    "DQNTrainResult",
    "EpisodeStats",
    "EvalMetrics",
    "Phase",
    "QLearner",
    "RunnerConfig",
    "StepResult",
    "evaluate",
    "jit_evaluate",
    "make_replay_buffer",
    "train_dqn",
]
