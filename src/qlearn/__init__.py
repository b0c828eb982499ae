"""qlearn: value-based reinforcement learning with JAX."""

from qlearn.algorithms.dqn import DQN, DQNConfig, QNetwork, ReplayConfig
from qlearn.dataprotocol import PrioritizedReplayBuffer, ReplayBuffer
from qlearn.env import make
from qlearn.errors import (
    EnvironmentFailure,
    InsufficientData,
    InvalidConfiguration,
    NumericDivergence,
    QLearnError,
    TransientEnvironmentError,
)
from qlearn.metrics import MetricsLogger, setup_logging
from qlearn.policies import EpsilonGreedy, EpsilonGreedyConfig
from qlearn.runner import Phase, QLearner, RunnerConfig, train_dqn
from qlearn.types import ReplaySample, Transition

__all__ = [
    "DQN",
    "DQNConfig",
    "EnvironmentFailure",
    "EpsilonGreedy",
    "EpsilonGreedyConfig",
    "InsufficientData",
    "InvalidConfiguration",
    "MetricsLogger",
    "NumericDivergence",
    "Phase",
    "PrioritizedReplayBuffer",
    "QLearnError",
    "QLearner",
    "QNetwork",
    "ReplayBuffer",
    "ReplayConfig",
    "ReplaySample",
    "RunnerConfig",
    "TransientEnvironmentError",
    "Transition",
    "make",
    "setup_logging",
    "train_dqn",
]
