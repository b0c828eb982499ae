from qlearn.algorithms.dqn.agent import DQN
from qlearn.algorithms.dqn.config import DQNConfig, ReplayConfig
from qlearn.algorithms.dqn.network import QNetwork
from qlearn.algorithms.dqn.types import DQNMetrics, DQNState

__all__ = ["DQN", "DQNConfig", "DQNMetrics", "DQNState", "QNetwork", "ReplayConfig"]
