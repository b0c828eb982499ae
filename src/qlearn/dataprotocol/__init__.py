"""Experience storage for off-policy Q-learning.

    - Transition / ReplaySample: immutable NamedTuple experience containers
    - ReplayBuffer: uniform sampling without replacement
    - PrioritizedReplayBuffer: proportional prioritization over a sum tree
"""

from qlearn.dataprotocol.prioritized_buffer import PrioritizedReplayBuffer, SumTree
from qlearn.dataprotocol.replay_buffer import ReplayBuffer, ReplayMemory, TransitionRing
from qlearn.types import Batch, ReplaySample, Transition

__all__ = [
    "Batch",
    "PrioritizedReplayBuffer",
    "ReplayBuffer",
    "ReplayMemory",
    "ReplaySample",
    "SumTree",
    "Transition",
    "TransitionRing",
]
