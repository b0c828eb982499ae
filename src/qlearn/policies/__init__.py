from qlearn.policies.epsilon_greedy import EpsilonGreedy, EpsilonGreedyConfig, EpsilonGreedyState

__all__ = ["EpsilonGreedy", "EpsilonGreedyConfig", "EpsilonGreedyState"]
