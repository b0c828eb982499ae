"""Drive a QLearner by hand on TwoState and print the learned policy.

Ctrl-C sets the stop event; the current episode returns at the next
step boundary and the loop exits cleanly.
"""

import signal
import threading

import jax.numpy as jnp

from qlearn.algorithms.dqn import DQNConfig, ReplayConfig
from qlearn.env import OPTIMAL_ACTIONS, TwoState, make
from qlearn.metrics import setup_logging
from qlearn.policies import EpsilonGreedyConfig
from qlearn.runner import QLearner


def main() -> None:
    setup_logging()
    stop = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop.set())

    env, env_params = make("TwoState-v0")
    config = DQNConfig(
        hidden_sizes=(32,),
        lr=1e-2,
        gamma=0.5,
        batch_size=32,
        target_update_freq=20,
        max_episode_steps=8,
        exploration_steps=64,
        exploration=EpsilonGreedyConfig(epsilon_decay=0.01),
        replay=ReplayConfig(capacity=1_000),
    )
    learner = QLearner(env, env_params, config, seed=42, stop_event=stop)

    for episode in range(1, 101):
        ret = learner.episode()
        if episode % 10 == 0:
            print(f"episode {episode:3d} | return={ret:.3f} | epsilon={learner.epsilon:.2f}")
        if learner.stop_requested:
            break

    for position, best in enumerate(OPTIMAL_ACTIONS):
        action = learner.greedy_action(TwoState.observe(jnp.int32(position)))
        print(f"state {position}: greedy={action} optimal={best}")


if __name__ == "__main__":
    main()
