#!/usr/bin/env python3
"""Train a Q-learning agent from a preset.

Usage::

    python scripts/train_dqn.py --help
    python scripts/train_dqn.py two_state_dqn
    python scripts/train_dqn.py cartpole_dqn --dqn.lr 5e-4 --dqn.double_q
    python scripts/train_dqn.py cartpole_double_per --runner.metrics_path runs/per.jsonl
"""

from __future__ import annotations

import logging

from qlearn.configs import TrainConfig, cli
from qlearn.env import make
from qlearn.metrics import setup_logging
from qlearn.runner import train_dqn


def main(config: TrainConfig) -> None:
    setup_logging(logging.INFO)
    env, env_params = make(config.env_id)

    result = train_dqn(
        env,
        env_params,
        dqn_config=config.dqn,
        runner_config=config.runner,
    )

    rewards = result.episode_rewards[-10:]
    mean_reward = sum(rewards) / len(rewards) if rewards else 0.0
    print(
        f"Training complete | "
        f"episodes={len(result.episode_rewards)} | "
        f"phase={result.learner.phase.value} | "
        f"mean_reward(last 10)={mean_reward:.2f}"
    )


if __name__ == "__main__":
    main(cli())
