"""Preset experiment configurations.

Each preset bundles an environment, learning config and runner settings.
:func:`cli` lets the user pick a preset and override individual fields::

    python scripts/train_dqn.py cartpole_dqn --dqn.lr 5e-4
    python scripts/train_dqn.py two_state_dqn --runner.max_episodes 50
"""

from __future__ import annotations

from dataclasses import dataclass, field

import tyro

from qlearn.algorithms.dqn.config import DQNConfig, ReplayConfig
from qlearn.policies.epsilon_greedy import EpsilonGreedyConfig
from qlearn.runner.config import RunnerConfig


@dataclass(frozen=True)
class TrainConfig:
    """Full training configuration: environment + learning + runner."""

    env_id: str = "CartPole-v1"
    dqn: DQNConfig = field(default_factory=DQNConfig)
    runner: RunnerConfig = field(default_factory=RunnerConfig)


PRESETS: dict[str, tuple[str, TrainConfig]] = {
    "two_state_dqn": (
        "DQN on TwoState-v0 (sanity check, known optimal policy)",
        TrainConfig(
            env_id="TwoState-v0",
            dqn=DQNConfig(
                hidden_sizes=(32,),
                lr=1e-2,
                gamma=0.5,
                batch_size=32,
                target_update_freq=20,
                max_episode_steps=8,
                exploration_steps=64,
                exploration=EpsilonGreedyConfig(epsilon_floor=0.05, epsilon_decay=0.01),
                replay=ReplayConfig(capacity=1_000),
            ),
            runner=RunnerConfig(max_episodes=100, solved_return=7.5, solved_window=10),
        ),
    ),
    "gridworld_dqn": (
        "DQN on GridWorld-v0",
        TrainConfig(
            env_id="GridWorld-v0",
            dqn=DQNConfig(
                hidden_sizes=(64, 64),
                lr=5e-4,
                batch_size=32,
                target_update_freq=500,
                max_episode_steps=100,
                exploration_steps=500,
                exploration=EpsilonGreedyConfig(epsilon_decay=1e-4),
                replay=ReplayConfig(capacity=50_000),
            ),
            runner=RunnerConfig(max_episodes=1_000, eval_every=50),
        ),
    ),
    "cartpole_dqn": (
        "DQN on CartPole-v1",
        TrainConfig(
            env_id="CartPole-v1",
            dqn=DQNConfig(
                hidden_sizes=(128, 128),
                lr=1e-3,
                batch_size=64,
                target_update_freq=1_000,
                max_episode_steps=500,
                exploration_steps=1_000,
                exploration=EpsilonGreedyConfig(epsilon_floor=0.01, epsilon_decay=2e-5),
            ),
            runner=RunnerConfig(max_episodes=600, solved_return=195.0, eval_every=50),
        ),
    ),
    "cartpole_double_per": (
        "Double DQN with prioritized replay on CartPole-v1",
        TrainConfig(
            env_id="CartPole-v1",
            dqn=DQNConfig(
                hidden_sizes=(128, 128),
                lr=5e-4,
                batch_size=64,
                target_update_freq=1_000,
                double_q=True,
                max_episode_steps=500,
                exploration_steps=1_000,
                exploration=EpsilonGreedyConfig(epsilon_floor=0.01, epsilon_decay=2e-5),
                replay=ReplayConfig(prioritized=True, beta_steps=50_000),
            ),
            runner=RunnerConfig(max_episodes=600, solved_return=195.0, eval_every=50),
        ),
    ),
}


def cli(
    args: list[str] | None = None,
    **kwargs: object,
) -> TrainConfig:
    """Parse a preset + overrides from the command line.

    Usage::

        config = cli()                                      # parse sys.argv
        config = cli(["cartpole_dqn", "--dqn.lr", "1e-3"])  # explicit args
    """
    return tyro.extras.overridable_config_cli(
        PRESETS,
        args=args,
        use_underscores=True,
        **kwargs,  # type: ignore[arg-type]
    )
