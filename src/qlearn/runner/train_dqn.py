"""Caller-side training loop around :class:`QLearner`.

The learner only knows how to run episodes.  This loop decides when to
stop: it tracks a moving average of episode rewards, marks the learner
converged once the average reaches ``runner_config.solved_return``, and
marks it failed if the episode budget runs out first.  It also handles
progress logging, JSONL metrics, periodic greedy evaluation and saving
the final parameters.

Usage::

    from qlearn.algorithms.dqn import DQNConfig
    from qlearn.env import make
    from qlearn.runner import RunnerConfig, train_dqn

    env, env_params = make("CartPole-v1")
    result = train_dqn(
        env, env_params,
        dqn_config=DQNConfig(),
        runner_config=RunnerConfig(max_episodes=300, solved_return=195.0),
    )
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from typing import Any, NamedTuple

from qlearn.algorithms.dqn.config import DQNConfig
from qlearn.env.base import EnvParams, Environment
from qlearn.metrics import MetricsLogger, log_episode_progress
from qlearn.runner.config import RunnerConfig
from qlearn.runner.learner import QLearner

logger = logging.getLogger(__name__)

EpisodeCallback = Callable[[int, QLearner, dict[str, Any]], None]


class DQNTrainResult(NamedTuple):
    """Return value from ``train_dqn``."""

    learner: QLearner
    episode_returns: list[float]  # discounted, as returned by QLearner.episode()
    episode_rewards: list[float]  # undiscounted
    converged: bool
    eval_log: list[dict[str, float]]


def train_dqn(
    env: Environment,
    env_params: EnvParams,
    *,
    dqn_config: DQNConfig,
    runner_config: RunnerConfig,
    callback: EpisodeCallback | None = None,
    stop_event: threading.Event | None = None,
) -> DQNTrainResult:
    """Run episodes until convergence, budget exhaustion or a stop request.

    Args:
        env: Pure-JAX environment.
        env_params: Environment parameters.
        dqn_config: Learning hyperparameters.
        runner_config: Budget, convergence criterion, logging settings.
        callback: Optional ``callback(episode, learner, record)`` after
            every episode.
        stop_event: Shared with the learner; setting it ends training at
            the next step boundary.

    Returns:
        ``DQNTrainResult`` with the learner and per-episode returns.
    """
    learner = QLearner(
        env, env_params, dqn_config, seed=runner_config.seed, stop_event=stop_event,
    )
    metrics = None
    if runner_config.metrics_path:
        metrics = MetricsLogger(
            runner_config.metrics_path, context={"env": env.name, "seed": runner_config.seed},
        )

    episode_returns: list[float] = []
    episode_rewards: list[float] = []
    eval_log: list[dict[str, float]] = []
    window: deque[float] = deque(maxlen=runner_config.solved_window)
    converged = False

    logger.info(
        "training on %s for up to %d episodes", env.name, runner_config.max_episodes,
    )
    try:
        for episode in range(1, runner_config.max_episodes + 1):
            if learner.stop_requested:
                logger.info("stop requested before episode %d", episode)
                break

            discounted = learner.episode()
            stats = learner.last_episode
            if stats.stopped:
                # partial episodes never count toward the solved window
                logger.info("stop requested during episode %d", episode)
                break
            episode_returns.append(discounted)
            episode_rewards.append(stats.total_reward)
            window.append(stats.total_reward)
            moving_avg = sum(window) / len(window)

            record: dict[str, Any] = {
                "episode": episode,
                "total_steps": learner.total_steps,
                "return": discounted,
                "reward": stats.total_reward,
                "length": stats.length,
                "moving_avg": moving_avg,
                "epsilon": stats.epsilon,
                "phase": stats.phase.value,
                "updates": learner.updates,
            }
            if stats.loss is not None:
                record["loss"] = stats.loss

            if runner_config.eval_every and episode % runner_config.eval_every == 0:
                ev = learner.evaluate(runner_config.eval_episodes)
                eval_record = {
                    "episode": episode,
                    "eval_return": float(ev.mean_return),
                    "eval_return_std": float(ev.std_return),
                    "eval_length": float(ev.mean_length),
                }
                eval_log.append(eval_record)
                record.update(eval_record)

            if metrics is not None:
                metrics.write(record)
            if episode % runner_config.log_interval == 0:
                log_episode_progress(episode, runner_config.max_episodes, record)
            if callback is not None:
                callback(episode, learner, record)

            if (
                runner_config.solved_return is not None
                and len(window) == window.maxlen
                and moving_avg >= runner_config.solved_return
            ):
                converged = True
                learner.mark_converged()
                logger.info(
                    "solved after %d episodes (moving avg %.3f >= %.3f)",
                    episode, moving_avg, runner_config.solved_return,
                )
                break
        else:
            if runner_config.solved_return is not None:
                learner.mark_failed()
                logger.warning(
                    "episode budget of %d exhausted without reaching %.3f",
                    runner_config.max_episodes, runner_config.solved_return,
                )
    finally:
        if metrics is not None:
            metrics.close()

    if runner_config.checkpoint_path is not None:
        path = learner.save(runner_config.checkpoint_path)
        logger.info("saved online parameters to %s", path)

    return DQNTrainResult(
        learner=learner,
        episode_returns=episode_returns,
        episode_rewards=episode_rewards,
        converged=converged,
        eval_log=eval_log,
    )
