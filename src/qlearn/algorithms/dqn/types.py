"""DQN-specific state containers."""

from __future__ import annotations

from typing import NamedTuple

import chex

from qlearn.policies.epsilon_greedy import EpsilonGreedyState
from qlearn.types import OptState, Params


class DQNState(NamedTuple):
    """DQN agent state.

    Fields:
        params: Online Q-network (Equinox model).
        target_params: Target Q-network, same architecture, separately owned.
        opt_state: Optax optimizer state for the online network.
        policy: Epsilon-greedy exploration state.
        step: Number of gradient updates applied so far.
    """

    params: Params
    target_params: Params
    opt_state: OptState
    policy: EpsilonGreedyState
    step: chex.Array


class DQNMetrics(NamedTuple):
    """Per-update diagnostics. ``td_error`` has shape ``(B,)``."""

    loss: chex.Array
    q_mean: chex.Array
    td_error: chex.Array
