"""Environments consumed by the Q-learning core.

Quick start::

    import jax
    from qlearn.env import make

    env, params = make("TwoState-v0")
    obs, state = env.reset(jax.random.PRNGKey(0), params)
"""

from qlearn.env.base import Environment, EnvParams, EnvState
from qlearn.env.cart_pole import CartPole, CartPoleParams, CartPoleState
from qlearn.env.grid_world import GridWorld, GridWorldParams, GridWorldState
from qlearn.env.spaces import Box, Discrete
from qlearn.env.two_state import OPTIMAL_ACTIONS, TwoState, TwoStateParams, TwoStateState

# ---- Registry ----

_REGISTRY: dict[str, type[Environment]] = {
    "CartPole-v1": CartPole,
    "GridWorld-v0": GridWorld,
    "TwoState-v0": TwoState,
}


def register(name: str, cls: type[Environment]) -> None:
    """Register a custom environment class under *name*."""
    _REGISTRY[name] = cls


def make(name: str, **kwargs: object) -> tuple[Environment, EnvParams]:
    """Create an environment and its default params by name.

    Returns:
        ``(env, params)`` tuple ready for ``env.reset(key, params)``.
    """
    if name not in _REGISTRY:
        available = ", ".join(sorted(_REGISTRY))
        raise KeyError(f"Unknown environment {name!r}. Available: {available}")
    env = _REGISTRY[name](**kwargs)
    return env, env.default_params()


__all__ = [
    "Box",
    "CartPole",
    "CartPoleParams",
    "CartPoleState",
    "Discrete",
    "EnvParams",
    "EnvState",
    "Environment",
    "GridWorld",
    "GridWorldParams",
    "GridWorldState",
    "OPTIMAL_ACTIONS",
    "TwoState",
    "TwoStateParams",
    "TwoStateState",
    "make",
    "register",
]
