"""Operations on a Q-function approximator.

The approximator is any equinox module mapping one observation to a
vector of action values.  Everything here is a pure function usable
inside ``jax.jit``, except :func:`save_params` / :func:`load_params`.

Online and target networks are two separate pytrees; the only way
parameters move from one to the other is :func:`copy_params`.
"""

from __future__ import annotations

from pathlib import Path
from typing import TypeVar

import chex
import equinox as eqx
import jax
import jax.numpy as jnp
import optax

from qlearn.types import OptState

M = TypeVar("M", bound=eqx.Module)


def make_optimizer(lr: float, max_grad_norm: float) -> optax.GradientTransformation:
    return optax.chain(
        optax.clip_by_global_norm(max_grad_norm),
        optax.adam(lr),
    )


def predict(model: eqx.Module, obs: chex.Array) -> chex.Array:
    """Action values for a batch of observations, shape ``(B, n_actions)``."""
    return jax.vmap(model)(obs)


def clone_params(model: M) -> M:
    """Independent copy of the array leaves of *model*."""
    arrays, static = eqx.partition(model, eqx.is_array)
    copied = jax.tree.map(lambda a: jnp.array(a), arrays)
    return eqx.combine(copied, static)


def copy_params(source: M, target: M, tau: float = 1.0) -> M:
    """Return *target* moved toward *source*.

    ``tau == 1`` is an exact copy of *source*; ``tau < 1`` returns
    ``tau * source + (1 - tau) * target`` leaf-wise.
    """
    if tau >= 1.0:
        return clone_params(source)
    src_arrays = eqx.filter(source, eqx.is_array)
    tgt_arrays, tgt_static = eqx.partition(target, eqx.is_array)
    mixed = jax.tree.map(lambda s, t: tau * s + (1.0 - tau) * t, src_arrays, tgt_arrays)
    return eqx.combine(mixed, tgt_static)


def gradient_step(
    model: M,
    opt_state: OptState,
    optimizer: optax.GradientTransformation,
    obs: chex.Array,
    targets: chex.Array,
    actions: chex.Array,
    weights: chex.Array,
) -> tuple[M, OptState, chex.Array, chex.Array, chex.Array]:
    """One optimizer step on the weighted squared TD error.

    Only the taken action's output enters the loss, so the other
    outputs of each sample receive zero gradient.

    Args:
        model: Online network.
        opt_state: Optimizer state for *model*.
        optimizer: The optax transformation that produced *opt_state*.
        obs: Observations, shape ``(B, *obs_shape)``.
        targets: Regression targets for the taken actions, shape ``(B,)``.
        actions: Taken action indices, shape ``(B,)``.
        weights: Per-sample loss weights, shape ``(B,)``.

    Returns:
        ``(new_model, new_opt_state, loss, q_taken, td_error)``.
    """
    targets = jax.lax.stop_gradient(targets)

    def loss_fn(params):
        q_all = predict(params, obs)
        q_taken = q_all[jnp.arange(q_all.shape[0]), actions.astype(jnp.int32)]
        td_error = q_taken - targets
        loss = jnp.mean(weights * td_error**2)
        return loss, (q_taken, td_error)

    (loss, (q_taken, td_error)), grads = eqx.filter_value_and_grad(loss_fn, has_aux=True)(model)
    updates, new_opt_state = optimizer.update(
        grads, opt_state, eqx.filter(model, eqx.is_array)
    )
    new_model = eqx.apply_updates(model, updates)
    return new_model, new_opt_state, loss, q_taken, td_error


def save_params(path: str | Path, model: eqx.Module) -> Path:
    """Serialise *model*'s leaves to *path* (conventionally ``*.eqx``)."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    eqx.tree_serialise_leaves(str(p), model)
    return p


def load_params(path: str | Path, like: M) -> M:
    """Load leaves saved with :func:`save_params` into a model shaped like *like*."""
    return eqx.tree_deserialise_leaves(str(path), like)
