"""Tests for the environment registry and spaces."""

import jax
import jax.numpy as jnp
import pytest

from qlearn.env import Box, CartPole, Discrete, TwoState, make, register
from qlearn.errors import InvalidConfiguration


class TestRegistry:
    @pytest.mark.parametrize("name", ["CartPole-v1", "GridWorld-v0", "TwoState-v0"])
    def test_make_builtin(self, name):
        env, params = make(name)
        obs, _ = env.reset(jax.random.PRNGKey(0), params)
        assert obs.shape == env.observation_space(params).shape

    def test_unknown_name(self):
        with pytest.raises(KeyError, match="Unknown environment"):
            make("Nope-v0")

    def test_register_custom(self):
        class Renamed(TwoState):
            pass

        register("Renamed-v0", Renamed)
        env, _ = make("Renamed-v0")
        assert env.name == "Renamed"


class TestSpaces:
    def test_discrete(self):
        space = Discrete(n=3)
        assert bool(space.contains(jnp.int32(2)))
        assert not bool(space.contains(jnp.int32(3)))
        assert 0 <= int(space.sample(jax.random.PRNGKey(0))) < 3
        assert space.shape == ()

    def test_discrete_needs_an_action(self):
        with pytest.raises(InvalidConfiguration):
            Discrete(n=0)

    def test_box(self):
        space = Box(low=-1.0, high=1.0, shape=(2,))
        assert space.shape == (2,)
        assert bool(space.contains(jnp.array([0.5, -0.5])))
        assert not bool(space.contains(jnp.array([1.5, 0.0])))

    def test_box_from_bound_arrays(self):
        env = CartPole()
        space = env.observation_space(env.default_params())
        assert space.shape == (4,)
        assert float(space.high[0]) == pytest.approx(4.8)
        assert float(space.low[2]) == pytest.approx(-0.4188790)
        assert bool(space.contains(jnp.zeros(4)))
