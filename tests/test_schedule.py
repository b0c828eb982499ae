"""Tests for schedules and seeding helpers."""

import jax
import numpy as np
import pytest

from qlearn.schedule import linear_schedule
from qlearn.seeding import make_rng, numpy_generator, split_keys


class TestLinearSchedule:
    def test_endpoints_and_hold(self):
        beta = linear_schedule(0.4, 1.0, 100)
        assert float(beta(0)) == pytest.approx(0.4)
        assert float(beta(50)) == pytest.approx(0.7)
        assert float(beta(100)) == pytest.approx(1.0)
        assert float(beta(1_000)) == pytest.approx(1.0)

    def test_jittable(self):
        beta = linear_schedule(1.0, 0.0, 10)
        assert float(jax.jit(beta)(5)) == pytest.approx(0.5)

    def test_zero_steps(self):
        assert float(linear_schedule(0.0, 1.0, 0)(1)) == pytest.approx(1.0)


class TestSeeding:
    def test_split_keys_count(self):
        keys = split_keys(make_rng(0), n=3)
        assert len(keys) == 4

    def test_numpy_streams_differ(self):
        a = numpy_generator(1, stream=0).integers(0, 1_000_000, 5)
        b = numpy_generator(1, stream=1).integers(0, 1_000_000, 5)
        assert not np.array_equal(a, b)

    def test_numpy_reproducible(self):
        a = numpy_generator(7).random(4)
        b = numpy_generator(7).random(4)
        np.testing.assert_array_equal(a, b)
