"""Tests for the exception hierarchy."""

import pytest

from qlearn.errors import (
    EnvironmentFailure,
    InsufficientData,
    InvalidConfiguration,
    NumericDivergence,
    QLearnError,
    TransientEnvironmentError,
    require,
)


class TestErrors:
    @pytest.mark.parametrize(
        "error, builtin",
        [
            (InvalidConfiguration, ValueError),
            (InsufficientData, RuntimeError),
            (EnvironmentFailure, RuntimeError),
            (NumericDivergence, FloatingPointError),
        ],
    )
    def test_builtin_bases(self, error, builtin):
        assert issubclass(error, QLearnError)
        assert issubclass(error, builtin)

    def test_transient_is_library_error(self):
        assert issubclass(TransientEnvironmentError, QLearnError)

    def test_require(self):
        require(True, "unused")
        with pytest.raises(InvalidConfiguration, match="lr must be > 0"):
            require(False, "lr must be > 0")
