"""Exception hierarchy for qlearn.

Every error raised by the library derives from :class:`QLearnError`, and
each concrete error also derives from the closest builtin so callers that
only know about ``ValueError`` / ``RuntimeError`` still catch them.

Episode termination is never signalled with an exception; it is the
``done`` flag returned by the environment.
"""

from __future__ import annotations


class QLearnError(Exception):
    """Base class for all qlearn errors."""


class InvalidConfiguration(QLearnError, ValueError):
    """A hyperparameter is out of range. Raised at construction time."""


class InsufficientData(QLearnError, RuntimeError):
    """A replay buffer was asked for more transitions than it holds."""


class EnvironmentFailure(QLearnError, RuntimeError):
    """The environment raised while stepping or resetting.

    The current episode is aborted and the partial transition is
    discarded, so the replay buffer stays consistent.
    """


class TransientEnvironmentError(QLearnError):
    """Raised *by an environment* to request that a step be retried."""


class NumericDivergence(QLearnError, FloatingPointError):
    """Value-function outputs or the loss became NaN or infinite."""


def require(condition: bool, message: str) -> None:
    """Raise :class:`InvalidConfiguration` with *message* unless *condition*."""
    if not condition:
        raise InvalidConfiguration(message)
