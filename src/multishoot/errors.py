"""Exception taxonomy for multiple-shooting training."""

from __future__ import annotations


class MultishootError(Exception):
    """Base class for all errors raised by :mod:`multishoot`."""


class InvalidConfiguration(MultishootError, ValueError):
    """Setup-time configuration error; never retried."""


class DimensionMismatch(MultishootError, ValueError):
    """Observed and predicted state shapes disagree."""


class IntegrationFailure(MultishootError, RuntimeError):
    """A group's simulation produced non-finite values or did not finish."""

    def __init__(self, group: int, message: str | None = None) -> None:
        self.group = group
        super().__init__(message or f"Integration failed for group {group}.")
