"""Exceptions raised while querying statistics from Imaris."""
from __future__ import annotations

from typing import Iterable


class ImarisStatsError(Exception):
    """Base class for errors raised by :mod:`imaris_stats`."""


class EngineQueryError(ImarisStatsError):
    """Imaris failed to return statistics (or anything else) for a request."""


class MissingFactorError(ImarisStatsError):
    """A required factor is absent from a statistics response."""

    def __init__(self, missing: Iterable[str], available: Iterable[str] = ()) -> None:
        self.missing = tuple(missing)
        self.available = tuple(available)
        message = f"Statistics are missing required factor(s): {', '.join(self.missing)}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class InvalidFilterError(ImarisStatsError):
    """A statistic-name filter is not a valid regular expression."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        super().__init__(f"Invalid statistic filter {pattern!r}: {reason}")


__all__ = [
    "ImarisStatsError",
    "EngineQueryError",
    "MissingFactorError",
    "InvalidFilterError",
]
