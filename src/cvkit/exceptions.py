"""Exception types raised by cvkit."""

from __future__ import annotations

from typing import Iterable, Tuple


class InvalidArgumentError(ValueError):
    """Raised when a fold count, fraction or dataset cannot be used."""


class UndefinedMetricError(ValueError):
    """Raised when a rate has a zero denominator and no marker was requested."""

    def __init__(self, metrics: Iterable[str], message: str | None = None):
        self.metrics: Tuple[str, ...] = tuple(metrics)
        if message is None:
            message = (
                "rate metrics undefined (class absent from actual labels): "
                + ", ".join(self.metrics)
            )
        super().__init__(message)
