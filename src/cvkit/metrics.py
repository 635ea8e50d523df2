"""Confusion-matrix rate metrics for binary classifiers.

All rates are proportions in ``[0, 1]``:

- true_positive  = TP / (TP + FN)
- false_positive = FP / (FP + TN)
- true_negative  = TN / (FP + TN)
- false_negative = FN / (TP + FN)
- accuracy       = (TP + TN) / n

When a class is missing from ``actual`` the two rates conditioned on that
class have a zero denominator. They are reported as :data:`UNDEFINED`
(or raise :class:`UndefinedMetricError`), never as ``0`` or ``NaN``.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Callable, Dict, Literal, Optional, Sequence, Tuple

import numpy as np

from cvkit.exceptions import InvalidArgumentError, UndefinedMetricError

if TYPE_CHECKING:
    from cvkit.dataset import Dataset
    from cvkit.learners import Learner

UNDEFINED = None
RATE_NAMES: Tuple[str, ...] = (
    "true_positive",
    "false_positive",
    "true_negative",
    "false_negative",
    "accuracy",
)
# Error rates: a smaller value is better.
LOWER_IS_BETTER: Tuple[str, ...] = ("false_positive", "false_negative")

OnUndefined = Literal["raise", "mark"]


@dataclass(frozen=True)
class ConfusionCounts:
    """Raw confusion-matrix counts."""

    tp: int
    fp: int
    tn: int
    fn: int

    @property
    def positives(self) -> int:
        return self.tp + self.fn

    @property
    def negatives(self) -> int:
        return self.fp + self.tn

    @property
    def total(self) -> int:
        return self.tp + self.fp + self.tn + self.fn


@dataclass(frozen=True)
class RateResult:
    """Rate metrics for one evaluation set; undefined rates are ``None``."""

    true_positive: Optional[float]
    false_positive: Optional[float]
    true_negative: Optional[float]
    false_negative: Optional[float]
    accuracy: Optional[float]

    @property
    def undefined_metrics(self) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(self) if getattr(self, f.name) is UNDEFINED)

    def is_defined(self, name: str) -> bool:
        if name not in RATE_NAMES:
            raise KeyError(f"unknown rate metric: {name!r}")
        return getattr(self, name) is not UNDEFINED

    def to_dict(self) -> Dict[str, Optional[float]]:
        """Convert to dictionary for tables and JSON output."""
        return {name: getattr(self, name) for name in RATE_NAMES}


def as_bool_labels(values: Sequence[bool] | np.ndarray, name: str = "labels") -> np.ndarray:
    """Return ``values`` as a flat bool array; only bool or 0/1 values are accepted."""
    arr = np.asarray(values)
    if arr.ndim != 1:
        arr = arr.ravel()
    if arr.dtype != bool:
        uniques = set(np.unique(arr).tolist())
        if not uniques <= {0, 1}:
            raise InvalidArgumentError(f"{name} must be boolean, got values {sorted(uniques, key=str)}")
        arr = arr.astype(bool)
    return arr


def confusion_counts(
    actual: Sequence[bool] | np.ndarray,
    predicted: Sequence[bool] | np.ndarray,
) -> ConfusionCounts:
    """Count TP/FP/TN/FN for boolean ``actual`` and ``predicted``."""
    actual_arr = as_bool_labels(actual, "actual")
    predicted_arr = as_bool_labels(predicted, "predicted")

    if actual_arr.shape != predicted_arr.shape:
        raise InvalidArgumentError(
            f"actual and predicted differ in length: {actual_arr.size} != {predicted_arr.size}"
        )
    if actual_arr.size == 0:
        raise InvalidArgumentError("cannot compute rates on an empty evaluation set")

    return ConfusionCounts(
        tp=int(np.sum(actual_arr & predicted_arr)),
        fp=int(np.sum(~actual_arr & predicted_arr)),
        tn=int(np.sum(~actual_arr & ~predicted_arr)),
        fn=int(np.sum(actual_arr & ~predicted_arr)),
    )


def _ratio(numerator: int, denominator: int) -> Optional[float]:
    if denominator == 0:
        return UNDEFINED
    return numerator / denominator


def rates(
    actual: Sequence[bool] | np.ndarray,
    predicted: Sequence[bool] | np.ndarray,
    *,
    on_undefined: OnUndefined = "raise",
) -> RateResult:
    """Compute true/false positive/negative rates and accuracy.

    Parameters
    ----------
    actual : sequence of bool
        Ground truth labels.
    predicted : sequence of bool
        Predicted labels, same length as ``actual``.
    on_undefined : {"raise", "mark"}
        What to do when a class is absent from ``actual``. ``"raise"``
        raises :class:`UndefinedMetricError`; ``"mark"`` returns the result
        with the affected rates set to :data:`UNDEFINED`.

    Returns
    -------
    RateResult

    Examples
    --------
    >>> r = rates([True, True, False, False], [True, False, False, False])
    >>> r.true_positive, r.false_positive, r.accuracy
    (0.5, 0.0, 0.75)
    """
    if on_undefined not in ("raise", "mark"):
        raise InvalidArgumentError(f"on_undefined must be 'raise' or 'mark', got {on_undefined!r}")

    counts = confusion_counts(actual, predicted)
    result = RateResult(
        true_positive=_ratio(counts.tp, counts.positives),
        false_positive=_ratio(counts.fp, counts.negatives),
        true_negative=_ratio(counts.tn, counts.negatives),
        false_negative=_ratio(counts.fn, counts.positives),
        accuracy=(counts.tp + counts.tn) / counts.total,
    )

    if on_undefined == "raise" and result.undefined_metrics:
        raise UndefinedMetricError(result.undefined_metrics)
    return result


def rates_characterizer(
    learner: "Learner",
    *,
    on_undefined: OnUndefined = "mark",
) -> Callable[[object, "Dataset"], RateResult]:
    """Build a ``characterize_fn`` that scores a fitted model with :func:`rates`.

    An empty test partition (``k`` larger than the row count) has no rates
    at all: every metric is undefined, including accuracy.
    """

    def characterize(model: object, test: "Dataset") -> RateResult:
        if test.is_empty:
            if on_undefined == "raise":
                raise UndefinedMetricError(RATE_NAMES, "empty test partition: no metric is defined")
            return RateResult(UNDEFINED, UNDEFINED, UNDEFINED, UNDEFINED, UNDEFINED)
        predicted = learner.predict(model, test)
        actual = as_bool_labels(test.labels, "actual")
        return rates(actual, predicted, on_undefined=on_undefined)

    return characterize
