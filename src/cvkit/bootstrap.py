"""Bootstrap (out-of-bag) evaluation and percentile intervals."""

from __future__ import annotations

from typing import Any, List, Sequence, Tuple

import numpy as np

from cvkit.cross_validation import CharacterizeFn, TrainFn
from cvkit.dataset import Dataset
from cvkit.exceptions import InvalidArgumentError, UndefinedMetricError
from cvkit.folds import SeedLike, make_rng

DEFAULT_MAX_REDRAWS = 100


def bootstrap_indices(n: int, rng: SeedLike = None) -> Tuple[np.ndarray, np.ndarray]:
    """Draw ``n`` row positions with replacement.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        ``(in_bag, out_of_bag)``. ``in_bag`` has length ``n`` and may repeat
        rows; ``out_of_bag`` holds the sorted positions never drawn.
    """
    if n < 1:
        raise InvalidArgumentError(f"dataset must contain at least one row, got n={n}")
    in_bag = make_rng(rng).integers(0, n, size=n)
    drawn = np.zeros(n, dtype=bool)
    drawn[in_bag] = True
    return in_bag, np.flatnonzero(~drawn)


def run_bootstrap(
    dataset: Dataset,
    train_fn: TrainFn,
    characterize_fn: CharacterizeFn,
    n_rounds: int = 25,
    rng: SeedLike = None,
    *,
    max_redraws: int = DEFAULT_MAX_REDRAWS,
    verbose: bool = False,
) -> List[Any]:
    """Train on bootstrap samples and characterize on the out-of-bag rows.

    A draw that leaves no out-of-bag row is redrawn, at most ``max_redraws``
    times per round. Failures from ``train_fn`` or ``characterize_fn``
    propagate and abort the run.

    Returns
    -------
    List[Any]
        One result row per round, in round order.
    """
    if n_rounds < 1:
        raise InvalidArgumentError(f"n_rounds must be >= 1, got {n_rounds}")
    if len(dataset) < 2:
        raise InvalidArgumentError("bootstrap needs at least two rows to leave any out of bag")

    generator = make_rng(rng)
    rows: List[Any] = []
    for round_idx in range(1, n_rounds + 1):
        for _ in range(max_redraws + 1):
            in_bag, out_of_bag = bootstrap_indices(len(dataset), generator)
            if out_of_bag.size:
                break
        else:
            raise InvalidArgumentError(
                f"round {round_idx}: no out-of-bag rows after {max_redraws} redraws"
            )

        if verbose:
            print(f"[info][round {round_idx}/{n_rounds}] in_bag={in_bag.size} oob={out_of_bag.size}")
        model = train_fn(dataset.take(in_bag))
        rows.append(characterize_fn(model, dataset.take(out_of_bag)))
    return rows


def bootstrap_interval(
    values: Sequence[float | None],
    confidence: float = 0.95,
) -> Tuple[float, float]:
    """Percentile interval of per-round values.

    Undefined values (``None`` or NaN) raise :class:`UndefinedMetricError`
    rather than being dropped from the interval.
    """
    if not 0.0 < confidence < 1.0:
        raise InvalidArgumentError(f"confidence must be in (0, 1), got {confidence}")
    if len(values) == 0:
        raise InvalidArgumentError("no values to build an interval from")

    n_undefined = sum(1 for v in values if v is None or np.isnan(v))
    if n_undefined:
        raise UndefinedMetricError(
            (),
            f"{n_undefined} of {len(values)} bootstrap values are undefined",
        )

    arr = np.asarray(values, dtype=float)
    alpha = (1.0 - confidence) / 2.0
    low, high = np.quantile(arr, [alpha, 1.0 - alpha])
    return float(low), float(high)
