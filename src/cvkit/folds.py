"""Balanced random fold assignment for k-fold cross-validation.

The assignment is built in two steps:

1. A deterministic base pattern of contiguous, near-equal blocks
   ``1,1,...,2,2,...,k,k`` where position ``i`` gets ``floor(k * i / n) + 1``.
2. A uniform random permutation of the *order* of that pattern.

Fold sizes are therefore fixed by the pattern (any two differ by at most
one) while the membership of each row is random.
"""

from __future__ import annotations

from typing import Union

import numpy as np

from cvkit.exceptions import InvalidArgumentError

SeedLike = Union[int, np.random.Generator, None]


def make_rng(seed: SeedLike = None) -> np.random.Generator:
    """Return a ``numpy`` Generator for ``seed``.

    An existing Generator is passed through unchanged so callers can share
    one random stream across several calls.
    """
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def base_fold_pattern(k: int, n: int) -> np.ndarray:
    """Contiguous fold labels before permutation.

    >>> base_fold_pattern(4, 8).tolist()
    [1, 1, 2, 2, 3, 3, 4, 4]
    """
    _check_fold_arguments(k, n)
    positions = np.arange(n, dtype=np.int64)
    return (k * positions) // n + 1


def assign_folds(k: int, n: int, rng: SeedLike = None) -> np.ndarray:
    """Assign each of ``n`` rows to one of ``k`` folds.

    Parameters
    ----------
    k : int
        Number of folds, must be >= 1. ``k <= n`` is expected but not
        enforced; with ``k > n`` some folds are empty.
    n : int
        Number of rows, must be >= 1.
    rng : Generator or int, optional
        Random source. Only this generator is consumed.

    Returns
    -------
    np.ndarray
        ``n`` integers in ``[1, k]``, parallel to the dataset rows.

    Raises
    ------
    InvalidArgumentError
        If ``k < 1`` or ``n < 1``.
    """
    pattern = base_fold_pattern(k, n)
    return make_rng(rng).permutation(pattern)


def fold_sizes(assignment: np.ndarray, k: int) -> np.ndarray:
    """Number of rows in each fold ``1..k`` (index 0 is fold 1)."""
    assignment = np.asarray(assignment, dtype=np.int64)
    return np.bincount(assignment, minlength=k + 1)[1:k + 1]


def _check_fold_arguments(k: int, n: int) -> None:
    if k < 1:
        raise InvalidArgumentError(f"fold count must be >= 1, got k={k}")
    if n < 1:
        raise InvalidArgumentError(f"dataset must contain at least one row, got n={n}")
