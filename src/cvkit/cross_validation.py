"""K-fold cross-validation and hold-out evaluation.

The runner is deliberately small: it draws one balanced fold assignment,
then for every fold trains a caller-supplied model on the other folds and
characterizes it on the held-out fold. Training and characterization are
external collaborators (plain callables), so any modelling backend can be
plugged in.

Key design decisions:
- The fold assignment is drawn once, before the first fold is trained
- Each fold gets its own train/test partition; nothing is shared between folds
- Failures from the collaborators propagate immediately (no partial table)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple, TypeVar

import numpy as np
import pandas as pd

from cvkit.dataset import Dataset
from cvkit.exceptions import InvalidArgumentError
from cvkit.folds import SeedLike, assign_folds, make_rng

ModelT = TypeVar("ModelT")
RowT = TypeVar("RowT")

TrainFn = Callable[[Dataset], ModelT]
CharacterizeFn = Callable[[ModelT, Dataset], RowT]


@dataclass
class CVConfig:
    """Configuration for k-fold cross-validation."""

    n_splits: int = 5
    random_state: int | None = None


def cross_validation_splits(
    k: int,
    n: int,
    rng: SeedLike = None,
) -> List[Tuple[int, np.ndarray, np.ndarray]]:
    """Create ``(fold, train_indices, test_indices)`` for folds ``1..k``.

    Parameters
    ----------
    k : int
        Number of folds.
    n : int
        Number of rows in the dataset.
    rng : Generator or int, optional
        Random source for the fold assignment.

    Returns
    -------
    List[Tuple[int, np.ndarray, np.ndarray]]
        One entry per fold in fold order. Test indices are disjoint across
        folds and together cover ``range(n)``.
    """
    assignment = assign_folds(k, n, rng)
    splits: List[Tuple[int, np.ndarray, np.ndarray]] = []
    for fold in range(1, k + 1):
        test_mask = assignment == fold
        splits.append((fold, np.flatnonzero(~test_mask), np.flatnonzero(test_mask)))
    return splits


def run_cross_validation(
    k: int,
    dataset: Dataset,
    train_fn: TrainFn,
    characterize_fn: CharacterizeFn,
    rng: SeedLike = None,
    *,
    verbose: bool = False,
) -> List[Any]:
    """Run k-fold cross-validation.

    Parameters
    ----------
    k : int
        Number of folds (>= 1).
    dataset : Dataset
        Rows to partition. Must not be empty.
    train_fn : callable
        ``train_fn(train_rows) -> model``. Invoked exactly ``k`` times.
    characterize_fn : callable
        ``characterize_fn(model, test_rows) -> row``.
    rng : Generator or int, optional
        Random source for the fold assignment. A fixed seed makes the run
        reproducible.
    verbose : bool
        Print one progress line per fold.

    Returns
    -------
    List[Any]
        Exactly ``k`` result rows, ordered by fold index ``1..k``.

    Raises
    ------
    InvalidArgumentError
        If ``k < 1`` or the dataset is empty. No fold is run.
    Exception
        Anything raised by ``train_fn`` or ``characterize_fn`` aborts the run.
    """
    if k < 1:
        raise InvalidArgumentError(f"fold count must be >= 1, got k={k}")
    if dataset.is_empty:
        raise InvalidArgumentError("cannot cross-validate an empty dataset")

    splits = cross_validation_splits(k, len(dataset), make_rng(rng))

    rows: List[Any] = []
    for fold, train_idx, test_idx in splits:
        if verbose:
            print(f"[info][fold {fold}/{k}] train={len(train_idx)} test={len(test_idx)}")
        model = train_fn(dataset.take(train_idx))
        rows.append(characterize_fn(model, dataset.take(test_idx)))
    return rows


def train_test_split(
    dataset: Dataset,
    test_fraction: float = 0.25,
    rng: SeedLike = None,
) -> Tuple[Dataset, Dataset]:
    """Randomly split ``dataset`` into a training and a hold-out part.

    ``round(n * test_fraction)`` rows are held out, clipped so that both
    parts contain at least one row.
    """
    if not 0.0 < test_fraction < 1.0:
        raise InvalidArgumentError(f"test_fraction must be in (0, 1), got {test_fraction}")
    n = len(dataset)
    if n < 2:
        raise InvalidArgumentError(f"need at least two rows for a hold-out split, got {n}")

    n_test = min(max(int(round(n * test_fraction)), 1), n - 1)
    order = make_rng(rng).permutation(n)
    return dataset.take(np.sort(order[n_test:])), dataset.take(np.sort(order[:n_test]))


def holdout_evaluate(
    dataset: Dataset,
    train_fn: TrainFn,
    characterize_fn: CharacterizeFn,
    test_fraction: float = 0.25,
    rng: SeedLike = None,
) -> Any:
    """Train on a random split and characterize on the held-out rows."""
    train, test = train_test_split(dataset, test_fraction, rng)
    return characterize_fn(train_fn(train), test)


def _row_to_mapping(row: Any) -> Mapping[str, Any]:
    if isinstance(row, Mapping):
        return row
    if hasattr(row, "to_dict"):
        return row.to_dict()
    raise TypeError(f"result row must be a mapping or define to_dict(), got {type(row).__name__}")


def results_to_frame(rows: Sequence[Any], index_name: str = "fold") -> pd.DataFrame:
    """Tabulate result rows, one per fold, indexed from 1.

    Undefined metric values (``None``) are kept as missing cells; they are
    not replaced by zero.
    """
    records = [dict(_row_to_mapping(row)) for row in rows]
    frame = pd.DataFrame.from_records(records)
    frame.index = pd.RangeIndex(1, len(records) + 1, name=index_name)
    return frame


def summarize_results(rows: Sequence[Any], *, skip_undefined: bool = False) -> pd.DataFrame:
    """Aggregate per-fold metrics into mean/std per metric.

    Parameters
    ----------
    rows : sequence
        Result rows (mappings or objects with ``to_dict()``).
    skip_undefined : bool
        If False (default), a metric that is undefined in any fold gets an
        undefined (NaN) mean and std. If True, statistics are computed over
        the defined folds only. ``n_undefined`` always reports how many folds
        had no value.

    Returns
    -------
    pd.DataFrame
        Indexed by metric name with columns ``mean``, ``std``, ``n_defined``,
        ``n_undefined``.
    """
    frame = results_to_frame(rows)
    summary: Dict[str, Dict[str, float]] = {}

    for column in frame.columns:
        values = pd.to_numeric(frame[column], errors="coerce")
        if values.isna().all() and frame[column].notna().any():
            # non-numeric column such as a label or feature list
            continue
        defined = values.dropna()
        n_undefined = int(values.isna().sum())

        if defined.empty or (n_undefined and not skip_undefined):
            mean = std = float("nan")
        else:
            mean = float(defined.mean())
            std = float(defined.std(ddof=0))

        summary[column] = {
            "mean": mean,
            "std": std,
            "n_defined": int(defined.size),
            "n_undefined": n_undefined,
        }

    result = pd.DataFrame.from_dict(summary, orient="index")
    result.index.name = "metric"
    return result
