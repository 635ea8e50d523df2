"""Recursive feature elimination driven by cross-validation.

For each requested subset size (largest first) the current features are
cross-validated, then a model is fitted on all rows and the learner's
ranking decides which features survive into the next, smaller subset.
All subset sizes are evaluated on the same fold assignment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd

from cvkit.cross_validation import run_cross_validation, summarize_results
from cvkit.dataset import Dataset
from cvkit.exceptions import InvalidArgumentError, UndefinedMetricError
from cvkit.folds import SeedLike, make_rng
from cvkit.learners import Learner, make_trainer
from cvkit.metrics import LOWER_IS_BETTER, RATE_NAMES, rates_characterizer


@dataclass
class RFEResult:
    """Outcome of recursive feature elimination."""

    scores: pd.DataFrame
    best_size: int
    selected_features: List[str]
    metric: str
    rankings: Dict[int, pd.Series] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "metric": self.metric,
            "best_size": self.best_size,
            "selected_features": list(self.selected_features),
            "scores": self.scores.reset_index().to_dict(orient="records"),
        }


def _normalize_sizes(sizes: Sequence[int], n_features: int) -> List[int]:
    if any(int(s) < 1 for s in sizes):
        raise InvalidArgumentError(f"subset sizes must be >= 1, got {list(sizes)}")
    capped = {min(int(s), n_features) for s in sizes}
    capped.add(n_features)
    return sorted(capped, reverse=True)


def recursive_feature_elimination(
    dataset: Dataset,
    learner: Learner,
    sizes: Sequence[int],
    k: int = 5,
    metric: str = "accuracy",
    rng: SeedLike = None,
    *,
    maximize: bool | None = None,
    verbose: bool = False,
) -> RFEResult:
    """Select a feature subset by recursive elimination.

    Parameters
    ----------
    dataset : Dataset
        Full dataset; every feature column is a candidate.
    learner : Learner
        Supplies fit / predict / rank.
    sizes : sequence of int
        Subset sizes to evaluate. The full feature count is always included.
    k : int
        Number of cross-validation folds per subset size.
    metric : str
        Rate metric used to pick the best size.
    rng : Generator or int, optional
        Random source for the shared fold assignment.
    maximize : bool, optional
        Whether larger metric values are better. Defaults to ``False`` for
        the error rates in :data:`LOWER_IS_BETTER` and ``True`` otherwise.

    Returns
    -------
    RFEResult
    """
    if metric not in RATE_NAMES:
        raise InvalidArgumentError(f"unknown metric {metric!r}; choose from {list(RATE_NAMES)}")
    if maximize is None:
        maximize = metric not in LOWER_IS_BETTER

    features = list(dataset.feature_columns)
    ordered_sizes = _normalize_sizes(sizes, len(features))

    # one seed for every subset so all sizes see the same partitions
    fold_seed = int(make_rng(rng).integers(0, 2**32 - 1))
    train_fn = make_trainer(learner)
    characterize_fn = rates_characterizer(learner, on_undefined="mark")

    records = []
    rankings: Dict[int, pd.Series] = {}
    subsets: Dict[int, List[str]] = {}
    current = features
    for size in ordered_sizes:
        if size < len(current):
            current = list(rankings[len(current)].index[:size])
        subset = dataset.select_features(current)

        rows = run_cross_validation(k, subset, train_fn, characterize_fn, np.random.default_rng(fold_seed))
        summary = summarize_results(rows)
        records.append({
            "size": size,
            "mean": summary.loc[metric, "mean"],
            "std": summary.loc[metric, "std"],
            "n_undefined": int(summary.loc[metric, "n_undefined"]),
        })
        subsets[size] = list(current)

        model = learner.fit(subset)
        rankings[size] = learner.rank(model, current)

        if verbose:
            print(f"[info][rfe] size={size} {metric}={records[-1]['mean']:.4f}")

    scores = pd.DataFrame.from_records(records).set_index("size")
    defined = scores["mean"].dropna()
    if defined.empty:
        raise UndefinedMetricError((metric,), f"{metric} is undefined for every subset size")

    best_value = defined.max() if maximize else defined.min()
    # ties go to the smallest subset
    best_size = int(min(defined.index[defined == best_value]))

    return RFEResult(
        scores=scores,
        best_size=best_size,
        selected_features=subsets[best_size],
        metric=metric,
        rankings=rankings,
    )
