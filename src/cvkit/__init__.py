"""Resampling-based model validation for binary classifiers.

This package provides:
- Balanced random fold assignment (folds)
- A k-fold cross-validation runner and hold-out split (cross_validation)
- Confusion-matrix rate metrics with explicit undefined values (metrics)
- A fit / predict / rank learner interface over scikit-learn and LightGBM (learners)
- Out-of-bag bootstrap evaluation (bootstrap)
- Recursive feature elimination (rfe)
"""

from cvkit.cross_validation import (
    CVConfig,
    cross_validation_splits,
    holdout_evaluate,
    results_to_frame,
    run_cross_validation,
    summarize_results,
    train_test_split,
)
from cvkit.dataset import Dataset, load_dataset
from cvkit.exceptions import InvalidArgumentError, UndefinedMetricError
from cvkit.folds import assign_folds, base_fold_pattern, fold_sizes, make_rng
from cvkit.metrics import UNDEFINED, RateResult, confusion_counts, rates, rates_characterizer

__version__ = "0.1.0"

__all__ = [
    # cross_validation
    "CVConfig",
    "cross_validation_splits",
    "holdout_evaluate",
    "results_to_frame",
    "run_cross_validation",
    "summarize_results",
    "train_test_split",
    # dataset
    "Dataset",
    "load_dataset",
    # exceptions
    "InvalidArgumentError",
    "UndefinedMetricError",
    # folds
    "assign_folds",
    "base_fold_pattern",
    "fold_sizes",
    "make_rng",
    # metrics
    "UNDEFINED",
    "RateResult",
    "confusion_counts",
    "rates",
    "rates_characterizer",
]
