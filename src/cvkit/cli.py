#!/usr/bin/env python
"""Command-line entry point for cross-validation experiments.

Commands:
    cv         k-fold cross-validation with rate metrics per fold
    holdout    single random train/test split
    bootstrap  out-of-bag bootstrap with percentile intervals
    rfe        recursive feature elimination

Each command writes ``<command>_results.csv`` and ``<command>_summary.json``
to the configured output directory.
"""

from __future__ import annotations

import argparse
import json
import math
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Sequence

import numpy as np
import pandas as pd

from cvkit.bootstrap import bootstrap_interval, run_bootstrap
from cvkit.config import ExperimentConfig, load_config
from cvkit.cross_validation import (
    holdout_evaluate,
    results_to_frame,
    run_cross_validation,
    summarize_results,
)
from cvkit.dataset import Dataset, load_dataset
from cvkit.exceptions import UndefinedMetricError
from cvkit.folds import make_rng
from cvkit.learners import EstimatorLearner, get_learner, list_learners, make_trainer
from cvkit.metrics import LOWER_IS_BETTER, RATE_NAMES, rates_characterizer
from cvkit.rfe import recursive_feature_elimination

COMMANDS = ("cv", "holdout", "bootstrap", "rfe")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    ap = argparse.ArgumentParser(
        prog="cvkit",
        description="Cross-validation, bootstrap and feature elimination for binary classifiers.",
    )
    ap.add_argument("command", choices=COMMANDS, help="Procedure to run")
    ap.add_argument(
        "--config",
        type=str,
        default="configs/experiment.yaml",
        help="Path to experiment YAML",
    )
    ap.add_argument("--data", type=str, default=None, help="Override data.path")
    ap.add_argument(
        "--learner",
        type=str,
        default=None,
        choices=list_learners(),
        help="Override learner.name",
    )
    ap.add_argument("--n-splits", type=int, default=None, help="Number of folds")
    ap.add_argument("--random-seed", type=int, default=None, help="Random seed for reproducibility")
    ap.add_argument("--test-fraction", type=float, default=None, help="Hold-out fraction")
    ap.add_argument("--n-rounds", type=int, default=None, help="Bootstrap rounds")
    ap.add_argument(
        "--rfe-sizes",
        type=int,
        nargs="+",
        default=None,
        help="Feature subset sizes to evaluate",
    )
    ap.add_argument("--metric", type=str, default=None, choices=RATE_NAMES)
    ap.add_argument("--out-dir", type=str, default=None, help="Directory for result files")
    ap.add_argument("--quiet", action="store_true", help="Suppress per-fold progress lines")
    return ap.parse_args(argv)


def _apply_overrides(config: ExperimentConfig, args: argparse.Namespace) -> ExperimentConfig:
    # params in the config belong to the configured learner, not to an override
    learner_params = {} if args.learner and args.learner != config.learner else None
    if learner_params is not None and config.learner_params:
        print(f"[warn] --learner {args.learner}: ignoring params configured for {config.learner}")
    return config.with_overrides(
        data_path=Path(args.data).resolve() if args.data else None,
        learner=args.learner,
        learner_params=learner_params,
        n_splits=args.n_splits,
        random_state=args.random_seed,
        test_fraction=args.test_fraction,
        bootstrap_rounds=args.n_rounds,
        rfe_sizes=tuple(args.rfe_sizes) if args.rfe_sizes else None,
        metric=args.metric,
        output_dir=Path(args.out_dir).resolve() if args.out_dir else None,
    )


def _jsonable(value: Any) -> Any:
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _print_table(title: str, frame: pd.DataFrame) -> None:
    print(f"\n{'=' * 60}")
    print(title)
    print(f"{'=' * 60}")
    print(frame.to_string(float_format=lambda v: f"{v:.4f}"))


def _run_cv(config: ExperimentConfig, dataset: Dataset, learner: EstimatorLearner, verbose: bool):
    cv = config.cv
    rows = run_cross_validation(
        cv.n_splits,
        dataset,
        make_trainer(learner),
        rates_characterizer(learner),
        make_rng(cv.random_state),
        verbose=verbose,
    )
    results = results_to_frame(rows)
    summary = summarize_results(rows)
    _print_table(f"{cv.n_splits}-fold cross-validation", results)
    _print_table("Summary (undefined folds propagate)", summary)
    return results, {
        "n_splits": cv.n_splits,
        "summary": summary.to_dict(orient="index"),
    }


def _run_holdout(config: ExperimentConfig, dataset: Dataset, learner: EstimatorLearner, verbose: bool):
    row = holdout_evaluate(
        dataset,
        make_trainer(learner),
        rates_characterizer(learner),
        config.test_fraction,
        make_rng(config.random_state),
    )
    results = results_to_frame([row], index_name="split")
    _print_table(f"Hold-out evaluation (test_fraction={config.test_fraction})", results)
    return results, {"test_fraction": config.test_fraction, "metrics": row.to_dict()}


def _run_bootstrap(config: ExperimentConfig, dataset: Dataset, learner: EstimatorLearner, verbose: bool):
    rows = run_bootstrap(
        dataset,
        make_trainer(learner),
        rates_characterizer(learner),
        config.bootstrap_rounds,
        make_rng(config.random_state),
        verbose=verbose,
    )
    results = results_to_frame(rows, index_name="round")
    summary = summarize_results(rows)

    intervals: Dict[str, Any] = {}
    for name in RATE_NAMES:
        try:
            intervals[name] = list(bootstrap_interval(results[name].tolist(), config.confidence))
        except UndefinedMetricError as exc:
            print(f"[warn] {name}: {exc}")
            intervals[name] = None

    _print_table(f"Bootstrap ({config.bootstrap_rounds} rounds)", summary)
    return results, {
        "n_rounds": config.bootstrap_rounds,
        "confidence": config.confidence,
        "summary": summary.to_dict(orient="index"),
        "intervals": intervals,
    }


def _run_rfe(config: ExperimentConfig, dataset: Dataset, learner: EstimatorLearner, verbose: bool):
    sizes = config.rfe_sizes or tuple(range(1, len(dataset.feature_columns) + 1))
    result = recursive_feature_elimination(
        dataset,
        learner,
        sizes,
        k=config.n_splits,
        metric=config.metric,
        rng=make_rng(config.random_state),
        maximize=config.metric not in LOWER_IS_BETTER,
        verbose=verbose,
    )
    _print_table(f"Recursive feature elimination ({config.metric})", result.scores)
    print(f"[info] best size = {result.best_size}: {', '.join(result.selected_features)}")
    return result.scores, result.to_dict()


RUNNERS = {
    "cv": _run_cv,
    "holdout": _run_holdout,
    "bootstrap": _run_bootstrap,
    "rfe": _run_rfe,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    config_path = Path(args.config)
    if not config_path.exists():
        print(f"[error] Config file not found: {config_path}")
        return 1
    config = _apply_overrides(load_config(config_path), args)

    if not config.data_path.exists():
        print(f"[error] Dataset file not found: {config.data_path}")
        return 1

    print(f"[info] data file: {config.data_path}")
    dataset = load_dataset(
        config.data_path,
        config.label_column,
        config.feature_columns,
        positive_label=config.positive_label,
    )
    print(f"[info] rows={len(dataset)} features={len(dataset.feature_columns)}")

    learner = get_learner(config.learner, threshold=config.threshold, **config.learner_params)
    print(f"[info] learner: {learner!r}")

    results, summary = RUNNERS[args.command](config, dataset, learner, not args.quiet)

    out_dir = config.output_dir
    out_dir.mkdir(parents=True, exist_ok=True)

    results_path = out_dir / f"{args.command}_results.csv"
    results.to_csv(results_path)
    print(f"[info] Saved results to {results_path}")

    meta = {
        "command": args.command,
        "learner": config.learner,
        "learner_params": config.learner_params,
        "random_state": config.random_state,
        "n_rows": len(dataset),
        "features": list(dataset.feature_columns),
        "created_at": datetime.now(timezone.utc).isoformat(),
        **summary,
    }
    summary_path = out_dir / f"{args.command}_summary.json"
    with open(summary_path, "w", encoding="utf-8") as f:
        json.dump(_jsonable(meta), f, indent=2)
    print(f"[info] Saved summary to {summary_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
