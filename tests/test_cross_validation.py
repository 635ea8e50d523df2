"""Tests for the k-fold cross-validation runner and hold-out split."""

from __future__ import annotations

import math

import numpy as np
import pandas as pd
import pytest

from cvkit.cross_validation import (
    CVConfig,
    cross_validation_splits,
    holdout_evaluate,
    results_to_frame,
    run_cross_validation,
    summarize_results,
    train_test_split,
)
from cvkit.dataset import Dataset
from cvkit.exceptions import InvalidArgumentError
from cvkit.folds import make_rng
from cvkit.metrics import RateResult, rates


class RecordingCollaborators:
    """train_fn / characterize_fn pair that records what each fold sees."""

    def __init__(self):
        self.train_ids = []
        self.test_ids = []

    def train(self, rows: Dataset):
        self.train_ids.append(rows.frame["row_id"].tolist())
        # "model" is the majority label of the training rows
        return bool(np.mean(rows.labels) >= 0.5)

    def characterize(self, model, rows: Dataset):
        self.test_ids.append(rows.frame["row_id"].tolist())
        return {"n_test": len(rows), "majority": model}


class TestCVConfig:
    def test_default_values(self):
        config = CVConfig()
        assert config.n_splits == 5
        assert config.random_state is None


class TestCrossValidationSplits:
    """Tests for cross_validation_splits."""

    def test_exhaustive_and_disjoint(self):
        splits = cross_validation_splits(4, 30, make_rng(0))

        assert [fold for fold, _, _ in splits] == [1, 2, 3, 4]
        all_test = np.concatenate([test for _, _, test in splits])
        assert sorted(all_test.tolist()) == list(range(30))
        for _, train, test in splits:
            assert len(set(train) & set(test)) == 0
            assert len(train) + len(test) == 30


class TestRunCrossValidation:
    """Tests for run_cross_validation."""

    def test_one_row_per_fold(self, classification_dataset):
        recorder = RecordingCollaborators()
        rows = run_cross_validation(
            5, classification_dataset, recorder.train, recorder.characterize, make_rng(1)
        )

        assert len(rows) == 5
        assert len(recorder.train_ids) == 5

    def test_test_partitions_cover_dataset_once(self, classification_dataset):
        """Union of test partitions is the full dataset with no overlaps."""
        recorder = RecordingCollaborators()
        run_cross_validation(
            7, classification_dataset, recorder.train, recorder.characterize, make_rng(2)
        )

        all_test = [rid for ids in recorder.test_ids for rid in ids]
        assert len(all_test) == len(classification_dataset)
        assert sorted(all_test) == list(range(len(classification_dataset)))

    def test_train_is_complement_of_test(self, classification_dataset):
        recorder = RecordingCollaborators()
        run_cross_validation(
            3, classification_dataset, recorder.train, recorder.characterize, make_rng(3)
        )

        everything = set(range(len(classification_dataset)))
        for train_ids, test_ids in zip(recorder.train_ids, recorder.test_ids):
            assert set(train_ids) | set(test_ids) == everything
            assert not set(train_ids) & set(test_ids)

    def test_fold_sizes_balanced(self, classification_dataset):
        recorder = RecordingCollaborators()
        rows = run_cross_validation(
            7, classification_dataset, recorder.train, recorder.characterize, make_rng(4)
        )

        sizes = [row["n_test"] for row in rows]
        assert max(sizes) - min(sizes) <= 1

    def test_seeded_run_is_deterministic(self, classification_dataset):
        first = RecordingCollaborators()
        second = RecordingCollaborators()
        run_cross_validation(5, classification_dataset, first.train, first.characterize, make_rng(11))
        run_cross_validation(5, classification_dataset, second.train, second.characterize, make_rng(11))

        assert first.test_ids == second.test_ids

    def test_integer_seed(self, classification_dataset):
        first = RecordingCollaborators()
        second = RecordingCollaborators()
        run_cross_validation(4, classification_dataset, first.train, first.characterize, 5)
        run_cross_validation(4, classification_dataset, second.train, second.characterize, 5)

        assert first.test_ids == second.test_ids

    def test_single_fold_trains_on_empty_remainder(self, classification_dataset):
        """k=1 holds out every row; the train partition is empty."""
        recorder = RecordingCollaborators()

        def train(rows):
            recorder.train_ids.append(rows.frame["row_id"].tolist())
            return None

        rows = run_cross_validation(1, classification_dataset, train, recorder.characterize, make_rng(0))

        assert len(rows) == 1
        assert recorder.train_ids == [[]]
        assert rows[0]["n_test"] == len(classification_dataset)

    @pytest.mark.parametrize("k", [0, -3])
    def test_invalid_fold_count(self, classification_dataset, k):
        calls = []
        with pytest.raises(InvalidArgumentError):
            run_cross_validation(k, classification_dataset, calls.append, lambda m, t: {})
        assert calls == []

    def test_empty_dataset(self, classification_frame):
        empty = Dataset.from_frame(classification_frame.iloc[0:0], "label", ["signal"])
        calls = []
        with pytest.raises(InvalidArgumentError):
            run_cross_validation(3, empty, calls.append, lambda m, t: {})
        assert calls == []

    def test_train_failure_propagates(self, classification_dataset):
        """A failing fold aborts the run; no partial results and no retry."""
        calls = []

        def train(rows):
            calls.append(len(rows))
            if len(calls) == 2:
                raise RuntimeError("boom")
            return None

        with pytest.raises(RuntimeError, match="boom"):
            run_cross_validation(5, classification_dataset, train, lambda m, t: {}, make_rng(0))
        assert len(calls) == 2

    def test_characterize_failure_propagates(self, classification_dataset):
        def characterize(model, rows):
            raise ZeroDivisionError("bad fold")

        with pytest.raises(ZeroDivisionError):
            run_cross_validation(3, classification_dataset, lambda rows: None, characterize, make_rng(0))

    def test_rates_characterization(self, classification_dataset):
        """Rows returned by a rates-based characterizer tabulate cleanly."""

        def characterize(model, rows):
            predicted = rows.frame["signal"].to_numpy() > 0
            return rates(rows.labels, predicted, on_undefined="mark")

        rows = run_cross_validation(
            4, classification_dataset, lambda rows: None, characterize, make_rng(8)
        )

        assert all(isinstance(row, RateResult) for row in rows)
        frame = results_to_frame(rows)
        assert list(frame.index) == [1, 2, 3, 4]
        assert frame["accuracy"].between(0, 1).all()


class TestResultsToFrame:
    """Tests for results_to_frame."""

    def test_index_starts_at_one(self):
        frame = results_to_frame([{"a": 1.0}, {"a": 2.0}, {"a": 3.0}])
        assert frame.index.name == "fold"
        assert list(frame.index) == [1, 2, 3]
        assert frame["a"].tolist() == [1.0, 2.0, 3.0]

    def test_undefined_kept_missing(self):
        frame = results_to_frame([{"a": 1.0}, {"a": None}])
        assert pd.isna(frame.loc[2, "a"])
        assert frame.loc[1, "a"] == 1.0

    def test_rejects_unknown_row_type(self):
        with pytest.raises(TypeError):
            results_to_frame([1.0])


class TestSummarizeResults:
    """Tests for summarize_results."""

    def test_mean_and_std(self):
        summary = summarize_results([{"acc": 0.5}, {"acc": 1.0}])
        assert summary.loc["acc", "mean"] == pytest.approx(0.75)
        assert summary.loc["acc", "std"] == pytest.approx(0.25)
        assert summary.loc["acc", "n_defined"] == 2
        assert summary.loc["acc", "n_undefined"] == 0

    def test_undefined_propagates_by_default(self):
        """An undefined fold is not coerced to zero or silently dropped."""
        rows = [{"tpr": 1.0, "acc": 0.5}, {"tpr": None, "acc": 1.0}]
        summary = summarize_results(rows)

        assert math.isnan(summary.loc["tpr", "mean"])
        assert summary.loc["tpr", "n_undefined"] == 1
        assert summary.loc["acc", "mean"] == pytest.approx(0.75)

    def test_skip_undefined_reports_count(self):
        rows = [{"tpr": 1.0}, {"tpr": None}, {"tpr": 0.5}]
        summary = summarize_results(rows, skip_undefined=True)

        assert summary.loc["tpr", "mean"] == pytest.approx(0.75)
        assert summary.loc["tpr", "n_defined"] == 2
        assert summary.loc["tpr", "n_undefined"] == 1

    def test_non_numeric_columns_skipped(self):
        summary = summarize_results([{"acc": 0.5, "note": "a"}, {"acc": 0.7, "note": "b"}])
        assert list(summary.index) == ["acc"]


class TestTrainTestSplit:
    """Tests for train_test_split and holdout_evaluate."""

    def test_sizes_and_disjoint(self, classification_dataset):
        train, test = train_test_split(classification_dataset, 0.25, make_rng(0))

        assert len(test) == 30
        assert len(train) == 90
        train_ids = set(train.frame["row_id"])
        test_ids = set(test.frame["row_id"])
        assert not train_ids & test_ids
        assert len(train_ids | test_ids) == 120

    def test_both_sides_non_empty(self, classification_frame):
        tiny = Dataset.from_frame(classification_frame.head(2), "label", ["signal"])
        train, test = train_test_split(tiny, 0.01, make_rng(0))
        assert len(train) == 1
        assert len(test) == 1

    @pytest.mark.parametrize("fraction", [0.0, 1.0, -0.2, 1.5])
    def test_invalid_fraction(self, classification_dataset, fraction):
        with pytest.raises(InvalidArgumentError):
            train_test_split(classification_dataset, fraction)

    def test_holdout_evaluate(self, classification_dataset):
        seen = {}

        def train(rows):
            seen["train"] = len(rows)
            return "model"

        def characterize(model, rows):
            seen["test"] = len(rows)
            return {"model": model}

        row = holdout_evaluate(classification_dataset, train, characterize, 0.5, make_rng(0))
        assert row == {"model": "model"}
        assert seen == {"train": 60, "test": 60}
