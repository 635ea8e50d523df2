"""Learner interface: fit / predict / rank over a :class:`Dataset`.

Every modelling backend is wrapped in a :class:`Learner` so the resampling
procedures (cross-validation, bootstrap, feature elimination) never have
to know which library does the training.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Sequence, Type

import numpy as np
import pandas as pd
from lightgbm import LGBMClassifier
from sklearn.base import BaseEstimator, clone
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

from cvkit.dataset import Dataset
from cvkit.metrics import as_bool_labels


class Learner(ABC):
    """Base class for all learners."""

    threshold: float = 0.5

    @abstractmethod
    def fit(self, dataset: Dataset) -> Any:
        """Train a new model on ``dataset`` and return it."""
        ...

    @abstractmethod
    def predict_proba(self, model: Any, dataset: Dataset) -> np.ndarray:
        """Probability of the positive class for each row."""
        ...

    @abstractmethod
    def rank(self, model: Any, feature_columns: Sequence[str]) -> pd.Series:
        """Importance score per feature, sorted from strongest to weakest."""
        ...

    def predict(self, model: Any, dataset: Dataset) -> np.ndarray:
        """Boolean predictions for each row."""
        return self.predict_proba(model, dataset) >= self.threshold


class EstimatorLearner(Learner):
    """Learner backed by a scikit-learn compatible binary classifier.

    Parameters
    ----------
    estimator : BaseEstimator
        Template estimator. It is cloned on every ``fit`` call, so models
        trained on different folds never share state.
    threshold : float
        Probability cut-off for a positive prediction.
    """

    def __init__(self, estimator: BaseEstimator, threshold: float = 0.5):
        if not 0.0 < threshold < 1.0:
            raise ValueError(f"threshold must be in (0, 1), got {threshold}")
        self.estimator = estimator
        self.threshold = threshold

    def fit(self, dataset: Dataset) -> BaseEstimator:
        labels = as_bool_labels(dataset.labels, "training labels")
        if np.unique(labels).size < 2:
            raise ValueError(
                f"training rows contain a single class ({len(labels)} rows); "
                "cannot fit a binary classifier"
            )
        model = clone(self.estimator)
        model.fit(dataset.features, labels)
        return model

    def predict_proba(self, model: BaseEstimator, dataset: Dataset) -> np.ndarray:
        proba = model.predict_proba(dataset.features)
        classes = list(getattr(model, "classes_", [False, True]))
        return np.asarray(proba)[:, classes.index(True)]

    def rank(self, model: BaseEstimator, feature_columns: Sequence[str]) -> pd.Series:
        scores = _importances(model)
        if scores.size != len(feature_columns):
            raise ValueError(
                f"model has {scores.size} importances but {len(feature_columns)} features were given"
            )
        ranking = pd.Series(scores, index=list(feature_columns), name="importance")
        return ranking.sort_values(ascending=False, kind="mergesort")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(estimator={self.estimator!r}, threshold={self.threshold})"


def _importances(model: Any) -> np.ndarray:
    if isinstance(model, Pipeline):
        model = model[-1]
    if hasattr(model, "feature_importances_"):
        return np.asarray(model.feature_importances_, dtype=float).ravel()
    if hasattr(model, "coef_"):
        return np.abs(np.asarray(model.coef_, dtype=float)).ravel()
    raise TypeError(f"{type(model).__name__} exposes neither feature_importances_ nor coef_")


class LogisticLearner(EstimatorLearner):
    """Standardized logistic regression; features ranked by |coefficient|."""

    def __init__(self, threshold: float = 0.5, **params: Any):
        params.setdefault("max_iter", 1000)
        estimator = Pipeline([
            ("scaler", StandardScaler()),
            ("model", LogisticRegression(**params)),
        ])
        super().__init__(estimator, threshold=threshold)


class RandomForestLearner(EstimatorLearner):
    """Random forest; features ranked by impurity importance."""

    def __init__(self, threshold: float = 0.5, **params: Any):
        params.setdefault("n_estimators", 200)
        super().__init__(RandomForestClassifier(**params), threshold=threshold)


class LGBMLearner(EstimatorLearner):
    """LightGBM gradient boosting; features ranked by total gain."""

    def __init__(self, threshold: float = 0.5, **params: Any):
        params.setdefault("n_estimators", 200)
        params.setdefault("learning_rate", 0.05)
        params.setdefault("verbosity", -1)
        params.setdefault("importance_type", "gain")
        super().__init__(LGBMClassifier(**params), threshold=threshold)


LEARNERS: Dict[str, Type[EstimatorLearner]] = {
    "logistic": LogisticLearner,
    "random_forest": RandomForestLearner,
    "lgbm": LGBMLearner,
}


def list_learners() -> List[str]:
    """Names accepted by :func:`get_learner`."""
    return list(LEARNERS.keys())


def get_learner(name: str, **params: Any) -> EstimatorLearner:
    """Create a registered learner by name."""
    key = name.lower()
    if key not in LEARNERS:
        available = ", ".join(list_learners())
        raise ValueError(f"Unknown learner '{name}'. Available learners: {available}")
    return LEARNERS[key](**params)


def make_trainer(learner: Learner) -> Callable[[Dataset], Any]:
    """Adapt ``learner.fit`` into a ``train_fn`` for the resampling runners."""

    def train(rows: Dataset) -> Any:
        return learner.fit(rows)

    return train
