"""Typed tabular dataset used by the resampling procedures.

A :class:`Dataset` pairs a ``pandas.DataFrame`` with an explicit schema:
the feature columns and one label column. Column references are checked
when the dataset is built, so the resampling code never has to assemble
column names or formula strings at run time.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence, Tuple

import numpy as np
import pandas as pd

from cvkit.exceptions import InvalidArgumentError


@dataclass(frozen=True, eq=False)
class Dataset:
    """Rows with named features and one designated label column."""

    frame: pd.DataFrame
    feature_columns: Tuple[str, ...]
    label_column: str

    def __post_init__(self) -> None:
        feature_columns = tuple(self.feature_columns)
        object.__setattr__(self, "feature_columns", feature_columns)

        if not feature_columns:
            raise InvalidArgumentError("dataset needs at least one feature column")
        if self.label_column in feature_columns:
            raise InvalidArgumentError(
                f"label column {self.label_column!r} cannot also be a feature"
            )

        missing = [c for c in (*feature_columns, self.label_column) if c not in self.frame.columns]
        if missing:
            raise KeyError(f"columns not found in frame: {missing}")

    @classmethod
    def from_frame(
        cls,
        frame: pd.DataFrame,
        label_column: str,
        feature_columns: Sequence[str] | None = None,
    ) -> "Dataset":
        """Build a dataset; features default to every non-label column."""
        if feature_columns is None:
            feature_columns = [c for c in frame.columns if c != label_column]
        return cls(
            frame=frame.reset_index(drop=True),
            feature_columns=tuple(feature_columns),
            label_column=label_column,
        )

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def is_empty(self) -> bool:
        return len(self.frame) == 0

    @property
    def features(self) -> pd.DataFrame:
        """Feature columns only, in schema order."""
        return self.frame.loc[:, list(self.feature_columns)]

    @property
    def labels(self) -> np.ndarray:
        return self.frame[self.label_column].to_numpy()

    def take(self, indices: Sequence[int] | np.ndarray) -> "Dataset":
        """Return the rows at the given positions as a new dataset."""
        subset = self.frame.iloc[np.asarray(indices, dtype=int)].reset_index(drop=True)
        return Dataset(
            frame=subset,
            feature_columns=self.feature_columns,
            label_column=self.label_column,
        )

    def select_features(self, names: Sequence[str]) -> "Dataset":
        """Restrict the schema to ``names`` (rows are shared, not copied)."""
        unknown = [n for n in names if n not in self.feature_columns]
        if unknown:
            raise KeyError(f"unknown feature columns: {unknown}")
        return Dataset(
            frame=self.frame,
            feature_columns=tuple(names),
            label_column=self.label_column,
        )


def load_dataset(
    path: str | Path,
    label_column: str,
    feature_columns: Sequence[str] | None = None,
    *,
    positive_label: Any = None,
    sep: str = ",",
) -> Dataset:
    """Read a delimited text file into a :class:`Dataset`.

    Parameters
    ----------
    path : str or Path
        Location of the delimited file.
    label_column : str
        Name of the label column.
    feature_columns : sequence of str, optional
        Features to keep. If None, every other column is a feature.
    positive_label : Any, optional
        When given, the label column is coerced to ``label == positive_label``.
    sep : str
        Field delimiter passed to ``pandas.read_csv``.

    Returns
    -------
    Dataset
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset file not found: {path}")

    frame = pd.read_csv(path, sep=sep)
    if label_column not in frame.columns:
        raise KeyError(f"label column {label_column!r} not found in {path}")

    if positive_label is not None:
        # YAML and CLI values arrive as strings; compare on string form too
        labels = frame[label_column]
        frame[label_column] = (labels == positive_label) | (
            labels.astype(str) == str(positive_label)
        )

    return Dataset.from_frame(frame, label_column, feature_columns)
