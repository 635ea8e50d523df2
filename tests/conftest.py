"""Pytest configuration: put ``src`` on the import path and share fixtures.

Lets ``from cvkit ...`` work without installing the package first.
"""

import os
import sys

import numpy as np
import pandas as pd
import pytest


def _add_src_to_path() -> None:
    root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    src = os.path.join(root, "src")
    if src not in sys.path:
        sys.path.insert(0, src)


_add_src_to_path()

from cvkit.dataset import Dataset  # noqa: E402


@pytest.fixture
def classification_frame() -> pd.DataFrame:
    """A strong and a weak informative feature, one noise feature and a boolean label."""
    rng = np.random.default_rng(42)
    n_samples = 120

    signal = rng.normal(size=n_samples)
    helper = rng.normal(size=n_samples)
    label = signal + 0.6 * helper + rng.normal(scale=0.5, size=n_samples) > 0

    return pd.DataFrame({
        "row_id": np.arange(n_samples),
        "signal": signal,
        "helper": helper,
        "noise": rng.normal(size=n_samples),
        "label": label,
    })


@pytest.fixture
def classification_dataset(classification_frame: pd.DataFrame) -> Dataset:
    return Dataset.from_frame(
        classification_frame,
        label_column="label",
        feature_columns=["signal", "helper", "noise"],
    )
