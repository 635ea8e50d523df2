"""Experiment configuration loaded from YAML."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

import yaml

from cvkit.cross_validation import CVConfig


def _path_from_config(base_dir: Path, value: str) -> Path:
    """Resolve a path from the config relative to the config file."""

    raw_path = Path(value)
    return raw_path if raw_path.is_absolute() else (base_dir / raw_path).resolve()


@dataclass(frozen=True)
class ExperimentConfig:
    """Settings shared by the cv / holdout / bootstrap / rfe commands."""

    data_path: Path
    label_column: str
    positive_label: Any = None
    feature_columns: Tuple[str, ...] | None = None
    learner: str = "logistic"
    learner_params: Dict[str, Any] = field(default_factory=dict)
    threshold: float = 0.5
    n_splits: int = 5
    random_state: int | None = 42
    test_fraction: float = 0.25
    bootstrap_rounds: int = 25
    confidence: float = 0.95
    rfe_sizes: Tuple[int, ...] = ()
    metric: str = "accuracy"
    output_dir: Path = Path("results")

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any], *, base_dir: Path) -> "ExperimentConfig":
        data_section = mapping.get("data", {})
        if "path" not in data_section:
            raise KeyError("'data.path' is required in the experiment config")
        if "label_column" not in data_section:
            raise KeyError("'data.label_column' is required in the experiment config")

        features = data_section.get("feature_columns")
        learner_section = mapping.get("learner", {})
        cv_section = mapping.get("cross_validation", {})
        holdout_section = mapping.get("holdout", {})
        bootstrap_section = mapping.get("bootstrap", {})
        rfe_section = mapping.get("rfe", {})

        random_state = mapping.get("random_state", 42)

        return cls(
            data_path=_path_from_config(base_dir, data_section["path"]),
            label_column=str(data_section["label_column"]),
            positive_label=data_section.get("positive_label"),
            feature_columns=tuple(features) if features else None,
            learner=str(learner_section.get("name", "logistic")),
            learner_params=dict(learner_section.get("params", {}) or {}),
            threshold=float(learner_section.get("threshold", 0.5)),
            n_splits=int(cv_section.get("n_splits", 5)),
            random_state=None if random_state is None else int(random_state),
            test_fraction=float(holdout_section.get("test_fraction", 0.25)),
            bootstrap_rounds=int(bootstrap_section.get("n_rounds", 25)),
            confidence=float(bootstrap_section.get("confidence", 0.95)),
            rfe_sizes=tuple(int(s) for s in rfe_section.get("sizes", ())),
            metric=str(mapping.get("metric", "accuracy")),
            output_dir=_path_from_config(base_dir, mapping.get("output_dir", "results")),
        )

    @property
    def cv(self) -> CVConfig:
        return CVConfig(n_splits=self.n_splits, random_state=self.random_state)

    def with_overrides(self, **overrides: Any) -> "ExperimentConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def load_config(config_path: str | Path, section: str = "experiment") -> ExperimentConfig:
    """Read ``section`` of a YAML file into :class:`ExperimentConfig`."""

    path = Path(config_path).resolve()
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        full_cfg: Mapping[str, Any] = yaml.safe_load(fh) or {}

    try:
        experiment_section = full_cfg[section]
    except KeyError as exc:
        raise KeyError(f"'{section}' section is required in {path.name}") from exc

    return ExperimentConfig.from_mapping(experiment_section, base_dir=path.parent)
