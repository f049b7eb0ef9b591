"""
oulad_pass/config.py

Run settings for the pass/fail pipeline.

A PipelineConfig is immutable and validated on construction, so every stage
can trust the values it receives. The same object is serialized to
artifacts/config.json by the training CLI.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Tuple

import numpy as np

from oulad_pass.errors import ConfigurationError


MISSING_VALUE_POLICIES = ("pass_through", "impute")
UNKNOWN_OUTCOME_POLICIES = ("error", "pass")
MODEL_TYPES = (
    "decision_tree",
    "conditional_inference_tree",
    "naive_bayes",
    "logistic_regression",
)
# Models whose estimator cannot consume NaN feature values.
MODELS_REQUIRING_IMPUTATION = ("naive_bayes", "logistic_regression")

PASS_LABEL = "pass"
FAIL_LABEL = "fail"


@dataclass(frozen=True)
class PipelineConfig:
    """
    Parameters exposed by the pipeline.

    fold_count             : number of cross-validation folds over the training subset
    split_fraction         : share of rows drawn into the training subset
    seed                   : seed for the split, the folds and the estimators
    missing_value_policy   : "pass_through" (model handles NaN) or "impute"
    model_type             : which classifier variant to fit
    unknown_outcome_policy : what to do with outcome labels outside the known vocabulary
    exclude_columns        : columns never used as model features
    positive_class         : class treated as "positive" for sensitivity/specificity
    """

    fold_count: int = 10
    split_fraction: float = 0.75
    seed: int = 42
    missing_value_policy: str = "pass_through"
    model_type: str = "decision_tree"
    unknown_outcome_policy: str = "error"
    exclude_columns: Tuple[str, ...] = ("id_student", "code_module", "code_presentation")
    positive_class: str = FAIL_LABEL

    def __post_init__(self) -> None:
        # JSON round-trips give lists; keep the dataclass hashable.
        object.__setattr__(self, "exclude_columns", tuple(self.exclude_columns))

        if isinstance(self.fold_count, bool) or not isinstance(self.fold_count, int):
            raise ConfigurationError(f"fold_count must be an int, got {self.fold_count!r}")
        if self.fold_count < 2:
            raise ConfigurationError(f"fold_count must be >= 2, got {self.fold_count}")

        if not isinstance(self.split_fraction, (int, float)) or isinstance(self.split_fraction, bool):
            raise ConfigurationError(f"split_fraction must be a float, got {self.split_fraction!r}")
        if not 0.0 < float(self.split_fraction) < 1.0:
            raise ConfigurationError(
                f"split_fraction must be in (0, 1), got {self.split_fraction}"
            )

        if isinstance(self.seed, bool) or not isinstance(self.seed, int):
            raise ConfigurationError(f"seed must be an int, got {self.seed!r}")

        if self.missing_value_policy not in MISSING_VALUE_POLICIES:
            raise ConfigurationError(
                f"missing_value_policy must be one of {MISSING_VALUE_POLICIES}, "
                f"got {self.missing_value_policy!r}"
            )
        if self.model_type not in MODEL_TYPES:
            raise ConfigurationError(
                f"model_type must be one of {MODEL_TYPES}, got {self.model_type!r}"
            )
        if self.unknown_outcome_policy not in UNKNOWN_OUTCOME_POLICIES:
            raise ConfigurationError(
                f"unknown_outcome_policy must be one of {UNKNOWN_OUTCOME_POLICIES}, "
                f"got {self.unknown_outcome_policy!r}"
            )
        if self.positive_class not in (PASS_LABEL, FAIL_LABEL):
            raise ConfigurationError(
                f"positive_class must be {PASS_LABEL!r} or {FAIL_LABEL!r}, got {self.positive_class!r}"
            )

        if (
            self.model_type in MODELS_REQUIRING_IMPUTATION
            and self.missing_value_policy == "pass_through"
        ):
            raise ConfigurationError(
                f"model_type {self.model_type!r} cannot consume missing values; "
                f"use missing_value_policy='impute'."
            )

    @property
    def negative_class(self) -> str:
        return PASS_LABEL if self.positive_class == FAIL_LABEL else FAIL_LABEL

    def make_rng(self) -> np.random.Generator:
        """Fresh generator seeded from this config; never touches global random state."""
        return np.random.default_rng(self.seed)

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["exclude_columns"] = list(self.exclude_columns)
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown config keys: {unknown}")
        return cls(**data)

    @classmethod
    def from_json(cls, path: Path) -> "PipelineConfig":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found at {path}.")
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"{path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must hold a JSON object.")
        return cls.from_dict(data)
