"""
oulad_pass/inference.py

Purpose
-------
Centralizes "inference-time" logic (loading artifacts, validating inputs, scoring)
so the Streamlit app, batch scoring and notebooks share one code path.

Artifacts expected in artifacts/:
  - model.pkl        : fitted OutcomeClassifier
  - features.json    : list of feature column names used during training

Missing values are NOT imputed here. The fitted classifier applies the
missing-value policy it was trained with; rows with categories it never saw
come back as <NA> predictions.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

import joblib
import pandas as pd

from oulad_pass.config import FAIL_LABEL
from oulad_pass.errors import MalformedInputError
from oulad_pass.models import OutcomeClassifier


# Default folder where training saves model + metadata.
ARTIFACT_DIR = Path("artifacts")


@dataclass(frozen=True)
class ModelBundle:
    """
    A small immutable container that keeps everything needed for scoring together.
    """
    model: OutcomeClassifier
    features: List[str]


def load_bundle(artifact_dir: Path = ARTIFACT_DIR) -> ModelBundle:
    """
    Load model + feature metadata from disk.

    Raises
    ------
    FileNotFoundError
        If required artifact files are missing.
    ValueError
        If features.json is malformed or disagrees with the model.
    """
    artifact_dir = Path(artifact_dir)
    model_path = artifact_dir / "model.pkl"
    feat_path = artifact_dir / "features.json"

    if not model_path.exists():
        raise FileNotFoundError(
            f"Missing {model_path}. Train first (python -m oulad_pass.train)."
        )

    if not feat_path.exists():
        raise FileNotFoundError(
            f"Missing {feat_path}. Re-train to generate it (python -m oulad_pass.train)."
        )

    model = joblib.load(model_path)
    features = json.loads(feat_path.read_text())

    if not isinstance(features, list) or not all(isinstance(x, str) for x in features):
        raise ValueError("features.json is not a valid list of strings.")
    if not isinstance(model, OutcomeClassifier) or not model.is_fitted:
        raise ValueError(f"{model_path} does not hold a fitted OutcomeClassifier.")
    if list(model.feature_columns_) != features:
        raise ValueError("features.json does not match the feature columns the model was trained on.")

    return ModelBundle(model=model, features=features)


def validate_features(df: pd.DataFrame, bundle: ModelBundle) -> Tuple[pd.DataFrame, List[str]]:
    """
    Validate and prepare a dataframe for scoring.

    This function:
      1) Ensures required columns are present (hard error if missing).
      2) Drops/ignores unexpected columns (warning only).
      3) Coerces numeric feature columns (non-numeric becomes NaN, warning).
      4) Reports rows the model will leave unpredicted (unseen categories).

    Returns
    -------
    X : pd.DataFrame
        Feature frame containing ONLY model features in training order.
    warnings : List[str]
        Human-readable warnings describing non-fatal issues.

    Raises
    ------
    MalformedInputError
        If required columns are missing.
    """
    warnings: List[str] = []
    features = bundle.features

    missing = [c for c in features if c not in df.columns]
    if missing:
        raise MalformedInputError(f"Missing required columns: {missing}")

    extra = [c for c in df.columns if c not in features]
    if extra:
        warnings.append(f"Ignoring extra columns: {extra}")

    X = df[features].copy()

    n_coerced = 0
    for c in bundle.model.numeric_features_:
        coerced = pd.to_numeric(X[c], errors="coerce")
        n_coerced += int((coerced.isna() & X[c].notna()).sum())
        X[c] = coerced
    if n_coerced:
        warnings.append(f"Found {n_coerced} non-numeric values in numeric columns; treating them as missing.")

    n_missing = int(X.isna().sum().sum())
    if n_missing:
        warnings.append(
            f"Found {n_missing} missing values; the model handles them with its "
            f"'{bundle.model.missing_value_policy}' policy."
        )

    n_unseen = int(bundle.model.unseen_category_mask(X).sum())
    if n_unseen:
        warnings.append(f"{n_unseen} rows hold categories unseen in training and will not be predicted.")

    return X, warnings


def predict(df: pd.DataFrame, bundle: ModelBundle) -> pd.Series:
    """Predicted outcome ("pass"/"fail"/<NA>) aligned to df.index."""
    X, _ = validate_features(df, bundle)
    return bundle.model.predict(X).rename("predicted_outcome")


def score(df: pd.DataFrame, bundle: ModelBundle, positive_class: str = FAIL_LABEL) -> pd.Series:
    """
    Predicted probability of `positive_class` (fail by default = risk score).

    NaN for rows the model cannot predict.
    """
    X, _ = validate_features(df, bundle)
    proba = bundle.model.predict_proba(X)
    if positive_class not in proba.columns:
        raise ValueError(f"Model has no class {positive_class!r}; classes are {list(proba.columns)}")
    return proba[positive_class].rename("risk_score")
