"""
oulad_pass/models.py

Interchangeable pass/fail classifiers behind one small interface:

    clf = make_classifier(config)
    clf.fit(X_train, y_train)
    clf.predict(X_test)   # pd.Series of "pass" / "fail" / <NA>

Every variant wraps a scikit-learn Pipeline made of a ColumnTransformer
(one-hot categoricals; numerics passed through or imputed) and an estimator.
The wrapper owns two behaviours the raw Pipeline does not have:

- feature frames are converted explicitly at the boundary (nullable Float64
  becomes float64 with NaN, categoricals become str/NaN objects);
- rows holding a category never seen during fit get an <NA> prediction
  instead of being scored as if the category were absent.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set, Tuple, Type

import numpy as np
import pandas as pd
from pandas.api.types import is_numeric_dtype
from sklearn.compose import ColumnTransformer
from sklearn.exceptions import NotFittedError
from sklearn.impute import SimpleImputer
from sklearn.linear_model import LogisticRegression
from sklearn.naive_bayes import GaussianNB
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, StandardScaler
from sklearn.tree import DecisionTreeClassifier

from oulad_pass.config import MISSING_VALUE_POLICIES, PipelineConfig
from oulad_pass.ctree import ConditionalInferenceTree
from oulad_pass.data_dictionary import OUTCOME_COL
from oulad_pass.errors import ConfigurationError, MalformedInputError, ModelFitError

logger = logging.getLogger(__name__)

MISSING_CATEGORY = "missing"


def split_features_and_label(
    dataset: pd.DataFrame, config: PipelineConfig
) -> Tuple[pd.DataFrame, pd.Series]:
    """Feature frame = every column except the outcome and config.exclude_columns."""
    if OUTCOME_COL not in dataset.columns:
        raise MalformedInputError(f"Dataset has no '{OUTCOME_COL}' column")
    excluded = {OUTCOME_COL, *config.exclude_columns}
    features = [c for c in dataset.columns if c not in excluded]
    return dataset[features], dataset[OUTCOME_COL]


class OutcomeClassifier:
    """
    Base class for the pass/fail classifiers.

    Subclasses set `name`, `supports_missing` and implement make_estimator().
    """

    name = ""
    supports_missing = False
    scale_numeric = False

    def __init__(self, missing_value_policy: str = "pass_through", random_state: Optional[int] = None):
        if missing_value_policy not in MISSING_VALUE_POLICIES:
            raise ConfigurationError(f"Unknown missing_value_policy: {missing_value_policy!r}")
        if missing_value_policy == "pass_through" and not self.supports_missing:
            raise ConfigurationError(
                f"{self.name} cannot consume missing values; use missing_value_policy='impute'."
            )
        self.missing_value_policy = missing_value_policy
        self.random_state = random_state

        self.pipeline_: Optional[Pipeline] = None
        self.feature_columns_: List[str] = []
        self.numeric_features_: List[str] = []
        self.categorical_features_: List[str] = []
        self.categories_: Dict[str, Set[str]] = {}
        self.classes_: Optional[np.ndarray] = None

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(missing_value_policy={self.missing_value_policy!r}, "
            f"random_state={self.random_state!r})"
        )

    def make_estimator(self):
        raise NotImplementedError

    def clone(self) -> "OutcomeClassifier":
        """Unfitted copy with the same settings."""
        return type(self)(self.missing_value_policy, self.random_state)

    @property
    def is_fitted(self) -> bool:
        return self.pipeline_ is not None

    # ------------------------------------------------------------------
    # Frame conversion
    # ------------------------------------------------------------------
    def _to_model_frame(self, X: pd.DataFrame) -> pd.DataFrame:
        missing = [c for c in self.feature_columns_ if c not in X.columns]
        if missing:
            raise MalformedInputError(f"Missing required feature columns: {missing}")

        frame = pd.DataFrame(index=X.index)
        for c in self.feature_columns_:
            col = X[c]
            if c in self.numeric_features_:
                frame[c] = pd.to_numeric(col, errors="coerce").to_numpy(dtype="float64", na_value=np.nan)
            else:
                text = col.astype(str).astype(object)
                frame[c] = text.where(col.notna(), np.nan)
        return frame

    def _make_preprocessor(self) -> ColumnTransformer:
        cat_pipeline = Pipeline([
            ("impute", SimpleImputer(strategy="constant", fill_value=MISSING_CATEGORY)),
            ("ohe", OneHotEncoder(handle_unknown="ignore", sparse_output=False)),
        ])

        num_steps = []
        if self.missing_value_policy == "impute":
            num_steps.append(("impute", SimpleImputer(strategy="median")))
        if self.scale_numeric:
            num_steps.append(("scale", StandardScaler()))
        num_pipeline = Pipeline(num_steps) if num_steps else "passthrough"

        return ColumnTransformer(
            [
                ("num", num_pipeline, self.numeric_features_),
                ("cat", cat_pipeline, self.categorical_features_),
            ],
            sparse_threshold=0.0,
        )

    # ------------------------------------------------------------------
    # Fit / predict
    # ------------------------------------------------------------------
    def fit(self, X: pd.DataFrame, y) -> "OutcomeClassifier":
        """
        Fit on feature frame `X` and labels `y`.

        Raises
        ------
        ModelFitError
            If `y` holds fewer than two classes or the estimator rejects the data.
        """
        y = pd.Series(np.asarray(y), index=X.index).astype(str)
        if len(X) == 0:
            raise ModelFitError("Cannot fit on zero training rows.")
        classes = sorted(y.unique())
        if len(classes) < 2:
            raise ModelFitError(f"Training rows hold a single class {classes}; need two.")

        self.feature_columns_ = list(X.columns)
        self.numeric_features_ = [c for c in X.columns if is_numeric_dtype(X[c])]
        self.categorical_features_ = [c for c in X.columns if c not in self.numeric_features_]

        frame = self._to_model_frame(X)
        self.categories_ = {c: set(frame[c].dropna().unique()) for c in self.categorical_features_}

        pipeline = Pipeline([("prep", self._make_preprocessor()), ("clf", self.make_estimator())])
        try:
            pipeline.fit(frame, y.to_numpy())
        except ValueError as exc:
            raise ModelFitError(f"{self.name} failed to fit: {exc}") from exc

        self.pipeline_ = pipeline
        self.classes_ = pipeline.classes_
        logger.debug(
            "Fitted %s on %d rows (%d numeric, %d categorical features)",
            self.name, len(frame), len(self.numeric_features_), len(self.categorical_features_),
        )
        return self

    def _check_fitted(self) -> None:
        if self.pipeline_ is None:
            raise NotFittedError(f"{type(self).__name__} is not fitted yet; call fit() first.")

    def unseen_category_mask(self, X: pd.DataFrame) -> np.ndarray:
        """Boolean mask of rows holding a (non-missing) category not seen during fit."""
        self._check_fitted()
        frame = self._to_model_frame(X)
        mask = np.zeros(len(frame), dtype=bool)
        for c in self.categorical_features_:
            col = frame[c]
            mask |= (col.notna() & ~col.isin(self.categories_[c])).to_numpy()
        return mask

    def predict(self, X: pd.DataFrame) -> pd.Series:
        """Predicted class per row as a nullable string Series; <NA> for unseen categories."""
        self._check_fitted()
        frame = self._to_model_frame(X)
        unseen = self.unseen_category_mask(X)
        if unseen.any():
            logger.warning("%d rows hold categories unseen in training; leaving them unpredicted", int(unseen.sum()))

        values = np.full(len(frame), None, dtype=object)
        if (~unseen).any():
            values[~unseen] = self.pipeline_.predict(frame.loc[~unseen])
        return pd.Series(values, index=X.index, dtype="string", name="predicted_outcome")

    def predict_proba(self, X: pd.DataFrame) -> pd.DataFrame:
        """Class probabilities, one column per class; NaN rows for unseen categories."""
        self._check_fitted()
        frame = self._to_model_frame(X)
        unseen = self.unseen_category_mask(X)

        proba = np.full((len(frame), len(self.classes_)), np.nan)
        if (~unseen).any():
            proba[~unseen] = self.pipeline_.predict_proba(frame.loc[~unseen])
        return pd.DataFrame(proba, index=X.index, columns=list(self.classes_))


class DecisionTreeOutcomeClassifier(OutcomeClassifier):
    name = "decision_tree"
    supports_missing = True

    def make_estimator(self):
        return DecisionTreeClassifier(
            min_samples_split=20,
            min_samples_leaf=7,
            max_depth=30,
            random_state=self.random_state,
        )


class ConditionalInferenceTreeOutcomeClassifier(OutcomeClassifier):
    name = "conditional_inference_tree"
    supports_missing = True

    def make_estimator(self):
        return ConditionalInferenceTree(alpha=0.05, min_samples_split=20, min_samples_leaf=7)


class NaiveBayesOutcomeClassifier(OutcomeClassifier):
    name = "naive_bayes"

    def make_estimator(self):
        return GaussianNB()


class LogisticRegressionOutcomeClassifier(OutcomeClassifier):
    name = "logistic_regression"
    scale_numeric = True

    def make_estimator(self):
        return LogisticRegression(max_iter=1000, random_state=self.random_state)


CLASSIFIERS: Dict[str, Type[OutcomeClassifier]] = {
    cls.name: cls
    for cls in (
        DecisionTreeOutcomeClassifier,
        ConditionalInferenceTreeOutcomeClassifier,
        NaiveBayesOutcomeClassifier,
        LogisticRegressionOutcomeClassifier,
    )
}


def make_classifier(config: PipelineConfig) -> OutcomeClassifier:
    """Instantiate the unfitted classifier named by config.model_type."""
    try:
        cls = CLASSIFIERS[config.model_type]
    except KeyError:
        raise ConfigurationError(f"Unknown model_type {config.model_type!r}") from None
    return cls(config.missing_value_policy, config.seed)
