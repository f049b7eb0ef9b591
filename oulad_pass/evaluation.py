"""
oulad_pass/evaluation.py

Cross-validation on the training subset, a final fit, and a confusion-matrix
summary on the held-out subset.

Degenerate folds
----------------
A fold whose validation rows lack one of the two classes (or whose training
rows cannot be fitted) gets NaN accuracy/kappa. Those NaNs are reported as-is
and skipped by the CV summary; they never stop the run. A degenerate FINAL
fit is different: ModelFitError propagates to the caller.

Unpredicted rows
----------------
Rows the classifier leaves as <NA> (unseen categories) are excluded from the
metrics and counted separately, so cells + n_unpredicted == rows evaluated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np
import pandas as pd
from sklearn.metrics import accuracy_score, cohen_kappa_score, confusion_matrix
from sklearn.model_selection import StratifiedKFold

from oulad_pass.config import FAIL_LABEL, PASS_LABEL, PipelineConfig
from oulad_pass.dataset import Partition
from oulad_pass.errors import ModelFitError
from oulad_pass.models import OutcomeClassifier, make_classifier, split_features_and_label

logger = logging.getLogger(__name__)

FOLD_COLUMNS = [
    "fold",
    "n_train",
    "n_valid",
    "n_valid_fail",
    "n_valid_pass",
    "n_unpredicted",
    "accuracy",
    "kappa",
]


@dataclass(frozen=True)
class ConfusionSummary:
    """
    2x2 predicted-vs-actual counts plus the statistics derived from them.

    Sensitivity is the recall of `positive_class`; specificity is the recall
    of `negative_class`.
    """
    positive_class: str
    negative_class: str
    tp: int
    fn: int
    fp: int
    tn: int
    n_unpredicted: int
    accuracy: float
    kappa: float
    sensitivity: float
    specificity: float

    @property
    def total(self) -> int:
        return self.tp + self.fn + self.fp + self.tn

    @property
    def matrix(self) -> pd.DataFrame:
        """Rows = prediction, columns = reference (actual)."""
        labels = [self.positive_class, self.negative_class]
        return pd.DataFrame(
            [[self.tp, self.fp], [self.fn, self.tn]],
            index=pd.Index(labels, name="prediction"),
            columns=pd.Index(labels, name="reference"),
        )

    def to_dict(self) -> Dict:
        return {
            "positive_class": self.positive_class,
            "negative_class": self.negative_class,
            "confusion_matrix": {"tp": self.tp, "fn": self.fn, "fp": self.fp, "tn": self.tn},
            "total": self.total,
            "n_unpredicted": self.n_unpredicted,
            "accuracy": self.accuracy,
            "kappa": self.kappa,
            "sensitivity": self.sensitivity,
            "specificity": self.specificity,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ConfusionSummary":
        """Inverse of to_dict(), e.g. for metrics.json read back by the dashboard."""
        cells = data["confusion_matrix"]
        return cls(
            positive_class=data["positive_class"],
            negative_class=data["negative_class"],
            tp=int(cells["tp"]),
            fn=int(cells["fn"]),
            fp=int(cells["fp"]),
            tn=int(cells["tn"]),
            n_unpredicted=int(data["n_unpredicted"]),
            accuracy=float(data["accuracy"]),
            kappa=float(data["kappa"]),
            sensitivity=float(data["sensitivity"]),
            specificity=float(data["specificity"]),
        )


@dataclass(frozen=True)
class EvaluationReport:
    """Everything the evaluator hands to reporting: model, fold table, CV summary, held-out summary."""
    classifier: OutcomeClassifier
    fold_stats: pd.DataFrame
    cv_summary: Dict
    confusion: ConfusionSummary
    predictions: pd.Series


def _ratio(num: int, den: int) -> float:
    return float(num) / den if den else float("nan")


def confusion_summary(
    actual,
    predicted: pd.Series,
    positive_class: str,
    negative_class: str,
) -> ConfusionSummary:
    """
    Build a ConfusionSummary from actual labels and (nullable) predictions.

    Rows with a missing prediction are excluded from the cells and counted in
    n_unpredicted.
    """
    actual = np.asarray(actual).astype(str)
    predicted = pd.Series(predicted)
    if len(actual) != len(predicted):
        raise ValueError(f"{len(actual)} actual labels but {len(predicted)} predictions")

    scored = predicted.notna().to_numpy()
    a = actual[scored]
    p = predicted[scored].astype(str).to_numpy()

    labels = [positive_class, negative_class]
    if len(a):
        cm = confusion_matrix(a, p, labels=labels)
    else:
        cm = np.zeros((2, 2), dtype=int)
    tp, fn, fp, tn = int(cm[0, 0]), int(cm[0, 1]), int(cm[1, 0]), int(cm[1, 1])
    total = tp + fn + fp + tn

    if np.unique(a).size == 2:
        kappa = float(cohen_kappa_score(a, p, labels=labels))
    else:
        kappa = float("nan")

    return ConfusionSummary(
        positive_class=positive_class,
        negative_class=negative_class,
        tp=tp,
        fn=fn,
        fp=fp,
        tn=tn,
        n_unpredicted=int((~scored).sum()),
        accuracy=_ratio(tp + tn, total),
        kappa=kappa,
        sensitivity=_ratio(tp, tp + fn),
        specificity=_ratio(tn, tn + fp),
    )


def cross_validate(
    classifier: OutcomeClassifier,
    X: pd.DataFrame,
    y,
    config: PipelineConfig,
) -> pd.DataFrame:
    """
    Stratified k-fold cross-validation; returns one row per fold (FOLD_COLUMNS).

    Each fold fits a fresh clone of `classifier`.
    """
    y = np.asarray(y).astype(str)
    splitter = StratifiedKFold(n_splits=config.fold_count, shuffle=True, random_state=config.seed)
    try:
        folds = list(splitter.split(np.zeros(len(y)), y))
    except ValueError as exc:
        raise ModelFitError(f"Cannot form {config.fold_count} folds from {len(y)} rows: {exc}") from exc

    rows = []
    for fold, (train_idx, valid_idx) in enumerate(folds, start=1):
        y_valid = y[valid_idx]
        row = {
            "fold": fold,
            "n_train": len(train_idx),
            "n_valid": len(valid_idx),
            "n_valid_fail": int((y_valid == FAIL_LABEL).sum()),
            "n_valid_pass": int((y_valid == PASS_LABEL).sum()),
            "n_unpredicted": 0,
            "accuracy": np.nan,
            "kappa": np.nan,
        }

        try:
            model = classifier.clone().fit(X.iloc[train_idx], y[train_idx])
        except ModelFitError as exc:
            logger.warning("Fold %d: %s; statistics reported as NaN", fold, exc)
            rows.append(row)
            continue

        predicted = model.predict(X.iloc[valid_idx])
        scored = predicted.notna().to_numpy()
        row["n_unpredicted"] = int((~scored).sum())

        actual = y_valid[scored]
        if np.unique(actual).size < 2:
            logger.warning("Fold %d: validation rows hold a single class; statistics reported as NaN", fold)
        else:
            guess = predicted[scored].astype(str).to_numpy()
            row["accuracy"] = float(accuracy_score(actual, guess))
            row["kappa"] = float(cohen_kappa_score(actual, guess))

        logger.debug("Fold %d: accuracy=%s kappa=%s", fold, row["accuracy"], row["kappa"])
        rows.append(row)

    return pd.DataFrame(rows, columns=FOLD_COLUMNS)


def summarize_folds(fold_stats: pd.DataFrame) -> Dict:
    """Mean/sd of per-fold accuracy and kappa, skipping NaN folds."""
    degenerate = fold_stats["accuracy"].isna()
    return {
        "n_folds": int(len(fold_stats)),
        "n_degenerate_folds": int(degenerate.sum()),
        "accuracy_mean": float(fold_stats["accuracy"].mean()),
        "accuracy_sd": float(fold_stats["accuracy"].std()),
        "kappa_mean": float(fold_stats["kappa"].mean()),
        "kappa_sd": float(fold_stats["kappa"].std()),
    }


def evaluate(
    partition: Partition,
    config: PipelineConfig,
    classifier: Optional[OutcomeClassifier] = None,
) -> EvaluationReport:
    """
    Cross-validate on partition.train, fit on all of it, and score partition.test.

    Raises
    ------
    ModelFitError
        If the final fit on the training subset fails (e.g. a single class).
    """
    if classifier is None:
        classifier = make_classifier(config)

    X_train, y_train = split_features_and_label(partition.train, config)
    X_test, y_test = split_features_and_label(partition.test, config)

    fold_stats = cross_validate(classifier, X_train, y_train, config)
    cv_summary = summarize_folds(fold_stats)
    logger.info(
        "%d-fold CV: accuracy %.3f (sd %.3f), kappa %.3f, %d degenerate folds",
        cv_summary["n_folds"], cv_summary["accuracy_mean"], cv_summary["accuracy_sd"],
        cv_summary["kappa_mean"], cv_summary["n_degenerate_folds"],
    )

    final = classifier.clone().fit(X_train, y_train)
    predictions = final.predict(X_test)
    confusion = confusion_summary(y_test, predictions, config.positive_class, config.negative_class)
    logger.info(
        "Held-out: accuracy %.3f, kappa %.3f, sensitivity %.3f, specificity %.3f (%d unpredicted)",
        confusion.accuracy, confusion.kappa, confusion.sensitivity,
        confusion.specificity, confusion.n_unpredicted,
    )

    return EvaluationReport(
        classifier=final,
        fold_stats=fold_stats,
        cv_summary=cv_summary,
        confusion=confusion,
        predictions=predictions,
    )
