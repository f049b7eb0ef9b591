"""
oulad_pass/ctree.py

A small conditional-inference classification tree with a scikit-learn
estimator interface.

How it grows
------------
At every node each feature is tested for association with the class label
(one-way ANOVA F-test via sklearn.feature_selection.f_classif, computed on the
rows where that feature is present). The p-values are Bonferroni-adjusted for
the number of features tested. If the smallest adjusted p-value exceeds
`alpha` the node becomes a leaf; otherwise the selected feature is split at
the threshold that minimizes weighted Gini impurity.

Variable selection and split search are therefore separate steps, which keeps
the tree from favouring features with many distinct values.

Missing values
--------------
NaN is accepted everywhere. Rows whose split feature is missing follow the
child that received more training rows at that node.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin
from sklearn.feature_selection import f_classif
from sklearn.utils.validation import check_is_fitted

_LEAF = -1


def _gini(counts: np.ndarray) -> np.ndarray:
    """Gini impurity for class counts along the last axis."""
    totals = counts.sum(axis=-1, keepdims=True)
    with np.errstate(divide="ignore", invalid="ignore"):
        shares = np.where(totals > 0, counts / totals, 0.0)
    return 1.0 - (shares ** 2).sum(axis=-1)


class ConditionalInferenceTree(ClassifierMixin, BaseEstimator):
    """
    Parameters
    ----------
    alpha : float
        Significance level a node's best adjusted p-value must reach to split.
    min_samples_split : int
        Nodes with fewer rows become leaves.
    min_samples_leaf : int
        Minimum non-missing rows on each side of a candidate threshold.
    max_depth : int
        Maximum depth of the tree.
    max_thresholds : int
        Cap on candidate thresholds per split (quantiles beyond that).
    """

    def __init__(
        self,
        alpha: float = 0.05,
        min_samples_split: int = 20,
        min_samples_leaf: int = 7,
        max_depth: int = 30,
        max_thresholds: int = 64,
    ):
        self.alpha = alpha
        self.min_samples_split = min_samples_split
        self.min_samples_leaf = min_samples_leaf
        self.max_depth = max_depth
        self.max_thresholds = max_thresholds

    def _more_tags(self):
        return {"allow_nan": True}

    def __sklearn_tags__(self):
        tags = super().__sklearn_tags__()
        tags.input_tags.allow_nan = True
        return tags

    # ------------------------------------------------------------------
    # Fitting
    # ------------------------------------------------------------------
    def fit(self, X, y):
        X = np.asarray(X, dtype=float)
        y = np.asarray(y)
        if X.ndim != 2:
            raise ValueError(f"Expected a 2D feature matrix, got shape {X.shape}")
        if X.shape[0] != y.shape[0]:
            raise ValueError(f"X has {X.shape[0]} rows but y has {y.shape[0]}")
        if X.shape[0] == 0:
            raise ValueError("Cannot fit on an empty feature matrix")
        if not 0.0 < self.alpha <= 1.0:
            raise ValueError(f"alpha must be in (0, 1], got {self.alpha}")

        self.classes_, y_encoded = np.unique(y, return_inverse=True)
        self.n_features_in_ = X.shape[1]

        self.feature_: List[int] = []
        self.threshold_: List[float] = []
        self.left_: List[int] = []
        self.right_: List[int] = []
        self.missing_left_: List[bool] = []
        self.value_: List[np.ndarray] = []

        self._grow(X, y_encoded, np.arange(X.shape[0]), depth=0)
        return self

    def _grow(self, X: np.ndarray, y: np.ndarray, idx: np.ndarray, depth: int) -> int:
        node = len(self.feature_)
        counts = np.bincount(y[idx], minlength=len(self.classes_)).astype(float)
        self.feature_.append(_LEAF)
        self.threshold_.append(np.nan)
        self.left_.append(_LEAF)
        self.right_.append(_LEAF)
        self.missing_left_.append(True)
        self.value_.append(counts)

        if (
            depth >= self.max_depth
            or len(idx) < self.min_samples_split
            or np.count_nonzero(counts) < 2
        ):
            return node

        split = self._select_split(X[idx], y[idx])
        if split is None:
            return node
        feature, threshold = split

        col = X[idx, feature]
        present = ~np.isnan(col)
        go_left = present & (col <= threshold)
        go_right = present & (col > threshold)
        missing_left = bool(go_left.sum() >= go_right.sum())
        if missing_left:
            go_left |= ~present
        else:
            go_right |= ~present

        self.feature_[node] = int(feature)
        self.threshold_[node] = float(threshold)
        self.missing_left_[node] = missing_left
        self.left_[node] = self._grow(X, y, idx[go_left], depth + 1)
        self.right_[node] = self._grow(X, y, idx[go_right], depth + 1)
        return node

    def _select_split(self, X: np.ndarray, y: np.ndarray) -> Optional[Tuple[int, float]]:
        p_values = np.full(X.shape[1], np.nan)
        for j in range(X.shape[1]):
            col = X[:, j]
            present = ~np.isnan(col)
            if present.sum() < 2 * self.min_samples_leaf:
                continue
            xp, yp = col[present], y[present]
            if np.ptp(xp) == 0 or np.unique(yp).size < 2:
                continue
            with np.errstate(divide="ignore", invalid="ignore"):
                _, p = f_classif(xp.reshape(-1, 1), yp)
            p_values[j] = p[0]

        tested = np.isfinite(p_values)
        if not tested.any():
            return None
        adjusted = np.where(tested, np.minimum(1.0, p_values * tested.sum()), np.inf)
        best = int(np.argmin(adjusted))
        if adjusted[best] > self.alpha:
            return None

        threshold = self._best_threshold(X[:, best], y)
        if threshold is None:
            return None
        return best, threshold

    def _best_threshold(self, col: np.ndarray, y: np.ndarray) -> Optional[float]:
        present = ~np.isnan(col)
        xp, yp = col[present], y[present]
        values = np.unique(xp)
        if values.size < 2:
            return None
        if values.size - 1 > self.max_thresholds:
            qs = np.linspace(0.0, 1.0, self.max_thresholds + 2)[1:-1]
            candidates = np.unique(np.quantile(xp, qs))
            candidates = candidates[candidates < values[-1]]
        else:
            candidates = (values[:-1] + values[1:]) / 2.0
        if candidates.size == 0:
            return None

        left_mask = xp[:, None] <= candidates[None, :]
        onehot = np.eye(len(self.classes_))[yp]
        left_counts = left_mask.T.astype(float) @ onehot
        right_counts = onehot.sum(axis=0)[None, :] - left_counts
        n_left = left_counts.sum(axis=1)
        n_right = right_counts.sum(axis=1)

        valid = (n_left >= self.min_samples_leaf) & (n_right >= self.min_samples_leaf)
        if not valid.any():
            return None
        impurity = (n_left * _gini(left_counts) + n_right * _gini(right_counts)) / len(yp)
        impurity = np.where(valid, impurity, np.inf)
        return float(candidates[int(np.argmin(impurity))])

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------
    def predict_proba(self, X) -> np.ndarray:
        check_is_fitted(self, "classes_")
        X = np.asarray(X, dtype=float)
        if X.ndim != 2 or X.shape[1] != self.n_features_in_:
            raise ValueError(
                f"Expected {self.n_features_in_} features, got shape {X.shape}"
            )

        proba = np.empty((X.shape[0], len(self.classes_)))
        stack = [(0, np.arange(X.shape[0]))]
        while stack:
            node, idx = stack.pop()
            if idx.size == 0:
                continue
            feature = self.feature_[node]
            if feature == _LEAF:
                counts = self.value_[node]
                proba[idx] = counts / counts.sum()
                continue
            col = X[idx, feature]
            missing = np.isnan(col)
            go_left = ~missing & (col <= self.threshold_[node])
            if self.missing_left_[node]:
                go_left |= missing
            stack.append((self.left_[node], idx[go_left]))
            stack.append((self.right_[node], idx[~go_left]))
        return proba

    def predict(self, X) -> np.ndarray:
        proba = self.predict_proba(X)
        return self.classes_[np.argmax(proba, axis=1)]

    def get_n_leaves(self) -> int:
        check_is_fitted(self, "classes_")
        return sum(1 for f in self.feature_ if f == _LEAF)

    def get_depth(self) -> int:
        check_is_fitted(self, "classes_")
        depth = 0
        stack = [(0, 0)]
        while stack:
            node, d = stack.pop()
            depth = max(depth, d)
            if self.feature_[node] != _LEAF:
                stack.append((self.left_[node], d + 1))
                stack.append((self.right_[node], d + 1))
        return depth
