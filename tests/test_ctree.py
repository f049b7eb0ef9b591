"""
Tests for the conditional-inference tree estimator.
"""

import numpy as np
import pytest
from sklearn.base import clone

from oulad_pass.ctree import ConditionalInferenceTree


class TestConditionalInferenceTree:
    """Test ConditionalInferenceTree."""

    def test_separable_feature_is_split(self):
        """A feature that fully determines the class produces a split and correct predictions."""
        x = np.linspace(0, 1, 100).reshape(-1, 1)
        y = np.where(x[:, 0] > 0.5, "pass", "fail")
        tree = ConditionalInferenceTree().fit(x, y)
        assert tree.get_depth() >= 1
        assert list(tree.predict(np.array([[0.05], [0.95]]))) == ["fail", "pass"]
        assert (tree.predict(x) == y).mean() > 0.9

    def test_no_association_means_no_split(self):
        """Class means of the feature are identical, so the root stays a leaf."""
        x = np.array([0.0, 1.0, 0.0, 1.0] * 10).reshape(-1, 1)
        y = np.array(["a", "a", "b", "b"] * 10)
        tree = ConditionalInferenceTree().fit(x, y)
        assert tree.get_n_leaves() == 1
        assert tree.get_depth() == 0
        proba = tree.predict_proba(x[:1])
        assert np.allclose(proba, [[0.5, 0.5]])

    def test_irrelevant_feature_not_selected(self):
        """With one informative and one constant feature, the split uses the informative one."""
        rng = np.random.default_rng(0)
        informative = rng.normal(size=200)
        X = np.column_stack([np.ones(200), informative])
        y = np.where(informative > 0, 1, 0)
        tree = ConditionalInferenceTree().fit(X, y)
        assert tree.feature_[0] == 1

    def test_missing_values_in_fit_and_predict(self):
        rng = np.random.default_rng(1)
        x = rng.normal(size=300)
        y = np.where(x > 0, "pass", "fail")
        X = x.reshape(-1, 1).copy()
        X[rng.random(300) < 0.1, 0] = np.nan
        tree = ConditionalInferenceTree().fit(X, y)
        pred = tree.predict(np.array([[np.nan], [2.0], [-2.0]]))
        assert pred[0] in tree.classes_
        assert list(pred[1:]) == ["pass", "fail"]

    def test_small_node_is_leaf(self):
        """Fewer rows than min_samples_split never split."""
        X = np.arange(10, dtype=float).reshape(-1, 1)
        y = np.array([0] * 5 + [1] * 5)
        tree = ConditionalInferenceTree(min_samples_split=20).fit(X, y)
        assert tree.get_n_leaves() == 1

    def test_clone_keeps_params(self):
        tree = ConditionalInferenceTree(alpha=0.01, max_depth=3)
        copy = clone(tree)
        assert copy.alpha == 0.01
        assert copy.max_depth == 3

    def test_feature_count_checked(self):
        tree = ConditionalInferenceTree().fit(np.zeros((30, 2)), np.array([0, 1] * 15))
        with pytest.raises(ValueError):
            tree.predict(np.zeros((2, 3)))
