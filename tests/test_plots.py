"""
Smoke tests for the report figures (Agg backend, set in conftest).
"""

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from oulad_pass.evaluation import FOLD_COLUMNS, confusion_summary
from oulad_pass.plots import (
    plot_clicks_vs_score,
    plot_confusion_matrix,
    plot_feature_distributions,
    plot_fold_stats,
    save_report_figures,
)


def report_inputs():
    dataset = pd.DataFrame(
        {
            "mean_clicks": pd.array([3.0, None, 5.5, 1.0], dtype="Float64"),
            "mean_score": pd.array([80.0, 40.0, None, 55.0], dtype="Float64"),
            "final_result": ["pass", "fail", "pass", "fail"],
        }
    )
    fold_stats = pd.DataFrame(
        [[1, 30, 10, 3, 7, 0, 0.9, 0.7], [2, 30, 10, 0, 10, 0, np.nan, np.nan]],
        columns=FOLD_COLUMNS,
    )
    confusion = confusion_summary(
        ["fail", "pass", "pass"], pd.Series(["fail", "pass", "fail"]), "fail", "pass"
    )
    return dataset, fold_stats, confusion


class TestPlots:
    """Test figure builders."""

    def test_figures_built(self):
        dataset, fold_stats, confusion = report_inputs()
        for fig in [
            plot_feature_distributions(dataset),
            plot_clicks_vs_score(dataset),
            plot_confusion_matrix(confusion),
            plot_fold_stats(fold_stats),
        ]:
            assert isinstance(fig, plt.Figure)
            plt.close(fig)

    def test_save_report_figures(self, tmp_path):
        dataset, fold_stats, confusion = report_inputs()
        paths = save_report_figures(dataset, fold_stats, confusion, tmp_path / "plots")
        assert len(paths) == 4
        assert all(p.exists() and p.stat().st_size > 0 for p in paths)
