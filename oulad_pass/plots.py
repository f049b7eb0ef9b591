"""
oulad_pass/plots.py

Matplotlib figures for the reporting side: feature distributions by outcome,
clicks vs. score, the held-out confusion matrix and per-fold statistics.

Each function returns a Figure and leaves showing/saving to the caller
(the Streamlit app passes them to st.pyplot, the CLI saves PNGs).
"""

from __future__ import annotations

from pathlib import Path
from typing import List

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from oulad_pass.data_dictionary import MEAN_CLICKS_COL, MEAN_SCORE_COL, OUTCOME_COL
from oulad_pass.evaluation import ConfusionSummary


def _as_float(s: pd.Series) -> np.ndarray:
    return pd.to_numeric(s, errors="coerce").to_numpy(dtype="float64", na_value=np.nan)


def plot_feature_distributions(dataset: pd.DataFrame) -> plt.Figure:
    """Histograms of mean_clicks and mean_score, one series per outcome class."""
    fig, axes = plt.subplots(1, 2, figsize=(10, 4))
    for ax, col in zip(axes, [MEAN_CLICKS_COL, MEAN_SCORE_COL]):
        for label, group in dataset.groupby(OUTCOME_COL):
            values = _as_float(group[col])
            values = values[~np.isnan(values)]
            ax.hist(values, bins=30, alpha=0.6, label=str(label))
        ax.set_title(f"{col} by outcome")
        ax.set_xlabel(col)
        ax.set_ylabel("count")
        ax.legend()
    fig.tight_layout()
    return fig


def plot_clicks_vs_score(dataset: pd.DataFrame) -> plt.Figure:
    fig = plt.figure()
    for label, group in dataset.groupby(OUTCOME_COL):
        plt.scatter(
            _as_float(group[MEAN_CLICKS_COL]),
            _as_float(group[MEAN_SCORE_COL]),
            s=8,
            alpha=0.5,
            label=str(label),
        )
    plt.title("Mean daily clicks vs. mean assessment score")
    plt.xlabel(MEAN_CLICKS_COL)
    plt.ylabel(MEAN_SCORE_COL)
    plt.legend()
    return fig


def plot_confusion_matrix(confusion: ConfusionSummary) -> plt.Figure:
    matrix = confusion.matrix
    fig, ax = plt.subplots()
    ax.imshow(matrix.to_numpy(), cmap="Blues")
    ax.set_xticks(range(2), labels=list(matrix.columns))
    ax.set_yticks(range(2), labels=list(matrix.index))
    ax.set_xlabel("actual")
    ax.set_ylabel("predicted")
    for i in range(2):
        for j in range(2):
            ax.text(j, i, int(matrix.iat[i, j]), ha="center", va="center")
    ax.set_title(f"Held-out confusion matrix (accuracy {confusion.accuracy:.3f})")
    return fig


def plot_fold_stats(fold_stats: pd.DataFrame) -> plt.Figure:
    """Per-fold accuracy and kappa; degenerate (NaN) folds show as gaps."""
    fig, ax = plt.subplots()
    x = fold_stats["fold"].to_numpy()
    width = 0.4
    ax.bar(x - width / 2, fold_stats["accuracy"].to_numpy(dtype=float), width, label="accuracy")
    ax.bar(x + width / 2, fold_stats["kappa"].to_numpy(dtype=float), width, label="kappa")
    ax.set_xticks(x)
    ax.set_xlabel("fold")
    lowest_kappa = fold_stats["kappa"].min()
    ax.set_ylim(min(0.0, lowest_kappa) if pd.notna(lowest_kappa) else 0.0, 1.0)
    ax.set_title("Cross-validation statistics per fold")
    ax.legend()
    return fig


def save_report_figures(
    dataset: pd.DataFrame,
    fold_stats: pd.DataFrame,
    confusion: ConfusionSummary,
    out_dir: Path,
) -> List[Path]:
    """Render all report figures as PNGs under `out_dir`; returns the paths written."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    figures = {
        "feature_distributions.png": plot_feature_distributions(dataset),
        "clicks_vs_score.png": plot_clicks_vs_score(dataset),
        "confusion_matrix.png": plot_confusion_matrix(confusion),
        "cv_folds.png": plot_fold_stats(fold_stats),
    }
    paths = []
    for name, fig in figures.items():
        path = out_dir / name
        fig.savefig(path, bbox_inches="tight")
        plt.close(fig)
        paths.append(path)
    return paths
