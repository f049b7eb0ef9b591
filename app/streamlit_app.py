"""
app/streamlit_app.py

Purpose
-------
A Streamlit dashboard that:
  - loads a trained model bundle (model + feature schema)
  - shows the cross-validation and held-out results saved at train time
  - accepts a CSV upload for scoring
  - produces pass/fail predictions, fail-risk scores and simple analytics

Run
---
streamlit run app/streamlit_app.py
"""

import json
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
import streamlit as st

from oulad_pass.data_dictionary import DATA_DICTIONARY, MEAN_CLICKS_COL, MEAN_SCORE_COL, OUTCOME_COL
from oulad_pass.evaluation import ConfusionSummary
from oulad_pass.inference import load_bundle, predict, score, validate_features
from oulad_pass.plots import plot_confusion_matrix, plot_feature_distributions, plot_fold_stats


# ---------------------------------------------------------------------
# Streamlit page configuration
# ---------------------------------------------------------------------
st.set_page_config(
    page_title="OULAD Pass/Fail Dashboard",
    layout="wide",
)
st.title("OULAD Pass/Fail Dashboard")

ART = Path("artifacts")


# ---------------------------------------------------------------------
# Caching helpers
# ---------------------------------------------------------------------
@st.cache_resource
def get_bundle():
    """Load model + features once per session (unless code changes)."""
    return load_bundle(ART)


@st.cache_data
def get_training_report():
    """metrics.json + cv_folds.csv written by the training run (None if absent)."""
    metrics_path = ART / "metrics.json"
    folds_path = ART / "cv_folds.csv"
    if not metrics_path.exists() or not folds_path.exists():
        return None
    return json.loads(metrics_path.read_text()), pd.read_csv(folds_path)


# ---------------------------------------------------------------------
# Load model bundle (fail fast with useful instructions)
# ---------------------------------------------------------------------
try:
    bundle = get_bundle()
    st.success(f"Model bundle loaded ({bundle.model.name}).")
except Exception as e:
    st.warning("No model bundle found. Train first: `python -m oulad_pass.train`.")
    st.code(str(e))
    st.stop()


# ---------------------------------------------------------------------
# Sidebar controls
# ---------------------------------------------------------------------
st.sidebar.header("Controls")

threshold = st.sidebar.slider(
    "Fail-risk threshold",
    min_value=0.0,
    max_value=1.0,
    value=0.50,
    step=0.01,
    help="Rows whose fail probability is above this value are flagged."
)

max_rows = st.sidebar.slider(
    "Max rows to score",
    min_value=50,
    max_value=5000,
    value=500,
    step=50,
    help="Limits the number of rows processed for performance."
)


# ---------------------------------------------------------------------
# Training results
# ---------------------------------------------------------------------
st.subheader("Training results")

report = get_training_report()
if report is None:
    st.info("No metrics.json / cv_folds.csv in artifacts/.")
else:
    metrics, fold_stats = report
    confusion = ConfusionSummary.from_dict(metrics["held_out"])
    cv = metrics["cross_validation"]

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("CV accuracy (mean)", f"{cv['accuracy_mean']:.3f}")
    c2.metric("CV kappa (mean)", f"{cv['kappa_mean']:.3f}")
    c3.metric("Held-out accuracy", f"{confusion.accuracy:.3f}")
    c4.metric(f"Sensitivity ({confusion.positive_class})", f"{confusion.sensitivity:.3f}")

    col1, col2 = st.columns(2)
    with col1:
        st.caption("Per-fold statistics (NaN = fold lacked a class)")
        st.dataframe(fold_stats, use_container_width=True)
        st.pyplot(plot_fold_stats(fold_stats))
    with col2:
        st.caption("Held-out confusion matrix (rows = prediction, columns = actual)")
        st.dataframe(confusion.matrix)
        st.pyplot(plot_confusion_matrix(confusion))
        if confusion.n_unpredicted:
            st.warning(f"{confusion.n_unpredicted} held-out rows held unseen categories and were not predicted.")


# ---------------------------------------------------------------------
# Data input section
# ---------------------------------------------------------------------
st.subheader("Upload CSV for scoring")

st.caption(f"Required columns: {bundle.features}")

file = st.file_uploader("Upload a CSV", type="csv")

if file:
    df = pd.read_csv(file, na_values=["?"])
else:
    st.info("No file uploaded. Using artifacts/sample.csv (held-out rows) if available.")
    sample_path = ART / "sample.csv"
    if sample_path.exists():
        df = pd.read_csv(sample_path)
    else:
        df = pd.DataFrame({c: pd.Series(dtype="float") for c in bundle.features})

if len(df) == 0:
    st.warning("No rows available to score.")
    st.stop()

df = df.head(max_rows)


# ---------------------------------------------------------------------
# Validate + score
# ---------------------------------------------------------------------
try:
    X, warnings = validate_features(df, bundle)
    for w in warnings:
        st.warning(w)
except Exception as e:
    st.error("Input data failed validation.")
    st.code(str(e))
    st.stop()

out = df.copy()
out["predicted_outcome"] = predict(df, bundle)
out["risk_score"] = score(df, bundle)
out["flagged"] = out["risk_score"] > threshold


# ---------------------------------------------------------------------
# Dashboard outputs (tables + distribution)
# ---------------------------------------------------------------------
col1, col2 = st.columns([2, 1])

with col1:
    st.subheader("Scored Records (Top 50 by fail risk)")
    st.dataframe(out.sort_values("risk_score", ascending=False).head(50), use_container_width=True)

    csv = out.to_csv(index=False).encode("utf-8")
    st.download_button(
        "Download scored CSV",
        data=csv,
        file_name="scored.csv",
        mime="text/csv",
        help="Download the dataset including predicted_outcome and risk_score."
    )

with col2:
    st.subheader("Risk Distribution")
    fig = plt.figure()
    plt.hist(out["risk_score"].dropna(), bins=30)
    plt.title("Fail-risk Distribution")
    plt.xlabel("risk_score")
    plt.ylabel("count")
    st.pyplot(fig)

    st.subheader("Predicted Outcome Counts")
    st.write(out["predicted_outcome"].value_counts(dropna=False))

if {OUTCOME_COL, MEAN_CLICKS_COL, MEAN_SCORE_COL}.issubset(out.columns):
    st.subheader("Engagement features by actual outcome")
    st.pyplot(plot_feature_distributions(out))


# ---------------------------------------------------------------------
# Data dictionary
# ---------------------------------------------------------------------
with st.expander("Data dictionary"):
    st.table(pd.DataFrame(
        [{"column": k, "description": v} for k, v in DATA_DICTIONARY.items()]
    ))
