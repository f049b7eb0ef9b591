"""
oulad_pass/train.py

Runs the pass/fail pipeline on the three OULAD tables and saves artifacts for
downstream scoring + dashboarding:

    artifacts/model.pkl          fitted OutcomeClassifier (joblib)
    artifacts/features.json      feature columns the model expects
    artifacts/metrics.json       held-out confusion summary + CV summary
    artifacts/cv_folds.csv       per-fold accuracy / kappa (NaN for degenerate folds)
    artifacts/config.json        PipelineConfig used for the run
    artifacts/data_schema.json   columns, dtypes and missing rates of the modelling table
    artifacts/sample.csv         held-out rows, for demo scoring in Streamlit
    artifacts/plots/*.png        only with --plots

Run (default)
-------------
python -m oulad_pass.train --data-dir data

Run (custom)
------------
python -m oulad_pass.train --data-dir data --model-type naive_bayes --missing-value-policy impute
python -m oulad_pass.train --config run.json --seed 7
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Dict

import joblib
import pandas as pd

from oulad_pass.config import (
    MISSING_VALUE_POLICIES,
    MODEL_TYPES,
    UNKNOWN_OUTCOME_POLICIES,
    PipelineConfig,
)
from oulad_pass.data_dictionary import OUTCOME_COL
from oulad_pass.loader import load_tables
from oulad_pass.pipeline import PipelineResult, run_pipeline
from oulad_pass.plots import save_report_figures

logger = logging.getLogger(__name__)

ARTIFACT_DIR = Path("artifacts")
DEFAULT_DATA_DIR = Path("data")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Train and evaluate the OULAD pass/fail model.")
    parser.add_argument(
        "--data-dir",
        type=str,
        default=str(DEFAULT_DATA_DIR),
        help="Directory holding studentInfo.csv, studentVle.csv and studentAssessment.csv.",
    )
    parser.add_argument("--students-file", type=str, default=None, help="Override the student info file name.")
    parser.add_argument("--interactions-file", type=str, default=None, help="Override the VLE interactions file name.")
    parser.add_argument("--assessments-file", type=str, default=None, help="Override the assessment file name.")
    parser.add_argument(
        "--artifact-dir",
        type=str,
        default=str(ARTIFACT_DIR),
        help="Where to write model and reports.",
    )
    parser.add_argument("--config", type=str, default=None, help="JSON file with PipelineConfig fields.")
    parser.add_argument("--fold-count", type=int, default=None, help="Cross-validation folds (default 10).")
    parser.add_argument("--split-fraction", type=float, default=None, help="Training share (default 0.75).")
    parser.add_argument("--seed", type=int, default=None, help="Random seed (default 42).")
    parser.add_argument("--model-type", choices=MODEL_TYPES, default=None, help="Classifier variant.")
    parser.add_argument(
        "--missing-value-policy",
        choices=MISSING_VALUE_POLICIES,
        default=None,
        help="Let the model handle missing values, or impute them first.",
    )
    parser.add_argument(
        "--unknown-outcome-policy",
        choices=UNKNOWN_OUTCOME_POLICIES,
        default=None,
        help="Reject unrecognized final_result labels, or count them as pass.",
    )
    parser.add_argument("--plots", action="store_true", help="Also save report figures as PNGs.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace) -> PipelineConfig:
    """Config file (if any) first, then individual CLI flags on top."""
    base = PipelineConfig.from_json(Path(args.config)) if args.config else PipelineConfig()
    overrides = {
        "fold_count": args.fold_count,
        "split_fraction": args.split_fraction,
        "seed": args.seed,
        "model_type": args.model_type,
        "missing_value_policy": args.missing_value_policy,
        "unknown_outcome_policy": args.unknown_outcome_policy,
    }
    merged = base.to_dict()
    merged.update({k: v for k, v in overrides.items() if v is not None})
    return PipelineConfig.from_dict(merged)


def build_data_schema(df: pd.DataFrame, config: PipelineConfig) -> Dict:
    """
    Create a simple schema artifact: column names, dtypes, and basic row counts.
    """
    return {
        "n_rows": int(df.shape[0]),
        "n_cols": int(df.shape[1]),
        "label_col": OUTCOME_COL,
        "excluded_cols": [c for c in config.exclude_columns if c in df.columns],
        "label_counts": {str(k): int(v) for k, v in df[OUTCOME_COL].value_counts().items()},
        "columns": [
            {
                "name": c,
                "dtype": str(df[c].dtype),
                "missing_rate": float(df[c].isna().mean()) if len(df) else 0.0,
            }
            for c in df.columns
        ],
    }


def save_artifacts(result: PipelineResult, config: PipelineConfig, artifact_dir: Path, data_dir: Path) -> None:
    artifact_dir.mkdir(parents=True, exist_ok=True)
    report = result.report

    metrics = {
        "model_type": config.model_type,
        "n_train": int(len(result.partition.train)),
        "n_test": int(len(result.partition.test)),
        "train_fraction": result.partition.train_fraction,
        "cross_validation": report.cv_summary,
        "held_out": report.confusion.to_dict(),
    }

    joblib.dump(report.classifier, artifact_dir / "model.pkl")
    (artifact_dir / "features.json").write_text(json.dumps(report.classifier.feature_columns_, indent=2))
    (artifact_dir / "metrics.json").write_text(json.dumps(metrics, indent=2))
    report.fold_stats.to_csv(artifact_dir / "cv_folds.csv", index=False)

    run_config = config.to_dict()
    run_config["data_dir"] = str(data_dir)
    (artifact_dir / "config.json").write_text(json.dumps(run_config, indent=2))

    schema = build_data_schema(result.dataset, config)
    (artifact_dir / "data_schema.json").write_text(json.dumps(schema, indent=2))

    # Held-out rows only, so demo scoring in the app never shows training rows
    test = result.partition.test
    test.sample(n=min(300, len(test)), random_state=config.seed).to_csv(
        artifact_dir / "sample.csv", index=False
    )


def main(argv=None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = resolve_config(args)
    data_dir = Path(args.data_dir)
    artifact_dir = Path(args.artifact_dir)
    filenames = {
        kind: name
        for kind, name in {
            "students": args.students_file,
            "interactions": args.interactions_file,
            "assessments": args.assessments_file,
        }.items()
        if name
    }

    tables = load_tables(data_dir, filenames)
    result = run_pipeline(tables, config)
    save_artifacts(result, config, artifact_dir, data_dir)

    if args.plots:
        paths = save_report_figures(
            result.dataset, result.report.fold_stats, result.report.confusion, artifact_dir / "plots"
        )
        logger.info("Saved %d figures to %s", len(paths), artifact_dir / "plots")

    cv = result.report.cv_summary
    held_out = result.report.confusion
    print("Training complete.")
    print(f"Saved artifacts to: {artifact_dir.resolve()}")
    print(
        f"{config.fold_count}-fold CV accuracy={cv['accuracy_mean']:.3f} kappa={cv['kappa_mean']:.3f} "
        f"| degenerate folds={cv['n_degenerate_folds']}"
    )
    print(
        f"Held-out accuracy={held_out.accuracy:.3f} kappa={held_out.kappa:.3f} "
        f"sensitivity={held_out.sensitivity:.3f} specificity={held_out.specificity:.3f} "
        f"(positive class: {held_out.positive_class})"
    )


if __name__ == "__main__":
    main()
