"""
End-to-end tests: pipeline on synthetic tables, training CLI artifacts, and
scoring through the saved bundle.
"""

import json

import numpy as np
import pandas as pd
import pytest

from oulad_pass.config import PipelineConfig
from oulad_pass.errors import ConfigurationError, MalformedInputError
from oulad_pass.inference import load_bundle, predict, score, validate_features
from oulad_pass.pipeline import run_pipeline
from oulad_pass.train import main, parse_args, resolve_config


class TestRunPipeline:
    """Test run_pipeline."""

    def test_default_run(self, synthetic_tables):
        config = PipelineConfig()
        result = run_pipeline(synthetic_tables, config)

        n_withdrawn = (synthetic_tables.students["final_result"] == "Withdrawn").sum()
        assert len(result.dataset) == len(synthetic_tables.students) - n_withdrawn
        assert set(result.dataset["final_result"]) == {"pass", "fail"}

        part = result.partition
        assert len(part.train) + len(part.test) == len(result.dataset)
        assert abs(part.train_fraction - 0.75) < 0.01

        report = result.report
        assert len(report.fold_stats) == 10
        assert report.confusion.total + report.confusion.n_unpredicted == len(part.test)
        assert report.confusion.accuracy > 0.5

    def test_same_seed_same_partition(self, synthetic_tables):
        config = PipelineConfig(fold_count=3)
        a = run_pipeline(synthetic_tables, config)
        b = run_pipeline(synthetic_tables, config)
        assert np.array_equal(a.partition.train_index, b.partition.train_index)
        pd.testing.assert_frame_equal(a.report.fold_stats, b.report.fold_stats)

    @pytest.mark.parametrize(
        "model_type, policy",
        [
            ("conditional_inference_tree", "pass_through"),
            ("naive_bayes", "impute"),
            ("logistic_regression", "impute"),
        ],
    )
    def test_other_models(self, synthetic_tables, model_type, policy):
        config = PipelineConfig(fold_count=3, model_type=model_type, missing_value_policy=policy)
        result = run_pipeline(synthetic_tables, config)
        assert result.report.classifier.name == model_type
        assert result.report.fold_stats["accuracy"].notna().all()

    def test_unknown_outcome_aborts(self, synthetic_tables):
        students = synthetic_tables.students.copy()
        students.loc[0, "final_result"] = "Deferred"
        tables = type(synthetic_tables)(
            interactions=synthetic_tables.interactions,
            assessments=synthetic_tables.assessments,
            students=students,
        )
        with pytest.raises(MalformedInputError):
            run_pipeline(tables, PipelineConfig())


class TestTrainCli:
    """Test the training CLI and the artifacts it writes."""

    def test_writes_artifacts(self, data_dir, tmp_path, capsys):
        artifact_dir = tmp_path / "artifacts"
        main(["--data-dir", str(data_dir), "--artifact-dir", str(artifact_dir), "--fold-count", "5", "--plots"])

        for name in ["model.pkl", "features.json", "metrics.json", "cv_folds.csv",
                     "config.json", "data_schema.json", "sample.csv"]:
            assert (artifact_dir / name).exists(), name
        assert len(list((artifact_dir / "plots").glob("*.png"))) == 4

        metrics = json.loads((artifact_dir / "metrics.json").read_text())
        held_out = metrics["held_out"]
        cells = held_out["confusion_matrix"]
        assert sum(cells.values()) + held_out["n_unpredicted"] == metrics["n_test"]
        assert metrics["cross_validation"]["n_folds"] == 5

        config = json.loads((artifact_dir / "config.json").read_text())
        assert config["fold_count"] == 5
        assert "Training complete." in capsys.readouterr().out

    def test_config_file_then_flags(self, tmp_path):
        path = tmp_path / "run.json"
        path.write_text(json.dumps({"fold_count": 4, "seed": 1}))
        config = resolve_config(parse_args(["--config", str(path), "--seed", "9"]))
        assert config.fold_count == 4
        assert config.seed == 9

    def test_invalid_combination_rejected(self):
        with pytest.raises(ConfigurationError):
            resolve_config(parse_args(["--model-type", "naive_bayes"]))


class TestInference:
    """Test loading the bundle and scoring new rows."""

    @pytest.fixture
    def artifact_dir(self, data_dir, tmp_path):
        artifact_dir = tmp_path / "artifacts"
        main(["--data-dir", str(data_dir), "--artifact-dir", str(artifact_dir), "--fold-count", "3"])
        return artifact_dir

    def test_scores_sample(self, artifact_dir):
        bundle = load_bundle(artifact_dir)
        sample = pd.read_csv(artifact_dir / "sample.csv")

        X, warnings = validate_features(sample, bundle)
        assert list(X.columns) == bundle.features
        assert any("Ignoring extra columns" in w for w in warnings)

        labels = predict(sample, bundle)
        risk = score(sample, bundle)
        assert len(labels) == len(sample)
        assert set(labels.dropna().unique()) <= {"pass", "fail"}
        assert risk.dropna().between(0, 1).all()

    def test_unseen_region_left_unpredicted(self, artifact_dir):
        bundle = load_bundle(artifact_dir)
        sample = pd.read_csv(artifact_dir / "sample.csv").head(5)
        sample.loc[0, "region"] = "Atlantis"
        labels = predict(sample, bundle)
        assert pd.isna(labels.iloc[0])
        assert np.isnan(score(sample, bundle).iloc[0])

    def test_missing_column(self, artifact_dir):
        bundle = load_bundle(artifact_dir)
        sample = pd.read_csv(artifact_dir / "sample.csv").drop(columns=["mean_score"])
        with pytest.raises(MalformedInputError):
            validate_features(sample, bundle)

    def test_missing_artifacts(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_bundle(tmp_path)
