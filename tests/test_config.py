"""
Tests for PipelineConfig validation and serialization.
"""

import json

import numpy as np
import pytest

from oulad_pass.config import PipelineConfig
from oulad_pass.errors import ConfigurationError


class TestPipelineConfig:
    """Test PipelineConfig."""

    def test_defaults(self):
        """Defaults match the documented run: 10 folds, 75/25 split, decision tree."""
        config = PipelineConfig()
        assert config.fold_count == 10
        assert config.split_fraction == 0.75
        assert config.missing_value_policy == "pass_through"
        assert config.model_type == "decision_tree"
        assert config.positive_class == "fail"
        assert config.negative_class == "pass"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"fold_count": 1},
            {"fold_count": 2.5},
            {"split_fraction": 0.0},
            {"split_fraction": 1.0},
            {"seed": "42"},
            {"missing_value_policy": "drop"},
            {"model_type": "random_forest"},
            {"unknown_outcome_policy": "ignore"},
            {"positive_class": "distinction"},
        ],
    )
    def test_invalid_values_rejected(self, overrides):
        """Out-of-range or unknown values raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            PipelineConfig(**overrides)

    def test_model_without_missing_support_needs_impute(self):
        """Naive Bayes cannot consume NaN, so pass_through is refused."""
        with pytest.raises(ConfigurationError):
            PipelineConfig(model_type="naive_bayes")
        config = PipelineConfig(model_type="naive_bayes", missing_value_policy="impute")
        assert config.model_type == "naive_bayes"

    def test_dict_round_trip(self):
        """to_dict/from_dict preserve every field."""
        config = PipelineConfig(fold_count=5, seed=3, exclude_columns=["id_student"])
        restored = PipelineConfig.from_dict(config.to_dict())
        assert restored == config
        assert restored.exclude_columns == ("id_student",)

    def test_from_dict_rejects_unknown_keys(self):
        """Typos in config files are not silently ignored."""
        with pytest.raises(ConfigurationError):
            PipelineConfig.from_dict({"fold_cuont": 5})

    def test_from_json(self, tmp_path):
        """A JSON file with a subset of fields overrides only those fields."""
        path = tmp_path / "run.json"
        path.write_text(json.dumps({"fold_count": 4, "model_type": "conditional_inference_tree"}))
        config = PipelineConfig.from_json(path)
        assert config.fold_count == 4
        assert config.model_type == "conditional_inference_tree"
        assert config.split_fraction == 0.75

    def test_from_json_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            PipelineConfig.from_json(tmp_path / "absent.json")

    def test_make_rng_is_reproducible(self):
        """Two generators from the same config draw the same numbers."""
        config = PipelineConfig(seed=11)
        a = config.make_rng().integers(0, 1000, size=20)
        b = config.make_rng().integers(0, 1000, size=20)
        assert np.array_equal(a, b)
