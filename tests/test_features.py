"""
Tests for the per-student feature aggregation.
"""

import numpy as np
import pandas as pd
import pytest

from oulad_pass.errors import MalformedInputError
from oulad_pass.features import aggregate_clicks, aggregate_scores


class TestAggregateClicks:
    """Test aggregate_clicks."""

    def test_mean_of_daily_sums(self, small_interactions):
        """Day 1 rows (1 + 2) are summed before averaging with day 2 (5): mean is 4.0."""
        out = aggregate_clicks(small_interactions).set_index("id_student")
        assert out.loc[1, "mean_clicks"] == 4.0

    def test_one_row_per_student(self, synthetic_tables):
        out = aggregate_clicks(synthetic_tables.interactions)
        assert out["id_student"].is_unique
        assert set(out["id_student"]) == set(synthetic_tables.interactions["id_student"])

    def test_absent_student_has_no_row(self, small_interactions):
        """A student without interactions is not fabricated as zero."""
        out = aggregate_clicks(small_interactions)
        assert 2 not in set(out["id_student"])

    def test_missing_days_are_skipped(self):
        """A day with only missing clicks does not count as a zero day."""
        interactions = pd.DataFrame(
            {
                "id_student": [5, 5, 5, 6],
                "date": [1, 2, 2, 1],
                "sum_click": [6.0, np.nan, np.nan, np.nan],
            }
        )
        out = aggregate_clicks(interactions).set_index("id_student")
        assert out.loc[5, "mean_clicks"] == 6.0
        assert pd.isna(out.loc[6, "mean_clicks"])

    def test_nullable_dtype(self, small_interactions):
        out = aggregate_clicks(small_interactions)
        assert out["mean_clicks"].dtype == "Float64"

    def test_non_numeric_clicks(self):
        interactions = pd.DataFrame({"id_student": [1], "date": [1], "sum_click": ["many"]})
        with pytest.raises(MalformedInputError):
            aggregate_clicks(interactions)


class TestAggregateScores:
    """Test aggregate_scores."""

    def test_mean_ignores_missing(self, small_assessments):
        """Scores 50, 70 and a missing one average to 60."""
        out = aggregate_scores(small_assessments).set_index("id_student")
        assert out.loc[1, "mean_score"] == 60.0
        assert out["mean_score"].dtype == "Float64"

    def test_all_missing_is_na(self):
        assessments = pd.DataFrame({"id_student": [9, 9], "score": [np.nan, np.nan]})
        out = aggregate_scores(assessments).set_index("id_student")
        assert pd.isna(out.loc[9, "mean_score"])

    def test_missing_column(self):
        with pytest.raises(MalformedInputError):
            aggregate_scores(pd.DataFrame({"id_student": [1]}))
