"""
Tests for reading and validating the three OULAD tables.
"""

import numpy as np
import pandas as pd
import pytest

from oulad_pass.errors import MalformedInputError
from oulad_pass.loader import load_tables, read_table


class TestLoadTables:
    """Test load_tables / read_table."""

    def test_loads_all_three_tables(self, data_dir):
        """The synthetic directory loads into three non-empty frames."""
        tables = load_tables(data_dir)
        assert len(tables.interactions) > 0
        assert len(tables.assessments) > 0
        assert len(tables.students) > 0
        assert "final_result" in tables.students.columns

    def test_missing_file(self, tmp_path):
        """A missing file is fatal."""
        with pytest.raises(FileNotFoundError):
            load_tables(tmp_path)

    def test_missing_column(self, tmp_path):
        """A table lacking a required column is malformed."""
        path = tmp_path / "studentVle.csv"
        pd.DataFrame({"id_student": [1], "date": [3]}).to_csv(path, index=False)
        with pytest.raises(MalformedInputError, match="sum_click"):
            read_table(path, "interactions")

    def test_empty_file_is_malformed(self, tmp_path):
        path = tmp_path / "studentAssessment.csv"
        path.write_text("")
        with pytest.raises(MalformedInputError):
            read_table(path, "assessments")

    def test_question_mark_reads_as_missing(self, tmp_path):
        """OULAD writes unknown scores as '?'; they load as NaN and keep the column numeric."""
        path = tmp_path / "studentAssessment.csv"
        path.write_text("id_assessment,id_student,score\n1752,11391,78\n1752,28400,?\n")
        df = read_table(path, "assessments")
        assert np.isnan(df.loc[1, "score"])
        assert df["score"].dtype.kind == "f"

    def test_filename_override(self, data_dir):
        """A renamed file can be pointed at explicitly."""
        (data_dir / "studentInfo.csv").rename(data_dir / "info_2014.csv")
        tables = load_tables(data_dir, {"students": "info_2014.csv"})
        assert len(tables.students) > 0

    def test_unknown_table_kind(self, data_dir):
        with pytest.raises(ValueError):
            load_tables(data_dir, {"courses": "courses.csv"})
