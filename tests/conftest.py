"""
Pytest configuration and fixtures for the OULAD pass/fail pipeline tests.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from oulad_pass.config import PipelineConfig
from oulad_pass.loader import OuladTables
from oulad_pass.make_synthetic_data import generate_oulad_tables, write_tables


def make_student_rows(ids, results):
    """Minimal studentInfo rows for the given ids and final_result values."""
    n = len(ids)
    return pd.DataFrame(
        {
            "code_module": ["AAA"] * n,
            "code_presentation": ["2013J"] * n,
            "id_student": list(ids),
            "gender": ["M", "F"] * (n // 2) + ["M"] * (n % 2),
            "region": ["Scotland"] * n,
            "highest_education": ["A Level or Equivalent"] * n,
            "imd_band": ["20-30%"] * n,
            "age_band": ["0-35"] * n,
            "num_of_prev_attempts": [0] * n,
            "studied_credits": [60] * n,
            "disability": ["N"] * n,
            "final_result": list(results),
        }
    )


@pytest.fixture
def small_students():
    """Student A (id 1) has clicks; student B (id 2) has none; id 1 is enrolled twice."""
    students = make_student_rows([1, 2, 1], ["Pass", "Fail", "Distinction"])
    students.loc[2, "code_module"] = "BBB"
    return students


@pytest.fixture
def small_interactions():
    """Student 1: day 1 -> 1 + 2 = 3 clicks, day 2 -> 5 clicks."""
    return pd.DataFrame(
        {
            "id_student": [1, 1, 1],
            "date": [1, 1, 2],
            "sum_click": [1, 2, 5],
        }
    )


@pytest.fixture
def small_assessments():
    return pd.DataFrame(
        {
            "id_student": [1, 1, 1],
            "score": [50.0, 70.0, np.nan],
        }
    )


@pytest.fixture(scope="session")
def synthetic_tables():
    """Synthetic OULAD-shaped tables, generated once per test session."""
    tables = generate_oulad_tables(n_students=600, random_state=7)
    return OuladTables(
        interactions=tables["interactions"],
        assessments=tables["assessments"],
        students=tables["students"],
    )


@pytest.fixture
def data_dir(tmp_path):
    """A directory holding the three synthetic CSV files."""
    tables = generate_oulad_tables(n_students=400, random_state=3)
    write_tables(tables, tmp_path / "data")
    return tmp_path / "data"


@pytest.fixture
def config():
    return PipelineConfig()
