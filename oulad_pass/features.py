"""
oulad_pass/features.py

Per-student summary features derived from the interaction and assessment logs.

Both features are returned with the pandas nullable Float64 dtype. A student
that has no usable rows in a source table either gets no row at all (absent
from the table) or a row holding pd.NA (present, but every value missing).
Neither case is ever filled with zero.
"""

from __future__ import annotations

import logging

import pandas as pd
from pandas.api.types import is_numeric_dtype

from oulad_pass.data_dictionary import (
    CLICK_COL,
    DATE_COL,
    ID_COL,
    MEAN_CLICKS_COL,
    MEAN_SCORE_COL,
    SCORE_COL,
)
from oulad_pass.errors import MalformedInputError
from oulad_pass.loader import check_columns

logger = logging.getLogger(__name__)


def _require_numeric(df: pd.DataFrame, col: str, kind: str) -> None:
    if not is_numeric_dtype(df[col]):
        raise MalformedInputError(
            f"{kind} column '{col}' must be numeric, found dtype {df[col].dtype}"
        )


def aggregate_clicks(interactions: pd.DataFrame) -> pd.DataFrame:
    """
    Mean daily click count per student.

    Clicks are first summed per (student, day), since a student touches many
    VLE sites per day. A day whose click values are all missing stays missing
    (min_count=1) and is then skipped by the per-student mean.

    Returns
    -------
    pd.DataFrame
        Columns [id_student, mean_clicks], one row per distinct student.
    """
    check_columns(interactions, "interactions")
    _require_numeric(interactions, CLICK_COL, "interactions")

    daily = interactions.groupby([ID_COL, DATE_COL])[CLICK_COL].sum(min_count=1)
    per_student = daily.groupby(level=ID_COL).mean()

    out = per_student.astype("Float64").rename(MEAN_CLICKS_COL).reset_index()
    logger.debug("Aggregated clicks for %d students over %d student-days", len(out), len(daily))
    return out


def aggregate_scores(assessments: pd.DataFrame) -> pd.DataFrame:
    """Mean assessment score per student, ignoring missing scores."""
    check_columns(assessments, "assessments")
    _require_numeric(assessments, SCORE_COL, "assessments")

    per_student = assessments.groupby(ID_COL)[SCORE_COL].mean()

    out = per_student.astype("Float64").rename(MEAN_SCORE_COL).reset_index()
    logger.debug("Aggregated scores for %d students", len(out))
    return out
