"""
oulad_pass/dataset.py

Builds the modelling table: joins the per-student features onto the student
table, reduces the outcome to pass/fail, and draws a stratified train/held-out
partition.

Rules this module keeps
-----------------------
- The left join never drops or duplicates a student row. A student seen in
  several modules/presentations stays several independent rows.
- "Withdrawn" rows are removed; "Fail" becomes "fail"; "Pass" and
  "Distinction" become "pass". Any other label is rejected unless the caller
  explicitly opts into treating it as "pass".
- The partition draws from a numpy Generator supplied by the caller, so the
  same seed and input order always give the same index sets.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from oulad_pass.config import FAIL_LABEL, PASS_LABEL, UNKNOWN_OUTCOME_POLICIES, PipelineConfig
from oulad_pass.data_dictionary import ID_COL, KNOWN_OUTCOMES, OUTCOME_COL, WITHDRAWN
from oulad_pass.errors import ConfigurationError, MalformedInputError
from oulad_pass.loader import check_columns

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Partition:
    """
    Disjoint training and held-out subsets of one dataset.

    train_index / test_index are sorted row positions into the dataset the
    partition was drawn from; train / test keep that dataset's index labels.
    """
    train: pd.DataFrame
    test: pd.DataFrame
    train_index: np.ndarray
    test_index: np.ndarray

    @property
    def train_fraction(self) -> float:
        total = len(self.train_index) + len(self.test_index)
        return len(self.train_index) / total if total else float("nan")


def join_features(students: pd.DataFrame, *feature_tables: pd.DataFrame) -> pd.DataFrame:
    """
    Left-join each feature table onto `students` on id_student.

    Feature tables must hold at most one row per student; a duplicate would
    multiply student rows, so it is rejected as malformed input.
    """
    check_columns(students, "students")

    out = students
    for table in feature_tables:
        if ID_COL not in table.columns:
            raise MalformedInputError(f"Feature table has no '{ID_COL}' column: {list(table.columns)}")
        dupes = int(table[ID_COL].duplicated().sum())
        if dupes:
            raise MalformedInputError(f"Feature table repeats {dupes} '{ID_COL}' values")
        out = out.merge(table, on=ID_COL, how="left", validate="many_to_one")

    for table in feature_tables:
        for col in table.columns.drop(ID_COL):
            n_missing = int(out[col].isna().sum())
            if n_missing:
                logger.info("%d of %d student rows have no %s", n_missing, len(out), col)

    return out


def binarize_outcome(
    dataset: pd.DataFrame,
    unknown_outcome_policy: str = "error",
) -> pd.DataFrame:
    """
    Drop withdrawn rows and recode final_result into "pass"/"fail".

    Parameters
    ----------
    dataset : pd.DataFrame
        Joined student table holding a final_result column.
    unknown_outcome_policy : str
        "error" rejects labels outside Pass/Distinction/Fail/Withdrawn;
        "pass" recodes them to "pass" with a warning.

    Raises
    ------
    MalformedInputError
        If final_result is missing for some row, or holds an unknown label
        under the "error" policy.
    """
    if unknown_outcome_policy not in UNKNOWN_OUTCOME_POLICIES:
        raise ConfigurationError(f"Unknown outcome policy: {unknown_outcome_policy!r}")
    if OUTCOME_COL not in dataset.columns:
        raise MalformedInputError(f"Dataset has no '{OUTCOME_COL}' column")

    raw = dataset[OUTCOME_COL]
    n_missing = int(raw.isna().sum())
    if n_missing:
        raise MalformedInputError(f"{n_missing} rows have no {OUTCOME_COL}")

    normalized = raw.astype(str).str.strip().str.lower()
    keep = normalized != WITHDRAWN

    unknown = sorted(set(normalized[keep]) - set(KNOWN_OUTCOMES))
    if unknown:
        if unknown_outcome_policy == "error":
            raise MalformedInputError(
                f"Unrecognized {OUTCOME_COL} values {unknown}; "
                f"set unknown_outcome_policy='pass' to count them as pass."
            )
        logger.warning("Recoding unrecognized %s values %s as '%s'", OUTCOME_COL, unknown, PASS_LABEL)

    out = dataset.loc[keep].copy()
    out[OUTCOME_COL] = np.where(normalized[keep] == FAIL_LABEL, FAIL_LABEL, PASS_LABEL)
    out = out.reset_index(drop=True)

    logger.info("Removed %d withdrawn rows; %d rows remain", int((~keep).sum()), len(out))
    return out


def stratified_split(
    dataset: pd.DataFrame,
    fraction: float,
    rng: np.random.Generator,
    label_col: str = OUTCOME_COL,
) -> Partition:
    """
    Stratified random partition of `dataset` on `label_col`.

    Within each class (visited in sorted label order) the row positions are
    shuffled with `rng` and the first round(fraction * n_class) of them go to
    training (halves round up). Everything else is held out.
    """
    if not 0.0 < fraction < 1.0:
        raise ConfigurationError(f"fraction must be in (0, 1), got {fraction}")
    if not isinstance(rng, np.random.Generator):
        raise TypeError(f"rng must be a numpy Generator, got {type(rng).__name__}")
    if label_col not in dataset.columns:
        raise MalformedInputError(f"Dataset has no '{label_col}' column")

    labels = dataset[label_col]
    if labels.isna().any():
        raise MalformedInputError(f"Cannot stratify on '{label_col}': it holds missing values")
    labels = labels.to_numpy()

    chosen = [np.empty(0, dtype=np.int64)]
    for label in sorted(pd.unique(labels)):
        positions = np.flatnonzero(labels == label)
        n_take = int(np.floor(fraction * len(positions) + 0.5))
        chosen.append(rng.permutation(positions)[:n_take])

    train_index = np.sort(np.concatenate(chosen)).astype(np.int64)
    in_train = np.zeros(len(dataset), dtype=bool)
    in_train[train_index] = True
    test_index = np.flatnonzero(~in_train).astype(np.int64)

    logger.info(
        "Stratified split: %d training rows, %d held-out rows (fraction %.3f)",
        len(train_index), len(test_index), fraction,
    )
    return Partition(
        train=dataset.iloc[train_index].copy(),
        test=dataset.iloc[test_index].copy(),
        train_index=train_index,
        test_index=test_index,
    )


def build_dataset(
    students: pd.DataFrame,
    clicks: pd.DataFrame,
    scores: pd.DataFrame,
    config: PipelineConfig,
) -> pd.DataFrame:
    """Join the features and binarize the outcome in one call."""
    joined = join_features(students, clicks, scores)
    return binarize_outcome(joined, config.unknown_outcome_policy)
