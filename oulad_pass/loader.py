"""
oulad_pass/loader.py

Reads the three OULAD tables (interactions, assessments, student info) from
a data directory and checks that each carries the columns the pipeline needs.

Missing files and missing columns are fatal: there is no partial recovery,
because every later stage depends on all three tables.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from oulad_pass.data_dictionary import DEFAULT_FILENAMES, REQUIRED_COLUMNS
from oulad_pass.errors import MalformedInputError

logger = logging.getLogger(__name__)

# OULAD marks unknown values (e.g. imd_band, score) with "?".
NA_VALUES = ["?"]


@dataclass(frozen=True)
class OuladTables:
    """The three raw tables consumed by the pipeline."""
    interactions: pd.DataFrame
    assessments: pd.DataFrame
    students: pd.DataFrame


def check_columns(df: pd.DataFrame, kind: str) -> None:
    """Raise MalformedInputError if `df` lacks any column required for table `kind`."""
    required = REQUIRED_COLUMNS[kind]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise MalformedInputError(f"{kind} table is missing required columns: {missing}")


def read_table(path: Path, kind: str) -> pd.DataFrame:
    """
    Read one delimited table and validate its schema.

    Raises
    ------
    FileNotFoundError
        If `path` does not exist.
    MalformedInputError
        If the file cannot be parsed or lacks a required column.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"{kind} table not found at {path}. "
            f"Download OULAD or generate demo data: python -m oulad_pass.make_synthetic_data"
        )

    try:
        df = pd.read_csv(path, na_values=NA_VALUES)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise MalformedInputError(f"Could not parse {kind} table at {path}: {exc}") from exc

    check_columns(df, kind)
    logger.info("Loaded %s from %s: %d rows, %d columns", kind, path.name, df.shape[0], df.shape[1])
    return df


def load_tables(data_dir: Path, filenames: Optional[Dict[str, str]] = None) -> OuladTables:
    """
    Load interactions, assessments and students from `data_dir`.

    `filenames` overrides the default OULAD file name per table kind.
    """
    data_dir = Path(data_dir)
    names = dict(DEFAULT_FILENAMES)
    if filenames:
        unknown = sorted(set(filenames) - set(names))
        if unknown:
            raise ValueError(f"Unknown table kinds: {unknown}")
        names.update(filenames)

    return OuladTables(
        interactions=read_table(data_dir / names["interactions"], "interactions"),
        assessments=read_table(data_dir / names["assessments"], "assessments"),
        students=read_table(data_dir / names["students"], "students"),
    )
