"""
oulad_pass/make_synthetic_data.py

Creates synthetic tables shaped like the OULAD files the pipeline reads.
Useful for demos and tests when the real dataset is not at hand.

Outputs (in --out-dir, default data/):
  studentInfo.csv
  studentVle.csv
  studentAssessment.csv

The data is synthetic but keeps the awkward parts of the real thing:
several VLE rows per student-day, students with no VLE activity or no
assessments, missing scores and imd_band values, and students enrolled in
more than one module/presentation.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Dict

import numpy as np
import pandas as pd

from oulad_pass.data_dictionary import DEFAULT_FILENAMES

MODULES = ["AAA", "BBB", "CCC", "DDD", "EEE", "FFF", "GGG"]
PRESENTATIONS = ["2013B", "2013J", "2014B", "2014J"]
REGIONS = [
    "East Anglian Region",
    "Scotland",
    "North Western Region",
    "South East Region",
    "West Midlands Region",
    "Wales",
    "London Region",
]
EDUCATION = [
    "No Formal quals",
    "Lower Than A Level",
    "A Level or Equivalent",
    "HE Qualification",
    "Post Graduate Qualification",
]
IMD_BANDS = ["0-10%", "10-20", "20-30%", "30-40%", "40-50%", "50-60%", "60-70%", "70-80%", "80-90%", "90-100%"]


def sigmoid(x: np.ndarray) -> np.ndarray:
    return 1 / (1 + np.exp(-x))


def generate_oulad_tables(
    n_students: int = 2000,
    random_state: int = 42,
) -> Dict[str, pd.DataFrame]:
    """Return {"students", "interactions", "assessments"} DataFrames."""
    rng = np.random.default_rng(random_state)

    ids = np.arange(n_students) + 11391
    engagement = rng.normal(0, 1, size=n_students)  # latent driver of clicks, scores and outcome

    # --- Student profile
    num_of_prev_attempts = np.clip(rng.poisson(0.2, size=n_students), 0, 6)
    studied_credits = rng.choice([30, 60, 90, 120], size=n_students, p=[0.2, 0.55, 0.15, 0.1])
    imd_band = rng.choice(IMD_BANDS, size=n_students).astype(object)
    imd_band[rng.random(n_students) < 0.03] = None

    # Higher engagement -> better outcome; more prior attempts and heavier loads -> worse
    linear = (
        + 1.3 * engagement
        - 0.45 * num_of_prev_attempts
        - 0.006 * (studied_credits - 60)
        + rng.normal(0, 0.6, size=n_students)
    )
    result = np.where(linear > 1.1, "Distinction", np.where(linear > -0.4, "Pass", "Fail")).astype(object)
    withdrawn = rng.random(n_students) < sigmoid(-1.6 - 0.9 * engagement)
    result[withdrawn] = "Withdrawn"

    students = pd.DataFrame(
        {
            "code_module": rng.choice(MODULES, size=n_students),
            "code_presentation": rng.choice(PRESENTATIONS, size=n_students),
            "id_student": ids,
            "gender": rng.choice(["M", "F"], size=n_students),
            "region": rng.choice(REGIONS, size=n_students),
            "highest_education": rng.choice(EDUCATION, size=n_students, p=[0.02, 0.4, 0.43, 0.14, 0.01]),
            "imd_band": imd_band,
            "age_band": rng.choice(["0-35", "35-55", "55<="], size=n_students, p=[0.7, 0.28, 0.02]),
            "num_of_prev_attempts": num_of_prev_attempts,
            "studied_credits": studied_credits,
            "disability": rng.choice(["N", "Y"], size=n_students, p=[0.9, 0.1]),
            "final_result": result,
        }
    )

    # Some students enrol in a second module: same id, independent row
    repeat = students.sample(frac=0.05, random_state=random_state).copy()
    repeat["code_module"] = rng.choice(MODULES, size=len(repeat))
    repeat["code_presentation"] = rng.choice(PRESENTATIONS, size=len(repeat))
    students = pd.concat([students, repeat], ignore_index=True)

    # --- VLE interactions: several site rows per active day
    active_days = np.clip(rng.poisson(np.exp(3.0 + 0.5 * engagement)), 0, 200)
    active_days[rng.random(n_students) < 0.04] = 0  # never logged in
    day_student = np.repeat(np.arange(n_students), active_days)
    day_date = rng.integers(-10, 240, size=len(day_student))
    sites_per_day = 1 + rng.poisson(1.5, size=len(day_student))

    row_student = np.repeat(day_student, sites_per_day)
    interactions = pd.DataFrame(
        {
            "code_module": students["code_module"].to_numpy()[row_student],
            "code_presentation": students["code_presentation"].to_numpy()[row_student],
            "id_student": ids[row_student],
            "id_site": rng.integers(546000, 547000, size=len(row_student)),
            "date": np.repeat(day_date, sites_per_day),
            "sum_click": 1 + rng.poisson(np.exp(0.8 + 0.3 * engagement[row_student])),
        }
    )

    # --- Assessments
    n_assessments = rng.integers(1, 8, size=n_students)
    n_assessments[rng.random(n_students) < 0.05] = 0  # submitted nothing
    a_student = np.repeat(np.arange(n_students), n_assessments)
    score = np.clip(rng.normal(70 + 9 * engagement[a_student], 12), 0, 100).round()
    score[rng.random(len(a_student)) < 0.02] = np.nan
    assessments = pd.DataFrame(
        {
            "id_assessment": rng.integers(1752, 1800, size=len(a_student)),
            "id_student": ids[a_student],
            "date_submitted": rng.integers(10, 240, size=len(a_student)),
            "is_banked": 0,
            "score": score,
        }
    )

    return {"students": students, "interactions": interactions, "assessments": assessments}


def write_tables(tables: Dict[str, pd.DataFrame], out_dir: Path) -> Dict[str, Path]:
    """Write each table under its default OULAD file name; returns the paths written."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    paths = {}
    for kind, df in tables.items():
        path = out_dir / DEFAULT_FILENAMES[kind]
        df.to_csv(path, index=False, na_rep="?")
        paths[kind] = path
    return paths


def main() -> None:
    parser = argparse.ArgumentParser(description="Write synthetic OULAD-shaped CSV files.")
    parser.add_argument("--out-dir", type=str, default="data", help="Directory to write CSVs into.")
    parser.add_argument("--n-students", type=int, default=2000, help="Number of distinct students.")
    parser.add_argument("--random-state", type=int, default=42, help="Random seed.")
    args = parser.parse_args()

    tables = generate_oulad_tables(n_students=args.n_students, random_state=args.random_state)
    paths = write_tables(tables, Path(args.out_dir))

    # Print quick quality checks
    for kind, path in paths.items():
        print(f"Wrote {len(tables[kind])} rows to {path}")
    print("Outcome mix:", tables["students"]["final_result"].value_counts(normalize=True).round(3).to_dict())


if __name__ == "__main__":
    main()
