"""
oulad_pass/data_dictionary.py

Column names, required column sets and human-readable descriptions for the
three OULAD tables and the derived features. Used by the loader (schema
checks) and by the Streamlit UI.
"""

ID_COL = "id_student"
DATE_COL = "date"
CLICK_COL = "sum_click"
SCORE_COL = "score"
OUTCOME_COL = "final_result"

MEAN_CLICKS_COL = "mean_clicks"
MEAN_SCORE_COL = "mean_score"

DEFAULT_FILENAMES = {
    "interactions": "studentVle.csv",
    "assessments": "studentAssessment.csv",
    "students": "studentInfo.csv",
}

REQUIRED_COLUMNS = {
    "interactions": [ID_COL, DATE_COL, CLICK_COL],
    "assessments": [ID_COL, SCORE_COL],
    "students": [
        "code_module",
        "code_presentation",
        ID_COL,
        "gender",
        "region",
        "highest_education",
        "imd_band",
        "age_band",
        "num_of_prev_attempts",
        "studied_credits",
        "disability",
        OUTCOME_COL,
    ],
}

# Raw outcome vocabulary, lower-cased.
WITHDRAWN = "withdrawn"
KNOWN_OUTCOMES = ("pass", "distinction", "fail", WITHDRAWN)

DATA_DICTIONARY = {
    "id_student": "Unique student identifier (repeats across module/presentation; not a model feature).",
    "code_module": "Module code, e.g. AAA-GGG (not a model feature).",
    "code_presentation": "Presentation code, e.g. 2013J (not a model feature).",
    "gender": "Student gender (M/F).",
    "region": "Geographic region the student lived in while taking the module.",
    "highest_education": "Highest education level on entry to the module.",
    "imd_band": "Index of Multiple Deprivation band of the student's place of residence.",
    "age_band": "Age band (0-35, 35-55, 55<=).",
    "num_of_prev_attempts": "Number of times the student attempted this module before.",
    "studied_credits": "Total credits of the modules the student is currently studying.",
    "disability": "Whether the student declared a disability (Y/N).",
    "final_result": "Outcome: pass or fail after dropping Withdrawn and folding Distinction into pass.",
    "mean_clicks": "Mean of the student's per-day click totals across the VLE (missing if no interactions).",
    "mean_score": "Mean assessment score, ignoring missing scores (missing if no assessments).",
    "predicted_outcome": "Model-predicted outcome (pass/fail); empty when the row holds an unseen category.",
    "risk_score": "Model-predicted probability of the positive class (fail by default).",
}
