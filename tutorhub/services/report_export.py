"""Tabular export of teacher reports"""
from typing import Any, Dict

import pandas as pd

EXPORT_COLUMNS = [
    "studentId",
    "name",
    "attendancePercentage",
    "averagePerformance",
    "totalCompletedClasses",
    "totalScheduledClasses",
    "cohort",
]


def report_to_dataframe(report: Dict[str, Any]) -> pd.DataFrame:
    """
    One row per student with their metrics and cohort label.

    Cohort is "top_performer", "needs_attention", both joined with "+", or "".
    """
    top_ids = {s["studentId"] for s in report["topPerformers"]}
    attention_ids = {s["studentId"] for s in report["needsAttention"]}

    rows = []
    for student in report["students"]:
        cohorts = []
        if student["studentId"] in top_ids:
            cohorts.append("top_performer")
        if student["studentId"] in attention_ids:
            cohorts.append("needs_attention")
        rows.append({**student, "cohort": "+".join(cohorts)})

    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    return df.sort_values(
        by=["averagePerformance", "attendancePercentage"],
        ascending=False,
        kind="stable",
    ).reset_index(drop=True)


def report_to_csv(report: Dict[str, Any]) -> str:
    return report_to_dataframe(report).to_csv(index=False)
