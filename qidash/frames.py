"""Flat pandas views of a cohort."""
from typing import List

import numpy as np
import pandas as pd

from qidash.models import VITAL_FIELDS, Participant


PARTICIPANT_COLUMNS = [
    "id",
    "age",
    "gender",
    "unit",
    "condition",
    "risk_score",
    "outcome",
    "length_of_stay",
    "readmission_risk",
]


def participants_frame(cohort: List[Participant]) -> pd.DataFrame:
    rows = [{c: getattr(p, c) for c in PARTICIPANT_COLUMNS} for p in cohort]
    return pd.DataFrame(rows, columns=PARTICIPANT_COLUMNS)


def measurements_frame(cohort: List[Participant]) -> pd.DataFrame:
    """One row per measurement; missing vitals become NaN."""
    columns = ["participant_id", "index", "date", *VITAL_FIELDS]
    rows = []
    for p in cohort:
        for i, m in enumerate(p.measurements):
            row = {"participant_id": p.id, "index": i, "date": m.date}
            for name in VITAL_FIELDS:
                value = getattr(m, name, None)
                row[name] = np.nan if value is None else value
            rows.append(row)
    df = pd.DataFrame(rows, columns=columns)
    for name in VITAL_FIELDS:
        df[name] = pd.to_numeric(df[name], errors="coerce")
    return df
