from dataclasses import replace
from typing import Dict, List, Sequence

import numpy as np

from qidash.frames import measurements_frame
from qidash.models import VITAL_FIELDS, VITAL_LABELS, Measurement, Participant, field_name


def apply_missingness(
    rng: np.random.Generator,
    measurements: List[Measurement],
    missing_field_rate: float,
    fields: Sequence[str] = VITAL_FIELDS,
) -> List[Measurement]:
    """
    Independently set each vital field of each measurement to None with
    probability missing_field_rate. The date is never touched.
    """
    if not measurements or missing_field_rate <= 0:
        return list(measurements)

    mask = rng.random((len(measurements), len(fields))) < missing_field_rate
    out = []
    for i, m in enumerate(measurements):
        nulled = {name: None for j, name in enumerate(fields) if mask[i, j]}
        out.append(replace(m, **nulled) if nulled else m)
    return out


def missingness_by_field(cohort: List[Participant], fields: Sequence[str] = VITAL_FIELDS) -> Dict[str, float]:
    """
    Percentage of all measurements in the cohort (flattened across participants)
    whose value for each field is None or absent, rounded to 2 decimals.
    """
    df = measurements_frame(cohort)
    total = len(df)
    out = {}
    for name in fields:
        if total == 0:
            out[name] = 0.0
            continue
        column = field_name(name)
        missing = int(df[column].isna().sum()) if column in df.columns else total
        out[name] = round(float(missing) / float(total) * 100.0, 2)
    return out


def missingness_table(cohort: List[Participant], fields: Sequence[str] = VITAL_FIELDS) -> List[Dict[str, object]]:
    by_field = missingness_by_field(cohort, fields)
    return [
        {"field": VITAL_LABELS.get(name, name), "key": name, "missingPercentage": pct}
        for name, pct in by_field.items()
    ]
