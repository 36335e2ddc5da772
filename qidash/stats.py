"""Aggregate statistics over a cohort or over plain numeric sequences.

Every function is pure. Empty inputs and zero denominators resolve to 0
rather than raising or returning NaN.
"""
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from qidash.frames import measurements_frame
from qidash.models import VITAL_FIELDS, Participant, field_name


def _values(values: Sequence[Optional[float]]) -> np.ndarray:
    return np.array([float(v) for v in values if v is not None], dtype=float)


def _ratio(numerator: float, denominator: float) -> float:
    return float(numerator) / float(denominator) if denominator else 0.0


def mean(values: Sequence[Optional[float]]) -> float:
    arr = _values(values)
    return float(arr.mean()) if len(arr) else 0.0


def median(values: Sequence[Optional[float]]) -> float:
    arr = _values(values)
    return float(np.median(arr)) if len(arr) else 0.0


def standard_deviation(values: Sequence[Optional[float]]) -> float:
    """Population standard deviation (divides by N)."""
    arr = _values(values)
    return float(arr.std()) if len(arr) else 0.0


def sample_standard_deviation(values: Sequence[Optional[float]]) -> float:
    """Sample standard deviation (divides by N - 1); 0 for fewer than two values."""
    arr = _values(values)
    return float(arr.std(ddof=1)) if len(arr) > 1 else 0.0


def describe(values: Sequence[Optional[float]]) -> Dict[str, float]:
    arr = _values(values)
    if len(arr) == 0:
        return {"mean": 0.0, "median": 0.0, "std_dev": 0.0, "min": 0.0, "max": 0.0}
    return {
        "mean": float(arr.mean()),
        "median": float(np.median(arr)),
        "std_dev": float(arr.std()),
        "min": float(arr.min()),
        "max": float(arr.max()),
    }


def confidence_interval(values: Sequence[Optional[float]], z: float = 1.96) -> Tuple[float, float, float]:
    """(mean, lower, upper) with margin z * s / sqrt(n), s the sample standard deviation."""
    arr = _values(values)
    if len(arr) == 0:
        return 0.0, 0.0, 0.0
    m = float(arr.mean())
    margin = z * sample_standard_deviation(arr) / math.sqrt(len(arr))
    return m, m - margin, m + margin


def confidence_band(cohort: List[Participant], field: str, z: float = 1.96) -> List[Dict[str, float]]:
    """Mean and confidence bounds of a vital across participants at each measurement index."""
    df = measurements_frame(cohort)
    column = field_name(field)
    if df.empty or column not in df.columns:
        return []
    out = []
    for index, g in df.groupby("index", sort=True):
        m, lower, upper = confidence_interval(g[column].dropna().tolist(), z=z)
        out.append({"index": int(index), "n": int(g[column].notna().sum()), "mean": m, "lower": lower, "upper": upper})
    return out


# ---------------------------
# Correlation / regression
# ---------------------------

def _paired(x: Sequence[float], y: Sequence[float]) -> Tuple[np.ndarray, np.ndarray]:
    if len(x) != len(y):
        raise ValueError(f"x and y must have the same length ({len(x)} != {len(y)})")
    return np.asarray(x, dtype=float), np.asarray(y, dtype=float)


def correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson r; 0 when either series is empty or has zero variance."""
    xs, ys = _paired(x, y)
    if len(xs) == 0:
        return 0.0
    dx = xs - xs.mean()
    dy = ys - ys.mean()
    sxx = float(np.sum(dx * dx))
    syy = float(np.sum(dy * dy))
    if sxx == 0.0 or syy == 0.0:
        return 0.0
    r = float(np.sum(dx * dy)) / math.sqrt(sxx * syy)
    return max(-1.0, min(1.0, r))


def classify_correlation(r: float) -> str:
    strength = abs(r)
    if strength < 0.3:
        return "weak"
    if strength < 0.7:
        return "moderate"
    return "strong"


@dataclass(frozen=True)
class RegressionResult:
    slope: float
    intercept: float
    r_squared: float
    n: int

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


def linear_regression(x: Sequence[float], y: Sequence[float]) -> RegressionResult:
    """
    Ordinary least squares y = slope * x + intercept.
    n == 0 gives (0, 0); a single point or constant x gives slope 0 and
    intercept mean(y).
    """
    xs, ys = _paired(x, y)
    n = len(xs)
    if n == 0:
        return RegressionResult(slope=0.0, intercept=0.0, r_squared=0.0, n=0)

    dx = xs - xs.mean()
    sxx = float(np.sum(dx * dx))
    if n == 1 or sxx == 0.0:
        return RegressionResult(slope=0.0, intercept=float(ys.mean()), r_squared=0.0, n=n)

    slope = float(np.sum(dx * (ys - ys.mean()))) / sxx
    intercept = float(ys.mean()) - slope * float(xs.mean())
    r = correlation(xs, ys)
    return RegressionResult(slope=slope, intercept=intercept, r_squared=r * r, n=n)


# ---------------------------
# Grouped aggregates
# ---------------------------

def _group(cohort: List[Participant], key: str) -> Dict[str, List[Participant]]:
    # dict preserves first-seen category order
    groups: Dict[str, List[Participant]] = {}
    for p in cohort:
        groups.setdefault(str(getattr(p, field_name(key))), []).append(p)
    return groups


def group_counts(cohort: List[Participant], key: str) -> Dict[str, int]:
    return {name: len(items) for name, items in _group(cohort, key).items()}


def group_mean(cohort: List[Participant], key: str, value: Callable[[Participant], Optional[float]]) -> Dict[str, float]:
    out = {}
    for name, items in _group(cohort, key).items():
        out[name] = mean([value(p) for p in items])
    return out


def grouped_summary(cohort: List[Participant], key: str) -> List[Dict[str, object]]:
    rows = []
    for name, items in _group(cohort, key).items():
        improved = sum(1 for p in items if p.outcome == "Improved")
        rows.append(
            {
                "name": name,
                "count": len(items),
                "avg_risk_score": round(mean([p.risk_score for p in items]), 1),
                "avg_length_of_stay": round(mean([p.length_of_stay for p in items]), 1),
                "avg_readmission_risk": round(mean([p.readmission_risk for p in items]), 1),
                "improvement_rate": round(_ratio(improved, len(items)) * 100.0, 1),
            }
        )
    return rows


def treatment_effectiveness_by(cohort: List[Participant], key: str) -> Dict[str, float]:
    """Mean effectiveness of all treatments given within each group; 0 for groups without treatments."""
    out = {}
    for name, items in _group(cohort, key).items():
        out[name] = mean([t.effectiveness for p in items for t in p.treatments])
    return out


def rate(cohort: List[Participant], predicate: Callable[[Participant], bool]) -> float:
    """Percentage of participants matching predicate."""
    return _ratio(sum(1 for p in cohort if predicate(p)), len(cohort)) * 100.0


# ---------------------------
# Temporal trends
# ---------------------------

def monthly_vital_trends(cohort: List[Participant]) -> List[Dict[str, object]]:
    """Per calendar month: measurement count and the mean of each vital's non-null values."""
    df = measurements_frame(cohort)
    df = df[df["date"].notna()]
    if df.empty:
        return []
    df = df.assign(month=pd.to_datetime(df["date"]).dt.strftime("%Y-%m"))

    rows = []
    for month, g in df.groupby("month", sort=True):
        row: Dict[str, object] = {"month": month, "count": int(len(g))}
        for name in VITAL_FIELDS:
            series = g[name].dropna()
            row[name] = float(series.mean()) if len(series) else 0.0
        rows.append(row)
    return rows
