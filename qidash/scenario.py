from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Dict, Tuple

import numpy as np

from qidash.models import FREQUENCY_RANGES, SimulationConfig, as_date


TREND_PATTERNS: Tuple[str, ...] = ("improving", "deteriorating", "fluctuating", "stable", "cyclic")

# Vitals that share a trend: systolic and diastolic follow one blood pressure pattern.
PATTERN_GROUPS: Dict[str, str] = {
    "blood_pressure_systolic": "blood_pressure",
    "blood_pressure_diastolic": "blood_pressure",
    "heart_rate": "heart_rate",
    "temperature": "temperature",
    "oxygen_saturation": "oxygen_saturation",
    "pain": "pain",
}


@dataclass(frozen=True)
class MeasurementPlan:
    admission_date: date
    reference_date: date  # the participant's "today"
    timestamps: Tuple[datetime, ...]
    patterns: Dict[str, str]  # pattern group -> trend pattern


def outcome_patterns(outcome: str) -> Dict[str, str]:
    if outcome == "Improved":
        pattern = "improving"
    elif outcome in ("Deteriorated", "Deceased"):
        pattern = "deteriorating"
    else:
        pattern = "stable"
    return {group: pattern for group in sorted(set(PATTERN_GROUPS.values()))}


def _random_patterns(rng: np.random.Generator) -> Dict[str, str]:
    return {group: str(rng.choice(TREND_PATTERNS)) for group in sorted(set(PATTERN_GROUPS.values()))}


def _reference_date(rng: np.random.Generator, start: date, end: date, length_of_stay: int) -> date:
    # Prefer a reference date that leaves room for the whole stay inside the window.
    earliest = min(start + timedelta(days=length_of_stay), end)
    span = (end - earliest).days
    offset = int(rng.integers(0, span + 1)) if span > 0 else 0
    return earliest + timedelta(days=offset)


def _timestamps(
    rng: np.random.Generator,
    admission: date,
    reference: date,
    count: int,
    jitter: bool,
) -> Tuple[datetime, ...]:
    begin = datetime.combine(admission, time.min)
    total = (datetime.combine(reference, time.min) - begin).total_seconds()
    if count == 1 or total <= 0:
        offsets = np.zeros(count)
    else:
        offsets = np.linspace(0.0, total, count)
        if jitter:
            step = total / (count - 1)
            offsets = offsets + rng.uniform(-step / 2.0, step / 2.0, size=count)
            offsets = np.sort(np.clip(offsets, 0.0, total))
    return tuple(begin + timedelta(seconds=int(s)) for s in offsets)


def build_measurement_plan(
    rng: np.random.Generator,
    cfg: SimulationConfig,
    length_of_stay: int,
    outcome: str,
) -> MeasurementPlan:
    """
    Per participant:
      - reference_date: drawn from [startDate, endDate], late enough to hold the stay when possible
      - admission_date: reference_date - lengthOfStay, never before startDate
      - timestamps: frequency-tier count, evenly spaced (realistic) or jittered (random), chronological
      - patterns: outcome-linked trends (realistic) or a random trend per vital group (random)
    """
    start, end = as_date(cfg.start_date), as_date(cfg.end_date)
    reference = _reference_date(rng, start, end, length_of_stay)
    admission = max(reference - timedelta(days=length_of_stay), start)

    lo, hi = FREQUENCY_RANGES[cfg.measurement_frequency]
    count = int(rng.integers(lo, hi + 1))

    realistic = cfg.time_patterns == "realistic"
    timestamps = _timestamps(rng, admission, reference, count, jitter=not realistic)
    patterns = outcome_patterns(outcome) if realistic else _random_patterns(rng)

    return MeasurementPlan(
        admission_date=admission,
        reference_date=reference,
        timestamps=timestamps,
        patterns=patterns,
    )

