import logging
import math
from datetime import timedelta
from typing import Dict, List, Optional, Tuple

import numpy as np

from qidash.deep_phenotype import generate_deep_phenotype
from qidash.dependencies import apply_custom_dependencies
from qidash.missingness import apply_missingness
from qidash.models import (
    OUTCOMES,
    VARIABILITY_FACTORS,
    VITAL_FIELDS,
    Measurement,
    Participant,
    SimulationConfig,
    Treatment,
    risk_band,
)
from qidash.scenario import PATTERN_GROUPS, MeasurementPlan, build_measurement_plan

logger = logging.getLogger(__name__)


# ---------------------------
# Vocabularies
# ---------------------------

UNITS = ["Cardiology", "Neurology", "Oncology", "Emergency", "ICU", "General Medicine", "Orthopedics", "Pediatrics"]

# condition -> severity in [0, 1]
CONDITIONS: Dict[str, float] = {
    "Hypertension": 0.30,
    "Diabetes": 0.35,
    "Heart Disease": 0.60,
    "Stroke": 0.75,
    "Cancer": 0.70,
    "Respiratory Disease": 0.50,
    "Sepsis": 0.85,
    "Pneumonia": 0.55,
    "Renal Failure": 0.70,
    "Liver Disease": 0.60,
    "Gastrointestinal Bleeding": 0.55,
}

COMORBIDITIES = [
    "Obesity", "Smoking", "Alcohol Use", "Depression", "Anxiety", "Asthma", "COPD",
    "Kidney Disease", "Hypothyroidism", "Hyperlipidemia", "Dementia", "Osteoporosis",
    "Hypertension", "Diabetes", "Heart Disease",
]

TREATMENTS = [
    "Medication A", "Medication B", "Medication C", "Medication D", "Medication E",
    "Physical Therapy", "Occupational Therapy", "Surgery", "Radiation", "Chemotherapy",
    "Counseling", "Respiratory Therapy", "Dialysis", "Blood Transfusion",
]

GENDERS = ["Male", "Female", "Other"]
GENDER_PROBS = [0.48, 0.48, 0.04]

# Outcome weights, in OUTCOMES order: Improved, Stable, Deteriorated, Transferred, Deceased
OUTCOME_WEIGHTS: Dict[str, List[float]] = {
    "balanced": [0.20, 0.20, 0.20, 0.20, 0.20],
    "positive": [0.40, 0.30, 0.12, 0.10, 0.08],
    "negative": [0.10, 0.15, 0.30, 0.15, 0.30],
}

RISK_BAND_MODIFIERS: Dict[str, List[float]] = {
    "low": [1.6, 1.3, 0.6, 0.8, 0.3],
    "moderate": [1.0, 1.0, 1.0, 1.0, 0.8],
    "high": [0.6, 0.8, 1.4, 1.2, 1.6],
}

OUTCOME_LOS_EXTRA = {"Improved": 0, "Stable": 1, "Deteriorated": 5, "Transferred": 2, "Deceased": 3}
OUTCOME_READMISSION_SHIFT = {"Improved": -8, "Stable": 0, "Deteriorated": 12, "Transferred": 6, "Deceased": 15}
OUTCOME_BADNESS = {"Improved": 0.10, "Stable": 0.35, "Transferred": 0.55, "Deteriorated": 0.75, "Deceased": 0.95}
OUTCOME_EFFECTIVENESS = {"Improved": 75, "Stable": 60, "Transferred": 45, "Deteriorated": 35, "Deceased": 25}


# vital -> (healthy value, direction of worsening, swing, noise sd, lo, hi, decimals)
VITAL_PROFILES: Dict[str, Tuple[float, int, float, float, float, float, int]] = {
    "blood_pressure_systolic": (120.0, 1, 25.0, 4.0, 70.0, 220.0, 0),
    "blood_pressure_diastolic": (80.0, 1, 15.0, 3.0, 40.0, 130.0, 0),
    "heart_rate": (75.0, 1, 20.0, 4.0, 40.0, 180.0, 0),
    "temperature": (36.8, 1, 1.2, 0.15, 35.0, 41.0, 1),
    "oxygen_saturation": (98.0, -1, 6.0, 1.0, 70.0, 100.0, 0),
    "pain": (1.0, 1, 5.0, 0.8, 0.0, 10.0, 0),
}

# condition -> baseline shift per vital
CONDITION_VITAL_SHIFTS: Dict[str, Dict[str, float]] = {
    "Hypertension": {"blood_pressure_systolic": 18.0, "blood_pressure_diastolic": 10.0},
    "Heart Disease": {"heart_rate": 10.0, "blood_pressure_systolic": 8.0},
    "Sepsis": {"temperature": 1.2, "heart_rate": 18.0, "blood_pressure_systolic": -15.0},
    "Pneumonia": {"temperature": 0.8, "oxygen_saturation": -4.0},
    "Respiratory Disease": {"oxygen_saturation": -5.0, "heart_rate": 6.0},
    "Cancer": {"pain": 2.0},
    "Gastrointestinal Bleeding": {"heart_rate": 12.0, "blood_pressure_systolic": -10.0},
}


# ---------------------------
# Helpers
# ---------------------------

def _clamp(x: float, lo: float, hi: float) -> float:
    return float(min(max(x, lo), hi))


def _pick_weighted(rng: np.random.Generator, items: List[str], probs: List[float]) -> str:
    p = np.array(probs, dtype=float)
    p = p / p.sum()
    return str(rng.choice(items, p=p))


def _round(value: float, decimals: int):
    return int(round(value)) if decimals == 0 else round(value, decimals)


# ---------------------------
# Participant-level draws
# ---------------------------

def _risk_score(rng: np.random.Generator, severity: float, age: int) -> float:
    raw = rng.normal(15.0 + 60.0 * severity + (age - 50) * 0.25, 15.0)
    return round(_clamp(raw, 0.0, 100.0), 1)


def _outcome(rng: np.random.Generator, distribution: str, risk_score: float) -> str:
    base = OUTCOME_WEIGHTS[distribution]
    modifiers = RISK_BAND_MODIFIERS[risk_band(risk_score)]
    return _pick_weighted(rng, list(OUTCOMES), [b * m for b, m in zip(base, modifiers)])


def _length_of_stay(rng: np.random.Generator, severity: float, risk_score: float, outcome: str) -> int:
    expected = 2.0 + 10.0 * severity + risk_score / 12.0 + OUTCOME_LOS_EXTRA[outcome]
    return int(min(max(rng.poisson(expected), 1), 60))


def _readmission_risk(rng: np.random.Generator, risk_score: float, outcome: str) -> float:
    raw = 0.55 * risk_score + OUTCOME_READMISSION_SHIFT[outcome] + rng.normal(10.0, 10.0)
    return round(_clamp(raw, 0.0, 100.0), 1)


def _comorbidities(rng: np.random.Generator, condition: str) -> List[str]:
    pool = [c for c in COMORBIDITIES if c != condition]
    k = int(rng.integers(0, 5))
    if k == 0:
        return []
    return [str(c) for c in rng.choice(pool, size=k, replace=False)]


def _treatments(rng: np.random.Generator, plan: MeasurementPlan, outcome: str) -> List[Treatment]:
    stay_days = max((plan.reference_date - plan.admission_date).days, 0)
    out = []
    for _ in range(int(rng.integers(1, 6))):
        start = plan.admission_date + timedelta(days=int(rng.integers(0, min(5, stay_days) + 1)))
        end = None
        if rng.random() > 0.3:
            end = start + timedelta(days=int(rng.integers(1, 22)))
        effectiveness = _clamp(rng.normal(OUTCOME_EFFECTIVENESS[outcome], 15.0), 0.0, 100.0)
        out.append(
            Treatment(
                name=str(rng.choice(TREATMENTS)),
                start_date=start,
                end_date=end,
                effectiveness=round(effectiveness, 1),
            )
        )
    return out


# ---------------------------
# Vital-sign trajectories
# ---------------------------

def _baseline_vitals(rng: np.random.Generator, condition: str, risk_score: float) -> Dict[str, float]:
    shifts = CONDITION_VITAL_SHIFTS.get(condition, {})
    prof = {}
    for name in VITAL_FIELDS:
        healthy, sign, swing, _, lo, hi, _ = VITAL_PROFILES[name]
        severity = risk_score / 100.0 * rng.uniform(0.5, 1.2)
        value = healthy + sign * swing * severity + shifts.get(name, 0.0) + rng.normal(0.0, swing * 0.3)
        prof[name] = _clamp(value, lo, hi)
    return prof


def _trend_value(name: str, base: float, progress: float, pattern: str, variability: float) -> float:
    healthy, sign, swing, _, _, _, _ = VITAL_PROFILES[name]
    if pattern == "improving":
        return base + (healthy - base) * min(0.7 * progress * variability, 1.0)
    if pattern == "deteriorating":
        return base + sign * swing * 0.6 * progress * variability
    if pattern == "fluctuating":
        return base + math.sin(progress * 10.0) * 0.3 * swing * variability
    if pattern == "cyclic":
        return base + math.sin(progress * 5.0) * 0.4 * swing * variability
    return base


def generate_measurements(
    rng: np.random.Generator,
    plan: MeasurementPlan,
    baseline: Dict[str, float],
    variability: float,
) -> List[Measurement]:
    """Vitals drift from the baseline along the plan's trend patterns, plus per-step noise."""
    count = len(plan.timestamps)
    rows = []
    for j, ts in enumerate(plan.timestamps):
        progress = j / (count - 1) if count > 1 else 0.0
        values = {}
        for name in VITAL_FIELDS:
            _, _, _, noise_sd, lo, hi, decimals = VITAL_PROFILES[name]
            pattern = plan.patterns[PATTERN_GROUPS[name]]
            value = _trend_value(name, baseline[name], progress, pattern, variability)
            value += rng.normal(0.0, noise_sd * variability)
            values[name] = _round(_clamp(value, lo, hi), decimals)
        rows.append(Measurement(date=ts, **values))
    return rows


# ---------------------------
# Cohort generator
# ---------------------------

def generate_participant(rng: np.random.Generator, cfg: SimulationConfig, index: int) -> Participant:
    age = int(rng.integers(cfg.min_age, cfg.max_age + 1))
    gender = _pick_weighted(rng, GENDERS, GENDER_PROBS)
    unit = str(rng.choice(UNITS))
    condition = str(rng.choice(list(CONDITIONS)))
    severity = CONDITIONS[condition]

    risk_score = _risk_score(rng, severity, age)
    outcome = _outcome(rng, cfg.outcome_distribution, risk_score)
    length_of_stay = _length_of_stay(rng, severity, risk_score, outcome)
    readmission_risk = _readmission_risk(rng, risk_score, outcome)

    plan = build_measurement_plan(rng, cfg, length_of_stay, outcome)
    variability = VARIABILITY_FACTORS[cfg.data_variability]
    measurements = generate_measurements(rng, plan, _baseline_vitals(rng, condition, risk_score), variability)
    if cfg.include_missing_data:
        measurements = apply_missingness(rng, measurements, float(cfg.missing_data_probability))

    participant = Participant(
        id=f"P{str(index + 1).zfill(4)}",
        age=age,
        gender=gender,
        unit=unit,
        condition=condition,
        risk_score=risk_score,
        outcome=outcome,
        length_of_stay=length_of_stay,
        readmission_risk=readmission_risk,
        measurements=measurements,
        treatments=_treatments(rng, plan, outcome),
        admission_date=plan.admission_date,
    )
    if cfg.include_comorbidities:
        participant.comorbidities = _comorbidities(rng, condition)
    if cfg.enable_deep_phenotyping:
        badness = 0.6 * risk_score / 100.0 + 0.4 * OUTCOME_BADNESS[outcome]
        participant.deep_phenotype = generate_deep_phenotype(rng, badness)
    return participant


def generate_cohort(
    cfg: SimulationConfig,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
) -> List[Participant]:
    """
    Build cfg.num_participants participants in index order (P0001, P0002, ...).
    The same seed reproduces the same cohort. Raises ConfigurationError
    before drawing anything if cfg is invalid.
    """
    cfg.validate()
    if rng is None:
        rng = np.random.default_rng(seed)

    logger.info(
        "Generating %d participants (%s frequency, %s patterns, missing=%s)",
        cfg.num_participants,
        cfg.measurement_frequency,
        cfg.time_patterns,
        cfg.include_missing_data,
    )
    participants = [generate_participant(rng, cfg, i) for i in range(cfg.num_participants)]

    if cfg.custom_dependencies:
        logger.info("Applying %d custom dependencies", len(cfg.custom_dependencies))
        bounds = {"age": (cfg.min_age, cfg.max_age)}
        participants = [apply_custom_dependencies(rng, p, cfg.custom_dependencies, bounds) for p in participants]

    return participants
