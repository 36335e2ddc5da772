"""Deep phenotyping block: process, PRO, medication, utilization, cost, coordination,
provider, system, disease, functional, social and risk-factor variables.

The block is a typed tree of dataclasses. Patient-level scores are drawn around
a position set by the participant's "badness" (0 = best, 1 = worst), so higher
risk and worse outcomes give worse functional scores and higher frailty.
Provider and system factors describe the care setting and do not follow badness.
"""
import dataclasses
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)


RACES = ["White", "Black", "Hispanic", "Asian", "Native American", "Pacific Islander", "Other"]
SOCIOECONOMIC_STATUS = ["Low", "Lower-Middle", "Middle", "Upper-Middle", "High"]
INSURANCE_TYPES = ["Private", "Medicare", "Medicaid", "None", "Other Government", "Mixed"]
LANGUAGES = ["English", "Spanish", "Mandarin", "French", "Arabic", "Hindi", "Russian", "Other"]
EDUCATION_LEVELS = [
    "Less than High School",
    "High School",
    "Some College",
    "Associate's Degree",
    "Bachelor's Degree",
    "Graduate Degree",
]
GEOGRAPHIC_LOCATIONS = ["Urban", "Suburban", "Rural", "Remote"]
TELEHEALTH_UTILIZATION = ["None", "Low", "Moderate", "High"]

# Categorical scales below are ordered best -> worst.
MEDICATION_RECONCILIATION = ["Complete", "Partial", "Not Performed"]
ADHERENCE_TO_GUIDELINES = ["High", "Moderate", "Low"]
PREVENTIVE_CARE_COMPLIANCE = ["Complete", "Partial", "Non-compliant"]
DIAGNOSTIC_USE_APPROPRIATENESS = ["Appropriate", "Questionable", "Inappropriate"]
FOLLOW_UP_ATTENDANCE = ["Complete", "Partial", "Missed"]

POLYPHARMACY_STATUS = ["None", "Low", "Moderate", "High"]
APPROPRIATE_PRESCRIBING = ["Appropriate", "Suboptimal", "Inappropriate"]
RESOURCE_UTILIZATION = ["Low", "Average", "High", "Very High"]

COORDINATION_EFFECTIVENESS = ["Excellent", "Good", "Fair", "Poor"]
TRANSITION_QUALITY = ["Smooth", "Adequate", "Problematic", "Failed"]
INFORMATION_TRANSFER = ["Complete", "Partial", "Incomplete", "Missing"]

TEAM_COMMUNICATION = ["Excellent", "Good", "Fair", "Poor"]
PROVIDER_CONTINUITY = ["High", "Moderate", "Low"]
BEST_PRACTICE_ADOPTION = ["Leader", "Early Adopter", "Average", "Laggard"]

HIT_UTILIZATION = ["Advanced", "Moderate", "Basic", "Minimal"]
DECISION_SUPPORT_EFFECTIVENESS = ["High", "Moderate", "Low", "Not Used"]
PATIENT_ACCESS = ["Excellent", "Good", "Fair", "Poor"]
SAFETY_CULTURE = ["Excellent", "Good", "Fair", "Poor"]

HOUSING_STABILITY = ["Stable", "At Risk", "Unstable", "Homeless"]
FOOD_SECURITY = ["Secure", "At Risk", "Insecure", "Severe Insecurity"]
EMPLOYMENT_STATUS = ["Full-time", "Part-time", "Unemployed", "Retired", "Disabled"]
TRANSPORTATION_ACCESS = ["Good", "Limited", "Poor", "None"]
SOCIAL_SUPPORT = ["Strong", "Moderate", "Limited", "None"]
FINANCIAL_STRAIN = ["None", "Low", "Moderate", "High"]

SMOKING_STATUS = ["Never", "Former", "Current - Light", "Current - Heavy"]
ALCOHOL_USE = ["None", "Social", "Moderate", "Heavy"]
PHYSICAL_ACTIVITY = ["High", "Moderate", "Low", "Sedentary"]
NUTRITIONAL_STATUS = ["Excellent", "Good", "Fair", "Poor"]
SLEEP_QUALITY = ["Excellent", "Good", "Fair", "Poor"]
STRESS_LEVELS = ["Low", "Moderate", "High", "Severe"]

# (low, high) ranges of every numeric variable.
SCORE_RANGES: Dict[str, Tuple[float, float]] = {
    "time_to_treatment": (10, 1440),  # minutes
    "quality_of_life_score": (1, 100),
    "patient_satisfaction_score": (1, 10),
    "patient_activation_level": (1, 4),
    "symptom_burden": (0, 10),
    "adl_score": (0, 100),
    "mental_health_score": (0, 100),
    "medication_adherence_rate": (0, 100),
    "adverse_drug_event_risk": (0, 100),
    "treatment_completion_rate": (0, 100),
    "ed_visits_per_year": (0, 10),
    "hospitalizations_per_year": (0, 5),
    "primary_care_visits_per_year": (0, 12),
    "specialist_referrals": (0, 8),
    "total_cost_of_care": (500, 50000),
    "cost_per_episode": (100, 20000),
    "time_to_follow_up": (1, 90),  # days
    "provider_patient_ratio": (1, 40),
    "staff_satisfaction": (1, 10),
    "wait_times": (0, 120),  # days
    "hba1c": (4.0, 14.0),
    "lipid_ldl": (50, 250),
    "lipid_hdl": (20, 90),
    "fev1_percentage": (30, 120),
    "depression_phq9": (0, 27),
    "physical_function": (0, 100),
    "mobility": (0, 100),
    "adl_independence": (0, 100),
    "cognitive_function": (0, 100),
    "frailty_index": (0.0, 1.0),
    "return_to_work_days": (0, 180),
}

# Key names used by exported cohorts that differ from the attribute names.
KEY_ALIASES: Dict[str, str] = {
    "disease_specific_measures": "disease_measures",
    "sdoh_factors": "social_determinants",
    "lipid_profile_ldl": "lipid_ldl",
    "lipid_profile_hdl": "lipid_hdl",
    "return_to_work": "return_to_work_days",
}


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub(r"_\1", name).lower()


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _canonical(key: str) -> str:
    name = snake_case(key)
    return KEY_ALIASES.get(name, name)


@dataclass
class ProcessMeasures:
    time_to_treatment: int
    medication_reconciliation: str
    adherence_to_guidelines: str
    preventive_care_compliance: str
    diagnostic_use_appropriateness: str
    follow_up_attendance: str


@dataclass
class PatientReported:
    quality_of_life_score: int
    patient_satisfaction_score: int
    patient_activation_level: int
    symptom_burden: int
    adl_score: int
    mental_health_score: int


@dataclass
class MedicationTreatment:
    medication_adherence_rate: int
    adverse_drug_event_risk: int
    polypharmacy_status: str
    appropriate_prescribing: str
    treatment_completion_rate: int


@dataclass
class Utilization:
    ed_visits_per_year: int
    hospitalizations_per_year: int
    primary_care_visits_per_year: int
    specialist_referrals: int
    tele_health_utilization: str


@dataclass
class CostResources:
    total_cost_of_care: int
    cost_per_episode: int
    resource_utilization: str


@dataclass
class CareCoordination:
    coordination_effectiveness: str
    transition_quality: str
    information_transfer: str
    time_to_follow_up: int


@dataclass
class ProviderFactors:
    provider_patient_ratio: int
    staff_satisfaction: int
    team_communication: str
    provider_continuity: str
    best_practice_adoption: str


@dataclass
class SystemFactors:
    hit_utilization: str
    decision_support_effectiveness: str
    patient_access: str
    wait_times: int
    safety_culture: str


@dataclass
class DiseaseMeasures:
    hba1c: float
    lipid_ldl: int
    lipid_hdl: int
    fev1_percentage: int
    depression_phq9: int


@dataclass
class FunctionalStatus:
    physical_function: int
    mobility: int
    adl_independence: int
    cognitive_function: int
    frailty_index: float
    return_to_work_days: int


@dataclass
class SocialDeterminants:
    housing_stability: str
    food_security: str
    employment_status: str
    transportation_access: str
    social_support: str
    financial_strain: str


@dataclass
class RiskFactors:
    smoking_status: str
    alcohol_use: str
    physical_activity: str
    nutritional_status: str
    sleep_quality: str
    stress_levels: str


@dataclass
class DeepPhenotype:
    race: str
    socioeconomic_status: str
    insurance_type: str
    primary_language: str
    education_level: str
    geographic_location: str
    process_measures: ProcessMeasures
    patient_reported: PatientReported
    medication_treatment: MedicationTreatment
    utilization: Utilization
    cost_resources: CostResources
    care_coordination: CareCoordination
    provider_factors: ProviderFactors
    system_factors: SystemFactors
    disease_measures: DiseaseMeasures
    functional_status: FunctionalStatus
    social_determinants: SocialDeterminants
    risk_factors: RiskFactors
    # keys that match no typed variable, kept as imported
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _to_camel_dict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DeepPhenotype":
        """Read nested (``patientReported``) or flat (``qualityOfLifeScore``) layouts.

        Absent variables become None; unrecognised keys land in ``extra``.
        """
        categories = _categories()
        buckets: Dict[str, Dict[str, Any]] = {name: {} for name in categories}
        top: Dict[str, Any] = {}
        extra: Dict[str, Any] = dict(d.get("extra") or {})

        for key, value in d.items():
            if key == "extra":
                continue
            name = _canonical(key)
            if name in categories and isinstance(value, dict):
                for sub_key, sub_value in value.items():
                    sub = _canonical(sub_key)
                    if sub in categories[name]:
                        buckets[name][sub] = sub_value
                    else:
                        extra[sub_key] = sub_value
            elif name in categories:
                extra[key] = value
            elif name in {f.name for f in dataclasses.fields(cls)}:
                top[name] = value
            elif category_of(name) is not None:
                buckets[category_of(name)][name] = value
            else:
                extra[key] = value

        if extra:
            logger.debug("Keeping %d unrecognised deep phenotype keys in extra", len(extra))

        kwargs: Dict[str, Any] = {}
        for f in dataclasses.fields(cls):
            if f.name in categories:
                kwargs[f.name] = _build(f.type, buckets[f.name])
            elif f.name == "extra":
                kwargs[f.name] = extra
            else:
                kwargs[f.name] = top.get(f.name)
        return cls(**kwargs)


def _to_camel_dict(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj):
        return {camel_case(f.name): _to_camel_dict(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, dict):
        return {k: _to_camel_dict(v) for k, v in obj.items()}
    return obj


def _categories() -> Dict[str, Tuple[str, ...]]:
    out = {}
    for f in dataclasses.fields(DeepPhenotype):
        if isinstance(f.type, type) and dataclasses.is_dataclass(f.type):
            out[f.name] = tuple(sub.name for sub in dataclasses.fields(f.type))
    return out


def _coerce(kind: Any, value: Any) -> Any:
    # exported files may carry numbers as strings ("7.2")
    if kind in (int, float) and isinstance(value, str):
        try:
            return kind(float(value)) if kind is int else float(value)
        except ValueError:
            return value
    return value


def _build(cls, values: Dict[str, Any]):
    return cls(**{f.name: _coerce(f.type, values.get(f.name)) for f in dataclasses.fields(cls)})


def category_of(name: str) -> Optional[str]:
    for category, names in _categories().items():
        if name in names:
            return category
    return None


def resolve_path(obj: Any, path: str) -> Optional[Any]:
    """Follow a dot path through dataclasses and mappings.

    Segments may be camelCase or snake_case. Returns None for any missing
    segment instead of raising.
    """
    current = obj
    for segment in path.split("."):
        if current is None or segment == "":
            return None
        if isinstance(current, dict):
            current = current[segment] if segment in current else current.get(snake_case(segment))
        elif dataclasses.is_dataclass(current):
            name = snake_case(segment)
            if name in {f.name for f in dataclasses.fields(current)}:
                current = getattr(current, name)
            elif isinstance(current, DeepPhenotype) and category_of(name) is not None:
                # flat names such as deepPhenotype.qualityOfLifeScore
                current = getattr(getattr(current, category_of(name)), name, None)
            else:
                # free-form values live in DeepPhenotype.extra / Participant.derived
                bucket = getattr(current, "extra", None) or getattr(current, "derived", None)
                current = bucket.get(segment) if isinstance(bucket, dict) else None
        else:
            return None
    return current


def _score(rng: np.random.Generator, name: str, badness: float, higher_is_better: bool = True,
           spread: float = 0.15, decimals: int = 0):
    lo, hi = SCORE_RANGES[name]
    position = (1.0 - badness) if higher_is_better else badness
    position = float(np.clip(position + rng.normal(0.0, spread), 0.0, 1.0))
    value = lo + (hi - lo) * position
    if decimals == 0:
        return int(round(value))
    return round(value, decimals)


def _ordinal(rng: np.random.Generator, scale, badness: float, spread: float = 0.25) -> str:
    # Picks along a best -> worst scale around the badness position.
    position = float(np.clip(badness + rng.normal(0.0, spread), 0.0, 0.999))
    return scale[int(position * len(scale))]


def _setting_score(rng: np.random.Generator, name: str) -> int:
    lo, hi = SCORE_RANGES[name]
    return int(rng.integers(lo, hi + 1))


def generate_deep_phenotype(rng: np.random.Generator, badness: float) -> DeepPhenotype:
    """Build a deep phenotype block.

    ``badness`` in [0, 1] combines risk score and outcome; scores move in the
    same direction as the primary clinical scores.
    """
    badness = float(np.clip(badness, 0.0, 1.0))

    return DeepPhenotype(
        race=str(rng.choice(RACES)),
        socioeconomic_status=str(rng.choice(SOCIOECONOMIC_STATUS)),
        insurance_type=str(rng.choice(INSURANCE_TYPES)),
        primary_language=str(rng.choice(LANGUAGES)),
        education_level=str(rng.choice(EDUCATION_LEVELS)),
        geographic_location=str(rng.choice(GEOGRAPHIC_LOCATIONS)),
        process_measures=ProcessMeasures(
            time_to_treatment=_score(rng, "time_to_treatment", badness, higher_is_better=False, spread=0.2),
            medication_reconciliation=_ordinal(rng, MEDICATION_RECONCILIATION, badness),
            adherence_to_guidelines=_ordinal(rng, ADHERENCE_TO_GUIDELINES, badness),
            preventive_care_compliance=_ordinal(rng, PREVENTIVE_CARE_COMPLIANCE, badness),
            diagnostic_use_appropriateness=_ordinal(rng, DIAGNOSTIC_USE_APPROPRIATENESS, badness, spread=0.35),
            follow_up_attendance=_ordinal(rng, FOLLOW_UP_ATTENDANCE, badness),
        ),
        patient_reported=PatientReported(
            quality_of_life_score=_score(rng, "quality_of_life_score", badness),
            patient_satisfaction_score=_score(rng, "patient_satisfaction_score", badness, spread=0.2),
            patient_activation_level=_score(rng, "patient_activation_level", badness, spread=0.2),
            symptom_burden=_score(rng, "symptom_burden", badness, higher_is_better=False),
            adl_score=_score(rng, "adl_score", badness),
            mental_health_score=_score(rng, "mental_health_score", badness, spread=0.2),
        ),
        medication_treatment=MedicationTreatment(
            medication_adherence_rate=_score(rng, "medication_adherence_rate", badness, spread=0.2),
            adverse_drug_event_risk=_score(rng, "adverse_drug_event_risk", badness, higher_is_better=False),
            polypharmacy_status=_ordinal(rng, POLYPHARMACY_STATUS, badness),
            appropriate_prescribing=_ordinal(rng, APPROPRIATE_PRESCRIBING, badness, spread=0.35),
            treatment_completion_rate=_score(rng, "treatment_completion_rate", badness, spread=0.2),
        ),
        utilization=Utilization(
            ed_visits_per_year=_score(rng, "ed_visits_per_year", badness, higher_is_better=False),
            hospitalizations_per_year=_score(rng, "hospitalizations_per_year", badness, higher_is_better=False),
            primary_care_visits_per_year=_score(rng, "primary_care_visits_per_year", badness, higher_is_better=False),
            specialist_referrals=_score(rng, "specialist_referrals", badness, higher_is_better=False),
            tele_health_utilization=str(rng.choice(TELEHEALTH_UTILIZATION)),
        ),
        cost_resources=CostResources(
            total_cost_of_care=_score(rng, "total_cost_of_care", badness, higher_is_better=False),
            cost_per_episode=_score(rng, "cost_per_episode", badness, higher_is_better=False, spread=0.2),
            resource_utilization=_ordinal(rng, RESOURCE_UTILIZATION, badness),
        ),
        care_coordination=CareCoordination(
            coordination_effectiveness=_ordinal(rng, COORDINATION_EFFECTIVENESS, badness, spread=0.35),
            transition_quality=_ordinal(rng, TRANSITION_QUALITY, badness, spread=0.35),
            information_transfer=_ordinal(rng, INFORMATION_TRANSFER, badness, spread=0.35),
            time_to_follow_up=_score(rng, "time_to_follow_up", badness, higher_is_better=False, spread=0.25),
        ),
        provider_factors=ProviderFactors(
            provider_patient_ratio=_setting_score(rng, "provider_patient_ratio"),
            staff_satisfaction=_setting_score(rng, "staff_satisfaction"),
            team_communication=str(rng.choice(TEAM_COMMUNICATION)),
            provider_continuity=str(rng.choice(PROVIDER_CONTINUITY)),
            best_practice_adoption=str(rng.choice(BEST_PRACTICE_ADOPTION)),
        ),
        system_factors=SystemFactors(
            hit_utilization=str(rng.choice(HIT_UTILIZATION)),
            decision_support_effectiveness=str(rng.choice(DECISION_SUPPORT_EFFECTIVENESS)),
            patient_access=str(rng.choice(PATIENT_ACCESS)),
            wait_times=_setting_score(rng, "wait_times"),
            safety_culture=str(rng.choice(SAFETY_CULTURE)),
        ),
        disease_measures=DiseaseMeasures(
            hba1c=_score(rng, "hba1c", badness, higher_is_better=False, spread=0.2, decimals=1),
            lipid_ldl=_score(rng, "lipid_ldl", badness, higher_is_better=False, spread=0.2),
            lipid_hdl=_score(rng, "lipid_hdl", badness, spread=0.2),
            fev1_percentage=_score(rng, "fev1_percentage", badness, spread=0.2),
            depression_phq9=_score(rng, "depression_phq9", badness, higher_is_better=False, spread=0.2),
        ),
        functional_status=FunctionalStatus(
            physical_function=_score(rng, "physical_function", badness),
            mobility=_score(rng, "mobility", badness),
            adl_independence=_score(rng, "adl_independence", badness),
            cognitive_function=_score(rng, "cognitive_function", badness, spread=0.2),
            frailty_index=_score(rng, "frailty_index", badness, higher_is_better=False, decimals=2),
            return_to_work_days=_score(rng, "return_to_work_days", badness, higher_is_better=False),
        ),
        social_determinants=SocialDeterminants(
            housing_stability=_ordinal(rng, HOUSING_STABILITY, badness),
            food_security=_ordinal(rng, FOOD_SECURITY, badness),
            employment_status=_ordinal(rng, EMPLOYMENT_STATUS, badness),
            transportation_access=_ordinal(rng, TRANSPORTATION_ACCESS, badness),
            social_support=_ordinal(rng, SOCIAL_SUPPORT, badness),
            financial_strain=_ordinal(rng, FINANCIAL_STRAIN, badness),
        ),
        risk_factors=RiskFactors(
            smoking_status=_ordinal(rng, SMOKING_STATUS, badness),
            alcohol_use=_ordinal(rng, ALCOHOL_USE, badness),
            physical_activity=_ordinal(rng, PHYSICAL_ACTIVITY, badness),
            nutritional_status=_ordinal(rng, NUTRITIONAL_STATUS, badness),
            sleep_quality=_ordinal(rng, SLEEP_QUALITY, badness),
            stress_levels=_ordinal(rng, STRESS_LEVELS, badness),
        ),
    )
