"""Participant, measurement and simulation config records.

Attribute names are snake_case. ``to_dict``/``from_dict`` speak the camelCase
JSON used by the dashboard and by imported cohort files.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time
from numbers import Integral, Real
from typing import Any, Dict, List, Optional, Tuple

from qidash.deep_phenotype import DeepPhenotype, camel_case, snake_case
from qidash.errors import ConfigurationError


VITAL_FIELDS: Tuple[str, ...] = (
    "blood_pressure_systolic",
    "blood_pressure_diastolic",
    "heart_rate",
    "temperature",
    "oxygen_saturation",
    "pain",
)

VITAL_LABELS: Dict[str, str] = {
    "blood_pressure_systolic": "Blood Pressure",
    "blood_pressure_diastolic": "Diastolic Pressure",
    "heart_rate": "Heart Rate",
    "temperature": "Temperature",
    "oxygen_saturation": "Oxygen Saturation",
    "pain": "Pain Level",
}

OUTCOMES: Tuple[str, ...] = ("Improved", "Stable", "Deteriorated", "Transferred", "Deceased")

FREQUENCY_RANGES: Dict[str, Tuple[int, int]] = {
    "low": (3, 7),
    "medium": (7, 14),
    "high": (14, 30),
}

VARIABILITY_FACTORS: Dict[str, float] = {
    "low": 0.7,
    "medium": 1.0,
    "high": 1.5,
}

TIME_PATTERN_MODES = ("random", "realistic")
OUTCOME_DISTRIBUTIONS = ("balanced", "positive", "negative")


def _is_int(value: Any) -> bool:
    return isinstance(value, Integral) and not isinstance(value, bool)


def risk_band(score: float) -> str:
    if score < 30:
        return "low"
    if score < 70:
        return "moderate"
    return "high"


def field_name(name: str) -> str:
    """Normalize ``bloodPressureSystolic`` style names to attribute names."""
    return snake_case(name)


def _get(d: Dict[str, Any], name: str, default: Any = None) -> Any:
    if name in d:
        return d[name]
    return d.get(camel_case(name), default)


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_date(value: Any) -> Optional[date]:
    dt = parse_datetime(value)
    return dt.date() if dt is not None else None


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class Measurement:
    date: Optional[datetime]
    blood_pressure_systolic: Optional[float] = None
    blood_pressure_diastolic: Optional[float] = None
    heart_rate: Optional[float] = None
    temperature: Optional[float] = None
    oxygen_saturation: Optional[float] = None
    pain: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"date": _iso(self.date)}
        for name in VITAL_FIELDS:
            out[camel_case(name)] = getattr(self, name)
        return out

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Measurement":
        values = {name: _get(d, name) for name in VITAL_FIELDS}
        return cls(date=parse_datetime(_get(d, "date")), **values)


@dataclass
class Treatment:
    name: str
    start_date: Optional[date]
    end_date: Optional[date] = None
    effectiveness: float = 0.0

    @property
    def is_ongoing(self) -> bool:
        return self.end_date is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "startDate": _iso(self.start_date),
            "endDate": _iso(self.end_date),
            "effectiveness": self.effectiveness,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Treatment":
        return cls(
            name=str(d.get("name", "")),
            start_date=parse_date(_get(d, "start_date")),
            end_date=parse_date(_get(d, "end_date")),
            effectiveness=float(d.get("effectiveness") or 0.0),
        )


@dataclass
class Participant:
    id: str
    age: int
    gender: str
    unit: str
    condition: str
    risk_score: float
    outcome: str
    length_of_stay: int
    readmission_risk: float
    measurements: List[Measurement] = field(default_factory=list)
    treatments: List[Treatment] = field(default_factory=list)
    comorbidities: Optional[List[str]] = None
    deep_phenotype: Optional[DeepPhenotype] = None
    admission_date: Optional[date] = None
    derived: Dict[str, float] = field(default_factory=dict)

    @property
    def risk_band(self) -> str:
        return risk_band(self.risk_score)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "age": self.age,
            "gender": self.gender,
            "unit": self.unit,
            "condition": self.condition,
            "riskScore": self.risk_score,
            "outcome": self.outcome,
            "lengthOfStay": self.length_of_stay,
            "readmissionRisk": self.readmission_risk,
            "measurements": [m.to_dict() for m in self.measurements],
            "treatments": [t.to_dict() for t in self.treatments],
        }
        if self.comorbidities is not None:
            out["comorbidities"] = list(self.comorbidities)
        if self.deep_phenotype is not None:
            out["deepPhenotype"] = self.deep_phenotype.to_dict()
        if self.admission_date is not None:
            out["admissionDate"] = self.admission_date.isoformat()
        if self.derived:
            out["derived"] = dict(self.derived)
        return out

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Participant":
        deep = _get(d, "deep_phenotype")
        comorbidities = d.get("comorbidities")
        return cls(
            id=str(d["id"]),
            age=int(d["age"]),
            gender=str(d.get("gender", "")),
            unit=str(d.get("unit", "")),
            condition=str(d.get("condition", "")),
            risk_score=float(_get(d, "risk_score", 0.0) or 0.0),
            outcome=str(d.get("outcome", "")),
            length_of_stay=int(_get(d, "length_of_stay", 0) or 0),
            readmission_risk=float(_get(d, "readmission_risk", 0.0) or 0.0),
            measurements=[Measurement.from_dict(m) for m in d.get("measurements", [])],
            treatments=[Treatment.from_dict(t) for t in d.get("treatments", [])],
            comorbidities=list(comorbidities) if comorbidities is not None else None,
            deep_phenotype=DeepPhenotype.from_dict(deep) if isinstance(deep, dict) else None,
            admission_date=parse_date(_get(d, "admission_date")),
            derived={str(k): float(v) for k, v in (d.get("derived") or {}).items()},
        )


@dataclass(frozen=True)
class DependencyRelation:
    """target = sum(coefficient * predictor) + uniform noise of +/- noise_level * |value|."""
    target_variable: str
    depends_on: Tuple[str, ...]
    coefficients: Tuple[float, ...] = ()
    noise_level: float = 0.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DependencyRelation":
        return cls(
            target_variable=str(_get(d, "target_variable", "")),
            depends_on=tuple(_get(d, "depends_on", ()) or ()),
            coefficients=tuple(float(c) for c in d.get("coefficients", ()) or ()),
            noise_level=float(_get(d, "noise_level", 0.0) or 0.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "targetVariable": self.target_variable,
            "dependsOn": list(self.depends_on),
            "coefficients": list(self.coefficients),
            "noiseLevel": self.noise_level,
        }


@dataclass
class SimulationConfig:
    num_participants: int = 50
    start_date: date = date(2023, 1, 1)
    end_date: date = date(2023, 12, 31)
    include_comorbidities: bool = True
    include_missing_data: bool = False
    missing_data_probability: float = 0.05
    measurement_frequency: str = "medium"
    time_patterns: str = "realistic"
    data_variability: str = "medium"
    outcome_distribution: str = "balanced"
    enable_deep_phenotyping: bool = False
    min_age: int = 18
    max_age: int = 90
    custom_dependencies: Tuple[DependencyRelation, ...] = ()

    def validate(self) -> None:
        """Raise ConfigurationError describing the first invalid setting."""
        if not _is_int(self.num_participants):
            raise ConfigurationError(f"numParticipants must be an integer, got {self.num_participants!r}")
        if self.num_participants <= 0:
            raise ConfigurationError(f"numParticipants must be positive, got {self.num_participants}")
        if not isinstance(self.start_date, date) or not isinstance(self.end_date, date):
            raise ConfigurationError("startDate and endDate must be dates")
        if as_date(self.end_date) < as_date(self.start_date):
            raise ConfigurationError(
                f"endDate {as_date(self.end_date).isoformat()} is before startDate {as_date(self.start_date).isoformat()}"
            )
        probability = self.missing_data_probability
        if isinstance(probability, bool) or not isinstance(probability, Real):
            raise ConfigurationError(f"missingDataProbability must be a number, got {probability!r}")
        if not 0.0 <= float(probability) <= 1.0:
            raise ConfigurationError(f"missingDataProbability must be within [0, 1], got {probability}")
        for name, allowed in (
            ("measurement_frequency", FREQUENCY_RANGES),
            ("data_variability", VARIABILITY_FACTORS),
            ("time_patterns", TIME_PATTERN_MODES),
            ("outcome_distribution", OUTCOME_DISTRIBUTIONS),
        ):
            value = getattr(self, name)
            if not isinstance(value, str) or value not in allowed:
                raise ConfigurationError(f"Unknown {camel_case(name)} {value!r}")
        if not _is_int(self.min_age) or not _is_int(self.max_age):
            raise ConfigurationError(f"minAge and maxAge must be integers, got {self.min_age!r}, {self.max_age!r}")
        if not 0 <= self.min_age <= self.max_age:
            raise ConfigurationError(f"Invalid age bounds {self.min_age}-{self.max_age}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "numParticipants": self.num_participants,
            "startDate": as_date(self.start_date).isoformat(),
            "endDate": as_date(self.end_date).isoformat(),
            "includeComorbidities": self.include_comorbidities,
            "includeMissingData": self.include_missing_data,
            "missingDataProbability": self.missing_data_probability,
            "measurementFrequency": self.measurement_frequency,
            "timePatterns": self.time_patterns,
            "dataVariability": self.data_variability,
            "outcomeDistribution": self.outcome_distribution,
            "enableDeepPhenotyping": self.enable_deep_phenotyping,
            "minAge": self.min_age,
            "maxAge": self.max_age,
            "customDependencies": [dep.to_dict() for dep in self.custom_dependencies],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SimulationConfig":
        defaults = cls()
        kwargs: Dict[str, Any] = {}
        for name in (
            "num_participants",
            "include_comorbidities",
            "include_missing_data",
            "missing_data_probability",
            "measurement_frequency",
            "time_patterns",
            "data_variability",
            "outcome_distribution",
            "enable_deep_phenotyping",
            "min_age",
            "max_age",
        ):
            value = _get(d, name)
            if value is not None:
                kwargs[name] = value
        for name in ("start_date", "end_date"):
            raw = _get(d, name)
            if raw is not None:
                parsed = parse_date(raw)
                if parsed is None:
                    raise ConfigurationError(f"Invalid {camel_case(name)}: {raw!r}")
                kwargs[name] = parsed
        deps = _get(d, "custom_dependencies") or ()
        kwargs["custom_dependencies"] = tuple(
            dep if isinstance(dep, DependencyRelation) else DependencyRelation.from_dict(dep) for dep in deps
        )
        return cls(**{**defaults.__dict__, **kwargs})


def as_date(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value
