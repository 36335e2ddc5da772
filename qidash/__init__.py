"""Synthetic quality-improvement cohort engine."""
from qidash.errors import ConfigurationError, QIDashError, ValidationError
from qidash.imputation import ImputationOptions, ImputationStrategy, impute
from qidash.missingness import missingness_by_field
from qidash.models import Measurement, Participant, SimulationConfig
from qidash.simulation import generate_cohort
from qidash.store import CohortStore

__version__ = "0.1.0"

__all__ = [
    "CohortStore",
    "ConfigurationError",
    "ImputationOptions",
    "ImputationStrategy",
    "Measurement",
    "Participant",
    "QIDashError",
    "SimulationConfig",
    "ValidationError",
    "generate_cohort",
    "impute",
    "missingness_by_field",
]
