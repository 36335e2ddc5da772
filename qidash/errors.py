from typing import List, Optional


class QIDashError(Exception):
    """Base class for errors raised by the cohort engine."""


class ConfigurationError(QIDashError, ValueError):
    """Invalid SimulationConfig. Generation does not start."""


class ValidationError(QIDashError, ValueError):
    """Malformed imported cohort. Nothing is imported."""

    def __init__(self, message: str, issues: Optional[List[str]] = None):
        super().__init__(message)
        self.issues = list(issues or [])
