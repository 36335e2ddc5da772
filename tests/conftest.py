"""Shared fixtures for cohort engine tests."""

from datetime import datetime, timedelta

import pytest

from qidash.models import Measurement, Participant, SimulationConfig


def make_measurements(series, start=datetime(2023, 3, 1, 8, 0)):
    """Build measurements from a dict of field -> list of values (None = missing)."""
    length = max(len(v) for v in series.values())
    out = []
    for i in range(length):
        values = {name: column[i] for name, column in series.items()}
        out.append(Measurement(date=start + timedelta(days=i), **values))
    return out


def make_participant(pid="P0001", measurements=None, **overrides):
    fields = dict(
        id=pid,
        age=60,
        gender="Female",
        unit="Cardiology",
        condition="Heart Disease",
        risk_score=45.0,
        outcome="Stable",
        length_of_stay=5,
        readmission_risk=25.0,
        measurements=measurements or [],
        treatments=[],
    )
    fields.update(overrides)
    return Participant(**fields)


@pytest.fixture
def small_config():
    return SimulationConfig(num_participants=12)


@pytest.fixture
def gappy_cohort():
    """Two participants with missing heart rate and temperature values."""
    first = make_participant(
        "P0001",
        make_measurements(
            {
                "heart_rate": [80, None, 100, None],
                "temperature": [37.0, 37.5, None, 38.0],
                "pain": [2, 2, 2, 2],
            }
        ),
    )
    second = make_participant(
        "P0002",
        make_measurements(
            {
                "heart_rate": [None, 70, None],
                "temperature": [None, None, None],
                "pain": [5, None, 3],
            }
        ),
        condition="Diabetes",
        unit="ICU",
        outcome="Improved",
    )
    return [first, second]
