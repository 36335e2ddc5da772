"""Tests for imported cohort validation."""

import pytest

from qidash.errors import QIDashError, ValidationError
from qidash.validation import validate_records


def _record(**overrides):
    record = {
        "id": "X1",
        "age": 54,
        "gender": "Male",
        "unit": "ICU",
        "condition": "Sepsis",
        "riskScore": 81,
        "outcome": "Stable",
        "lengthOfStay": 6,
        "readmissionRisk": 40,
        "measurements": [{"date": "2023-04-01T10:00:00", "heartRate": 110}],
        "treatments": [],
    }
    record.update(overrides)
    return record


class TestValidateRecords:
    """Shape checks on imported data."""

    def test_valid_records_convert(self):
        cohort = validate_records([_record(), _record(id="X2", age=61.0)])
        assert [p.id for p in cohort] == ["X1", "X2"]
        assert cohort[0].measurements[0].heart_rate == 110
        assert cohort[0].measurements[0].temperature is None

    def test_empty_list_is_valid(self):
        assert validate_records([]) == []

    @pytest.mark.parametrize("payload", [{"id": "X1"}, "text", None, 42])
    def test_non_list_rejected(self, payload):
        with pytest.raises(ValidationError):
            validate_records(payload)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"id": ""},
            {"id": None},
            {"age": "54"},
            {"age": True},
            {"measurements": "none"},
            {"measurements": None},
        ],
    )
    def test_bad_record_rejected(self, overrides):
        with pytest.raises(ValidationError):
            validate_records([_record(), _record(**overrides)])

    def test_collects_every_issue(self):
        with pytest.raises(ValidationError) as excinfo:
            validate_records([_record(age="old"), "not a record", _record(measurements={})])
        issues = excinfo.value.issues
        assert len(issues) == 3
        assert issues[0].startswith("record 0")
        assert issues[1].startswith("record 1")

    def test_error_hierarchy(self):
        with pytest.raises(QIDashError):
            validate_records("nope")
        with pytest.raises(ValueError):
            validate_records("nope")
