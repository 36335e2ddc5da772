"""Tests for the templated clinical note."""

from datetime import date, datetime

import numpy as np
import pytest

from qidash.deep_phenotype import DeepPhenotype, generate_deep_phenotype
from qidash.models import Measurement, Treatment
from qidash.narrative import chief_complaint, clinical_note, functional_status_note
from qidash.validation import validate_records

from conftest import make_participant


@pytest.fixture
def participant():
    return make_participant(
        "P0042",
        age=67,
        gender="Male",
        unit="Cardiology",
        condition="Heart Disease",
        risk_score=72.5,
        readmission_risk=35.0,
        outcome="Improved",
        length_of_stay=4,
        admission_date=date(2023, 3, 1),
        measurements=[
            Measurement(date=datetime(2023, 3, 2), heart_rate=110, blood_pressure_systolic=150),
            Measurement(
                date=datetime(2023, 3, 4),
                heart_rate=84,
                blood_pressure_systolic=128,
                blood_pressure_diastolic=82,
                oxygen_saturation=97,
            ),
        ],
        treatments=[
            Treatment("Medication A", date(2023, 3, 1)),
            Treatment("Surgery", date(2023, 3, 1), date(2023, 3, 2)),
        ],
    )


class TestClinicalNote:
    """Content of the generated note."""

    def test_header_and_patient_line(self, participant):
        note = clinical_note(participant, today=date(2023, 3, 5))
        assert note.startswith("CLINICAL NOTE - March 5, 2023")
        assert "P0042, a 67-year-old male admitted to the Cardiology on March 1, 2023." in note

    def test_uses_latest_vitals(self, participant):
        note = clinical_note(participant, today=date(2023, 3, 5))
        assert "heart rate of 84 bpm" in note
        assert "blood pressure of 128/82 mmHg" in note
        assert "oxygen saturation of 97%" in note

    def test_risk_band_wording(self, participant):
        note = clinical_note(participant, today=date(2023, 3, 5))
        assert "high risk profile (score: 72.5/100)" in note
        assert "moderate readmission risk (35%)" in note

    def test_only_ongoing_treatments_listed(self, participant):
        note = clinical_note(participant, today=date(2023, 3, 5))
        assert "Current management includes Medication A." in note
        assert "responding well" in note

    def test_missing_vitals_read_na(self):
        p = make_participant(measurements=[Measurement(date=datetime(2023, 1, 1))])
        assert "heart rate of N/A bpm" in clinical_note(p, today=date(2023, 1, 2))

    def test_no_treatments(self):
        note = clinical_note(make_participant(outcome="Deteriorated"), today=date(2023, 1, 2))
        assert "observation and supportive care" in note
        assert "requiring adjustment" in note

    def test_functional_section_only_with_deep_phenotype(self, participant):
        assert "FUNCTIONAL STATUS" not in clinical_note(participant, today=date(2023, 3, 5))
        participant.deep_phenotype = generate_deep_phenotype(np.random.default_rng(0), 0.5)
        assert "FUNCTIONAL STATUS: Functional assessment reveals" in clinical_note(participant, today=date(2023, 3, 5))

    def test_chief_complaint_keywords(self):
        assert "polyuria" in chief_complaint(make_participant(condition="Diabetes", risk_score=10))
        assert chief_complaint(make_participant(condition="Stroke", risk_score=50)) == (
            "Patient presents with moderate Stroke."
        )

    def test_functional_note_none_without_phenotype(self):
        assert functional_status_note(make_participant()) is None

    @pytest.mark.parametrize(
        "score, severity",
        [(0, "mild"), (29.9, "mild"), (30, "moderate"), (35, "moderate"), (69.9, "moderate"), (70, "severe")],
    )
    def test_complaint_severity_follows_risk_band(self, score, severity):
        p = make_participant(condition="Stroke", risk_score=score)
        assert chief_complaint(p) == f"Patient presents with {severity} Stroke."

    def test_complaint_and_profile_agree(self):
        note = clinical_note(make_participant(condition="Stroke", risk_score=35.0), today=date(2023, 1, 2))
        assert "moderate Stroke" in note
        assert "moderate risk profile (score: 35/100)" in note


class TestPartialDeepPhenotype:
    """Imported deep phenotype blocks with missing functional scores."""

    def test_imported_phenotype_without_functional_scores(self):
        [p] = validate_records([{"id": "X1", "age": 50, "measurements": [], "deepPhenotype": {"race": "Other"}}])
        assert p.deep_phenotype.functional_status.physical_function is None
        note = clinical_note(p, today=date(2023, 1, 2))
        assert "FUNCTIONAL STATUS" not in note
        assert functional_status_note(p) is None

    def test_only_scored_clauses_written(self):
        phenotype = DeepPhenotype.from_dict({"functionalStatus": {"physicalFunction": 30, "cognitiveFunction": "n/a"}})
        p = make_participant(deep_phenotype=phenotype)
        assert functional_status_note(p) == "Functional assessment reveals significantly impaired physical function."

    def test_flat_adl_score_only(self):
        p = make_participant(deep_phenotype=DeepPhenotype.from_dict({"adlIndependence": "85"}))
        note = clinical_note(p, today=date(2023, 1, 2))
        assert "FUNCTIONAL STATUS: ADL independence is good, mostly independent." in note
