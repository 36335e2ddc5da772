"""Templated clinical note for a single participant."""
from datetime import date, timedelta
from numbers import Number
from typing import Optional

from qidash.models import Measurement, Participant, risk_band


PRESENTATIONS = {
    "Diabetes": "with reported symptoms of polyuria, polydipsia, and fatigue",
    "Heart": "with reported symptoms of chest pain, dyspnea on exertion, and fatigue",
    "Respiratory": "with reported symptoms of productive cough, shortness of breath, and wheezing",
    "Cancer": "with associated fatigue, weight loss, and site-specific pain",
}

RESPONSES = {
    "Improved": "well to the current treatment regimen",
    "Stable": "as expected to the current treatment regimen",
}

DISPOSITIONS = {
    "low": "Patient is progressing well with {outcome} condition. "
           "Discharge planning initiated with low readmission risk ({risk}%).",
    "moderate": "Patient shows {outcome} condition. "
                "Continued monitoring required with moderate readmission risk ({risk}%).",
    "high": "Patient requires close monitoring with {outcome} condition. "
            "High risk for readmission ({risk}%) following discharge.",
}


SEVERITY_BY_BAND = {"low": "mild", "moderate": "moderate", "high": "severe"}


def _is_number(value) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def _impairment(score, levels) -> Optional[str]:
    if not _is_number(score):
        return None
    if score < 40:
        return levels[0]
    if score < 70:
        return levels[1]
    return levels[2]


def _fmt(value) -> str:
    if value is None:
        return "N/A"
    return f"{value:g}" if _is_number(value) else str(value)


def _format_date(d: date) -> str:
    return f"{d.strftime('%B')} {d.day}, {d.year}"


def _latest(participant: Participant) -> Optional[Measurement]:
    dated = [m for m in participant.measurements if m.date is not None]
    if dated:
        return max(dated, key=lambda m: m.date)
    return participant.measurements[-1] if participant.measurements else None


def chief_complaint(participant: Participant) -> str:
    severity = SEVERITY_BY_BAND[participant.risk_band]
    for keyword, symptoms in PRESENTATIONS.items():
        if keyword in participant.condition:
            return f"Patient presents with {severity} {participant.condition} {symptoms}."
    return f"Patient presents with {severity} {participant.condition}."


def functional_status_note(participant: Participant) -> Optional[str]:
    """Sentences for each scored functional variable; None when nothing is scored."""
    if participant.deep_phenotype is None or participant.deep_phenotype.functional_status is None:
        return None
    fs = participant.deep_phenotype.functional_status
    physical = _impairment(
        fs.physical_function, ("significantly impaired", "moderately impaired", "generally maintained")
    )
    adl = _impairment(
        fs.adl_independence,
        ("poor, requiring significant assistance", "fair, requiring some assistance", "good, mostly independent"),
    )
    cognitive = _impairment(
        fs.cognitive_function, ("significantly impaired", "mildly impaired", "within normal limits")
    )

    sentences = []
    if physical:
        sentences.append(f"Functional assessment reveals {physical} physical function.")
    if adl:
        sentences.append(f"ADL independence is {adl}.")
    if cognitive:
        sentences.append(f"Cognitive function appears {cognitive}.")
    return " ".join(sentences) or None


def clinical_note(participant: Participant, today: Optional[date] = None) -> str:
    """
    Plain-text note built from the participant's fields. Risk wording uses
    the same low / moderate / high bands as the rest of the dashboard.
    """
    today = today or date.today()
    admitted = participant.admission_date or today - timedelta(days=participant.length_of_stay)
    latest = _latest(participant) or Measurement(date=None)

    current = [t.name for t in participant.treatments if t.end_date is None or t.end_date > today]
    response = RESPONSES.get(participant.outcome, "poorly to the current treatment regimen, requiring adjustment")

    sections = [
        f"CLINICAL NOTE - {_format_date(today)}",
        f"PATIENT: {participant.id}, a {participant.age}-year-old {participant.gender.lower()} "
        f"admitted to the {participant.unit} on {_format_date(admitted)}.",
        f"CHIEF COMPLAINT: {chief_complaint(participant)}",
        f"CURRENT STATUS: Patient has been hospitalized for {participant.length_of_stay} days with "
        f"{participant.condition}. Initial assessment indicated a {participant.risk_band} risk profile "
        f"(score: {participant.risk_score:g}/100). Latest vital signs show heart rate of "
        f"{_fmt(latest.heart_rate)} bpm, blood pressure of {_fmt(latest.blood_pressure_systolic)}/"
        f"{_fmt(latest.blood_pressure_diastolic)} mmHg, and oxygen saturation of "
        f"{_fmt(latest.oxygen_saturation)}%.",
        f"TREATMENT PLAN: Current management includes "
        f"{', '.join(current) or 'observation and supportive care'}. Patient is responding {response}.",
    ]

    functional = functional_status_note(participant)
    if functional:
        sections.append(f"FUNCTIONAL STATUS: {functional}")

    disposition = DISPOSITIONS[risk_band(participant.readmission_risk)]
    sections.append(
        "DISPOSITION: "
        + disposition.format(outcome=participant.outcome.lower(), risk=f"{participant.readmission_risk:g}")
    )
    return "\n\n".join(sections)
