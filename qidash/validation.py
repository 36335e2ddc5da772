"""Validation of externally supplied cohort records."""
import logging
from numbers import Number
from typing import Any, List

from qidash.errors import ValidationError
from qidash.models import Participant

logger = logging.getLogger(__name__)

MAX_REPORTED_ISSUES = 20


def _record_issues(index: int, record: Any) -> List[str]:
    if not isinstance(record, dict):
        return [f"record {index}: expected an object, got {type(record).__name__}"]

    issues = []
    pid = record.get("id")
    if pid is None or str(pid).strip() == "":
        issues.append(f"record {index}: missing id")
    age = record.get("age")
    if isinstance(age, bool) or not isinstance(age, Number):
        issues.append(f"record {index}: age must be a number, got {age!r}")
    if not isinstance(record.get("measurements"), list):
        issues.append(f"record {index}: measurements must be a list")
    return issues


def validate_records(records: Any) -> List[Participant]:
    """
    Check the shape of imported records and convert them to participants.

    Raises ValidationError listing every problem found. Either all records
    convert or none do.
    """
    if not isinstance(records, list):
        raise ValidationError(
            "Imported data must be a list of participants",
            [f"expected a list, got {type(records).__name__}"],
        )

    issues: List[str] = []
    for i, record in enumerate(records):
        issues.extend(_record_issues(i, record))
    if issues:
        logger.warning("Rejected import with %d issue(s)", len(issues))
        raise ValidationError(
            f"Imported data has {len(issues)} issue(s): " + "; ".join(issues[:MAX_REPORTED_ISSUES]),
            issues,
        )

    participants = []
    for i, record in enumerate(records):
        try:
            participants.append(Participant.from_dict(record))
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            issues.append(f"record {i}: {e}")
    if issues:
        raise ValidationError(f"Imported data could not be converted: {issues[0]}", issues)

    logger.info("Validated %d imported participants", len(participants))
    return participants
