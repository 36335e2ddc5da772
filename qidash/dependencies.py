"""Custom dependency relations: derived variables from weighted predictors."""
import copy
import dataclasses
import logging
from numbers import Number
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from qidash.deep_phenotype import SCORE_RANGES, DeepPhenotype, category_of, resolve_path, snake_case
from qidash.models import DependencyRelation, Participant

logger = logging.getLogger(__name__)

Bounds = Tuple[Optional[float], Optional[float]]

# Participant fields with a fixed range; deep phenotype scores use SCORE_RANGES.
FIELD_BOUNDS: Dict[str, Bounds] = {
    "age": (0, 120),
    "risk_score": (0.0, 100.0),
    "readmission_risk": (0.0, 100.0),
    "length_of_stay": (0, None),
}


def _is_number(value) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def _fit(name: str, current, value: float, bounds: Dict[str, Bounds]):
    """Clamp value into the target's range and keep integer fields integral."""
    lo, hi = bounds.get(name, SCORE_RANGES.get(name, (None, None)))
    if lo is not None:
        value = max(value, lo)
    if hi is not None:
        value = min(value, hi)
    if isinstance(current, int):
        return int(round(value))
    return value


def _assign(participant: Participant, target: str, value: float, bounds: Dict[str, Bounds]) -> None:
    parent_path, _, leaf = target.rpartition(".")
    parent = resolve_path(participant, parent_path) if parent_path else participant
    name = snake_case(leaf)
    if isinstance(parent, DeepPhenotype) and category_of(name) is not None:
        # flat names such as deepPhenotype.frailtyIndex
        parent = getattr(parent, category_of(name))
    if dataclasses.is_dataclass(parent) and name in {f.name for f in dataclasses.fields(parent)}:
        current = getattr(parent, name)
        if _is_number(current):
            fitted = _fit(name, current, value, bounds)
            if fitted != value:
                logger.debug("Fitted %s for %s from %s to %s", target, participant.id, value, fitted)
            setattr(parent, name, fitted)
            return
    participant.derived[target] = value


def apply_custom_dependencies(
    rng: np.random.Generator,
    participant: Participant,
    dependencies: Sequence[DependencyRelation],
    bounds: Optional[Dict[str, Bounds]] = None,
) -> Participant:
    """
    Returns a copy of participant with every relation applied in order.
    Predictors that do not resolve to a number are skipped; a missing
    coefficient defaults to 1.0. Targets naming an existing numeric field
    overwrite it, clamped to that field's range (``bounds`` overrides
    FIELD_BOUNDS); anything else lands in ``participant.derived``.
    """
    if not dependencies:
        return participant

    limits = {**FIELD_BOUNDS, **(bounds or {})}
    out = copy.deepcopy(participant)
    for dep in dependencies:
        if not dep.target_variable or not dep.depends_on:
            continue

        value = 0.0
        for i, predictor in enumerate(dep.depends_on):
            if not predictor:
                continue
            coefficient = dep.coefficients[i] if i < len(dep.coefficients) else 1.0
            predictor_value = resolve_path(out, predictor)
            if not _is_number(predictor_value):
                logger.debug("Skipping non-numeric predictor %s for %s", predictor, out.id)
                continue
            value += coefficient * float(predictor_value)

        if dep.noise_level > 0:
            bound = dep.noise_level * abs(value)
            value += float(rng.uniform(-bound, bound)) if bound > 0 else 0.0

        _assign(out, dep.target_variable, value, limits)
    return out
