"""Fill missing measurement values in a copy of a cohort.

Every strategy works per participant and per field, using that
participant's own time series. Strategies that need a neighbour (LOCF,
NOCB, interpolation) fall back to the series mean when there is none, and
the mean of an all-missing series is 0.
"""
import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union

from qidash.models import VITAL_FIELDS, Participant, field_name

logger = logging.getLogger(__name__)

Number = Union[int, float]


class ImputationStrategy(str, Enum):
    MEAN = "mean"
    MEDIAN = "median"
    MODE = "mode"
    ZERO = "zero"
    LAST_OBSERVATION = "lastObservation"
    NEXT_OBSERVATION = "nextObservation"
    LINEAR_INTERPOLATION = "linearInterpolation"
    RANDOM_FOREST = "randomForest"  # alias for MEAN, no model is fitted


STRATEGY_DESCRIPTIONS: Dict[ImputationStrategy, str] = {
    ImputationStrategy.MEAN: "Mean value (average of all available values)",
    ImputationStrategy.MEDIAN: "Median value (middle value of all available values)",
    ImputationStrategy.MODE: "Mode (most common value)",
    ImputationStrategy.ZERO: "Zero or default value",
    ImputationStrategy.LAST_OBSERVATION: "Last observation carried forward",
    ImputationStrategy.NEXT_OBSERVATION: "Next observation carried backward",
    ImputationStrategy.LINEAR_INTERPOLATION: "Linear interpolation between points",
    ImputationStrategy.RANDOM_FOREST: "Predictive model (random forest; currently the mean)",
}


def strategy_description(strategy: Union[str, ImputationStrategy]) -> str:
    try:
        return STRATEGY_DESCRIPTIONS[ImputationStrategy(strategy)]
    except ValueError:
        return "Unknown strategy"


@dataclass(frozen=True)
class ImputationOptions:
    strategy: ImputationStrategy = ImputationStrategy.MEAN
    apply_to_all: bool = True
    fields: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "strategy", ImputationStrategy(self.strategy))
        object.__setattr__(self, "fields", tuple(self.fields))

    def target_fields(self) -> Tuple[str, ...]:
        if self.apply_to_all:
            return VITAL_FIELDS
        wanted = []
        for name in self.fields:
            normalized = field_name(name)
            if normalized not in VITAL_FIELDS:
                logger.warning("Ignoring unknown imputation field %r", name)
                continue
            if normalized not in wanted:
                wanted.append(normalized)
        return tuple(wanted)


# ---------------------------
# Per-series fill values
# ---------------------------

def _observed(values: Sequence[Optional[object]]) -> List[object]:
    return [v for v in values if v is not None]


def _coerce_number(value: object) -> object:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    text = str(value)
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            continue
    return value


def series_mean(values: Sequence[Optional[Number]]) -> float:
    observed = [float(v) for v in _observed(values)]
    if not observed:
        return 0.0
    return sum(observed) / len(observed)


def series_median(values: Sequence[Optional[Number]]) -> float:
    observed = sorted(float(v) for v in _observed(values))
    if not observed:
        return 0.0
    mid = len(observed) // 2
    if len(observed) % 2 == 0:
        return (observed[mid - 1] + observed[mid]) / 2.0
    return observed[mid]


def series_mode(values: Sequence[Optional[object]]) -> object:
    """Most frequent value; the first value seen wins ties. Numeric strings come back as numbers."""
    counts: Dict[str, int] = {}
    for v in _observed(values):
        key = str(v)
        counts[key] = counts.get(key, 0) + 1
    if not counts:
        return 0

    best_key, best_count = None, 0
    for key, count in counts.items():
        if count > best_count:
            best_key, best_count = key, count
    return _coerce_number(best_key)


def _previous(values: Sequence[Optional[object]], index: int) -> Tuple[Optional[int], Optional[object]]:
    for i in range(index - 1, -1, -1):
        if values[i] is not None:
            return i, values[i]
    return None, None


def _next(values: Sequence[Optional[object]], index: int) -> Tuple[Optional[int], Optional[object]]:
    for i in range(index + 1, len(values)):
        if values[i] is not None:
            return i, values[i]
    return None, None


def interpolate(values: Sequence[Optional[Number]], index: int) -> Optional[float]:
    """Linear interpolation by index distance; None without a neighbour on both sides."""
    prev_index, prev_value = _previous(values, index)
    next_index, next_value = _next(values, index)
    if prev_index is None or next_index is None:
        return None
    prev_value, next_value = float(prev_value), float(next_value)
    return prev_value + (index - prev_index) * (next_value - prev_value) / (next_index - prev_index)


def fill_series(values: Sequence[Optional[object]], strategy: ImputationStrategy) -> List[object]:
    """Return values with every None replaced according to strategy."""
    strategy = ImputationStrategy(strategy)
    if all(v is not None for v in values):
        return list(values)

    if strategy is ImputationStrategy.MODE:
        constant = series_mode(values)
    elif strategy is ImputationStrategy.MEDIAN:
        constant = series_median(values)
    elif strategy is ImputationStrategy.ZERO:
        constant = 0
    else:
        constant = series_mean(values)

    if strategy in (
        ImputationStrategy.MEAN,
        ImputationStrategy.MEDIAN,
        ImputationStrategy.MODE,
        ImputationStrategy.ZERO,
        ImputationStrategy.RANDOM_FOREST,
    ):
        return [constant if v is None else v for v in values]

    out = []
    for i, v in enumerate(values):
        if v is not None:
            out.append(v)
            continue
        if strategy is ImputationStrategy.LAST_OBSERVATION:
            _, filled = _previous(values, i)
        elif strategy is ImputationStrategy.NEXT_OBSERVATION:
            _, filled = _next(values, i)
        else:
            filled = interpolate(values, i)
        out.append(constant if filled is None else filled)
    return out


# ---------------------------
# Cohort-level entry point
# ---------------------------

def impute(cohort: List[Participant], options: ImputationOptions) -> List[Participant]:
    """
    Deep-copy cohort and fill None values of the targeted vital fields.
    The date is never imputed and the argument is left untouched.
    """
    fields = options.target_fields()
    imputed = copy.deepcopy(cohort)
    filled_count = 0

    for participant in imputed:
        for name in fields:
            values = [getattr(m, name, None) for m in participant.measurements]
            filled = fill_series(values, options.strategy)
            for m, before, after in zip(participant.measurements, values, filled):
                if before is None:
                    setattr(m, name, after)
                    filled_count += 1

    logger.info(
        "Imputed %d values across %d participants using %s",
        filled_count,
        len(imputed),
        options.strategy.value,
    )
    return imputed
