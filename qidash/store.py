"""JSON-backed holder of the current cohort and the config that produced it."""
import json
import logging
import os
from pathlib import Path
from typing import Any, List, Optional, Union

from qidash.imputation import ImputationOptions, impute
from qidash.models import Participant, SimulationConfig
from qidash.simulation import generate_cohort
from qidash.validation import validate_records

logger = logging.getLogger(__name__)


class CohortStore:
    """Explicit application state: the cohort, its config and whether one is loaded.

    Core functions never read from the store; callers pass ``store.cohort``
    in. When a path is set the store is written to it after every change
    and read back on construction.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(os.path.expanduser(str(path))) if path else None
        self.cohort: List[Participant] = []
        self.config: SimulationConfig = SimulationConfig()
        if self.path is not None and self.path.exists():
            self.load()

    @property
    def is_loaded(self) -> bool:
        return len(self.cohort) > 0

    def _set(self, cohort: List[Participant], config: Optional[SimulationConfig] = None) -> None:
        config = config if config is not None else self.config
        # held state changes only after a successful write
        self._write(cohort, config)
        self.cohort, self.config = cohort, config

    # State changes

    def generate(self, config: SimulationConfig, seed: Optional[int] = None) -> List[Participant]:
        cohort = generate_cohort(config, seed=seed)
        self._set(cohort, config)
        logger.info("Stored generated cohort of %d participants", len(cohort))
        return cohort

    def import_records(self, records: Any) -> List[Participant]:
        cohort = validate_records(records)
        self._set(cohort)
        logger.info("Stored imported cohort of %d participants", len(cohort))
        return cohort

    def replace(self, cohort: List[Participant]) -> None:
        self._set(list(cohort))

    def clear(self) -> None:
        self._set([], SimulationConfig())
        logger.info("Cleared cohort store")

    def impute(self, options: ImputationOptions, replace: bool = False) -> List[Participant]:
        """Impute the held cohort. The result replaces it only when replace is True."""
        imputed = impute(self.cohort, options)
        if replace:
            self._set(imputed)
        return imputed

    # Persistence

    def to_dict(self) -> dict:
        return {"config": self.config.to_dict(), "cohort": [p.to_dict() for p in self.cohort]}

    def save(self) -> None:
        self._write(self.cohort, self.config)

    def _write(self, cohort: List[Participant], config: SimulationConfig) -> None:
        if self.path is None:
            return
        payload = {"config": config.to_dict(), "cohort": [p.to_dict() for p in cohort]}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w") as f:
            json.dump(payload, f, indent=2)
        os.replace(tmp, self.path)
        logger.debug("Saved cohort store to %s", self.path)

    def load(self) -> None:
        if self.path is None:
            return
        with open(self.path) as f:
            data = json.load(f)
        config = SimulationConfig.from_dict(data.get("config") or {})
        cohort = validate_records(data.get("cohort") or [])
        self.cohort, self.config = cohort, config
        logger.info("Loaded %d participants from %s", len(cohort), self.path)
