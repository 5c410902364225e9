from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError

from domain.models import BudgetState
from domain.schemas import StateRecord

logger = logging.getLogger(__name__)

DEFAULT_STATE_PATH = "data/budget_state.json"


class StateStoreError(RuntimeError):
    pass


class StateStore(ABC):
    """Reads and writes the whole state blob at once."""

    @abstractmethod
    def load(self) -> BudgetState:
        raise NotImplementedError

    @abstractmethod
    def save(self, state: BudgetState) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        self.save(BudgetState())


class InMemoryStateStore(StateStore):
    def __init__(self, state: BudgetState | None = None) -> None:
        self._state = state or BudgetState()
        self.saves = 0

    def load(self) -> BudgetState:
        return self._state

    def save(self, state: BudgetState) -> None:
        self._state = state
        self.saves += 1


class JsonStateStore(StateStore):
    """
    Keeps the state blob in a single JSON file.

    The file holds one object keyed like the app's storage: budgetConfig,
    monthlyBudgets, expenses, streakData, lastPaydayCheck, theme and
    budgetAchievements. A missing file loads as the empty default state.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path or os.getenv("BUDGET_STATE_PATH", DEFAULT_STATE_PATH))

    def load(self) -> BudgetState:
        if not self.path.exists():
            logger.info("State file missing path=%s; starting empty", self.path)
            return BudgetState()
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (json.JSONDecodeError, OSError) as exc:
            raise StateStoreError(f"Could not read state file {self.path}: {exc}") from exc

        if payload is None:
            return BudgetState()
        try:
            record = StateRecord.model_validate(payload)
        except ValidationError as exc:
            raise StateStoreError(f"State file {self.path} did not match the state schema: {exc}") from exc
        return record.to_model()

    def save(self, state: BudgetState) -> None:
        try:
            payload = StateRecord.from_model(state).model_dump(mode="json", by_alias=True)
        except ValidationError as exc:
            raise StateStoreError(f"Refusing to save an invalid state: {exc}") from exc

        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, ensure_ascii=False)
            tmp_path.replace(self.path)
        except OSError as exc:
            raise StateStoreError(f"Could not write state file {self.path}: {exc}") from exc
        logger.info(
            "State saved path=%s expenses=%d snapshots=%d",
            self.path,
            len(state.expenses),
            len(state.monthly_budgets),
        )

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
