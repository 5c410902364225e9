from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from domain.models import (
    DEFAULT_MEMO,
    AchievementEvent,
    AchievementKind,
    BudgetConfig,
    BudgetState,
    Expense,
    ExpenseCategory,
    MonthlyBudgetSnapshot,
    StreakData,
    Theme,
)


class _Record(BaseModel):
    """Persisted records use the camelCase keys of the stored JSON blob."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ---- persisted records ----


class BudgetConfigRecord(_Record):
    monthly_income: Decimal = Field(ge=0)
    payday: int = Field(default=1, ge=1, le=31)
    investment_ratio: int = Field(default=70, ge=0, le=100)
    savings_ratio: int = Field(default=20, ge=0, le=100)
    consumption_ratio: int = Field(default=10, ge=0, le=100)
    investment_transferred: bool = False
    savings_transferred: bool = False

    @classmethod
    def from_model(cls, config: BudgetConfig) -> "BudgetConfigRecord":
        return cls(
            monthly_income=config.monthly_income,
            payday=config.payday,
            investment_ratio=config.investment_ratio,
            savings_ratio=config.savings_ratio,
            consumption_ratio=config.consumption_ratio,
            investment_transferred=config.investment_transferred,
            savings_transferred=config.savings_transferred,
        )

    def to_model(self) -> BudgetConfig:
        return BudgetConfig(
            monthly_income=self.monthly_income,
            payday=self.payday,
            investment_ratio=self.investment_ratio,
            savings_ratio=self.savings_ratio,
            consumption_ratio=self.consumption_ratio,
            investment_transferred=self.investment_transferred,
            savings_transferred=self.savings_transferred,
        )


class MonthlyBudgetRecord(_Record):
    month: str = Field(pattern=r"^\d{4}-\d{2}$")
    config: BudgetConfigRecord

    @classmethod
    def from_model(cls, snapshot: MonthlyBudgetSnapshot) -> "MonthlyBudgetRecord":
        return cls(month=snapshot.month, config=BudgetConfigRecord.from_model(snapshot.config))

    def to_model(self) -> MonthlyBudgetSnapshot:
        return MonthlyBudgetSnapshot(month=self.month, config=self.config.to_model())


class ExpenseRecord(_Record):
    id: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)
    memo: str = DEFAULT_MEMO
    category: ExpenseCategory = ExpenseCategory.FLEXIBLE
    date: datetime

    @classmethod
    def from_model(cls, expense: Expense) -> "ExpenseRecord":
        return cls(
            id=expense.id,
            amount=expense.amount,
            memo=expense.memo,
            category=expense.category,
            date=expense.date,
        )

    def to_model(self) -> Expense:
        return Expense(id=self.id, amount=self.amount, memo=self.memo, category=self.category, date=self.date)


class StreakDataRecord(_Record):
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    monthly_achievements: Dict[str, bool] = Field(default_factory=dict)
    last_check_date: Optional[datetime] = None

    @field_validator("last_check_date", mode="before")
    @classmethod
    def coerce_empty_date(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_serializer("last_check_date")
    def serialize_last_check_date(self, value: Optional[datetime]) -> str:
        return value.isoformat() if value else ""

    @classmethod
    def from_model(cls, streak: StreakData) -> "StreakDataRecord":
        return cls(
            current_streak=streak.current_streak,
            longest_streak=streak.longest_streak,
            monthly_achievements=dict(streak.monthly_achievements),
            last_check_date=streak.last_check_date,
        )

    def to_model(self) -> StreakData:
        return StreakData(
            current_streak=self.current_streak,
            longest_streak=self.longest_streak,
            monthly_achievements=dict(self.monthly_achievements),
            last_check_date=self.last_check_date,
        )


class StateRecord(_Record):
    """The whole stored blob. Absent keys load as their defaults."""

    budget_config: Optional[BudgetConfigRecord] = None
    monthly_budgets: List[MonthlyBudgetRecord] = Field(default_factory=list)
    expenses: List[ExpenseRecord] = Field(default_factory=list)
    streak_data: StreakDataRecord = Field(default_factory=StreakDataRecord)
    last_payday_check: Optional[datetime] = None
    theme: Theme = Theme.LIGHT
    budget_achievements: Dict[str, bool] = Field(default_factory=dict)

    @field_validator("last_payday_check", mode="before")
    @classmethod
    def coerce_empty_check(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_serializer("last_payday_check")
    def serialize_last_payday_check(self, value: Optional[datetime]) -> str:
        return value.isoformat() if value else ""

    @model_validator(mode="after")
    def validate_unique_months(self) -> "StateRecord":
        months = [snapshot.month for snapshot in self.monthly_budgets]
        if len(months) != len(set(months)):
            raise ValueError("monthlyBudgets must hold at most one snapshot per month")
        return self

    @classmethod
    def from_model(cls, state: BudgetState) -> "StateRecord":
        return cls(
            budget_config=BudgetConfigRecord.from_model(state.budget_config) if state.budget_config else None,
            monthly_budgets=[MonthlyBudgetRecord.from_model(s) for s in state.monthly_budgets],
            expenses=[ExpenseRecord.from_model(e) for e in state.expenses],
            streak_data=StreakDataRecord.from_model(state.streak_data),
            last_payday_check=state.last_payday_check,
            theme=state.theme,
            budget_achievements=dict(state.budget_achievements),
        )

    def to_model(self) -> BudgetState:
        return BudgetState(
            budget_config=self.budget_config.to_model() if self.budget_config else None,
            monthly_budgets=tuple(s.to_model() for s in self.monthly_budgets),
            expenses=tuple(e.to_model() for e in self.expenses),
            streak_data=self.streak_data.to_model(),
            last_payday_check=self.last_payday_check,
            theme=self.theme,
            budget_achievements=dict(self.budget_achievements),
        )


class AchievementRecord(_Record):
    kind: AchievementKind
    value: float
    month: Optional[str] = None

    @classmethod
    def from_model(cls, event: AchievementEvent) -> "AchievementRecord":
        return cls(kind=event.kind, value=event.value, month=event.month)


# ---- command arguments ----


class BudgetConfigInput(_Record):
    monthly_income: Decimal = Field(gt=0, description="Monthly income; must be greater than 0.")
    payday: int = Field(default=1, ge=1, le=31, description="Day of month the income cycle resets.")
    investment_ratio: int = Field(default=70, ge=0, le=100)
    savings_ratio: int = Field(default=20, ge=0, le=100)
    consumption_ratio: int = Field(default=10, ge=0, le=100)
    investment_transferred: bool = False
    savings_transferred: bool = False

    @field_validator("monthly_income", mode="before")
    @classmethod
    def reject_empty_income(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValueError("monthly income is required")
        return value

    @model_validator(mode="after")
    def validate_ratio_sum(self) -> "BudgetConfigInput":
        total = self.investment_ratio + self.savings_ratio + self.consumption_ratio
        if total != 100:
            raise ValueError(f"ratios must sum to 100, got {total}")
        return self

    def to_model(self) -> BudgetConfig:
        return BudgetConfig(
            monthly_income=self.monthly_income,
            payday=self.payday,
            investment_ratio=self.investment_ratio,
            savings_ratio=self.savings_ratio,
            consumption_ratio=self.consumption_ratio,
            investment_transferred=self.investment_transferred,
            savings_transferred=self.savings_transferred,
        )


class RatioDraft(_Record):
    investment_ratio: int = Field(default=70, ge=0, le=100)
    savings_ratio: int = Field(default=20, ge=0, le=100)
    consumption_ratio: int = Field(default=10, ge=0, le=100)


class RebalanceInput(_Record):
    draft: RatioDraft = Field(default_factory=RatioDraft)
    bucket: Literal["investment", "savings", "consumption"]
    value: int = Field(ge=0, le=100)


class TransferInput(_Record):
    bucket: Literal["investment", "savings"]
    transferred: Optional[bool] = Field(default=None, description="Omit to toggle the current flag.")


class ExpenseInput(_Record):
    amount: Decimal = Field(gt=0, description="Positive amount spent.")
    memo: str = DEFAULT_MEMO
    category: ExpenseCategory = ExpenseCategory.FLEXIBLE
    id: Optional[str] = None
    date: Optional[datetime] = None

    @field_validator("memo", mode="before")
    @classmethod
    def default_memo(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_MEMO
        return value


class ExpenseIdInput(_Record):
    id: str = Field(min_length=1)


class ExpenseUpdateInput(ExpenseIdInput):
    amount: Optional[Decimal] = Field(default=None, gt=0)
    memo: Optional[str] = None
    category: Optional[ExpenseCategory] = None


class ExpenseQueryInput(_Record):
    query: str = ""
    category: Literal["all", "essential", "flexible"] = "all"


class ThemeInput(_Record):
    theme: Theme


# ---- HTTP payloads ----


class CommandPayload(BaseModel):
    args: Dict[str, Any] = Field(default_factory=dict)
    now: Optional[datetime] = Field(
        default=None,
        description="Moment the command is issued; defaults to the server clock.",
    )


class CommandResult(BaseModel):
    command: str
    ok: bool = True
    result: Dict[str, Any] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)
    achievements: List[AchievementRecord] = Field(default_factory=list)
