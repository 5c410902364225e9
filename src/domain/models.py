from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

DEFAULT_MEMO = "Expense"
MONTH_FORMAT = "%Y-%m"


class ExpenseCategory(str, Enum):
    ESSENTIAL = "essential"
    FLEXIBLE = "flexible"


class Theme(str, Enum):
    DARK = "dark"
    LIGHT = "light"


class AchievementKind(str, Enum):
    STREAK = "streak"
    BUDGET = "budget"


def month_key(moment: date | datetime) -> str:
    """Canonical cycle identifier, e.g. 2025-03."""
    return moment.strftime(MONTH_FORMAT)


def _share(income: Decimal, ratio: int) -> Decimal:
    return income * Decimal(ratio) / Decimal(100)


@dataclass(frozen=True)
class BudgetConfig:
    monthly_income: Decimal
    payday: int = 1
    investment_ratio: int = 70
    savings_ratio: int = 20
    consumption_ratio: int = 10
    investment_transferred: bool = False
    savings_transferred: bool = False

    @property
    def ratio_total(self) -> int:
        return self.investment_ratio + self.savings_ratio + self.consumption_ratio

    @property
    def investment_budget(self) -> Decimal:
        return _share(self.monthly_income, self.investment_ratio)

    @property
    def savings_budget(self) -> Decimal:
        return _share(self.monthly_income, self.savings_ratio)

    @property
    def consumption_budget(self) -> Decimal:
        return _share(self.monthly_income, self.consumption_ratio)


@dataclass(frozen=True)
class MonthlyBudgetSnapshot:
    month: str
    config: BudgetConfig


@dataclass(frozen=True)
class Expense:
    id: str
    amount: Decimal
    date: datetime
    memo: str = DEFAULT_MEMO
    category: ExpenseCategory = ExpenseCategory.FLEXIBLE

    @property
    def month(self) -> str:
        return month_key(self.date)


@dataclass(frozen=True)
class StreakData:
    current_streak: int = 0
    longest_streak: int = 0
    monthly_achievements: dict[str, bool] = field(default_factory=dict)
    last_check_date: Optional[datetime] = None


@dataclass(frozen=True)
class AchievementEvent:
    kind: AchievementKind
    value: float
    month: Optional[str] = None


@dataclass(frozen=True)
class BudgetState:
    """Everything the app persists, held as one immutable value."""

    budget_config: Optional[BudgetConfig] = None
    monthly_budgets: tuple[MonthlyBudgetSnapshot, ...] = ()
    expenses: tuple[Expense, ...] = ()
    streak_data: StreakData = field(default_factory=StreakData)
    last_payday_check: Optional[datetime] = None
    theme: Theme = Theme.LIGHT
    budget_achievements: dict[str, bool] = field(default_factory=dict)

    @property
    def is_setup_complete(self) -> bool:
        return self.budget_config is not None

    def snapshot_for(self, month: str) -> MonthlyBudgetSnapshot | None:
        for snapshot in self.monthly_budgets:
            if snapshot.month == month:
                return snapshot
        return None
