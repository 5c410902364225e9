from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence

from domain.models import BudgetConfig, Expense, ExpenseCategory, MonthlyBudgetSnapshot, month_key
from tools.base import CommandRequest, CommandResponse, Tool
from tools.registry import register_tool

GOAL_THRESHOLD = 80.0
CONSUMPTION_WARNING = 90.0
LOW_BALANCE_SHARE = Decimal("0.1")

ZERO = Decimal("0")


@dataclass(frozen=True)
class CycleStats:
    month: str
    investment_budget: Decimal
    savings_budget: Decimal
    consumption_budget: Decimal
    total_spent: Decimal
    remaining: Decimal
    percentage_used: float
    essential_total: Decimal
    flexible_total: Decimal
    expense_count: int
    status: str


@dataclass(frozen=True)
class CumulativeStats:
    total_investment: Decimal = ZERO
    total_savings: Decimal = ZERO
    total_consumption: Decimal = ZERO
    total_surplus: Decimal = ZERO
    months_tracked: int = 0


@dataclass(frozen=True)
class ProgressStats:
    investment_progress: float
    savings_progress: float
    consumption_progress: float
    total_progress: float
    goal_reachable: bool
    consumption_warning: bool


@dataclass(frozen=True)
class BudgetStats:
    cycle: CycleStats
    cumulative: CumulativeStats
    progress: ProgressStats

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def expenses_for_month(expenses: Iterable[Expense], month: str) -> list[Expense]:
    return [e for e in expenses if e.month == month]


def total_amount(expenses: Iterable[Expense]) -> Decimal:
    return sum((e.amount for e in expenses), ZERO)


def category_totals(expenses: Iterable[Expense]) -> dict[ExpenseCategory, Decimal]:
    totals: dict[ExpenseCategory, Decimal] = defaultdict(lambda: ZERO)
    for expense in expenses:
        totals[expense.category] += expense.amount
    return {category: totals[category] for category in ExpenseCategory}


def percentage_used(total_spent: Decimal, consumption_budget: Decimal) -> float:
    # A zero consumption budget reads as 0% used; the overspend shows in `remaining`.
    if consumption_budget == 0:
        return 0.0
    return float(total_spent / consumption_budget * 100)


def spend_status(remaining: Decimal, used: float) -> str:
    if remaining < 0:
        return "exceeded"
    if used >= 90:
        return "danger"
    if used >= 70:
        return "caution"
    return "ok"


def spend_alert(consumption_budget: Decimal, remaining: Decimal, amount: Decimal) -> Optional[str]:
    """Alert raised by adding `amount` on top of the current `remaining`."""
    new_remaining = remaining - amount
    if new_remaining < 0:
        return "exceeded"
    if new_remaining < consumption_budget * LOW_BALANCE_SHARE:
        return "warning"
    return None


def cycle_stats(config: BudgetConfig, expenses: Sequence[Expense], today: date) -> CycleStats:
    month = month_key(today)
    month_expenses = expenses_for_month(expenses, month)
    spent = total_amount(month_expenses)
    consumption_budget = config.consumption_budget
    used = percentage_used(spent, consumption_budget)
    remaining = consumption_budget - spent
    by_category = category_totals(month_expenses)
    return CycleStats(
        month=month,
        investment_budget=config.investment_budget,
        savings_budget=config.savings_budget,
        consumption_budget=consumption_budget,
        total_spent=spent,
        remaining=remaining,
        percentage_used=used,
        essential_total=by_category[ExpenseCategory.ESSENTIAL],
        flexible_total=by_category[ExpenseCategory.FLEXIBLE],
        expense_count=len(month_expenses),
        status=spend_status(remaining, used),
    )


def cumulative_stats(snapshots: Sequence[MonthlyBudgetSnapshot], expenses: Sequence[Expense]) -> CumulativeStats:
    investment = savings = consumption = surplus = ZERO
    for snapshot in snapshots:
        config = snapshot.config
        month_spent = total_amount(expenses_for_month(expenses, snapshot.month))
        if config.investment_transferred:
            investment += config.investment_budget
        if config.savings_transferred:
            savings += config.savings_budget
        consumption += month_spent
        surplus += max(config.consumption_budget - month_spent, ZERO)
    return CumulativeStats(
        total_investment=investment,
        total_savings=savings,
        total_consumption=consumption,
        total_surplus=surplus,
        months_tracked=len(snapshots),
    )


def progress_stats(config: BudgetConfig, cycle: CycleStats) -> ProgressStats:
    investment = 100.0 if config.investment_transferred else 0.0
    savings = 100.0 if config.savings_transferred else 0.0
    consumption = min(cycle.percentage_used, 100.0)
    total = (investment + savings + (100.0 - consumption)) / 3
    return ProgressStats(
        investment_progress=investment,
        savings_progress=savings,
        consumption_progress=consumption,
        total_progress=total,
        goal_reachable=total >= GOAL_THRESHOLD,
        consumption_warning=consumption > CONSUMPTION_WARNING,
    )


def aggregate(
    config: BudgetConfig,
    snapshots: Sequence[MonthlyBudgetSnapshot],
    expenses: Sequence[Expense],
    today: date,
) -> BudgetStats:
    cycle = cycle_stats(config, expenses, today)
    return BudgetStats(
        cycle=cycle,
        cumulative=cumulative_stats(snapshots, expenses),
        progress=progress_stats(config, cycle),
    )


@register_tool
class AggregateStatsTool(Tool):
    name = "stats.aggregate"
    description = "Current cycle budget usage, cumulative totals across cycles and the composite progress score."

    def run(self, request: CommandRequest) -> CommandResponse:
        state = request.state
        if state.budget_config is None:
            return self.reject(request, "budget setup has not been completed")
        stats = aggregate(state.budget_config, state.monthly_budgets, state.expenses, request.now.date())
        result = stats.to_dict()
        result["goal_achieved"] = bool(state.budget_achievements.get(stats.cycle.month))
        return self.respond(request, result=result)
