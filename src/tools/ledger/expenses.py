from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from domain.models import DEFAULT_MEMO, Expense, ExpenseCategory
from domain.schemas import ExpenseIdInput, ExpenseInput, ExpenseQueryInput, ExpenseRecord, ExpenseUpdateInput
from tools.base import CommandRequest, CommandResponse, Tool
from tools.registry import register_tool
from tools.stats.aggregate import cycle_stats, spend_alert, total_amount

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5


def new_expense_id() -> str:
    return uuid.uuid4().hex


def add_expense(expenses: Sequence[Expense], expense: Expense) -> tuple[Expense, ...]:
    """Newest first."""
    return (expense,) + tuple(expenses)


def remove_expense(expenses: Sequence[Expense], expense_id: str) -> tuple[Expense, ...]:
    return tuple(e for e in expenses if e.id != expense_id)


def update_expense(expenses: Sequence[Expense], expense_id: str, **changes: Any) -> tuple[Expense, ...]:
    return tuple(replace(e, **changes) if e.id == expense_id else e for e in expenses)


def find_expense(expenses: Iterable[Expense], expense_id: str) -> Optional[Expense]:
    return next((e for e in expenses if e.id == expense_id), None)


def filter_expenses(expenses: Iterable[Expense], query: str = "", category: str = "all") -> list[Expense]:
    needle = query.strip().lower()
    rows = []
    for expense in expenses:
        if needle and needle not in expense.memo.lower():
            continue
        if category != "all" and expense.category.value != category:
            continue
        rows.append(expense)
    return rows


def group_by_day(expenses: Iterable[Expense]) -> dict[str, list[Expense]]:
    groups: dict[str, list[Expense]] = {}
    for expense in expenses:
        groups.setdefault(expense.date.date().isoformat(), []).append(expense)
    return groups


def recent_expenses(expenses: Sequence[Expense], limit: int = RECENT_LIMIT) -> list[Expense]:
    return list(expenses[:limit])


def build_expense(args: ExpenseInput, now: datetime) -> Expense:
    return Expense(
        id=args.id or new_expense_id(),
        amount=args.amount,
        memo=args.memo,
        category=args.category,
        date=args.date or now,
    )


def _row(expense: Expense) -> dict[str, Any]:
    return ExpenseRecord.from_model(expense).model_dump(mode="json", by_alias=True)


@register_tool
class AddExpenseTool(Tool):
    name = "expenses.add"
    description = "Quick-add a dated expense to the ledger and report any budget alert it causes."
    args_model = ExpenseInput
    mutates = True

    def run(self, request: CommandRequest) -> CommandResponse:
        args, rejection = self.parse_args(request, ExpenseInput)
        if rejection is not None:
            return rejection

        state = request.state
        expense = build_expense(args, request.now)
        if find_expense(state.expenses, expense.id) is not None:
            return self.reject(request, f"expense id already exists: {expense.id}")

        alert = None
        if state.budget_config is not None:
            cycle = cycle_stats(state.budget_config, state.expenses, request.now.date())
            if expense.month == cycle.month:
                alert = spend_alert(cycle.consumption_budget, cycle.remaining, expense.amount)

        new_state = replace(state, expenses=add_expense(state.expenses, expense))
        logger.info("Added expense id=%s category=%s alert=%s", expense.id, expense.category.value, alert)
        return self.respond(request, state=new_state, result={"expense": _row(expense), "alert": alert})


@register_tool
class RemoveExpenseTool(Tool):
    name = "expenses.remove"
    description = "Delete one expense by id."
    args_model = ExpenseIdInput
    mutates = True

    def run(self, request: CommandRequest) -> CommandResponse:
        args, rejection = self.parse_args(request, ExpenseIdInput)
        if rejection is not None:
            return rejection
        if find_expense(request.state.expenses, args.id) is None:
            return self.reject(request, f"expense not found: {args.id}")
        new_state = replace(request.state, expenses=remove_expense(request.state.expenses, args.id))
        return self.respond(request, state=new_state, result={"removed": args.id})


@register_tool
class UpdateExpenseTool(Tool):
    name = "expenses.update"
    description = "Edit the amount, memo or category of an existing expense."
    args_model = ExpenseUpdateInput
    mutates = True

    def run(self, request: CommandRequest) -> CommandResponse:
        args, rejection = self.parse_args(request, ExpenseUpdateInput)
        if rejection is not None:
            return rejection
        if find_expense(request.state.expenses, args.id) is None:
            return self.reject(request, f"expense not found: {args.id}")

        changes: dict[str, Any] = {}
        if args.amount is not None:
            changes["amount"] = args.amount
        if args.memo is not None:
            changes["memo"] = args.memo.strip() or DEFAULT_MEMO
        if args.category is not None:
            changes["category"] = ExpenseCategory(args.category)

        expenses = update_expense(request.state.expenses, args.id, **changes)
        new_state = replace(request.state, expenses=expenses)
        return self.respond(
            request,
            state=new_state,
            result={"expense": _row(find_expense(expenses, args.id)), "changed": sorted(changes)},
        )


@register_tool
class ListExpensesTool(Tool):
    name = "expenses.list"
    description = "Search expenses by memo, filter by category and group them by calendar day."
    args_model = ExpenseQueryInput

    def run(self, request: CommandRequest) -> CommandResponse:
        args, rejection = self.parse_args(request, ExpenseQueryInput)
        if rejection is not None:
            return rejection
        rows = filter_expenses(request.state.expenses, args.query, args.category)
        result = {
            "count": len(rows),
            "total_amount": total_amount(rows),
            "days": [
                {"day": day, "expenses": [_row(e) for e in items]}
                for day, items in group_by_day(rows).items()
            ],
            "recent": [_row(e) for e in recent_expenses(request.state.expenses)],
        }
        return self.respond(request, result=result)

