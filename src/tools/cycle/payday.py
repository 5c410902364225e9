from __future__ import annotations

import logging
import os
from calendar import monthrange
from dataclasses import replace
from datetime import date, datetime

from domain.models import BudgetState, MonthlyBudgetSnapshot, month_key
from tools.base import CommandRequest, CommandResponse, Tool
from tools.registry import register_tool

logger = logging.getLogger(__name__)


def clamp_enabled() -> bool:
    return os.getenv("BUDGET_PAYDAY_CLAMP", "0").strip().lower() in ("1", "true", "yes")


def effective_payday(today: date, payday: int, clamp_to_month_end: bool = False) -> int:
    """
    Day of `today`'s month on which the payday fires.

    Plain day-of-month semantics by default: a payday of 31 simply never
    matches in a 30-day month. With clamping it lands on the last day instead.
    """
    if not clamp_to_month_end:
        return payday
    return min(payday, monthrange(today.year, today.month)[1])


def is_payday_due(
    today: date,
    payday: int,
    last_payday_check: datetime | None,
    clamp_to_month_end: bool = False,
) -> bool:
    last_check_month = month_key(last_payday_check) if last_payday_check else None
    if month_key(today) == last_check_month:
        return False
    return today.day == effective_payday(today, payday, clamp_to_month_end)


def payday_pending(state: BudgetState, now: datetime, clamp_to_month_end: bool | None = None) -> bool:
    if state.budget_config is None:
        return False
    clamp = clamp_enabled() if clamp_to_month_end is None else clamp_to_month_end
    return is_payday_due(now.date(), state.budget_config.payday, state.last_payday_check, clamp)


def ensure_month_snapshot(state: BudgetState, month: str) -> BudgetState:
    """Start a cycle for `month` with the current config unless one exists."""
    if state.budget_config is None or state.snapshot_for(month) is not None:
        return state
    snapshot = MonthlyBudgetSnapshot(month=month, config=state.budget_config)
    return replace(state, monthly_budgets=state.monthly_budgets + (snapshot,))


def skip_payday(state: BudgetState, now: datetime) -> BudgetState:
    state = ensure_month_snapshot(state, month_key(now))
    return replace(state, last_payday_check=now)


@register_tool
class PaydayCheckTool(Tool):
    name = "payday.check"
    description = "Report whether today is payday and the new cycle has not been acknowledged yet."

    def run(self, request: CommandRequest) -> CommandResponse:
        state = request.state
        due = payday_pending(state, request.now)
        result = {
            "due": due,
            "month": month_key(request.now),
            "payday": state.budget_config.payday if state.budget_config else None,
            "last_payday_check": state.last_payday_check.isoformat() if state.last_payday_check else "",
        }
        if due:
            logger.info("Payday due month=%s payday=%s", result["month"], result["payday"])
        return self.respond(request, result=result)


@register_tool
class PaydaySkipTool(Tool):
    name = "payday.skip"
    description = "Keep the existing budget for the new cycle and acknowledge the payday."
    mutates = True

    def run(self, request: CommandRequest) -> CommandResponse:
        if not request.state.is_setup_complete:
            return self.reject(request, "budget setup has not been completed")
        if not payday_pending(request.state, request.now):
            return self.reject(request, "no payday is pending")
        new_state = skip_payday(request.state, request.now)
        return self.respond(
            request,
            state=new_state,
            result={
                "month": month_key(request.now),
                "last_payday_check": request.now.isoformat(),
                "snapshots": len(new_state.monthly_budgets),
            },
        )
