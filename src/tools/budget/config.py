from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import datetime

from domain.models import BudgetConfig, BudgetState, MonthlyBudgetSnapshot, month_key
from domain.schemas import BudgetConfigInput, BudgetConfigRecord, RatioDraft, RebalanceInput, TransferInput
from tools.base import CommandRequest, CommandResponse, Tool
from tools.cycle.payday import payday_pending
from tools.registry import register_tool

logger = logging.getLogger(__name__)

MAX_INVESTMENT_RATIO = 90


def upsert_snapshot(
    snapshots: tuple[MonthlyBudgetSnapshot, ...],
    month: str,
    config: BudgetConfig,
) -> tuple[MonthlyBudgetSnapshot, ...]:
    """Replace the config of `month`'s snapshot in place, or append one."""
    updated = []
    replaced = False
    for snapshot in snapshots:
        if snapshot.month == month and not replaced:
            updated.append(MonthlyBudgetSnapshot(month=month, config=config))
            replaced = True
        else:
            updated.append(snapshot)
    if not replaced:
        updated.append(MonthlyBudgetSnapshot(month=month, config=config))
    return tuple(updated)


def commit_config(
    state: BudgetState,
    config: BudgetConfig,
    now: datetime,
    initial: bool = False,
    acknowledge_payday: bool = True,
) -> BudgetState:
    month = month_key(now)
    if initial:
        return replace(
            state,
            budget_config=config,
            monthly_budgets=upsert_snapshot(state.monthly_budgets, month, config),
            last_payday_check=now,
        )

    new_state = replace(
        state,
        budget_config=config,
        monthly_budgets=upsert_snapshot(state.monthly_budgets, month, config),
    )
    # Saving settings while the payday prompt is open acknowledges the new cycle.
    if acknowledge_payday and payday_pending(state, now):
        new_state = replace(new_state, last_payday_check=now)
    return new_state


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def rebalance_ratios(draft: RatioDraft, bucket: str, value: int) -> RatioDraft:
    """
    Apply one ratio change from the setup flow while keeping the split at 100.

    - investment: clamps to [0, 90] and splits the remainder between savings
      and consumption in their current proportion
    - savings / consumption: accepted only within 100 - investment, the other
      bucket takes the complement; anything else leaves the draft unchanged
    """
    investment = draft.investment_ratio
    if bucket == "investment":
        new_investment = max(0, min(int(value), MAX_INVESTMENT_RATIO))
        remaining = 100 - new_investment
        pool = draft.savings_ratio + draft.consumption_ratio
        savings = _round_half_up(draft.savings_ratio / pool * remaining) if pool > 0 else 0
        return RatioDraft(
            investment_ratio=new_investment,
            savings_ratio=savings,
            consumption_ratio=remaining - savings,
        )

    limit = 100 - investment
    if value < 0 or value > limit:
        return draft
    if bucket == "savings":
        return RatioDraft(investment_ratio=investment, savings_ratio=value, consumption_ratio=limit - value)
    if bucket == "consumption":
        return RatioDraft(investment_ratio=investment, savings_ratio=limit - value, consumption_ratio=value)
    raise ValueError(f"unknown ratio bucket: {bucket}")


def allocation_preview(config: BudgetConfig) -> dict[str, object]:
    return {
        "investment_budget": config.investment_budget,
        "savings_budget": config.savings_budget,
        "consumption_budget": config.consumption_budget,
        "ratio_total": config.ratio_total,
    }


class _CommitConfigBase(Tool):
    args_model = BudgetConfigInput
    mutates = True
    initial = False

    def run(self, request: CommandRequest) -> CommandResponse:
        if self.initial and request.state.is_setup_complete:
            return self.reject(request, "budget setup has already been completed")
        if not self.initial and not request.state.is_setup_complete:
            return self.reject(request, "budget setup has not been completed")

        args, rejection = self.parse_args(request, BudgetConfigInput)
        if rejection is not None:
            return rejection

        config = args.to_model()
        new_state = commit_config(request.state, config, request.now, initial=self.initial)
        logger.info(
            "Committed budget config initial=%s month=%s ratios=%d/%d/%d snapshots=%d",
            self.initial,
            month_key(request.now),
            config.investment_ratio,
            config.savings_ratio,
            config.consumption_ratio,
            len(new_state.monthly_budgets),
        )
        result = {
            "config": BudgetConfigRecord.from_model(config).model_dump(mode="json", by_alias=True),
            "month": month_key(request.now),
            **allocation_preview(config),
        }
        return self.respond(request, state=new_state, result=result)


@register_tool
class SetupBudgetTool(_CommitConfigBase):
    name = "budget.setup"
    description = "Complete the initial setup: store the first config and open this month's cycle."
    initial = True


@register_tool
class UpdateBudgetTool(_CommitConfigBase):
    name = "budget.update"
    description = "Replace the current config and this month's snapshot."


@register_tool
class RebalanceRatiosTool(Tool):
    name = "budget.rebalance"
    description = "Adjust one bucket ratio of a draft config and rebalance the others to keep a 100% split."
    args_model = RebalanceInput

    def run(self, request: CommandRequest) -> CommandResponse:
        args, rejection = self.parse_args(request, RebalanceInput)
        if rejection is not None:
            return rejection
        draft = rebalance_ratios(args.draft, args.bucket, args.value)
        return self.respond(request, result={"draft": draft.model_dump(by_alias=True), "changed": draft != args.draft})


@register_tool
class ConfirmTransferTool(Tool):
    name = "budget.confirm_transfer"
    description = "Set or toggle the investment/savings transfer confirmation for the current cycle."
    args_model = TransferInput
    mutates = True

    def run(self, request: CommandRequest) -> CommandResponse:
        config = request.state.budget_config
        if config is None:
            return self.reject(request, "budget setup has not been completed")
        args, rejection = self.parse_args(request, TransferInput)
        if rejection is not None:
            return rejection

        field_name = f"{args.bucket}_transferred"
        current = getattr(config, field_name)
        target = (not current) if args.transferred is None else args.transferred
        new_config = replace(config, **{field_name: target})
        new_state = commit_config(request.state, new_config, request.now, acknowledge_payday=False)
        return self.respond(request, state=new_state, result={"bucket": args.bucket, "transferred": target})
