from __future__ import annotations

import logging
from dataclasses import replace

from domain.models import BudgetState, StreakData
from domain.schemas import ThemeInput
from tools.base import CommandRequest, CommandResponse, Tool
from tools.registry import register_tool

logger = logging.getLogger(__name__)


def reset_all() -> BudgetState:
    return BudgetState()


def clear_data(state: BudgetState) -> BudgetState:
    """Drop the expense log and streak history; budget settings and theme stay."""
    return replace(state, expenses=(), streak_data=StreakData())


@register_tool
class ResetAllTool(Tool):
    name = "state.reset_all"
    description = "Erase every stored record and return to the setup step."
    mutates = True

    def run(self, request: CommandRequest) -> CommandResponse:
        logger.info(
            "Resetting all data snapshots=%d expenses=%d",
            len(request.state.monthly_budgets),
            len(request.state.expenses),
        )
        return self.respond(request, state=reset_all(), result={"reset": True})


@register_tool
class ClearDataTool(Tool):
    name = "state.clear_data"
    description = "Clear expenses and streak data, keeping the budget config, monthly snapshots and theme."
    mutates = True

    def run(self, request: CommandRequest) -> CommandResponse:
        cleared = len(request.state.expenses)
        return self.respond(request, state=clear_data(request.state), result={"expenses_cleared": cleared})


@register_tool
class SetThemeTool(Tool):
    name = "settings.set_theme"
    description = "Switch between the dark and light theme."
    args_model = ThemeInput
    mutates = True

    def run(self, request: CommandRequest) -> CommandResponse:
        args, rejection = self.parse_args(request, ThemeInput)
        if rejection is not None:
            return rejection
        return self.respond(request, state=replace(request.state, theme=args.theme), result={"theme": args.theme.value})
