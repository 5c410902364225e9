from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from domain.models import AchievementEvent, AchievementKind
from tools.base import CommandRequest, CommandResponse, Tool
from tools.registry import register_tool
from tools.stats.aggregate import GOAL_THRESHOLD, BudgetStats, aggregate

logger = logging.getLogger(__name__)

STREAK_STEP = 7


def streak_achievement(previous_streak: int, new_streak: int) -> Optional[AchievementEvent]:
    """Fires when the streak grows onto a multiple of seven."""
    if new_streak > previous_streak and new_streak % STREAK_STEP == 0:
        return AchievementEvent(kind=AchievementKind.STREAK, value=new_streak)
    return None


def budget_achievement(stats: BudgetStats, already_achieved: bool = False) -> Optional[AchievementEvent]:
    if already_achieved or stats.progress.total_progress < GOAL_THRESHOLD:
        return None
    return AchievementEvent(
        kind=AchievementKind.BUDGET,
        value=round(stats.progress.total_progress, 1),
        month=stats.cycle.month,
    )


@register_tool
class GoalCheckTool(Tool):
    name = "goal.check"
    description = (
        "Confirm this month's budget goal. Succeeds once per month when the composite "
        "progress score is at least 80."
    )
    mutates = True

    def run(self, request: CommandRequest) -> CommandResponse:
        state = request.state
        if state.budget_config is None:
            return self.reject(request, "budget setup has not been completed")

        stats = aggregate(state.budget_config, state.monthly_budgets, state.expenses, request.now.date())
        month = stats.cycle.month
        if state.budget_achievements.get(month):
            return self.reject(request, f"budget goal already achieved for {month}")

        event = budget_achievement(stats)
        if event is None:
            return self.reject(
                request,
                f"total progress {stats.progress.total_progress:.1f} is below {GOAL_THRESHOLD:.0f}",
            )

        achieved = dict(state.budget_achievements)
        achieved[month] = True
        logger.info("Budget goal achieved month=%s progress=%.1f", month, stats.progress.total_progress)
        return self.respond(
            request,
            state=replace(state, budget_achievements=achieved),
            result={"month": month, "total_progress": stats.progress.total_progress},
            achievements=[event],
        )
