from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from datetime import date, datetime, timedelta
from typing import Optional

from domain.models import AchievementEvent, StreakData, month_key
from domain.schemas import StreakDataRecord
from tools.achievements.triggers import streak_achievement
from tools.base import CommandRequest, CommandResponse, Tool
from tools.registry import register_tool

logger = logging.getLogger(__name__)

MILESTONES = (7, 14, 30, 60, 90, 180)
FINAL_MILESTONE = 365


@dataclass(frozen=True)
class CheckInResult:
    streak: StreakData
    checked_in: bool
    achievement: Optional[AchievementEvent] = None


@dataclass(frozen=True)
class MilestoneProgress:
    current_streak: int
    previous_milestone: int
    next_milestone: int
    progress: float
    achieved_months: int


def can_check_in(streak: StreakData, today: date) -> bool:
    if streak.last_check_date is None:
        return True
    return streak.last_check_date.date() != today


def check_in(streak: StreakData, now: datetime) -> CheckInResult:
    """
    Register today's check-in.

    Same day as the last check-in: nothing changes. The day after: the streak
    grows by one. Any longer gap, or no history at all: it restarts at 1.
    """
    today = now.date()
    if not can_check_in(streak, today):
        return CheckInResult(streak=streak, checked_in=False)

    last_day = streak.last_check_date.date() if streak.last_check_date else None
    if last_day is not None and last_day == today - timedelta(days=1):
        current = streak.current_streak + 1
    else:
        current = 1

    achievements = dict(streak.monthly_achievements)
    achievements[month_key(today)] = True
    updated = replace(
        streak,
        current_streak=current,
        longest_streak=max(streak.longest_streak, current),
        monthly_achievements=achievements,
        last_check_date=now,
    )
    return CheckInResult(
        streak=updated,
        checked_in=True,
        achievement=streak_achievement(streak.current_streak, current),
    )


def milestone_progress(streak: StreakData) -> MilestoneProgress:
    current = streak.current_streak
    next_milestone = next((m for m in MILESTONES if m > current), FINAL_MILESTONE)
    previous_milestone = max((m for m in MILESTONES if m <= current), default=0)
    progress = (current - previous_milestone) / (next_milestone - previous_milestone) * 100
    return MilestoneProgress(
        current_streak=current,
        previous_milestone=previous_milestone,
        next_milestone=next_milestone,
        progress=progress,
        achieved_months=sum(1 for flag in streak.monthly_achievements.values() if flag),
    )


@register_tool
class CheckInTool(Tool):
    name = "streak.check_in"
    description = "Daily check-in: continues, restarts or leaves the streak unchanged and flags 7-day multiples."
    mutates = True

    def run(self, request: CommandRequest) -> CommandResponse:
        outcome = check_in(request.state.streak_data, request.now)
        if not outcome.checked_in:
            return self.respond(request, result={"checked_in": False, "milestone": asdict(milestone_progress(outcome.streak))})

        logger.info(
            "Check-in recorded streak=%d longest=%d achievement=%s",
            outcome.streak.current_streak,
            outcome.streak.longest_streak,
            outcome.achievement is not None,
        )
        new_state = replace(request.state, streak_data=outcome.streak)
        result = {
            "checked_in": True,
            "streak": StreakDataRecord.from_model(outcome.streak).model_dump(mode="json", by_alias=True),
            "milestone": asdict(milestone_progress(outcome.streak)),
        }
        achievements = [outcome.achievement] if outcome.achievement else []
        return self.respond(request, state=new_state, result=result, achievements=achievements)


@register_tool
class StreakProgressTool(Tool):
    name = "streak.progress"
    description = "Current streak, milestone progress and whether a check-in is still open today."

    def run(self, request: CommandRequest) -> CommandResponse:
        streak = request.state.streak_data
        result = asdict(milestone_progress(streak))
        result["longest_streak"] = streak.longest_streak
        result["can_check_in"] = can_check_in(streak, request.now.date())
        return self.respond(request, result=result)
