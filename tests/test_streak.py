from __future__ import annotations

import unittest
from datetime import date, datetime, timedelta

import tools  # noqa: F401
from domain.models import AchievementKind, BudgetState, StreakData
from tools.achievements.triggers import streak_achievement
from tools.base import CommandRequest
from tools.registry import registry
from tools.streak.check_in import can_check_in, check_in, milestone_progress


def _streak(current: int, longest: int | None = None, last: datetime | None = None) -> StreakData:
    return StreakData(
        current_streak=current,
        longest_streak=current if longest is None else longest,
        last_check_date=last,
    )


class CheckInTests(unittest.TestCase):
    def test_consecutive_day_continues_streak(self) -> None:
        outcome = check_in(_streak(5, last=datetime(2025, 1, 1, 21, 0)), datetime(2025, 1, 2, 7, 0))

        self.assertTrue(outcome.checked_in)
        self.assertEqual(outcome.streak.current_streak, 6)
        self.assertIsNone(outcome.achievement)

    def test_landing_on_seven_fires_streak_achievement(self) -> None:
        outcome = check_in(_streak(6, last=datetime(2025, 1, 1)), datetime(2025, 1, 2))

        self.assertEqual(outcome.streak.current_streak, 7)
        self.assertIsNotNone(outcome.achievement)
        self.assertEqual(outcome.achievement.kind, AchievementKind.STREAK)
        self.assertEqual(outcome.achievement.value, 7)

    def test_gap_resets_streak_but_keeps_longest(self) -> None:
        outcome = check_in(_streak(20, 20, last=datetime(2025, 1, 1)), datetime(2025, 1, 5))

        self.assertEqual(outcome.streak.current_streak, 1)
        self.assertEqual(outcome.streak.longest_streak, 20)

    def test_two_day_gap_resets_regardless_of_prior_value(self) -> None:
        for prior in (1, 6, 13, 99):
            outcome = check_in(_streak(prior, last=datetime(2025, 6, 10)), datetime(2025, 6, 12))
            self.assertEqual(outcome.streak.current_streak, 1)

    def test_first_check_in_starts_at_one(self) -> None:
        outcome = check_in(StreakData(), datetime(2025, 3, 3, 8, 0))

        self.assertEqual(outcome.streak.current_streak, 1)
        self.assertEqual(outcome.streak.longest_streak, 1)
        self.assertEqual(outcome.streak.monthly_achievements, {"2025-03": True})
        self.assertEqual(outcome.streak.last_check_date, datetime(2025, 3, 3, 8, 0))

    def test_second_check_in_same_day_is_a_no_op(self) -> None:
        first = check_in(_streak(3, last=datetime(2025, 1, 1)), datetime(2025, 1, 2, 8, 0))
        second = check_in(first.streak, datetime(2025, 1, 2, 23, 59))

        self.assertFalse(second.checked_in)
        self.assertEqual(second.streak, first.streak)
        self.assertIsNone(second.achievement)

    def test_longest_never_below_current(self) -> None:
        streak = StreakData()
        day = datetime(2025, 1, 1, 9, 0)
        for offset in (0, 1, 2, 3, 6, 7, 8, 20, 21, 22, 23, 24):
            streak = check_in(streak, day + timedelta(days=offset)).streak
            self.assertGreaterEqual(streak.longest_streak, streak.current_streak)
        self.assertEqual(streak.longest_streak, 5)

    def test_month_flag_is_set_for_each_month_checked(self) -> None:
        streak = check_in(StreakData(), datetime(2025, 1, 31)).streak
        streak = check_in(streak, datetime(2025, 2, 1)).streak

        self.assertEqual(streak.monthly_achievements, {"2025-01": True, "2025-02": True})
        self.assertEqual(streak.current_streak, 2)

    def test_can_check_in(self) -> None:
        self.assertTrue(can_check_in(StreakData(), date(2025, 1, 1)))
        self.assertFalse(can_check_in(_streak(1, last=datetime(2025, 1, 1, 5)), date(2025, 1, 1)))
        self.assertTrue(can_check_in(_streak(1, last=datetime(2025, 1, 1, 5)), date(2025, 1, 2)))


class StreakAchievementTests(unittest.TestCase):
    def test_fires_on_multiples_of_seven_only(self) -> None:
        fired = [n for n in range(1, 30) if streak_achievement(n - 1, n)]
        self.assertEqual(fired, [7, 14, 21, 28])

    def test_does_not_fire_without_growth(self) -> None:
        self.assertIsNone(streak_achievement(7, 7))
        self.assertIsNone(streak_achievement(14, 1))


class MilestoneTests(unittest.TestCase):
    def test_progress_between_milestones(self) -> None:
        progress = milestone_progress(_streak(10))
        self.assertEqual((progress.previous_milestone, progress.next_milestone), (7, 14))
        self.assertAlmostEqual(progress.progress, 3 / 7 * 100)

    def test_progress_before_first_milestone(self) -> None:
        progress = milestone_progress(_streak(0))
        self.assertEqual((progress.previous_milestone, progress.next_milestone), (0, 7))
        self.assertEqual(progress.progress, 0.0)

    def test_exact_milestone_starts_next_leg(self) -> None:
        progress = milestone_progress(_streak(30))
        self.assertEqual((progress.previous_milestone, progress.next_milestone), (30, 60))
        self.assertEqual(progress.progress, 0.0)

    def test_past_last_milestone_targets_a_year(self) -> None:
        progress = milestone_progress(_streak(200))
        self.assertEqual((progress.previous_milestone, progress.next_milestone), (180, 365))

    def test_achieved_months_counts_true_flags(self) -> None:
        streak = StreakData(monthly_achievements={"2025-01": True, "2025-02": True, "2025-03": False})
        self.assertEqual(milestone_progress(streak).achieved_months, 2)


class CheckInCommandTests(unittest.TestCase):
    def test_command_emits_achievement_and_updates_state(self) -> None:
        tool = registry.get_tool("streak.check_in")
        state = BudgetState(streak_data=_streak(6, last=datetime(2025, 1, 1)))

        response = tool.run(CommandRequest(request_id="r", tool=tool.name, state=state, now=datetime(2025, 1, 2)))

        self.assertTrue(response.ok)
        self.assertTrue(response.result["checked_in"])
        self.assertEqual(response.state.streak_data.current_streak, 7)
        self.assertEqual([a.kind for a in response.achievements], [AchievementKind.STREAK])

    def test_repeat_command_keeps_state(self) -> None:
        tool = registry.get_tool("streak.check_in")
        state = BudgetState(streak_data=_streak(2, last=datetime(2025, 1, 2, 6)))

        response = tool.run(CommandRequest(request_id="r", tool=tool.name, state=state, now=datetime(2025, 1, 2, 20)))

        self.assertFalse(response.result["checked_in"])
        self.assertIs(response.state, state)
        self.assertEqual(response.achievements, [])


if __name__ == "__main__":
    unittest.main()
