from __future__ import annotations

import unittest
from datetime import date, datetime
from decimal import Decimal

import tools  # noqa: F401
from domain.models import BudgetConfig, BudgetState, Expense, ExpenseCategory, MonthlyBudgetSnapshot
from tools.base import CommandRequest
from tools.registry import registry
from tools.stats.aggregate import (
    aggregate,
    cumulative_stats,
    cycle_stats,
    percentage_used,
    spend_alert,
    spend_status,
)


def _config(**overrides) -> BudgetConfig:
    values = {"monthly_income": Decimal("3000000"), "investment_ratio": 70, "savings_ratio": 20, "consumption_ratio": 10}
    values.update(overrides)
    return BudgetConfig(**values)


def _expense(expense_id: str, amount: str, when: datetime, category: ExpenseCategory = ExpenseCategory.FLEXIBLE) -> Expense:
    return Expense(id=expense_id, amount=Decimal(amount), date=when, category=category)


class CycleStatsTests(unittest.TestCase):
    def test_scenario_single_flexible_expense(self) -> None:
        expenses = [_expense("e1", "50000", datetime(2025, 3, 4, 12, 0))]

        stats = cycle_stats(_config(), expenses, date(2025, 3, 20))

        self.assertEqual(stats.consumption_budget, Decimal("300000"))
        self.assertEqual(stats.total_spent, Decimal("50000"))
        self.assertEqual(stats.remaining, Decimal("250000"))
        self.assertAlmostEqual(stats.percentage_used, 16.6667, places=3)
        self.assertEqual(stats.flexible_total, Decimal("50000"))
        self.assertEqual(stats.essential_total, Decimal("0"))
        self.assertEqual(stats.status, "ok")

    def test_only_current_month_expenses_count(self) -> None:
        expenses = [
            _expense("e1", "10000", datetime(2025, 3, 1)),
            _expense("e2", "20000", datetime(2025, 2, 28, 23, 59)),
            _expense("e3", "5000", datetime(2025, 3, 31, 22, 0), ExpenseCategory.ESSENTIAL),
        ]

        stats = cycle_stats(_config(), expenses, date(2025, 3, 15))

        self.assertEqual(stats.total_spent, Decimal("15000"))
        self.assertEqual(stats.expense_count, 2)
        self.assertEqual(stats.essential_total, Decimal("5000"))

    def test_zero_consumption_budget_uses_sentinels(self) -> None:
        config = _config(investment_ratio=80, savings_ratio=20, consumption_ratio=0)
        expenses = [_expense("e1", "1200", datetime(2025, 3, 2))]

        stats = cycle_stats(config, expenses, date(2025, 3, 2))

        self.assertEqual(stats.percentage_used, 0.0)
        self.assertEqual(stats.remaining, Decimal("-1200"))
        self.assertEqual(stats.status, "exceeded")

    def test_percentage_used_guard(self) -> None:
        self.assertEqual(percentage_used(Decimal("0"), Decimal("0")), 0.0)
        self.assertEqual(percentage_used(Decimal("50"), Decimal("100")), 50.0)

    def test_spend_status_thresholds(self) -> None:
        self.assertEqual(spend_status(Decimal("100"), 10.0), "ok")
        self.assertEqual(spend_status(Decimal("100"), 70.0), "caution")
        self.assertEqual(spend_status(Decimal("100"), 90.0), "danger")
        self.assertEqual(spend_status(Decimal("-1"), 100.3), "exceeded")

    def test_spend_alert(self) -> None:
        budget = Decimal("300000")
        self.assertIsNone(spend_alert(budget, Decimal("250000"), Decimal("50000")))
        self.assertEqual(spend_alert(budget, Decimal("40000"), Decimal("15000")), "warning")
        self.assertEqual(spend_alert(budget, Decimal("10000"), Decimal("15000")), "exceeded")


class CumulativeStatsTests(unittest.TestCase):
    def test_transfers_gate_investment_and_savings(self) -> None:
        snapshots = [
            MonthlyBudgetSnapshot("2025-01", _config(investment_transferred=True, savings_transferred=False)),
            MonthlyBudgetSnapshot("2025-02", _config(investment_transferred=False, savings_transferred=True)),
            MonthlyBudgetSnapshot("2025-03", _config()),
        ]

        stats = cumulative_stats(snapshots, [])

        self.assertEqual(stats.total_investment, Decimal("2100000"))
        self.assertEqual(stats.total_savings, Decimal("600000"))
        self.assertEqual(stats.months_tracked, 3)

    def test_surplus_counts_underspend_only(self) -> None:
        snapshots = [
            MonthlyBudgetSnapshot("2025-01", _config()),
            MonthlyBudgetSnapshot("2025-02", _config()),
        ]
        expenses = [
            _expense("e1", "100000", datetime(2025, 1, 10)),
            _expense("e2", "450000", datetime(2025, 2, 10)),
        ]

        stats = cumulative_stats(snapshots, expenses)

        self.assertEqual(stats.total_consumption, Decimal("550000"))
        self.assertEqual(stats.total_surplus, Decimal("200000"))

    def test_surplus_never_negative(self) -> None:
        snapshots = [MonthlyBudgetSnapshot(f"2025-{m:02d}", _config(consumption_ratio=0, savings_ratio=30)) for m in range(1, 7)]
        expenses = [_expense(f"e{m}", "99999", datetime(2025, m, 3)) for m in range(1, 7)]

        self.assertGreaterEqual(cumulative_stats(snapshots, expenses).total_surplus, 0)

    def test_each_month_uses_its_own_config(self) -> None:
        snapshots = [
            MonthlyBudgetSnapshot("2025-01", _config(monthly_income=Decimal("1000000"))),
            MonthlyBudgetSnapshot("2025-02", _config(monthly_income=Decimal("2000000"))),
        ]
        stats = cumulative_stats(snapshots, [])
        self.assertEqual(stats.total_surplus, Decimal("300000"))


class ProgressTests(unittest.TestCase):
    def test_full_transfers_and_no_spend_scores_hundred(self) -> None:
        config = _config(investment_transferred=True, savings_transferred=True)
        stats = aggregate(config, [MonthlyBudgetSnapshot("2025-03", config)], [], date(2025, 3, 5))

        self.assertEqual(stats.progress.total_progress, 100.0)
        self.assertTrue(stats.progress.goal_reachable)

    def test_no_transfers_caps_score_at_one_third(self) -> None:
        stats = aggregate(_config(), [], [], date(2025, 3, 5))
        self.assertAlmostEqual(stats.progress.total_progress, 33.333, places=2)
        self.assertFalse(stats.progress.goal_reachable)

    def test_consumption_progress_is_capped(self) -> None:
        config = _config(investment_transferred=True, savings_transferred=True)
        expenses = [_expense("e1", "600000", datetime(2025, 3, 2))]

        stats = aggregate(config, [], expenses, date(2025, 3, 5))

        self.assertEqual(stats.progress.consumption_progress, 100.0)
        self.assertAlmostEqual(stats.progress.total_progress, 66.667, places=2)
        self.assertTrue(stats.progress.consumption_warning)

    def test_stats_command_requires_setup(self) -> None:
        tool = registry.get_tool("stats.aggregate")
        response = tool.run(CommandRequest(request_id="r", tool=tool.name, state=BudgetState(), now=datetime(2025, 3, 1)))
        self.assertFalse(response.ok)

    def test_stats_command_reports_all_sections(self) -> None:
        config = _config()
        state = BudgetState(budget_config=config, monthly_budgets=(MonthlyBudgetSnapshot("2025-03", config),))
        tool = registry.get_tool("stats.aggregate")

        response = tool.run(CommandRequest(request_id="r", tool=tool.name, state=state, now=datetime(2025, 3, 1)))

        self.assertTrue(response.ok)
        self.assertEqual(set(response.result), {"cycle", "cumulative", "progress", "goal_achieved"})
        self.assertEqual(response.result["cycle"]["month"], "2025-03")
        self.assertFalse(response.result["goal_achieved"])


if __name__ == "__main__":
    unittest.main()
