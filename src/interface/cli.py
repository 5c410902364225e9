from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Sequence

from dotenv import load_dotenv

from application.engine import BudgetEngine
from domain.schemas import AchievementRecord, CommandResult
from infrastructure.persistence.state_store import JsonStateStore, StateStore
from tools.base import CommandResponse
from tools.registry import registry


def build_engine(store: StateStore | None = None) -> BudgetEngine:
    import tools  # noqa: F401

    return BudgetEngine(registry=registry, store=store or JsonStateStore())


def to_command_result(response: CommandResponse) -> CommandResult:
    return CommandResult(
        command=response.tool,
        ok=response.ok,
        result=response.result,
        errors=response.errors,
        achievements=[AchievementRecord.from_model(a) for a in response.achievements],
    )


def _ratios(text: str) -> dict[str, int]:
    try:
        investment, savings, consumption = (int(part) for part in text.split("/"))
    except ValueError as exc:
        raise argparse.ArgumentTypeError("ratios must look like 70/20/10") from exc
    return {"investmentRatio": investment, "savingsRatio": savings, "consumptionRatio": consumption}


def _json_args(text: str) -> dict[str, Any]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise argparse.ArgumentTypeError(f"args must be a JSON object: {exc.msg}") from exc
    if not isinstance(value, dict):
        raise argparse.ArgumentTypeError("args must be a JSON object")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="budgetstreak", description="Monthly budget and check-in streak tracker.")
    sub = parser.add_subparsers(dest="action", required=True)

    sub.add_parser("status", help="Show this month's budget usage, streak and payday state.")

    for name in ("setup", "update"):
        p = sub.add_parser(name, help=f"{name.capitalize()} the budget configuration.")
        p.add_argument("--income", required=True)
        p.add_argument("--payday", type=int, default=1)
        p.add_argument("--ratios", type=_ratios, default=_ratios("70/20/10"))

    p = sub.add_parser("add", help="Quick-add an expense.")
    p.add_argument("amount")
    p.add_argument("--memo", default="")
    p.add_argument("--essential", action="store_true")

    p = sub.add_parser("remove", help="Delete an expense.")
    p.add_argument("id")

    p = sub.add_parser("list", help="Search the expense log.")
    p.add_argument("--query", default="")
    p.add_argument("--category", choices=("all", "essential", "flexible"), default="all")

    sub.add_parser("checkin", help="Record today's check-in.")

    p = sub.add_parser("payday", help="Check for payday; --skip keeps the current budget.")
    p.add_argument("--skip", action="store_true")

    p = sub.add_parser("transfer", help="Toggle a transfer confirmation.")
    p.add_argument("bucket", choices=("investment", "savings"))

    sub.add_parser("goal", help="Confirm this month's budget goal.")

    p = sub.add_parser("theme", help="Switch the theme.")
    p.add_argument("theme", choices=("dark", "light"))

    sub.add_parser("clear", help="Clear expenses and streak data.")
    sub.add_parser("reset", help="Erase everything.")

    p = sub.add_parser("run", help="Run any registered command with JSON args.")
    p.add_argument("command")
    p.add_argument("--args", type=_json_args, default={})
    return parser


def _command_for(ns: argparse.Namespace) -> tuple[str, dict[str, Any]]:
    action = ns.action
    if action in ("setup", "update"):
        return f"budget.{action}", {"monthlyIncome": ns.income, "payday": ns.payday, **ns.ratios}
    if action == "add":
        return "expenses.add", {
            "amount": ns.amount,
            "memo": ns.memo,
            "category": "essential" if ns.essential else "flexible",
        }
    if action == "remove":
        return "expenses.remove", {"id": ns.id}
    if action == "list":
        return "expenses.list", {"query": ns.query, "category": ns.category}
    if action == "checkin":
        return "streak.check_in", {}
    if action == "payday":
        return ("payday.skip" if ns.skip else "payday.check"), {}
    if action == "transfer":
        return "budget.confirm_transfer", {"bucket": ns.bucket}
    if action == "goal":
        return "goal.check", {}
    if action == "theme":
        return "settings.set_theme", {"theme": ns.theme}
    if action == "clear":
        return "state.clear_data", {}
    if action == "reset":
        return "state.reset_all", {}
    if action == "run":
        return ns.command, ns.args
    raise ValueError(f"unknown action: {action}")


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    logging.basicConfig(level=logging.WARNING, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    ns = build_parser().parse_args(argv)
    engine = build_engine()

    if ns.action == "status":
        results = [to_command_result(engine.execute(name)) for name in ("stats.aggregate", "streak.progress", "payday.check")]
        print(json.dumps([r.model_dump(mode="json") for r in results], indent=2, ensure_ascii=False))
        return 0

    command, args = _command_for(ns)
    result = to_command_result(engine.execute(command, args))
    print(result.model_dump_json(indent=2))
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
