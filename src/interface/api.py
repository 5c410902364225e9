from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException

from application.engine import BudgetEngine
from domain.schemas import CommandPayload, CommandResult, StateRecord
from interface.cli import build_engine, to_command_result


def create_app(engine: BudgetEngine | None = None) -> FastAPI:
    engine = engine or build_engine()
    app = FastAPI(title="Budget Streak API")

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/state")
    def state() -> dict[str, Any]:
        return StateRecord.from_model(engine.state).model_dump(mode="json", by_alias=True)

    @app.get("/stats")
    def stats() -> CommandResult:
        return to_command_result(engine.execute("stats.aggregate"))

    @app.get("/commands")
    def commands() -> list[str]:
        return engine.commands()

    @app.post("/commands/{name}")
    def run_command(name: str, payload: CommandPayload) -> CommandResult:
        if not engine.has_command(name):
            raise HTTPException(status_code=404, detail=f"Command not registered: {name}")
        return to_command_result(engine.execute(name, payload.args, now=payload.now))

    return app


app = create_app()
