from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from domain.models import AchievementEvent, BudgetState

ArgsT = TypeVar("ArgsT", bound=BaseModel)


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    args_schema: dict[str, Any]
    mutates: bool = False


@dataclass(frozen=True)
class CommandRequest:
    request_id: str
    tool: str
    state: BudgetState
    now: datetime
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CommandResponse:
    request_id: str
    tool: str
    state: BudgetState
    ok: bool = True
    result: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    achievements: list[AchievementEvent] = field(default_factory=list)


def format_validation_error(exc: ValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        msg = str(err.get("msg", "invalid value"))
        messages.append(f"{loc}: {msg}" if loc else msg)
    return messages


class Tool(ABC):
    name: str
    description: str = ""
    args_model: type[BaseModel] | None = None
    mutates: bool = False

    @abstractmethod
    def run(self, request: CommandRequest) -> CommandResponse:
        raise NotImplementedError

    def spec(self) -> ToolSpec:
        schema = self.args_model.model_json_schema() if self.args_model else {}
        return ToolSpec(name=self.name, description=self.description, args_schema=schema, mutates=self.mutates)

    # ---- response helpers ----
    def respond(
        self,
        request: CommandRequest,
        state: BudgetState | None = None,
        result: dict[str, Any] | None = None,
        achievements: list[AchievementEvent] | None = None,
    ) -> CommandResponse:
        return CommandResponse(
            request_id=request.request_id,
            tool=self.name,
            state=request.state if state is None else state,
            result=result or {},
            achievements=achievements or [],
        )

    def reject(self, request: CommandRequest, *errors: str) -> CommandResponse:
        # Rejections always hand back the untouched input state.
        return CommandResponse(
            request_id=request.request_id,
            tool=self.name,
            state=request.state,
            ok=False,
            errors=list(errors),
        )

    def parse_args(self, request: CommandRequest, model: type[ArgsT]) -> tuple[ArgsT | None, CommandResponse | None]:
        try:
            return model.model_validate(request.args or {}), None
        except ValidationError as exc:
            return None, self.reject(request, *format_validation_error(exc))
