from __future__ import annotations

import logging
import time
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any

from application.command_executor import CommandExecutor
from domain.models import BudgetState
from infrastructure.persistence.state_store import StateStore, StateStoreError
from tools.base import CommandRequest, CommandResponse
from tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class BudgetEngine:
    """
    Load -> execute -> persist loop around the command registry.

    Each call reads the full state blob, runs exactly one command against it
    and writes the blob back only when a mutating command was accepted and
    produced a different state. A failed write comes back as a rejection with
    the previous state.
    """

    def __init__(self, registry: ToolRegistry, store: StateStore, executor: CommandExecutor | None = None):
        self._registry = registry
        self._store = store
        self._executor = executor or CommandExecutor(registry)

    @property
    def state(self) -> BudgetState:
        return self._store.load()

    def execute(
        self,
        command: str,
        args: dict[str, Any] | None = None,
        now: datetime | None = None,
        request_id: str | None = None,
    ) -> CommandResponse:
        request_id = request_id or f"cmd_{uuid.uuid4().hex[:12]}"
        logger.info("Engine execute start request_id=%s command=%s", request_id, command)
        t0 = time.perf_counter()

        state = self._store.load()
        request = CommandRequest(
            request_id=request_id,
            tool=command,
            state=state,
            now=now or datetime.now(),
            args=dict(args or {}),
        )
        response = self._executor.run(request)

        if response.ok and response.state != state and not self._registry.mutates(command):
            logger.warning("Engine discarded state change from query request_id=%s command=%s", request_id, command)
            response = replace(response, state=state)
        if response.ok and response.state != state:
            try:
                self._store.save(response.state)
            except StateStoreError as exc:
                logger.error("Engine save failed request_id=%s command=%s error=%s", request_id, command, exc)
                response = replace(response, state=state, ok=False, errors=[str(exc)], achievements=[])
        if not response.ok:
            logger.info("Engine command rejected request_id=%s errors=%s", request_id, response.errors)

        logger.info(
            "Engine execute complete in %.3fs request_id=%s ok=%s achievements=%d",
            time.perf_counter() - t0,
            request_id,
            response.ok,
            len(response.achievements),
        )
        return response

    def has_command(self, name: str) -> bool:
        return name in self._registry

    def commands(self) -> list[str]:
        return self._registry.names()
