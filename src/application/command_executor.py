from __future__ import annotations

import logging
import time

from tools.base import CommandRequest, CommandResponse
from tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class CommandExecutor:
    def __init__(self, registry: ToolRegistry):
        self._registry = registry

    def run(self, request: CommandRequest) -> CommandResponse:
        logger.info("CommandExecutor running request_id=%s command=%s", request.request_id, request.tool)
        t = time.perf_counter()
        try:
            tool = self._registry.get_tool(request.tool)
            response = tool.run(request)
        except Exception as exc:
            logger.exception("CommandExecutor failed request_id=%s command=%s", request.request_id, request.tool)
            response = CommandResponse(
                request_id=request.request_id,
                tool=request.tool,
                state=request.state,
                ok=False,
                errors=[str(exc) or exc.__class__.__name__],
            )
        logger.info(
            "CommandExecutor finished request_id=%s command=%s in %.3fs ok=%s",
            request.request_id,
            request.tool,
            time.perf_counter() - t,
            response.ok,
        )
        return response
