from __future__ import annotations

from tools.base import Tool, ToolSpec


class ToolRegistry:
    """Named commands the engine can dispatch to, keyed by dotted name."""

    def __init__(self):
        self._commands: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        existing = self._commands.get(tool.name)
        if existing is not None and type(existing) is not type(tool):
            raise ValueError(
                f"Command name {tool.name!r} already taken by {type(existing).__name__}"
            )
        self._commands[tool.name] = tool

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def get_tool(self, name: str) -> Tool:
        if name not in self._commands:
            raise KeyError(f"Command not registered: {name}")
        return self._commands[name]

    def mutates(self, name: str) -> bool:
        return self.get_tool(name).mutates

    def names(self) -> list[str]:
        return sorted(self._commands)

    def list_specs(self) -> list[ToolSpec]:
        return [self._commands[name].spec() for name in self.names()]

    def clear(self) -> None:
        self._commands.clear()


registry = ToolRegistry()


def register_tool(tool_cls: type[Tool]) -> type[Tool]:
    registry.register(tool_cls())
    return tool_cls
