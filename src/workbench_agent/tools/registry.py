# src/workbench_agent/tools/registry.py

from __future__ import annotations

from collections.abc import Iterable
from types import MappingProxyType

from .base import (
    TOOL_ASK_USER,
    TOOL_COMPLETE,
    TOOL_LIST_FILES,
    TOOL_READ_FILE,
    TOOL_SHELL,
    TOOL_WRITE_FILE,
    Tool,
    ToolDefinition,
)
from .control import AskUserTool, CompleteTool
from .files import ListFilesTool, ReadFileTool, WriteFileTool
from .process import DEFAULT_CODING_CLI, DEFAULT_CODING_CLI_TIMEOUT_SECONDS, ClaudeCodeTool, ShellTool

# Offered to agents that do not configure their own tool list.
DEFAULT_TOOL_NAMES: tuple[str, ...] = (
    TOOL_SHELL,
    TOOL_READ_FILE,
    TOOL_WRITE_FILE,
    TOOL_LIST_FILES,
    TOOL_ASK_USER,
    TOOL_COMPLETE,
)


class ToolRegistry:
    """
    Immutable catalog of tools keyed by unique name.

    Lookups never raise for unknown names:
    - get() returns None,
    - get_many() silently drops them (order of the known names is preserved).
    """

    def __init__(self, tools: Iterable[Tool]) -> None:
        by_name: dict[str, Tool] = {}
        for tool in tools:
            if tool.name in by_name:
                raise ValueError(f"duplicate tool name: {tool.name}")
            by_name[tool.name] = tool
        self._tools = MappingProxyType(by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def get_many(self, names: Iterable[str]) -> list[Tool]:
        return [self._tools[n] for n in names if n in self._tools]

    def all(self) -> list[Tool]:
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools.keys())

    def definitions(self, names: Iterable[str] | None = None) -> list[ToolDefinition]:
        tools = self.all() if names is None else self.get_many(names)
        return [t.definition for t in tools]


def default_registry(
    *,
    coding_cli: str = DEFAULT_CODING_CLI,
    coding_cli_timeout_seconds: float = DEFAULT_CODING_CLI_TIMEOUT_SECONDS,
) -> ToolRegistry:
    """Registry with the seven built-in tools."""
    return ToolRegistry(
        [
            ClaudeCodeTool(coding_cli, timeout_seconds=coding_cli_timeout_seconds),
            ShellTool(),
            ReadFileTool(),
            WriteFileTool(),
            ListFilesTool(),
            AskUserTool(),
            CompleteTool(),
        ]
    )
