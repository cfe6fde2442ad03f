# src/workbench_agent/tools/executor.py

from __future__ import annotations

import json
import logging
from pathlib import Path

from .base import ToolArgs, ToolInputError, ToolResult
from .registry import ToolRegistry, default_registry

logger = logging.getLogger(__name__)


class ToolExecutor:
    """
    Runs a named tool against a raw JSON argument payload.

    Never raises: malformed payloads, unknown tools and unexpected tool errors
    all come back as a failed ToolResult.
    """

    def __init__(self, working_dir: str | Path = ".", registry: ToolRegistry | None = None) -> None:
        self._working_dir = Path(working_dir or ".").expanduser()
        self._registry = registry if registry is not None else default_registry()

    @property
    def working_dir(self) -> Path:
        return self._working_dir

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    def execute(self, tool_name: str, input_json: str) -> ToolResult:
        logger.info("Executing tool %s input=%s", tool_name, input_json)

        try:
            args = self._parse_args(input_json)
        except ToolInputError as e:
            return ToolResult.failure(f"invalid tool input: {e}")

        if not args.working_dir:
            args.working_dir = str(self._working_dir)

        tool = self._registry.get(tool_name)
        if tool is None:
            return ToolResult.failure(f"unknown tool: {tool_name}")

        try:
            result = tool.execute(args, self._working_dir)
        except Exception as e:
            logger.exception("Tool %s raised", tool_name)
            return ToolResult.failure(f"tool {tool_name} crashed: {e}")

        logger.debug(
            "Tool %s finished success=%s needs_user=%s completed=%s",
            tool_name,
            result.success,
            result.needs_user,
            result.is_completed,
        )
        return result

    @staticmethod
    def _parse_args(input_json: str) -> ToolArgs:
        raw = (input_json or "").strip()
        if not raw:
            return ToolArgs()
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ToolInputError(str(e)) from e
        if data is None:
            return ToolArgs()
        return ToolArgs.from_dict(data)
