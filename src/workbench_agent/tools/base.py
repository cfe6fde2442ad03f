# src/workbench_agent/tools/base.py

"""
Shared tool types.

A tool is a capability with a static definition (name, description, argument
schema) and an execute(args, working_dir) method returning a ToolResult.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

TOOL_CLAUDE_CODE = "claude_code"
TOOL_SHELL = "shell"
TOOL_READ_FILE = "read_file"
TOOL_WRITE_FILE = "write_file"
TOOL_LIST_FILES = "list_files"
TOOL_ASK_USER = "ask_user"
TOOL_COMPLETE = "complete"


class ToolInputError(ValueError):
    """Tool arguments could not be decoded into ToolArgs."""


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    name: str
    description: str
    # "cli" for external program delegates, "builtin" otherwise.
    kind: str
    schema: dict[str, Any]


@dataclass(slots=True)
class ToolResult:
    success: bool
    output: str = ""
    error: str = ""
    needs_user: bool = False
    is_completed: bool = False

    @classmethod
    def failure(cls, error: str, output: str = "") -> ToolResult:
        return cls(success=False, output=output, error=error)


_STR_FIELDS = ("task", "working_dir", "command", "path", "content", "pattern", "question", "summary")


@dataclass(slots=True)
class ToolArgs:
    """Union of all built-in tool arguments; each tool reads the fields it needs."""

    task: str = ""
    working_dir: str = ""
    command: str = ""
    path: str = ""
    content: str = ""
    pattern: str = ""
    question: str = ""
    options: list[str] = field(default_factory=list)
    summary: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolArgs:
        if not isinstance(data, dict):
            raise ToolInputError(f"tool input must be a JSON object, got {type(data).__name__}")

        kwargs: dict[str, Any] = {}
        for name in _STR_FIELDS:
            val = data.get(name)
            if val is None:
                continue
            if not isinstance(val, str):
                raise ToolInputError(f"field {name!r} must be a string")
            kwargs[name] = val

        options = data.get("options")
        if options is not None:
            if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
                raise ToolInputError("field 'options' must be a list of strings")
            kwargs["options"] = list(options)

        return cls(**kwargs)


class Tool(Protocol):
    definition: ToolDefinition

    @property
    def name(self) -> str: ...

    def execute(self, args: ToolArgs, working_dir: Path) -> ToolResult: ...


class BaseTool:
    """Convenience base: tools only declare `definition` and implement execute()."""

    definition: ToolDefinition

    @property
    def name(self) -> str:
        return self.definition.name

    def execute(self, args: ToolArgs, working_dir: Path) -> ToolResult:
        raise NotImplementedError


def resolve_path(raw: str, working_dir: Path) -> Path:
    """Relative paths resolve against working_dir; absolute paths pass through."""
    p = Path(raw).expanduser()
    if p.is_absolute():
        return p
    return working_dir / p


def object_schema(properties: dict[str, dict[str, Any]], required: list[str]) -> dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}
