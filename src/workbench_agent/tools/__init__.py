"""
Tool subsystem.

Components:
- base.py: ToolDefinition, ToolArgs, ToolResult and the Tool capability interface
- process.py: shell and claude_code (external process tools)
- files.py: read_file, write_file, list_files
- control.py: ask_user and complete pseudo-tools
- registry.py: immutable name -> tool catalog
- executor.py: ToolExecutor (JSON payload -> ToolResult, never raises)
"""

from .base import ToolArgs, ToolDefinition, ToolInputError, ToolResult
from .executor import ToolExecutor
from .registry import DEFAULT_TOOL_NAMES, ToolRegistry, default_registry

__all__ = [
    "DEFAULT_TOOL_NAMES",
    "ToolArgs",
    "ToolDefinition",
    "ToolExecutor",
    "ToolInputError",
    "ToolRegistry",
    "ToolResult",
    "default_registry",
]
