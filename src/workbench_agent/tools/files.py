# src/workbench_agent/tools/files.py

from __future__ import annotations

import glob
from datetime import datetime
from pathlib import Path

from .base import (
    TOOL_LIST_FILES,
    TOOL_READ_FILE,
    TOOL_WRITE_FILE,
    BaseTool,
    ToolArgs,
    ToolDefinition,
    ToolResult,
    object_schema,
    resolve_path,
)


class ReadFileTool(BaseTool):
    definition = ToolDefinition(
        name=TOOL_READ_FILE,
        description="Read the contents of a file.",
        kind="builtin",
        schema=object_schema({"path": {"type": "string", "description": "File path"}}, required=["path"]),
    )

    def execute(self, args: ToolArgs, working_dir: Path) -> ToolResult:
        if not args.path:
            return ToolResult.failure("path is required")
        path = resolve_path(args.path, working_dir)
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            return ToolResult.failure(f"failed to read file: {e}")
        return ToolResult(success=True, output=content)


class WriteFileTool(BaseTool):
    definition = ToolDefinition(
        name=TOOL_WRITE_FILE,
        description="Write content to a file.",
        kind="builtin",
        schema=object_schema(
            {
                "path": {"type": "string", "description": "File path"},
                "content": {"type": "string", "description": "File content"},
            },
            required=["path", "content"],
        ),
    )

    def execute(self, args: ToolArgs, working_dir: Path) -> ToolResult:
        if not args.path:
            return ToolResult.failure("path is required")
        path = resolve_path(args.path, working_dir)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return ToolResult.failure(f"failed to create directory: {e}")
        try:
            path.write_text(args.content, encoding="utf-8")
        except OSError as e:
            return ToolResult.failure(f"failed to write file: {e}")
        return ToolResult(success=True, output=f"File written: {path}")


class ListFilesTool(BaseTool):
    definition = ToolDefinition(
        name=TOOL_LIST_FILES,
        description="List files in a directory.",
        kind="builtin",
        schema=object_schema(
            {
                "path": {"type": "string", "description": "Directory path"},
                "pattern": {"type": "string", "description": "Glob pattern to match, e.g. *.py"},
            },
            required=["path"],
        ),
    )

    def execute(self, args: ToolArgs, working_dir: Path) -> ToolResult:
        path = resolve_path(args.path, working_dir) if args.path else working_dir

        if args.pattern:
            matches = sorted(glob.glob(str(path / args.pattern)))
            return ToolResult(success=True, output="\n".join(matches))

        try:
            entries = sorted(path.iterdir(), key=lambda p: p.name)
        except OSError as e:
            return ToolResult.failure(f"failed to read directory: {e}")

        lines: list[str] = []
        for entry in entries:
            try:
                st = entry.stat()
            except OSError:
                lines.append(entry.name)
                continue
            mtime = datetime.fromtimestamp(st.st_mtime).strftime("%Y-%m-%d %H:%M")
            lines.append(f"{entry.name}\t{st.st_size}\t{mtime}")
        return ToolResult(success=True, output="\n".join(lines))
