# src/workbench_agent/tools/control.py

"""Control pseudo-tools: they only steer the conversation, no side effects."""

from __future__ import annotations

from pathlib import Path

from .base import (
    TOOL_ASK_USER,
    TOOL_COMPLETE,
    BaseTool,
    ToolArgs,
    ToolDefinition,
    ToolResult,
    object_schema,
)


def format_question(question: str, options: list[str]) -> str:
    """Question text plus a readable rendering of the offered options."""
    if not options:
        return question
    return f"{question}\nOptions: {' / '.join(options)}"


class AskUserTool(BaseTool):
    definition = ToolDefinition(
        name=TOOL_ASK_USER,
        description=(
            "Ask the user a question to get more information or a confirmation. "
            "Use it when requirements need clarification or an important decision must be made."
        ),
        kind="builtin",
        schema=object_schema(
            {
                "question": {"type": "string", "description": "The question"},
                "options": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Optional answer choices",
                },
            },
            required=["question"],
        ),
    )

    def execute(self, args: ToolArgs, working_dir: Path) -> ToolResult:
        return ToolResult(success=True, output=format_question(args.question, args.options), needs_user=True)


class CompleteTool(BaseTool):
    definition = ToolDefinition(
        name=TOOL_COMPLETE,
        description="Mark the task as finished. Call this once the task has been completed.",
        kind="builtin",
        schema=object_schema({"summary": {"type": "string", "description": "Completion summary"}}, required=["summary"]),
    )

    def execute(self, args: ToolArgs, working_dir: Path) -> ToolResult:
        return ToolResult(success=True, output=args.summary, is_completed=True)
