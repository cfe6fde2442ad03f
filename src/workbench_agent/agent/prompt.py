# src/workbench_agent/agent/prompt.py

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Final

from ..core.models import Message
from ..core.ports import ChatMessage
from ..tools.base import ToolDefinition

ROLE_FRAMING: Final[str] = "You are a task execution agent that completes software engineering tasks autonomously."

OUTPUT_CONTRACT: Final[str] = """
Whenever you use a tool, reply with exactly one JSON object in this format:

{"thought": "your reasoning", "action": "tool name", "action_input": {tool arguments}}

Examples:
{"thought": "I should look at the project layout first", "action": "list_files", "action_input": {"path": "."}}
{"thought": "I need to read the config file", "action": "read_file", "action_input": {"path": "config.json"}}
{"thought": "I will save the fixed module", "action": "write_file", "action_input": {"path": "app/main.py", "content": "print('hi')\\n"}}
{"thought": "Time to run the tests", "action": "shell", "action_input": {"command": "npm test"}}
{"thought": "This refactor spans many files", "action": "claude_code", "action_input": {"task": "Rename Foo to Bar across the repo"}}
{"thought": "The requirement is ambiguous", "action": "ask_user", "action_input": {"question": "Which database should I use?", "options": ["SQLite", "PostgreSQL"]}}
{"thought": "The task is done", "action": "complete", "action_input": {"summary": "Finished xxx successfully"}}

Rules:
1. Use exactly one tool per reply.
2. Decide the next step from the tool results you receive.
3. If you are unsure, use ask_user to ask the user.
4. When the task is finished you must call the complete tool.
""".strip()

# Roles the model API accepts in the transcript; anything else is replayed as user.
_TRANSCRIPT_ROLES: Final[frozenset[str]] = frozenset({"user", "assistant"})


def build_tools_prompt(tools: Iterable[ToolDefinition]) -> str:
    parts = ["You can use the following tools:\n"]
    for tool in tools:
        parts.append(f"## {tool.name}\n{tool.description}\n")
    parts.append(OUTPUT_CONTRACT)
    return "\n".join(parts)


def build_system_prompt(persona: str, tools: Iterable[ToolDefinition]) -> str:
    """Role framing, optional agent persona, then the tool catalog and output contract."""
    sections = [ROLE_FRAMING]
    persona = (persona or "").strip()
    if persona:
        sections.append(f"## Agent persona\n{persona}")
    sections.append(build_tools_prompt(tools))
    return "\n\n".join(sections)


def coerce_role(role: str) -> str:
    """
    Transcript role for a stored message.

    Stored system messages (task context, tool observations) are replayed as
    user turns so the model only ever sees the one leading system prompt.
    """
    return role if role in _TRANSCRIPT_ROLES else "user"


def build_transcript(messages: Sequence[Message]) -> list[ChatMessage]:
    return [{"role": coerce_role(m.role), "content": m.content} for m in messages]


def build_messages(persona: str, tools: Iterable[ToolDefinition], messages: Sequence[Message]) -> list[ChatMessage]:
    """System prompt followed by the full chronological transcript."""
    return [{"role": "system", "content": build_system_prompt(persona, tools)}, *build_transcript(messages)]
