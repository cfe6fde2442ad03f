# src/workbench_agent/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from ..core.models import Message, MessageType
from ..core.state import AppState

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /delegate, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(state, args)
        except LookupError as e:
            return f"Not found: {e.args[0] if e.args else e}"
        except ValueError as e:
            return f"Invalid input: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _fmt_ts(ts: float) -> str:
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _parse_id(raw: str, what: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{what} must be a number, got {raw!r}") from None


def _conversation_arg(state: AppState, args: list[str]) -> int:
    if args:
        return _parse_id(args[0], "conversation id")
    if state.current_conversation_id is None:
        raise ValueError("no conversation is open; use /open <id> or pass an id")
    return state.current_conversation_id


def format_message(m: Message) -> str:
    head = f"[{_fmt_ts(m.created_at)}] {m.role}"
    if m.type != MessageType.TEXT:
        head += f" ({m.type})"
    text = f"{head}: {m.content}"
    options = m.metadata.get("options")
    if m.type == MessageType.QUESTION and isinstance(options, list) and options:
        text += "\n    options: " + " / ".join(str(o) for o in options)
    return text


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    s = state.settings
    current = state.current_conversation_id
    lines = [
        "Status:",
        f"  Database: {s.db_path}",
        f"  Default model: {s.default_model}",
        f"  Step budget: {s.max_steps}",
        f"  Coding CLI: {s.coding_cli} (timeout {s.coding_cli_timeout_seconds:.0f}s)",
        f"  Open conversation: {current if current is not None else '-'}",
    ]
    if current is not None:
        conv = state.store.get_conversation(current)
        if conv is not None:
            running = "running" if state.service.is_running(current) else "idle"
            lines.append(f"  Conversation status: {conv.status} ({running})")
    return "\n".join(lines)


def cmd_providers(state: AppState, args: list[str]) -> str:
    providers = state.store.list_providers()
    if not providers:
        return "No model providers."
    lines = ["Model providers:"]
    for p in providers:
        key = "key set" if p.api_key else "no key"
        enabled = "" if p.enabled else ", disabled"
        lines.append(f"  {p.id}. {p.label} [{p.name}] {p.base_url} ({key}{enabled})")
    return "\n".join(lines)


def cmd_provider(state: AppState, args: list[str]) -> str:
    """
    /provider key <id> <api_key>  -> set the API key of a provider
    """
    if len(args) == 3 and args[0].lower() == "key":
        provider_id = _parse_id(args[1], "provider id")
        if state.store.get_provider(provider_id) is None:
            raise LookupError(f"provider {provider_id}")
        state.store.set_provider_api_key(provider_id, args[2])
        return f"API key saved for provider {provider_id}."
    return "Usage: /provider key <id> <api_key>"


def cmd_agents(state: AppState, args: list[str]) -> str:
    agents = state.store.list_agents()
    if not agents:
        return "No agents. Create one with /agent add <name> <provider_id> [model]."
    lines = ["Agents:"]
    for a in agents:
        model = a.model or state.settings.default_model
        tools = ", ".join(a.tools) if a.tools else "default tools"
        lines.append(f"  {a.id}. {a.name} (provider={a.provider_id}, model={model}, {tools})")
    return "\n".join(lines)


def cmd_agent(state: AppState, args: list[str]) -> str:
    """
    /agent add <name> <provider_id> [model]
    """
    if len(args) >= 3 and args[0].lower() == "add":
        provider_id = _parse_id(args[2], "provider id")
        if state.store.get_provider(provider_id) is None:
            raise LookupError(f"provider {provider_id}")
        model = args[3] if len(args) > 3 else ""
        agent_id = state.store.add_agent(name=args[1], provider_id=provider_id, model=model)
        return f"Agent {agent_id} created."
    return "Usage: /agent add <name> <provider_id> [model]"


def cmd_tasks(state: AppState, args: list[str]) -> str:
    tasks = state.store.list_tasks()
    if not tasks:
        return "No tasks. Create one with /task add <name> [| description]."
    lines = ["Tasks:"]
    for t in tasks:
        lines.append(f"  {t.id}. [{t.status}] {t.name}")
    return "\n".join(lines)


def cmd_task(state: AppState, args: list[str]) -> str:
    """
    /task add <name> [| description]
    /task <id>  -> show the task and its conversations
    """
    if args and args[0].lower() == "add" and len(args) > 1:
        name, _, description = " ".join(args[1:]).partition("|")
        task_id = state.store.add_task(name=name.strip(), description=description.strip())
        return f"Task {task_id} created."

    if len(args) == 1:
        task_id = _parse_id(args[0], "task id")
        task = state.store.get_task(task_id)
        if task is None:
            raise LookupError(f"task {task_id}")
        lines = [f"Task {task.id}: {task.name} [{task.status}]"]
        if task.description:
            lines.append(f"  {task.description}")
        for c in state.store.list_task_conversations(task_id):
            lines.append(f"  conversation {c.id} with {c.agent_name or c.agent_id}: {c.status}")
        return "\n".join(lines)

    return "Usage: /task add <name> [| description] or /task <id>"


def cmd_delegate(state: AppState, args: list[str]) -> str:
    """
    /delegate <task_id> <agent_id> [notes...]
    """
    if len(args) < 2:
        return "Usage: /delegate <task_id> <agent_id> [notes...]"
    task_id = _parse_id(args[0], "task id")
    agent_id = _parse_id(args[1], "agent id")
    conversation_id = state.service.start_conversation(task_id, agent_id, " ".join(args[2:]))
    state.current_conversation_id = conversation_id
    return f"Conversation {conversation_id} started. Use /show to follow it; plain text replies to the agent."


def cmd_open(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /open <conversation_id>"
    conversation_id = _parse_id(args[0], "conversation id")
    if state.store.get_conversation(conversation_id) is None:
        raise LookupError(f"conversation {conversation_id}")
    state.current_conversation_id = conversation_id
    return f"Conversation {conversation_id} is now open."


def cmd_show(state: AppState, args: list[str]) -> str:
    detail = state.service.conversation_detail(_conversation_arg(state, args))
    conv = detail.conversation
    title = detail.task.name if detail.task is not None else f"task {conv.task_id}"
    lines = [f"Conversation {conv.id} ({title}, agent {conv.agent_name or conv.agent_id}): {conv.status}"]
    lines.extend(format_message(m) for m in detail.messages)
    return "\n".join(lines)


def cmd_steps(state: AppState, args: list[str]) -> str:
    conversation_id = _conversation_arg(state, args)
    steps = state.service.conversation_steps(conversation_id)
    if not steps:
        return f"No steps recorded for conversation {conversation_id}."
    lines = [f"Steps of conversation {conversation_id}:"]
    for s in steps:
        lines.append(f"  {s.step_num}. [{s.status}] {s.action} {s.action_input}")
        if s.thought:
            lines.append(f"     thought: {s.thought}")
        if s.error:
            lines.append(f"     error: {s.error}")
    return "\n".join(lines)


def cmd_stop(state: AppState, args: list[str]) -> str:
    conversation_id = _conversation_arg(state, args)
    state.service.stop_conversation(conversation_id)
    return f"Conversation {conversation_id} stopped."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show settings and the open conversation.")
registry.register("providers", cmd_providers, help_text="List model providers.")
registry.register("provider", cmd_provider, help_text="Set a provider key: /provider key <id> <api_key>.")
registry.register("agents", cmd_agents, help_text="List agents.")
registry.register("agent", cmd_agent, help_text="Create an agent: /agent add <name> <provider_id> [model].")
registry.register("tasks", cmd_tasks, help_text="List tasks.")
registry.register("task", cmd_task, help_text="Create or show a task: /task add <name> [| description] | /task <id>.")
registry.register(
    "delegate", cmd_delegate, help_text="Delegate a task to an agent: /delegate <task_id> <agent_id> [notes]."
)
registry.register("open", cmd_open, help_text="Open a conversation: /open <id>.")
registry.register("show", cmd_show, help_text="Show a conversation transcript: /show [id].")
registry.register("steps", cmd_steps, help_text="Show executed agent steps: /steps [id].")
registry.register("stop", cmd_stop, help_text="Stop a conversation: /stop [id].")
