# src/workbench_agent/agent/service.py

"""
Conversation service: the triggering side of agent turns.

Delegating a task or replying to a waiting conversation persists the message,
marks the conversation active and submits a turn to the TurnDispatcher, then
returns without waiting for the turn to finish.
"""

from __future__ import annotations

import logging

from ..config import Settings
from ..core.models import (
    Agent,
    ConversationDetail,
    ConversationStatus,
    MessageRole,
    MessageType,
    Step,
    Task,
)
from ..storage.store import WorkbenchStore
from ..tools.registry import ToolRegistry
from .dispatcher import TurnDispatcher
from .runner import ClientFactory, run_conversation

logger = logging.getLogger(__name__)


def _or_unset(value: str | None) -> str:
    return value if value else "not set"


def build_task_context(task: Task, extra_context: str = "") -> str:
    """Initial context message describing the delegated task."""
    text = (
        "# Task\n"
        f"- Name: {task.name}\n"
        f"- Description: {task.description}\n"
        f"- Project: {_or_unset(task.project)}\n"
        f"- Status: {task.status}\n"
        f"- Planned date: {_or_unset(task.date)}\n"
        f"- Deadline: {_or_unset(task.deadline)}"
    )
    extra_context = (extra_context or "").strip()
    if extra_context:
        text += "\n\n# Additional notes\n" + extra_context
    return text


class AgentService:
    def __init__(
        self,
        store: WorkbenchStore,
        dispatcher: TurnDispatcher,
        settings: Settings,
        *,
        client_factory: ClientFactory | None = None,
        registry: ToolRegistry | None = None,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._settings = settings
        self._client_factory = client_factory
        self._registry = registry

    # ---- triggers ----

    def start_conversation(self, task_id: int, agent_id: int, extra_context: str = "") -> int:
        task = self._store.get_task(task_id)
        if task is None:
            raise LookupError(f"task {task_id} does not exist")
        agent = self._require_agent(agent_id)

        conversation_id = self._store.create_conversation(task_id, agent_id, ConversationStatus.ACTIVE)
        self._store.append_message(
            conversation_id,
            MessageRole.SYSTEM,
            build_task_context(task, extra_context),
            MessageType.TEXT,
            {},
        )
        logger.info("Delegated task=%s to agent=%s conversation=%s", task_id, agent.name, conversation_id)

        self._submit_turn(conversation_id, agent)
        return conversation_id

    def send_message(self, conversation_id: int, content: str) -> None:
        conv = self._store.get_conversation(conversation_id)
        if conv is None:
            raise LookupError(f"conversation {conversation_id} does not exist")
        content = (content or "").strip()
        if not content:
            raise ValueError("message content is required")
        agent = self._require_agent(conv.agent_id)

        self._store.append_message(conversation_id, MessageRole.USER, content, MessageType.TEXT, {})
        self._store.update_conversation_status(conversation_id, ConversationStatus.ACTIVE)
        self._submit_turn(conversation_id, agent)

    def stop_conversation(self, conversation_id: int) -> None:
        """
        Mark the conversation failed.

        Running or queued turns are not interrupted; when one ends it sets its own status.
        """
        if self._store.get_conversation(conversation_id) is None:
            raise LookupError(f"conversation {conversation_id} does not exist")
        self._store.update_conversation_status(conversation_id, ConversationStatus.FAILED)
        logger.info("Conversation %s stopped by user", conversation_id)

    # ---- queries ----

    def conversation_detail(self, conversation_id: int) -> ConversationDetail:
        conv = self._store.get_conversation(conversation_id)
        if conv is None:
            raise LookupError(f"conversation {conversation_id} does not exist")
        return ConversationDetail(
            conversation=conv,
            messages=self._store.list_messages(conversation_id),
            task=self._store.get_task(conv.task_id),
        )

    def conversation_steps(self, conversation_id: int) -> list[Step]:
        return self._store.list_steps(conversation_id)

    def is_running(self, conversation_id: int) -> bool:
        return self._dispatcher.is_busy(conversation_id)

    # ---- internals ----

    def _require_agent(self, agent_id: int) -> Agent:
        agent = self._store.get_agent(agent_id)
        if agent is None:
            raise LookupError(f"agent {agent_id} does not exist")
        return agent

    def _submit_turn(self, conversation_id: int, agent: Agent) -> None:
        def _turn() -> None:
            run_conversation(
                self._store,
                conversation_id,
                agent,
                settings=self._settings,
                client_factory=self._client_factory,
                registry=self._registry,
            )

        self._dispatcher.submit(conversation_id, _turn)
