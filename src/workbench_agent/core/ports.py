# src/workbench_agent/core/ports.py

"""
Ports (interfaces) used by the core.

The execution loop depends on Protocols instead of concrete implementations.
This keeps storage and LLM providers swappable and makes testing easier.
"""

from __future__ import annotations

from typing import Any, Protocol

from .models import Agent, ConversationStatus, Message, ModelProvider, StepStatus

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


class ModelClient(Protocol):
    """One synchronous chat-completion round trip (OpenAI-compatible)."""

    def complete(self, messages: list[ChatMessage], model: str) -> str: ...


class ConversationRepo(Protocol):
    """Persistence collaborator consumed by the execution loop."""

    def append_message(
            self,
            conversation_id: int,
            role: str,
            content: str,
            msg_type: str = "text",
            metadata: dict[str, Any] | None = None,
    ) -> int: ...

    def append_step(
            self,
            conversation_id: int,
            step_num: int,
            thought: str,
            action: str,
            action_input: str,
    ) -> int: ...

    def update_step(
            self,
            step_id: int,
            status: StepStatus,
            observation: str,
            error: str = "",
    ) -> None: ...

    def update_conversation_status(self, conversation_id: int, status: ConversationStatus) -> None: ...

    def list_messages(self, conversation_id: int) -> list[Message]: ...

    def last_step_num(self, conversation_id: int) -> int: ...

    def get_agent(self, agent_id: int) -> Agent | None: ...

    def get_provider(self, provider_id: int) -> ModelProvider | None: ...
