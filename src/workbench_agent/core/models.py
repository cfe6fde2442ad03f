# src/workbench_agent/core/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ConversationStatus(StrEnum):
    """
    Conversation lifecycle status.

    Notes:
    - only the execution loop moves a conversation to waiting_user/completed/failed,
    - "active" is set by whoever (re)starts a turn (delegation or a user reply).
    """

    ACTIVE = "active"
    WAITING_USER = "waiting_user"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def from_db(cls, raw: str | None) -> ConversationStatus:
        if not raw:
            return cls.ACTIVE
        try:
            return cls(raw)
        except ValueError:
            return cls.FAILED


class MessageRole(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class MessageType(StrEnum):
    TEXT = "text"
    QUESTION = "question"
    RESULT = "result"
    ERROR = "error"

    @classmethod
    def from_db(cls, raw: str | None) -> MessageType:
        if not raw:
            return cls.TEXT
        try:
            return cls(raw)
        except ValueError:
            return cls.TEXT


class StepStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"

    @classmethod
    def from_db(cls, raw: str | None) -> StepStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.FAILED


@dataclass(slots=True)
class Conversation:
    id: int
    task_id: int
    agent_id: int
    status: ConversationStatus
    created_at: float
    updated_at: float
    agent_name: str = ""


@dataclass(slots=True)
class Message:
    id: int
    conversation_id: int
    # Kept as a plain str: rows written by older front-ends may carry other roles.
    role: str
    content: str
    type: MessageType
    metadata: dict[str, Any]
    created_at: float


@dataclass(slots=True)
class Step:
    id: int
    conversation_id: int
    step_num: int
    thought: str
    action: str
    action_input: str
    observation: str
    status: StepStatus
    error: str
    created_at: float


@dataclass(slots=True)
class Agent:
    id: int
    name: str
    prompt: str = ""
    provider_id: int | None = None
    model: str = ""
    tools: list[str] = field(default_factory=list)
    working_dir: str = ""
    # 0 means "use the configured default budget".
    max_steps: int = 0
    description: str = ""
    enabled: bool = True


@dataclass(slots=True)
class ModelProvider:
    id: int
    name: str
    label: str
    base_url: str
    api_key: str = ""
    enabled: bool = True


@dataclass(slots=True)
class Task:
    id: int
    name: str
    description: str = ""
    project: str = ""
    status: str = "pending"
    date: str | None = None
    deadline: str | None = None


@dataclass(slots=True)
class ConversationDetail:
    conversation: Conversation
    messages: list[Message]
    task: Task | None
