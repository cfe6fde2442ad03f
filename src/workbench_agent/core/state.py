# src/workbench_agent/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..agent.dispatcher import TurnDispatcher
    from ..agent.service import AgentService
    from ..config import Settings
    from ..storage.store import WorkbenchStore


@dataclass
class AppState:
    """Everything a front-end needs, wired once by the CLI bootstrap."""

    settings: Settings
    store: WorkbenchStore
    dispatcher: TurnDispatcher
    service: AgentService

    # Conversation that plain console text is sent to.
    current_conversation_id: int | None = None
    lock: threading.Lock = field(default_factory=threading.Lock)
