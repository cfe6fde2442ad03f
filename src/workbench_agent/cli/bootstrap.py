# src/workbench_agent/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the store, turn dispatcher and agent service into AppState.
"""

from __future__ import annotations

import logging

from ..agent.dispatcher import TurnDispatcher
from ..agent.service import AgentService
from ..config import Settings, get_settings
from ..core.state import AppState
from ..storage.store import WorkbenchStore
from ..tools.registry import default_registry

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings: Settings | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = WorkbenchStore(settings.db_path)
    dispatcher = TurnDispatcher()
    registry = default_registry(
        coding_cli=settings.coding_cli,
        coding_cli_timeout_seconds=settings.coding_cli_timeout_seconds,
    )
    service = AgentService(store, dispatcher, settings, registry=registry)

    return AppState(settings=settings, store=store, dispatcher=dispatcher, service=service)


def shutdown_state(state: AppState, *, timeout: float = 5.0) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        if not state.dispatcher.wait_idle(timeout=0):
            logger.info("Waiting up to %.0fs for running agent turns...", timeout)
        state.dispatcher.shutdown(wait=True, timeout=timeout)
    except Exception:
        logger.exception("Dispatcher shutdown failed.")

    try:
        state.store.close()
    except Exception:
        logger.debug("Store close failed.", exc_info=True)
