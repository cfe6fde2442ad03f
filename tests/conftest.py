# tests/conftest.py

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from workbench_agent.agent.dispatcher import TurnDispatcher
from workbench_agent.agent.service import AgentService
from workbench_agent.config import Settings
from workbench_agent.core.models import Agent
from workbench_agent.core.state import AppState
from workbench_agent.storage.store import WorkbenchStore

from .fakes import ScriptedModelClient, action


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """
    Settings built directly (not from env) to keep unit tests isolated and deterministic.
    """
    return Settings(
        app_name="workbench-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        db_path=tmp_path / "workbench.sqlite3",
        default_model="test-model",
        llm_temperature=0.3,
        llm_max_tokens=2000,
        llm_timeout_seconds=5.0,
        max_steps=20,
        default_working_dir=str(tmp_path),
        coding_cli="claude-not-installed-for-tests",
        coding_cli_timeout_seconds=5.0,
    )


@pytest.fixture()
def store(settings: Settings) -> WorkbenchStore:
    """Real SQLite store: its behavior is part of what the loop tests check."""
    return WorkbenchStore(settings.db_path)


@pytest.fixture()
def workdir(tmp_path: Path) -> Path:
    d = tmp_path / "work"
    d.mkdir()
    return d


@pytest.fixture()
def provider_id(store: WorkbenchStore) -> int:
    return store.add_provider(name="fake", label="Fake", base_url="https://llm.invalid/v1", api_key="sk-test")


@pytest.fixture()
def agent(store: WorkbenchStore, provider_id: int, workdir: Path) -> Agent:
    agent_id = store.add_agent(
        name="builder",
        provider_id=provider_id,
        model="test-model",
        prompt="You are careful.",
        working_dir=str(workdir),
    )
    found = store.get_agent(agent_id)
    assert found is not None
    return found


@pytest.fixture()
def conversation_id(store: WorkbenchStore, agent: Agent) -> int:
    task_id = store.add_task(name="Fix the build", description="CI is red")
    cid = store.create_conversation(task_id, agent.id)
    store.append_message(cid, "system", "# Task\n- Name: Fix the build", "text", {})
    return cid


@pytest.fixture()
def model_client() -> ScriptedModelClient:
    return ScriptedModelClient([action("complete", summary="done")])


@pytest.fixture()
def state(settings: Settings, store: WorkbenchStore, model_client: ScriptedModelClient) -> Iterator[AppState]:
    """
    AppState wired like the CLI bootstrap, but with a scripted model client.

    NOTE: the store is real SQLite; turns run on real dispatcher threads.
    """
    dispatcher = TurnDispatcher()
    service = AgentService(store, dispatcher, settings, client_factory=lambda _p: model_client)
    yield AppState(settings=settings, store=store, dispatcher=dispatcher, service=service)
    dispatcher.shutdown(wait=True, timeout=5)
