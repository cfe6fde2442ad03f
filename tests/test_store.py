# tests/test_store.py

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from workbench_agent.core.models import ConversationStatus, MessageType, StepStatus
from workbench_agent.storage.store import DEFAULT_PROVIDERS, WorkbenchStore


def test_default_providers_seeded_once(tmp_path: Path) -> None:
    db = tmp_path / "w.sqlite3"
    WorkbenchStore(db)
    store = WorkbenchStore(db)

    providers = store.list_providers()
    assert [p.name for p in providers] == [name for name, _, _ in DEFAULT_PROVIDERS]
    assert all(p.api_key == "" for p in providers)


def test_provider_key_update(store: WorkbenchStore) -> None:
    pid = store.list_providers()[0].id
    store.set_provider_api_key(pid, "  sk-new  ")
    provider = store.get_provider(pid)
    assert provider is not None
    assert provider.api_key == "sk-new"
    assert store.get_provider(12345) is None


def test_agent_round_trip(store: WorkbenchStore, provider_id: int) -> None:
    aid = store.add_agent(
        name="reviewer",
        provider_id=provider_id,
        tools=["read_file", "complete"],
        max_steps=7,
        description="reads code",
    )
    agent = store.get_agent(aid)
    assert agent is not None
    assert agent.tools == ["read_file", "complete"]
    assert agent.max_steps == 7
    assert agent.model == ""
    assert [a.id for a in store.list_agents()] == [aid]


def test_blank_names_rejected(store: WorkbenchStore) -> None:
    with pytest.raises(ValueError):
        store.add_agent(name="  ")
    with pytest.raises(ValueError):
        store.add_task(name="")


def test_messages_keep_insertion_order_and_metadata(store: WorkbenchStore, conversation_id: int) -> None:
    store.append_message(conversation_id, "assistant", "thinking", "text", {"step_num": 1})
    store.append_message(conversation_id, "assistant", "Which?", "question", {"options": ["a", "b"]})

    msgs = store.list_messages(conversation_id)
    assert [m.content for m in msgs][1:] == ["thinking", "Which?"]
    assert msgs[2].type == MessageType.QUESTION
    assert msgs[2].metadata == {"options": ["a", "b"]}
    assert msgs[0].metadata == {}


def test_steps_lifecycle(store: WorkbenchStore, conversation_id: int) -> None:
    assert store.last_step_num(conversation_id) == 0

    sid = store.append_step(conversation_id, 1, "look around", "list_files", '{"path": "."}')
    assert store.list_steps(conversation_id)[0].status == StepStatus.RUNNING

    store.update_step(sid, StepStatus.FAILED, "partial", "boom")
    step = store.list_steps(conversation_id)[0]
    assert (step.status, step.observation, step.error) == (StepStatus.FAILED, "partial", "boom")
    assert store.last_step_num(conversation_id) == 1


def test_duplicate_step_number_rejected(store: WorkbenchStore, conversation_id: int) -> None:
    store.append_step(conversation_id, 1, "", "shell", "{}")
    with pytest.raises(sqlite3.IntegrityError):
        store.append_step(conversation_id, 1, "", "shell", "{}")


def test_conversation_status_and_listing(store: WorkbenchStore, agent, conversation_id: int) -> None:
    conv = store.get_conversation(conversation_id)
    assert conv is not None
    assert conv.status == ConversationStatus.ACTIVE
    assert conv.agent_name == "builder"

    store.update_conversation_status(conversation_id, ConversationStatus.WAITING_USER)
    conv = store.get_conversation(conversation_id)
    assert conv is not None
    assert conv.status == ConversationStatus.WAITING_USER
    assert conv.updated_at >= conv.created_at

    assert [c.id for c in store.list_task_conversations(conv.task_id)] == [conversation_id]


def test_unknown_status_in_db_reads_as_failed(store: WorkbenchStore, settings, conversation_id: int) -> None:
    conn = sqlite3.connect(settings.db_path)
    conn.execute("UPDATE conversations SET status = 'exploded' WHERE id = ?", (conversation_id,))
    conn.commit()
    conn.close()

    conv = store.get_conversation(conversation_id)
    assert conv is not None
    assert conv.status == ConversationStatus.FAILED
