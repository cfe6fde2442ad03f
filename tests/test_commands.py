# tests/test_commands.py

from __future__ import annotations

from workbench_agent.cli.commands import CommandRegistry
from workbench_agent.cli.commands import registry as commands
from workbench_agent.connectors.console_connector import handle_line
from workbench_agent.core.models import ConversationStatus


def test_command_registry_routes_and_aliases(state) -> None:
    reg = CommandRegistry()
    seen: list[list[str]] = []

    def h(state, args):
        seen.append(args)
        return "ok"

    reg.register("go", h, "go somewhere", aliases=["g"])

    assert reg.handle(state, "/go a b") == "ok"
    assert reg.handle(state, "/G c") == "ok"
    assert seen == [["a", "b"], ["c"]]
    assert "/go - go somewhere" in reg.build_help()


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_command_registry_maps_errors(state) -> None:
    reg = CommandRegistry()

    def missing(state, args):
        raise LookupError("task 42")

    def bad(state, args):
        raise ValueError("id must be a number")

    reg.register("missing", missing, "")
    reg.register("bad", bad, "")

    assert reg.handle(state, "/missing") == "Not found: task 42"
    assert reg.handle(state, "/bad") == "Invalid input: id must be a number"


def test_provider_key_and_listing(state) -> None:
    pid = state.store.list_providers()[0].id

    assert "saved" in commands.handle(state, f"/provider key {pid} sk-abc")
    assert "key set" in commands.handle(state, "/providers")
    assert commands.handle(state, "/provider key 999 sk").startswith("Not found")
    assert commands.handle(state, "/provider key x sk").startswith("Invalid input")


def test_agent_and_task_commands(state) -> None:
    pid = state.store.list_providers()[0].id

    assert commands.handle(state, f"/agent add coder {pid} deepseek-coder") == "Agent 1 created."
    assert "coder (provider=" in commands.handle(state, "/agents")

    assert commands.handle(state, "/task add Fix CI | the pipeline is red") == "Task 1 created."
    task = state.store.get_task(1)
    assert task is not None
    assert (task.name, task.description) == ("Fix CI", "the pipeline is red")
    assert "[pending] Fix CI" in commands.handle(state, "/tasks")


def test_delegate_show_and_steps(state, agent) -> None:
    task_id = state.store.add_task(name="Fix CI")

    reply = commands.handle(state, f"/delegate {task_id} {agent.id} focus on lint")
    assert reply.startswith("Conversation 1 started")
    assert state.current_conversation_id == 1
    assert state.dispatcher.wait_idle(timeout=10)

    shown = commands.handle(state, "/show")
    assert "Fix CI" in shown
    assert "completed" in shown
    assert "(result): done" in shown

    assert "1. [success] complete" in commands.handle(state, "/steps 1")
    assert "conversation 1 with builder: completed" in commands.handle(state, f"/task {task_id}")


def test_open_and_stop(state, conversation_id) -> None:
    assert commands.handle(state, "/open 999").startswith("Not found")
    assert commands.handle(state, "/show").startswith("Invalid input")

    assert "now open" in commands.handle(state, f"/open {conversation_id}")
    assert "stopped" in commands.handle(state, "/stop")

    conv = state.store.get_conversation(conversation_id)
    assert conv is not None
    assert conv.status == ConversationStatus.FAILED


def test_plain_text_goes_to_open_conversation(state, conversation_id) -> None:
    assert "No conversation is open" in (handle_line(state, "hello") or "")

    state.current_conversation_id = conversation_id
    assert "Sent to conversation" in (handle_line(state, "please continue") or "")
    assert state.dispatcher.wait_idle(timeout=10)

    msgs = state.store.list_messages(conversation_id)
    assert any(m.role == "user" and m.content == "please continue" for m in msgs)
    conv = state.store.get_conversation(conversation_id)
    assert conv is not None
    assert conv.status == ConversationStatus.COMPLETED
