# tests/test_parser.py

from __future__ import annotations

import json

import pytest

from workbench_agent.agent.parser import ActionParseError, parse_action


def test_plain_json_reply() -> None:
    a = parse_action('  {"thought": "look", "action": "list_files", "action_input": {"path": "."}}\n')
    assert a.action == "list_files"
    assert a.thought == "look"
    assert a.arguments() == {"path": "."}


def test_fenced_json_block() -> None:
    reply = (
        "Let me check.\n"
        "```json\n"
        '{"thought":"t","action":"shell","action_input":{"command":"echo hi"}}\n'
        "```\n"
        "Done."
    )
    a = parse_action(reply)
    assert a.action == "shell"
    assert a.thought == "t"
    assert json.loads(a.action_input_raw) == {"command": "echo hi"}


def test_untagged_fenced_block() -> None:
    reply = 'Sure:\n```\n{"thought":"x","action":"complete","action_input":{"summary":"ok"}}\n```'
    a = parse_action(reply)
    assert a.action == "complete"
    assert a.arguments() == {"summary": "ok"}


def test_flat_object_inside_prose() -> None:
    reply = 'I will now finish. {"thought": "done", "action": "complete"} Thanks!'
    a = parse_action(reply)
    assert a.action == "complete"
    assert a.action_input_raw == ""
    assert a.arguments() == {}


def test_flat_scan_cannot_see_through_nested_braces() -> None:
    reply = 'Plan: {"thought": "t", "action": "shell", "action_input": {"command": "ls"}} ok'
    with pytest.raises(ActionParseError):
        parse_action(reply)


@pytest.mark.parametrize(
    "reply",
    [
        "I think the task is already done, nothing to do.",
        '{"thought": "no action here"}',
        '{"thought": "empty", "action": ""}',
        '["action", "shell"]',
        "",
    ],
)
def test_unactionable_replies(reply: str) -> None:
    with pytest.raises(ActionParseError):
        parse_action(reply)


def test_fenced_block_without_action_falls_through_to_scan() -> None:
    reply = '```json\n{"note": 1}\n```\nthen {"thought": "t", "action": "ask_user"}'
    a = parse_action(reply)
    assert a.action == "ask_user"


def test_missing_thought_defaults_to_empty() -> None:
    a = parse_action('{"action": "complete", "action_input": {"summary": "s"}}')
    assert a.thought == ""
