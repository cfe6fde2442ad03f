# src/workbench_agent/agent/parser.py

"""
Extract the agent's next action from free-form model text.

Strategies, first success wins:
1. the whole trimmed reply is the action object,
2. the first fenced code block (optionally tagged json),
3. the first flat {...} containing the key "action".

Strategy 3 cannot see through nested braces; an action whose action_input is
an object is only recoverable by strategies 1-2.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*\n?(.+?)\n?```", re.DOTALL)
_FLAT_ACTION_OBJECT = re.compile(r'\{[^{}]*"action"[^{}]*\}', re.DOTALL)


class ActionParseError(ValueError):
    """The reply holds no usable action; treat it as a plain text answer, do not retry."""


@dataclass(frozen=True, slots=True)
class Action:
    thought: str
    action: str
    # action_input re-serialized as JSON text ("" if the key was absent).
    action_input_raw: str

    def arguments(self) -> dict[str, Any]:
        """Decoded action_input; {} when absent or not a JSON object."""
        if not self.action_input_raw:
            return {}
        try:
            val = json.loads(self.action_input_raw)
        except ValueError:
            return {}
        return val if isinstance(val, dict) else {}


def _decode(candidate: str) -> Action | None:
    try:
        obj = json.loads(candidate)
    except ValueError:
        return None
    if not isinstance(obj, dict):
        return None

    action = obj.get("action")
    thought = obj.get("thought", "")
    if not isinstance(action, str) or not action:
        return None
    if thought is None:
        thought = ""
    if not isinstance(thought, str):
        return None

    raw_input = ""
    if "action_input" in obj:
        raw_input = json.dumps(obj["action_input"], ensure_ascii=False)

    return Action(thought=thought, action=action, action_input_raw=raw_input)


def parse_action(response: str) -> Action:
    text = (response or "").strip()

    action = _decode(text)
    if action is not None:
        return action

    m = _FENCED_BLOCK.search(text)
    if m:
        action = _decode(m.group(1).strip())
        if action is not None:
            return action

    m = _FLAT_ACTION_OBJECT.search(text)
    if m:
        action = _decode(m.group(0))
        if action is not None:
            return action

    raise ActionParseError("could not extract an action JSON object from the model reply")
