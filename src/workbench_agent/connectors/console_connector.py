# src/workbench_agent/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    if sys.stdout.isatty():
        sys.stdout.write("\033[1A\033[2K\r")
        sys.stdout.write(line + "\n")
        sys.stdout.flush()
    else:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def handle_line(state: AppState, line: str) -> str | None:
    """Route one console line: slash commands, else a reply to the open conversation."""
    with state.lock:
        reply = command_registry.handle(state, line)
    if reply is not None:
        return reply

    conversation_id = state.current_conversation_id
    if conversation_id is None:
        return "No conversation is open. Use /delegate <task_id> <agent_id> or /open <id>."

    try:
        state.service.send_message(conversation_id, line)
    except LookupError as e:
        return f"Not found: {e}"
    except ValueError as e:
        return f"Invalid input: {e}"
    return f"Sent to conversation {conversation_id}. Use /show to follow the agent."


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    while True:
        try:
            user_input = input(">>> You: ").strip()
            _rewrite_prev_line(f"[{_ts_local()}] >>> You: {user_input}")
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            reply = handle_line(state, user_input)
        except Exception:
            logger.exception("Console command failed: %s", user_input)
            reply = "Command failed, see the log for details."

        if reply:
            _print_ts(reply)
