# src/workbench_agent/agent/runner.py

"""
Execution loop.

One invocation drives a bounded sequence of steps for a conversation:
prompt -> model call -> parse -> (tool | complete | ask_user) -> persisted step/messages.

Key invariants:
- every invocation ends in exactly one of waiting_user / completed / failed,
- step numbers continue from the last persisted step, so they stay contiguous
  across turns of the same conversation,
- every dispatched tool produces one step and one observation message, which
  is what the model sees as context on the next step,
- nothing raises out of run(): failures become an error message plus status.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..config import Settings, get_settings
from ..core.models import Agent, ConversationStatus, MessageRole, MessageType, ModelProvider, StepStatus
from ..core.ports import ChatMessage, ConversationRepo, ModelClient
from ..llm.client import DEFAULT_MODEL, ChatCompletionClient, ModelClientError, friendly_llm_error_message
from ..tools.base import TOOL_ASK_USER, TOOL_COMPLETE, ToolResult
from ..tools.executor import ToolExecutor
from ..tools.registry import DEFAULT_TOOL_NAMES, ToolRegistry, default_registry
from .parser import Action, ActionParseError, parse_action
from .prompt import build_messages

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 20

ClientFactory = Callable[[ModelProvider], ModelClient]


def format_observation(tool_name: str, result: ToolResult) -> str:
    """Observation message replayed to the model on the next step."""
    status = "success" if result.success else "failed"
    text = f"[Tool result]\nTool: {tool_name}\nStatus: {status}\nOutput:\n{result.output}"
    if result.error:
        text += f"\nError: {result.error}"
    return text


def _str_arg(args: dict[str, Any], key: str) -> str:
    val = args.get(key)
    return val if isinstance(val, str) else ""


class AgentRunner:
    """Runs one turn of a conversation until it completes, fails, waits for the user or runs out of steps."""

    def __init__(
        self,
        store: ConversationRepo,
        llm: ModelClient,
        agent: Agent,
        conversation_id: int,
        *,
        tool_executor: ToolExecutor | None = None,
        registry: ToolRegistry | None = None,
        default_max_steps: int = DEFAULT_MAX_STEPS,
        default_model: str = DEFAULT_MODEL,
        default_working_dir: str = ".",
    ) -> None:
        self._store = store
        self._llm = llm
        self._agent = agent
        self._conversation_id = conversation_id

        if tool_executor is None:
            working_dir = agent.working_dir or default_working_dir or "."
            tool_executor = ToolExecutor(working_dir, registry=registry)
        self._tools = tool_executor

        budget = agent.max_steps if agent.max_steps > 0 else default_max_steps
        self._max_steps = max(1, int(budget))
        self._model = (agent.model or "").strip() or default_model

        names = agent.tools or list(DEFAULT_TOOL_NAMES)
        self._tool_definitions = self._tools.registry.definitions(names)

    @property
    def max_steps(self) -> int:
        return self._max_steps

    def run(self) -> ConversationStatus:
        logger.info(
            "Agent run started conversation=%s agent=%s model=%s max_steps=%d",
            self._conversation_id,
            self._agent.name,
            self._model,
            self._max_steps,
        )
        try:
            status = self._run()
        except Exception as e:
            logger.exception("Agent run crashed conversation=%s", self._conversation_id)
            status = self._fail(f"Agent run aborted by an internal error: {e}")
        logger.info("Agent run finished conversation=%s status=%s", self._conversation_id, status)
        return status

    # ---- loop ----

    def _run(self) -> ConversationStatus:
        cid = self._conversation_id
        first_step = self._store.last_step_num(cid) + 1

        for step_num in range(first_step, first_step + self._max_steps):
            logger.info("conversation=%s step %d", cid, step_num)

            try:
                prompt = self._build_prompt()
            except Exception as e:
                logger.exception("Failed to build prompt conversation=%s", cid)
                return self._fail(f"Failed to build prompt: {e}")

            try:
                reply = self._llm.complete(prompt, self._model)
            except ModelClientError as e:
                return self._fail(f"Model call failed: {e}")

            try:
                action = parse_action(reply)
            except ActionParseError:
                # Not an action: keep the raw reply as a normal answer and let the user respond.
                logger.warning("conversation=%s unparsable reply, waiting for user: %.200s", cid, reply)
                self._store.append_message(cid, MessageRole.ASSISTANT, reply, MessageType.TEXT, {})
                return self._set_status(ConversationStatus.WAITING_USER)

            status = self._dispatch(step_num, action)
            if status is not None:
                return status

        return self._fail(
            f"Reached the step limit ({self._max_steps}) without completing the task; the run was aborted."
        )

    def _build_prompt(self) -> list[ChatMessage]:
        history = self._store.list_messages(self._conversation_id)
        return build_messages(self._agent.prompt, self._tool_definitions, history)

    def _dispatch(self, step_num: int, action: Action) -> ConversationStatus | None:
        """Persist and execute one step. Returns the final status, or None to continue."""
        cid = self._conversation_id
        store = self._store

        step_id = store.append_step(cid, step_num, action.thought, action.action, action.action_input_raw)
        store.append_message(
            cid,
            MessageRole.ASSISTANT,
            action.thought,
            MessageType.TEXT,
            {"step_num": step_num, "action": action.action},
        )

        if action.action == TOOL_COMPLETE:
            summary = _str_arg(action.arguments(), "summary")
            store.update_step(step_id, StepStatus.SUCCESS, summary)
            store.append_message(cid, MessageRole.ASSISTANT, summary, MessageType.RESULT, {})
            logger.info("conversation=%s completed: %.200s", cid, summary)
            return self._set_status(ConversationStatus.COMPLETED)

        if action.action == TOOL_ASK_USER:
            args = action.arguments()
            question = _str_arg(args, "question")
            options = args.get("options")
            metadata: dict[str, Any] = {}
            if isinstance(options, list) and options:
                metadata["options"] = options
            store.update_step(step_id, StepStatus.SUCCESS, question)
            store.append_message(cid, MessageRole.ASSISTANT, question, MessageType.QUESTION, metadata)
            logger.info("conversation=%s waiting for user: %.200s", cid, question)
            return self._set_status(ConversationStatus.WAITING_USER)

        result = self._tools.execute(action.action, action.action_input_raw)

        if result.success:
            store.update_step(step_id, StepStatus.SUCCESS, result.output)
        else:
            store.update_step(step_id, StepStatus.FAILED, result.output, result.error)

        store.append_message(
            cid,
            MessageRole.SYSTEM,
            format_observation(action.action, result),
            MessageType.RESULT,
            {"step_num": step_num, "tool": action.action, "success": result.success},
        )

        if result.needs_user:
            return self._set_status(ConversationStatus.WAITING_USER)
        return None

    # ---- terminal helpers ----

    def _set_status(self, status: ConversationStatus) -> ConversationStatus:
        self._store.update_conversation_status(self._conversation_id, status)
        return status

    def _fail(self, message: str) -> ConversationStatus:
        logger.error("conversation=%s failed: %s", self._conversation_id, message)
        return record_failure(self._store, self._conversation_id, message)


def record_failure(store: ConversationRepo, conversation_id: int, message: str) -> ConversationStatus:
    """Persist an assistant-visible error and mark the conversation failed."""
    try:
        store.append_message(conversation_id, MessageRole.ASSISTANT, message, MessageType.ERROR, {})
        store.update_conversation_status(conversation_id, ConversationStatus.FAILED)
    except Exception:
        logger.exception("Could not record failure for conversation=%s", conversation_id)
    return ConversationStatus.FAILED


def default_client_factory(settings: Settings) -> ClientFactory:
    def _factory(provider: ModelProvider) -> ModelClient:
        return ChatCompletionClient(
            provider,
            timeout_seconds=settings.llm_timeout_seconds,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )

    return _factory


def run_conversation(
    store: ConversationRepo,
    conversation_id: int,
    agent: Agent,
    *,
    settings: Settings | None = None,
    client_factory: ClientFactory | None = None,
    registry: ToolRegistry | None = None,
) -> ConversationStatus:
    """
    Entry point for one conversation turn.

    Resolves the agent's model provider (fail fast on configuration errors,
    before any step), then runs the execution loop. Never raises.
    """
    if settings is None:
        settings = get_settings()
    if client_factory is None:
        client_factory = default_client_factory(settings)

    logger.info("Turn started conversation=%s agent=%s", conversation_id, agent.name)

    if agent.provider_id is None:
        return record_failure(store, conversation_id, "Error: the agent has no model provider configured.")

    try:
        provider = store.get_provider(agent.provider_id)
    except Exception as e:
        logger.exception("get_provider failed provider_id=%s", agent.provider_id)
        return record_failure(store, conversation_id, f"Error: failed to load the model provider: {e}")

    if provider is None:
        return record_failure(store, conversation_id, f"Error: model provider {agent.provider_id} does not exist.")
    if not provider.enabled:
        return record_failure(store, conversation_id, f"Error: model provider {provider.label} is disabled.")
    if not provider.api_key.strip():
        return record_failure(
            store, conversation_id, f"Error: model provider {provider.label} has no API key configured."
        )

    try:
        llm = client_factory(provider)
    except ModelClientError as e:
        return record_failure(store, conversation_id, f"Error: {friendly_llm_error_message(e)}")

    if registry is None:
        registry = default_registry(
            coding_cli=settings.coding_cli,
            coding_cli_timeout_seconds=settings.coding_cli_timeout_seconds,
        )

    runner = AgentRunner(
        store,
        llm,
        agent,
        conversation_id,
        registry=registry,
        default_max_steps=settings.max_steps,
        default_model=settings.default_model,
        default_working_dir=settings.default_working_dir,
    )
    return runner.run()
