# src/workbench_agent/llm/client.py

from __future__ import annotations

import logging
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..core.models import ModelProvider
from ..core.ports import ChatMessage

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "deepseek-chat"
DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 2000
DEFAULT_TIMEOUT_SECONDS = 120.0


class ModelClientError(RuntimeError):
    """Any failure of a chat-completion round trip (transport, body, API error, empty reply)."""


def normalize_base_url(base_url: str) -> str:
    """Base URL with exactly one trailing '/'."""
    return base_url.strip().rstrip("/") + "/"


def chat_completions_url(base_url: str) -> str:
    return normalize_base_url(base_url) + "chat/completions"


def _api_error_message(completion: Any) -> str | None:
    """Error envelope some OpenAI-compatible servers return with HTTP 200."""
    err = getattr(completion, "error", None)
    if not err:
        return None
    if isinstance(err, dict):
        return str(err.get("message") or err)
    return str(getattr(err, "message", None) or err)


class ChatCompletionClient:
    """
    Synchronous OpenAI-compatible chat-completion client for one model provider.

    IMPORTANT:
    - automatic retries are disabled: a failed call aborts the turn,
    - a single generous timeout bounds the whole request.
    """

    def __init__(
        self,
        provider: ModelProvider,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not provider.api_key or not provider.api_key.strip():
            raise ModelClientError(f"Model provider {provider.name!r} has no API key configured.")
        if not provider.base_url or not provider.base_url.strip():
            raise ModelClientError(f"Model provider {provider.name!r} has no base URL configured.")

        self._provider_name = provider.name
        self._base_url = normalize_base_url(provider.base_url)
        self._temperature = float(temperature)
        self._max_tokens = int(max_tokens)

        self._client = OpenAI(
            base_url=self._base_url,
            api_key=provider.api_key.strip(),
            timeout=httpx.Timeout(float(timeout_seconds)),
            max_retries=0,
            http_client=http_client,
        )

    @property
    def url(self) -> str:
        return self._base_url + "chat/completions"

    def complete(self, messages: list[ChatMessage], model: str = "") -> str:
        """Send one chat completion request and return the first choice's content verbatim."""
        model = (model or "").strip() or DEFAULT_MODEL
        logger.info("LLM: POST %s model=%s messages=%d", self.url, model, len(messages))

        try:
            completion = self._client.chat.completions.create(
                model=model,
                messages=messages,  # type: ignore[arg-type]
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except openai.APIStatusError as e:
            raise ModelClientError(f"API error (HTTP {e.status_code}): {e.message}") from e
        except openai.APITimeoutError as e:
            raise ModelClientError(f"request to {self.url} timed out") from e
        except openai.APIConnectionError as e:
            raise ModelClientError(f"request to {self.url} failed: {e}") from e
        except openai.APIResponseValidationError as e:
            raise ModelClientError(f"could not decode response body: {e}") from e
        except openai.OpenAIError as e:
            raise ModelClientError(f"LLM call failed: {e}") from e
        except ValueError as e:
            # json.JSONDecodeError for bodies that claim JSON but are not.
            raise ModelClientError(f"could not decode response body: {e}") from e

        if isinstance(completion, str):
            # Non-JSON body: the SDK hands back the raw text.
            raise ModelClientError(f"could not decode response body: {completion[:200]!r}")

        api_error = _api_error_message(completion)
        if api_error:
            raise ModelClientError(f"API error: {api_error}")

        choices = getattr(completion, "choices", None) or []
        if not choices:
            raise ModelClientError("LLM returned no choices")

        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None) if message is not None else None
        logger.debug("LLM: reply from model=%s (%d chars)", model, len(content or ""))
        return content or ""


def friendly_llm_error_message(err: Exception) -> str:
    msg = str(err).strip() or "LLM error."
    if "has no API key configured" in msg:
        return msg + " Set it with /provider key <id> <api_key>."
    return msg
