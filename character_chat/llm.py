"""LLM client — HTTP connection to a chat-completion backend.

The orchestrator injects an LLM callable matching the protocol:

    async def __call__(self, messages: list[dict[str, str]]) -> str: ...

`messages` is the OpenAI-style turn list: `{"role": ..., "content": ...}`
with roles "system", "user" and "assistant". The callable returns the
assistant text, or "" when the backend answered but gave no usable content.

Two implementations are provided:

    HttpLLM   — real HTTP client for OpenAI-compatible /chat/completions
                endpoints.
    EchoLLM   — replies with the last user turn. Useful for smoke-testing
                the chat wiring without a running model.

Production code builds an HttpLLM from Settings (see `build_llm`). Tests use
StubLLM (defined in the test helpers) instead.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)

ChatTurn = dict[str, str]


# ---------------------------------------------------------------------------
# Protocol: every LLM implementation matches this signature
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def __call__(self, messages: list[ChatTurn]) -> str: ...


# ---------------------------------------------------------------------------
# HttpLLM — connects to a real backend
# ---------------------------------------------------------------------------

class HttpLLM:
    """Async HTTP client for OpenAI-compatible chat-completion backends.

    Request:  POST {base_url}/chat/completions
              {"model": ..., "messages": [...], "max_tokens": ..., "temperature": ...}
    Response: {"choices": [{"message": {"role": "assistant", "content": "..."}}]}

    Args:
        base_url:      Base URL of the backend, e.g. "https://api.example.com/v1".
        api_key:       Bearer token, or empty string if not required.
        model:         Model identifier sent with every request.
        max_tokens:    Completion length cap.
        temperature:   Sampling temperature.
        timeout:       HTTP timeout in seconds. Defaults to 120.
        extra_headers: Additional headers some proxies require.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        model: str = "",
        max_tokens: int = 1000,
        temperature: float = 0.7,
        timeout: float = 120.0,
        extra_headers: dict[str, str] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout
        self._extra_headers = dict(extra_headers or {})

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        headers.update(self._extra_headers)
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_request(self, messages: list[ChatTurn]) -> tuple[str, dict[str, Any]]:
        """Return (url, body)."""
        body: dict[str, Any] = {
            "messages": messages,
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }
        if self._model:
            body["model"] = self._model
        return f"{self._base_url}/chat/completions", body

    def _parse_response(self, data: Any) -> str:
        """Extract the assistant text. Missing content in a well-formed body yields ""."""
        if not isinstance(data, dict) or not isinstance(data.get("choices"), list):
            raise LLMError("Unexpected response format from chat-completion backend")
        choices = data["choices"]
        if not choices or not isinstance(choices[0], dict):
            return ""
        message = choices[0].get("message")
        if not isinstance(message, dict):
            return ""
        content = message.get("content")
        return content if isinstance(content, str) else ""

    async def __call__(self, messages: list[ChatTurn]) -> str:
        url, body = self._build_request(messages)
        logger.debug("llm call url=%s turns=%d", url, len(messages))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to LLM backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(
                f"LLM backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise LLMError(f"LLM backend timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise LLMError(f"Request to LLM backend failed: {type(e).__name__}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMError("LLM backend returned a non-JSON body") from e

        text = self._parse_response(data)
        logger.debug("llm response len=%d", len(text))
        return text


# ---------------------------------------------------------------------------
# EchoLLM — replies with the last user turn; useful for wiring checks
# ---------------------------------------------------------------------------

class EchoLLM:
    """Returns the content of the most recent user turn. No network calls."""

    async def __call__(self, messages: list[ChatTurn]) -> str:
        logger.debug("EchoLLM turns=%d", len(messages))
        for turn in reversed(messages):
            if turn.get("role") == "user":
                return turn.get("content", "")
        return ""


# ---------------------------------------------------------------------------
# LLMError: raised by HttpLLM for all connection and protocol failures
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the LLM backend cannot be reached or returns an error."""
