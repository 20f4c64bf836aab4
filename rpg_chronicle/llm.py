"""LLM client: HTTP connection to a text-completion backend.

Summary synthesis calls an LLM matching the protocol:

    async def __call__(self, stage: str, prompt: str) -> str: ...

`stage` names the caller ("summary_session", "summary_npc", ...). It is
used for logging only.

    HttpLLM   real HTTP client for KoboldCpp or OpenAI-compatible backends.
    EchoLLM   returns the prompt back unchanged; lets a summary run be
              exercised end to end without a running model.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Protocol

import httpx

logger = logging.getLogger(__name__)


class LLM(Protocol):
    async def __call__(self, stage: str, prompt: str) -> str: ...


ProviderFormat = Literal["koboldcpp", "openai"]


class HttpLLM:
    """Async HTTP client for text-completion backends.

    Supported formats:
      "koboldcpp"  POST /api/v1/generate  {"prompt": ...}
                   Response: {"results": [{"text": "..."}]}
      "openai"     POST /v1/completions   {"model": ..., "prompt": ...}
                   Response: {"choices": [{"text": "..."}]}
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "koboldcpp",
        model: str = "",
        timeout: float = 120.0,
    ) -> None:
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._format = provider_format
        self._model = model
        self._timeout = timeout

    @classmethod
    def from_connection(cls, connection: dict[str, Any]) -> HttpLLM:
        """Build from the `llm_connection` block of config.json."""
        if not connection.get("provider_url"):
            raise LLMError("No LLM provider configured")
        return cls(
            provider_url=connection["provider_url"],
            api_key=connection.get("api_key", ""),
            provider_format=connection.get("provider_format", "koboldcpp"),
            model=connection.get("model", ""),
            timeout=float(connection.get("timeout", 120)),
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _endpoint(self, prompt: str) -> tuple[str, dict]:
        if self._format == "openai":
            body: dict = {"prompt": prompt}
            if self._model:
                body["model"] = self._model
            return f"{self._base_url}/v1/completions", body
        return f"{self._base_url}/api/v1/generate", {"prompt": prompt}

    def _extract_text(self, data: dict) -> str:
        key = "choices" if self._format == "openai" else "results"
        entries = data.get(key)
        if not entries or "text" not in entries[0]:
            raise LLMError(f"Unexpected response format from {self._format} backend")
        return entries[0]["text"]

    async def __call__(self, stage: str, prompt: str) -> str:
        url, body = self._endpoint(prompt)
        logger.debug("llm call stage=%s url=%s prompt_len=%d", stage, url, len(prompt))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to LLM backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(f"LLM backend returned HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise LLMError(f"LLM backend timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise LLMError(f"LLM request failed: {type(e).__name__}: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMError(f"Invalid JSON response from {self._format} backend") from e
        text = self._extract_text(data)
        logger.debug("llm response stage=%s len=%d", stage, len(text))
        return text


class EchoLLM:
    """Returns the prompt text as-is. No network calls."""

    async def __call__(self, stage: str, prompt: str) -> str:
        logger.debug("EchoLLM stage=%s prompt_len=%d", stage, len(prompt))
        return prompt


class LLMError(RuntimeError):
    """Raised when the LLM backend cannot be reached or returns an error."""
