"""LLM client — HTTP connection to the Gemini generateContent API.

The engine injects an LLM callable matching the protocol:

    async def __call__(self, stage: str, prompt: str) -> str: ...

`stage` identifies which step is calling ("world", "turn", "summary",
"player"). The implementation uses it for logging only.

GeminiLLM is the production implementation. Tests pass an AsyncMock (or any
coroutine function with the same signature) instead.

No streaming and no structured-output mode: the reply contract lives in the
prompt and is enforced by the engine when it parses the reply text.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"
DEFAULT_MODEL = "gemini-2.5-flash"


# ---------------------------------------------------------------------------
# Protocol: every LLM implementation must match this signature
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def __call__(self, stage: str, prompt: str) -> str: ...


# ---------------------------------------------------------------------------
# GeminiLLM: connects to the real backend
# ---------------------------------------------------------------------------

class GeminiLLM:
    """Async HTTP client for Gemini text generation.

    Request:   POST {base_url}/v1beta/models/{model}:generateContent
               {"contents": [{"role": "user", "parts": [{"text": ...}]}]}
    Response:  {"candidates": [{"content": {"parts": [{"text": "..."}]}}]}

    A response with no candidate or no text parts (a blocked prompt, for
    instance) yields an empty string. Deciding whether that is an error is
    the caller's job.

    Args:
        api_key:   Gemini API key, sent as the x-goog-api-key header.
        model:     Model identifier. Defaults to "gemini-2.5-flash".
        base_url:  API root. Overridable for proxies and tests.
        timeout:   HTTP timeout in seconds. Defaults to 120.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 120.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def model(self) -> str:
        return self._model

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-goog-api-key": self._api_key,
        }

    def _build_request(self, prompt: str) -> tuple[str, dict]:
        """Return (url, body) for a single-turn text request."""
        url = f"{self._base_url}/v1beta/models/{self._model}:generateContent"
        body = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        return url, body

    def _parse_response(self, data: dict) -> str:
        """Extract the reply text from the response body."""
        if not isinstance(data, dict):
            raise TransportError("Unexpected response format from Gemini")
        candidates = data.get("candidates") or []
        if not candidates:
            feedback = data.get("promptFeedback", {})
            logger.warning("gemini returned no candidates feedback=%r", feedback)
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(p.get("text", "") for p in parts if isinstance(p, dict))

    async def __call__(self, stage: str, prompt: str) -> str:
        url, body = self._build_request(prompt)
        logger.debug("llm call stage=%s model=%s prompt_len=%d", stage, self._model, len(prompt))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise TransportError(f"Cannot connect to Gemini at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"Gemini returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise TransportError(f"Gemini timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Gemini request failed: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise TransportError("Gemini returned a body that is not JSON") from e

        text = self._parse_response(data)
        logger.debug("llm response stage=%s len=%d", stage, len(text))
        return text


# ---------------------------------------------------------------------------
# TransportError: raised by GeminiLLM for all connection and protocol failures
# ---------------------------------------------------------------------------

class TransportError(RuntimeError):
    """Raised when the model backend cannot be reached or returns an error."""
