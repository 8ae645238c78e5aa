"""Tests for text_game.llm — GeminiLLM request shape and error mapping."""

import pytest
import httpx
from unittest.mock import AsyncMock, MagicMock, patch

from text_game.llm import GeminiLLM, TransportError


def _mock_response(body, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    resp.raise_for_status = MagicMock(
        side_effect=None if status < 400 else httpx.HTTPStatusError(
            "", request=MagicMock(), response=resp
        )
    )
    return resp


def _reply(*texts: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": t} for t in texts]}}]}


@pytest.fixture
def gemini() -> GeminiLLM:
    return GeminiLLM(api_key="secret", base_url="http://gemini.test/")


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------

class TestRequest:
    async def test_returns_text(self, gemini: GeminiLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_reply("The sea is calm.")))
        with patch("httpx.AsyncClient.post", mock_post):
            assert await gemini("turn", "Look.") == "The sea is calm."

    async def test_joins_parts(self, gemini: GeminiLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_reply("a", "b")))
        with patch("httpx.AsyncClient.post", mock_post):
            assert await gemini("turn", "x") == "ab"

    async def test_posts_to_model_url(self, gemini: GeminiLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_reply("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await gemini("world", "prompt")
        url = mock_post.call_args[0][0]
        assert url == "http://gemini.test/v1beta/models/gemini-2.5-flash:generateContent"

    async def test_sends_prompt_and_key(self, gemini: GeminiLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_reply("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await gemini("world", "my prompt")
        assert mock_post.call_args.kwargs["json"] == {
            "contents": [{"role": "user", "parts": [{"text": "my prompt"}]}],
        }
        assert mock_post.call_args.kwargs["headers"]["x-goog-api-key"] == "secret"

    async def test_custom_model(self) -> None:
        llm = GeminiLLM(api_key="k", model="gemini-pro", base_url="http://gemini.test")
        mock_post = AsyncMock(return_value=_mock_response(_reply("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm("turn", "x")
        assert mock_post.call_args[0][0].endswith("/models/gemini-pro:generateContent")

    async def test_no_candidates_is_empty_text(self, gemini: GeminiLLM) -> None:
        body = {"promptFeedback": {"blockReason": "SAFETY"}}
        mock_post = AsyncMock(return_value=_mock_response(body))
        with patch("httpx.AsyncClient.post", mock_post):
            assert await gemini("turn", "x") == ""


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class TestErrors:
    async def test_http_error_status(self, gemini: GeminiLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({}, status=500))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(TransportError, match="500"):
                await gemini("turn", "x")

    async def test_connect_error(self, gemini: GeminiLLM) -> None:
        mock_post = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(TransportError, match="Cannot connect"):
                await gemini("turn", "x")

    async def test_timeout(self, gemini: GeminiLLM) -> None:
        mock_post = AsyncMock(side_effect=httpx.ReadTimeout("slow"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(TransportError, match="timed out"):
                await gemini("turn", "x")

    async def test_body_not_json(self, gemini: GeminiLLM) -> None:
        resp = _mock_response(None)
        resp.json.side_effect = ValueError("bad json")
        mock_post = AsyncMock(return_value=resp)
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(TransportError):
                await gemini("turn", "x")

    async def test_cause_is_chained(self, gemini: GeminiLLM) -> None:
        mock_post = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(TransportError) as exc:
                await gemini("turn", "x")
        assert isinstance(exc.value.__cause__, httpx.ConnectError)
