"""Tests for OpenAI provider client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from app.core.exceptions import ProviderError
from app.providers.base import GenerationOptions
from app.providers.llm_openai import API_URL, OpenAiProvider


def _mock_client(mock_resp=None, side_effect=None):
    mock_client = AsyncMock()
    if side_effect is not None:
        mock_client.post.side_effect = side_effect
    else:
        mock_client.post.return_value = mock_resp
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


def _response(status_code=200, data=None, text=""):
    mock_resp = MagicMock()
    mock_resp.status_code = status_code
    mock_resp.json.return_value = data
    mock_resp.text = text
    return mock_resp


@pytest.fixture
def provider():
    return OpenAiProvider(api_key="sk-test-fake-key", model="gpt-4o-mini")


class TestSend:
    @pytest.mark.asyncio
    async def test_send_success(self, provider):
        data = {
            "choices": [{"message": {"content": "Acme is a leading CRM."}, "finish_reason": "stop"}],
            "model": "gpt-4o-mini-2024-07-18",
            "usage": {"prompt_tokens": 40, "completion_tokens": 60, "total_tokens": 100},
        }

        with patch("app.providers.base.httpx.AsyncClient") as MockClient:
            mock_client = _mock_client(_response(data=data))
            MockClient.return_value = mock_client

            result = await provider.send("best crm?", GenerationOptions(max_tokens=500, temperature=0.2))

        assert result.text == "Acme is a leading CRM."
        assert result.model == "gpt-4o-mini-2024-07-18"
        assert result.usage.total == 100
        assert result.citations == []

        args, kwargs = mock_client.post.call_args
        assert args[0] == API_URL
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test-fake-key"
        payload = kwargs["json"]
        assert payload["messages"][-1] == {"role": "user", "content": "best crm?"}
        assert payload["max_tokens"] == 500
        assert payload["temperature"] == 0.2

    @pytest.mark.asyncio
    async def test_reasoning_model_uses_completion_tokens(self):
        provider = OpenAiProvider(api_key="sk-test", model="gpt-5-mini")
        data = {"choices": [{"message": {"content": "ok"}}]}

        with patch("app.providers.base.httpx.AsyncClient") as MockClient:
            mock_client = _mock_client(_response(data=data))
            MockClient.return_value = mock_client
            await provider.send("hi", GenerationOptions(max_tokens=321))

        payload = mock_client.post.call_args.kwargs["json"]
        assert payload["max_completion_tokens"] == 321
        assert "temperature" not in payload
        assert "max_tokens" not in payload

    @pytest.mark.asyncio
    async def test_http_error_raises_provider_error(self, provider):
        resp = _response(status_code=429, data={"error": {"message": "Rate limit reached"}})

        with patch("app.providers.base.httpx.AsyncClient") as MockClient:
            MockClient.return_value = _mock_client(resp)
            with pytest.raises(ProviderError) as exc_info:
                await provider.send("hi")

        assert exc_info.value.provider == "chatgpt"
        assert exc_info.value.http_status == 429
        assert "Rate limit reached" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_error_raises_provider_error(self, provider):
        with patch("app.providers.base.httpx.AsyncClient") as MockClient:
            MockClient.return_value = _mock_client(side_effect=httpx.ConnectTimeout("timed out"))
            with pytest.raises(ProviderError) as exc_info:
                await provider.send("hi")

        assert exc_info.value.http_status is None
        assert "ConnectTimeout" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_missing_content_is_empty_text(self, provider):
        data = {"choices": [{"message": {"content": None}}], "usage": {}}

        with patch("app.providers.base.httpx.AsyncClient") as MockClient:
            MockClient.return_value = _mock_client(_response(data=data))
            result = await provider.send("hi")

        assert result.text == ""
        assert result.model == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_non_json_body_is_empty_text(self, provider):
        resp = _response(text="<html>")
        resp.json.side_effect = ValueError("not json")

        with patch("app.providers.base.httpx.AsyncClient") as MockClient:
            MockClient.return_value = _mock_client(resp)
            result = await provider.send("hi")

        assert result.text == ""


class TestProvider:
    def test_provider_name(self, provider):
        assert provider.provider == "chatgpt"

    def test_default_model(self):
        assert OpenAiProvider(api_key="test").model == "gpt-4o-mini"

    def test_missing_key_raises(self):
        with pytest.raises(ProviderError):
            OpenAiProvider(api_key="")
