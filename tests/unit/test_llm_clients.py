"""
Tests for the provider clients and the client factories.
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import respx

from autocrm.core import CompletionException, ConfigurationException, EmbeddingException
from autocrm.infrastructure.llm import (
    CompletionOptions,
    LLMClientConfig,
    MockLLMClient,
    OpenAICompletionClient,
    OpenAIEmbeddingClient,
    ProxiedCompletionClient,
    build_completion_client,
    build_embedding_client,
)

PROXY_URL = "https://llm-proxy.internal/v1/chat/completions"


def _config(**overrides):
    values = {"api_key": "sk-test", "model": "gpt-4o-mini", "max_retries": 1}
    values.update(overrides)
    return LLMClientConfig(**values)


def _completion_response(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=3),
    )


class TestOpenAIClients:

    def test_missing_api_key(self):
        with pytest.raises(ConfigurationException):
            OpenAICompletionClient(_config(api_key=None))

    @pytest.mark.asyncio
    async def test_complete_sends_system_and_user(self):
        client = OpenAICompletionClient(_config())
        client._client = MagicMock()
        client._client.chat.completions.create = AsyncMock(return_value=_completion_response("hi"))

        reply = await client.complete(
            "system", "user", CompletionOptions(temperature=0.5, max_tokens=50), operation="chat"
        )

        assert reply == "hi"
        kwargs = client._client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.5
        assert kwargs["max_tokens"] == 50
        assert [m["role"] for m in kwargs["messages"]] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_empty_content_returns_default(self):
        client = OpenAICompletionClient(_config())
        client._client = MagicMock()
        client._client.chat.completions.create = AsyncMock(return_value=_completion_response(None))

        assert await client.complete("s", "u", default="fallback") == "fallback"

    @pytest.mark.asyncio
    async def test_provider_error_is_wrapped(self):
        client = OpenAICompletionClient(_config())
        client._client = MagicMock()
        client._client.chat.completions.create = AsyncMock(side_effect=RuntimeError("429"))

        with pytest.raises(CompletionException):
            await client.complete("s", "u")

    @pytest.mark.asyncio
    async def test_embed_many_preserves_order(self):
        client = OpenAIEmbeddingClient(_config(model="text-embedding-3-small"))
        client._client = MagicMock()
        client._client.embeddings.create = AsyncMock(return_value=SimpleNamespace(data=[
            SimpleNamespace(index=1, embedding=[0.0, 1.0]),
            SimpleNamespace(index=0, embedding=[1.0, 0.0]),
        ]))

        vectors = await client.embed_many(["first", "second"])

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]

    @pytest.mark.asyncio
    async def test_embedding_error_is_wrapped(self):
        client = OpenAIEmbeddingClient(_config())
        client._client = MagicMock()
        client._client.embeddings.create = AsyncMock(side_effect=RuntimeError("bad key"))

        with pytest.raises(EmbeddingException):
            await client.embed("text")


class TestProxiedCompletionClient:

    def test_requires_url(self):
        with pytest.raises(ConfigurationException):
            ProxiedCompletionClient(None, _config())

    @pytest.mark.asyncio
    @respx.mock
    async def test_posts_openai_wire_format(self):
        route = respx.post(PROXY_URL).mock(return_value=httpx.Response(
            200, json={"choices": [{"message": {"content": "proxied"}}], "usage": {}}
        ))
        client = ProxiedCompletionClient(PROXY_URL, _config())

        reply = await client.complete("s", "u", CompletionOptions(max_tokens=20))

        assert reply == "proxied"
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert b'"max_tokens":20' in request.content.replace(b" ", b"")
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_retries_transport_errors(self):
        route = respx.post(PROXY_URL)
        route.side_effect = [
            httpx.ConnectError("refused"),
            httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]}),
        ]
        client = ProxiedCompletionClient(PROXY_URL, _config(max_retries=1))

        assert await client.complete("s", "u") == "ok"
        assert route.call_count == 2
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_http_error_is_wrapped(self):
        respx.post(PROXY_URL).mock(return_value=httpx.Response(502, text="bad gateway"))
        client = ProxiedCompletionClient(PROXY_URL, _config())

        with pytest.raises(CompletionException) as exc_info:
            await client.complete("s", "u")
        assert "502" in exc_info.value.message
        await client.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        ["oops"],
        {"choices": ["oops"]},
        {"choices": [{"message": "oops"}]},
        {"choices": [{"message": {"content": 42}}], "usage": "none"},
        {"choices": {}},
    ])
    @respx.mock
    async def test_malformed_body_returns_default(self, body):
        respx.post(PROXY_URL).mock(return_value=httpx.Response(200, json=body))
        client = ProxiedCompletionClient(PROXY_URL, _config())

        assert await client.complete("s", "u", default="fallback") == "fallback"
        await client.close()


class TestMockClient:

    @pytest.mark.asyncio
    async def test_embeddings_are_deterministic_unit_vectors(self):
        mock = MockLLMClient(dimension=32)
        first = await mock.embed("hello")
        assert first == await mock.embed("hello")
        assert first != await mock.embed("goodbye")
        assert sum(v * v for v in first) == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_priority_reply_is_json(self):
        reply = await MockLLMClient().complete("s", "u", operation="priority")
        assert '"priority": "Medium"' in reply


class TestFactories:

    def test_mock_transport(self, test_settings):
        assert isinstance(build_completion_client(test_settings), MockLLMClient)
        assert isinstance(build_embedding_client(test_settings), MockLLMClient)

    def test_proxy_transport(self, test_settings):
        settings = test_settings.model_copy(update={
            "completion_transport": "proxy",
            "completion_proxy_url": PROXY_URL,
        })
        assert isinstance(build_completion_client(settings), ProxiedCompletionClient)

    def test_direct_transport_without_key(self, test_settings):
        settings = test_settings.model_copy(update={"completion_transport": "direct"})
        with pytest.raises(ConfigurationException):
            build_completion_client(settings)
