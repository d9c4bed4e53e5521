"""
LLM Client Infrastructure
==========================

Wrappers for the embedding and chat-completion providers.

The domain and application layers depend on the ``IEmbeddingClient`` and
``ICompletionClient`` abstractions; concrete clients are constructed
explicitly from an ``LLMClientConfig`` and injected at startup:

- ``OpenAIEmbeddingClient`` / ``OpenAICompletionClient``: direct SDK calls
- ``ProxiedCompletionClient``: same wire format, sent through an internal
  HTTP proxy with httpx
- ``MockLLMClient``: deterministic offline responses
"""

import hashlib
import json
import math
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import httpx
from openai import AsyncOpenAI

from autocrm.config import Settings
from autocrm.core import (
    CompletionException,
    ConfigurationException,
    EmbeddingException,
)
from autocrm.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


@dataclass
class LLMClientConfig:
    """Connection settings for one provider client."""
    api_key: Optional[str]
    model: str
    timeout: float = 30.0
    max_retries: int = 2
    base_url: Optional[str] = None

    @classmethod
    def for_completions(cls, settings: Settings) -> "LLMClientConfig":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.llm_model,
            timeout=settings.llm_timeout_seconds,
            max_retries=settings.llm_max_retries,
            base_url=settings.openai_base_url,
        )

    @classmethod
    def for_embeddings(cls, settings: Settings) -> "LLMClientConfig":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
            timeout=settings.llm_timeout_seconds,
            max_retries=settings.llm_max_retries,
            base_url=settings.openai_base_url,
        )


@dataclass
class CompletionOptions:
    """Per-call overrides for a completion."""
    model: Optional[str] = None
    temperature: float = 0.3
    max_tokens: Optional[int] = None


class ChatCompletionResult:
    """Result of a chat completion."""

    def __init__(
        self,
        content: Optional[str],
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: int
    ):
        self.content = content
        self.model = model
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.total_tokens = prompt_tokens + completion_tokens
        self.latency_ms = latency_ms


# ========== Interfaces ==========

class IEmbeddingClient(ABC):
    """Converts text into fixed-length vectors."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Embed a single text."""

    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        """Embed several texts, preserving order."""
        return [await self.embed(text) for text in texts]

    async def close(self) -> None:
        """Release network resources."""


class ICompletionClient(ABC):
    """
    Interface for chat completion operations.

    ``complete`` is the single-turn convenience used by the services; it
    returns ``default`` when the provider answers without any content.
    """

    default_model: str = ""

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """Generate chat completion."""

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        options: Optional[CompletionOptions] = None,
        default: str = "",
        operation: str = "chat_completion"
    ) -> str:
        options = options or CompletionOptions()
        result = await self.chat_completion(
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=options.temperature,
            max_tokens=options.max_tokens,
            model=options.model,
            operation=operation,
        )
        if not result.content:
            logger.warning(
                "Completion returned no content; using default",
                extra={"operation": operation, "model": result.model}
            )
            return default
        return result.content

    async def close(self) -> None:
        """Release network resources."""


def _log_completion(result: ChatCompletionResult, operation: str) -> None:
    logger.info(
        "LLM completion finished",
        extra={
            "operation": operation,
            "model": result.model,
            "prompt_tokens": result.prompt_tokens,
            "completion_tokens": result.completion_tokens,
            "latency_ms": result.latency_ms,
        }
    )


def _first_choice_content(choices) -> Optional[str]:
    """``choices[0].message.content`` of a wire response, or None if malformed."""
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None


# ========== OpenAI (direct) ==========

def _openai_client(config: LLMClientConfig) -> AsyncOpenAI:
    if not config.api_key:
        raise ConfigurationException("OpenAI API key not configured")
    return AsyncOpenAI(
        api_key=config.api_key,
        base_url=config.base_url,
        timeout=config.timeout,
        max_retries=config.max_retries,
    )


class OpenAIEmbeddingClient(IEmbeddingClient):
    """OpenAI embeddings endpoint."""

    def __init__(self, config: LLMClientConfig):
        self._client = _openai_client(config)
        self._model = config.model

    async def embed(self, text: str) -> List[float]:
        """
        Generate embedding for text.

        Raises:
            EmbeddingException: If the provider call fails
        """
        try:
            response = await self._client.embeddings.create(
                model=self._model,
                input=text
            )
            return list(response.data[0].embedding)
        except Exception as e:
            raise EmbeddingException(f"Embedding generation failed: {str(e)}")

    async def embed_many(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        try:
            response = await self._client.embeddings.create(
                model=self._model,
                input=texts
            )
            ordered = sorted(response.data, key=lambda item: item.index)
            return [list(item.embedding) for item in ordered]
        except Exception as e:
            raise EmbeddingException(f"Batch embedding failed: {str(e)}")

    async def close(self) -> None:
        await self._client.close()


class OpenAICompletionClient(ICompletionClient):
    """
    OpenAI client implementation for GPT models.

    Provides async wrapper around OpenAI SDK operations.
    """

    def __init__(self, config: LLMClientConfig):
        self._client = _openai_client(config)
        self.default_model = config.model

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """
        Generate chat completion using OpenAI GPT.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens to generate (provider default when None)
            model: Model override
            operation: Operation name for logging

        Returns:
            ChatCompletionResult with generated text (content may be None)

        Raises:
            CompletionException: If completion fails
        """
        start_time = time.perf_counter()
        model = model or self.default_model
        kwargs = {"max_tokens": max_tokens} if max_tokens else {}

        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                **kwargs
            )
        except Exception as e:
            raise CompletionException(f"Chat completion failed: {str(e)}")

        content = response.choices[0].message.content if response.choices else None
        usage = response.usage
        result = ChatCompletionResult(
            content=content,
            model=model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            latency_ms=int((time.perf_counter() - start_time) * 1000)
        )
        _log_completion(result, operation)
        return result

    async def close(self) -> None:
        await self._client.close()


# ========== Proxied ==========

class ProxiedCompletionClient(ICompletionClient):
    """
    Sends completions through an internal HTTP proxy.

    The proxy accepts and returns the OpenAI chat wire format:
    request ``{model, messages, temperature, max_tokens?}``, response
    ``{choices: [{message: {content}}]}``.
    """

    def __init__(
        self,
        proxy_url: Optional[str],
        config: LLMClientConfig,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        if not proxy_url:
            raise ConfigurationException("Completion proxy URL not configured")
        self._url = proxy_url
        self._api_key = config.api_key
        self._max_retries = config.max_retries
        self.default_model = config.model
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout)

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        start_time = time.perf_counter()
        model = model or self.default_model
        payload = {"model": model, "messages": messages, "temperature": temperature}
        if max_tokens:
            payload["max_tokens"] = max_tokens
        headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

        response = None
        for attempt in range(self._max_retries + 1):
            try:
                response = await self._client.post(self._url, json=payload, headers=headers)
                response.raise_for_status()
                break
            except httpx.TransportError as e:
                if attempt >= self._max_retries:
                    raise CompletionException(f"Proxy request failed: {str(e)}")
                logger.warning(
                    "Proxy request failed, retrying",
                    extra={"operation": operation, "attempt": attempt + 1, "error": str(e)}
                )
            except httpx.HTTPStatusError as e:
                raise CompletionException(
                    f"Proxy returned {e.response.status_code}",
                    {"body": e.response.text[:500]}
                )

        try:
            body = response.json()
        except ValueError as e:
            raise CompletionException(f"Proxy returned invalid JSON: {e}")

        if not isinstance(body, dict):
            body = {}
        content = _first_choice_content(body.get("choices"))
        usage = body.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        result = ChatCompletionResult(
            content=content,
            model=body.get("model", model),
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            latency_ms=int((time.perf_counter() - start_time) * 1000)
        )
        _log_completion(result, operation)
        return result

    async def close(self) -> None:
        await self._client.aclose()


# ========== Mock ==========

class MockLLMClient(ICompletionClient, IEmbeddingClient):
    """
    Mock LLM client for offline development.

    Returns predictable responses without calling external APIs. Embeddings
    are seeded from a hash of the text, so identical text always yields the
    identical unit vector.
    """

    default_model = "mock-model"

    def __init__(self, dimension: int = 1536):
        self._dimension = dimension

    async def embed(self, text: str) -> List[float]:
        seed = int(hashlib.sha256(text.encode()).hexdigest()[:8], 16)
        rng = random.Random(seed)
        vector = [rng.uniform(-1, 1) for _ in range(self._dimension)]
        norm = math.sqrt(sum(v * v for v in vector)) or 1.0
        return [v / norm for v in vector]

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        model: Optional[str] = None,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        if operation == "priority":
            payload = {"priority": "Medium", "reason": "Mock: default triage."}
        elif operation in ("initial_response", "follow_up_response"):
            payload = {
                "message": "Thanks for reaching out. Could you share a few more details?",
                "resolution": {
                    "status": "continue",
                    "confidence": 0.5,
                    "reason": "Mock: more information needed."
                }
            }
        elif operation == "tags":
            payload = {"tags": ["general"]}
        elif operation == "ticket_patterns":
            payload = []
        else:
            payload = None

        content = json.dumps(payload) if payload is not None else (
            "This is a mock LLM response for testing purposes."
        )
        return ChatCompletionResult(
            content=content,
            model=self.default_model,
            prompt_tokens=100,
            completion_tokens=len(content.split()),
            latency_ms=1
        )


# ========== Factories ==========

def build_completion_client(settings: Settings) -> ICompletionClient:
    """Select the completion transport from configuration."""
    config = LLMClientConfig.for_completions(settings)
    if settings.completion_transport == "mock":
        return MockLLMClient(settings.embedding_dimension)
    if settings.completion_transport == "proxy":
        return ProxiedCompletionClient(settings.completion_proxy_url, config)
    return OpenAICompletionClient(config)


def build_embedding_client(settings: Settings) -> IEmbeddingClient:
    """Embeddings always go to the provider directly (or the mock)."""
    if settings.completion_transport == "mock":
        return MockLLMClient(settings.embedding_dimension)
    return OpenAIEmbeddingClient(LLMClientConfig.for_embeddings(settings))


__all__ = [
    "LLMClientConfig",
    "CompletionOptions",
    "ChatCompletionResult",
    "IEmbeddingClient",
    "ICompletionClient",
    "OpenAIEmbeddingClient",
    "OpenAICompletionClient",
    "ProxiedCompletionClient",
    "MockLLMClient",
    "build_completion_client",
    "build_embedding_client",
]
