"""
Shared fixtures and in-process fakes.

The fakes implement the same interfaces as the production adapters, so the
services under test are wired exactly as in ``ServiceContainer.build``.
"""

import json
from typing import Dict, List, Optional, Union
from uuid import uuid4

import pytest

from autocrm.config import ArticleStatus, Settings, TicketStatus
from autocrm.infrastructure.llm import ChatCompletionResult, ICompletionClient, IEmbeddingClient
from autocrm.knowledge.application.services import IKnowledgeArticleRepository
from autocrm.knowledge.domain import KnowledgeArticle
from autocrm.support.application.services import IMessageRepository, ITicketRepository
from autocrm.support.domain import Message, Ticket


class FakeEmbedder(IEmbeddingClient):
    """
    Maps known texts to fixed vectors; unknown texts get ``default``.

    ``fail_on`` lists texts whose embedding raises, to simulate a provider
    rejecting part of a batch.
    """

    def __init__(self, vectors: Optional[Dict[str, List[float]]] = None,
                 default: Optional[List[float]] = None, fail_on: Optional[set] = None):
        self.vectors = vectors or {}
        self.default = default or [1.0, 0.0, 0.0]
        self.fail_on = fail_on or set()
        self.calls: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if text in self.fail_on:
            raise RuntimeError("rate limited")
        for key, vector in self.vectors.items():
            if key in text:
                return vector
        return self.default


class ScriptedLLM(ICompletionClient):
    """
    Completion client that replays canned replies per operation.

    A reply may be a string, a JSON-serializable object, ``None`` (empty
    completion) or an exception instance to raise.
    """

    default_model = "scripted"

    def __init__(self, replies: Optional[Dict[str, object]] = None):
        self.replies = replies or {}
        self.calls: List[dict] = []

    async def chat_completion(self, messages, temperature=0.3, max_tokens=None,
                              model=None, operation="chat_completion"):
        self.calls.append({
            "operation": operation,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        reply = self.replies.get(operation)
        if isinstance(reply, Exception):
            raise reply
        if reply is not None and not isinstance(reply, str):
            reply = json.dumps(reply)
        return ChatCompletionResult(
            content=reply, model=self.default_model,
            prompt_tokens=10, completion_tokens=5, latency_ms=1
        )


def ai_reply(status: str, confidence: float, message: str = "Try restarting the router.",
             reason: str = "test") -> dict:
    return {
        "message": message,
        "resolution": {"status": status, "confidence": confidence, "reason": reason},
    }


# ========== In-memory repositories ==========

class InMemoryArticleRepository(IKnowledgeArticleRepository):

    def __init__(self, articles: Optional[List[KnowledgeArticle]] = None):
        self.articles: Dict[str, KnowledgeArticle] = {a.id: a for a in articles or []}

    async def get_by_id(self, article_id):
        return self.articles.get(article_id)

    async def list_all(self, status=None):
        return [a for a in self.articles.values() if status is None or a.status == status]

    async def add(self, article):
        self.articles[article.id] = article
        return article

    async def save(self, article):
        self.articles[article.id] = article
        return article

    async def delete(self, article_id):
        return self.articles.pop(article_id, None) is not None


class InMemoryTicketRepository(ITicketRepository):

    def __init__(self):
        self.tickets: Dict[str, Ticket] = {}
        self.saves = 0

    async def get_by_id(self, ticket_id):
        return self.tickets.get(ticket_id)

    async def list(self, status=None, submitted_by=None, assigned_to=None):
        tickets = [
            t for t in self.tickets.values()
            if (status is None or t.status == status)
            and (submitted_by is None or t.submitted_by == submitted_by)
            and (assigned_to is None or t.assigned_to == assigned_to)
        ]
        return sorted(tickets, key=lambda t: t.created_at, reverse=True)

    async def add(self, ticket):
        ticket.id = str(uuid4())
        self.tickets[ticket.id] = ticket
        return ticket

    async def save(self, ticket):
        self.saves += 1
        self.tickets[ticket.id] = ticket
        return ticket


class InMemoryMessageRepository(IMessageRepository):

    def __init__(self):
        self.messages: List[Message] = []

    async def add(self, message):
        message.id = str(uuid4())
        self.messages.append(message)
        return message

    async def list_for_ticket(self, ticket_id):
        return [m for m in self.messages if m.ticket_id == ticket_id]


def make_article(article_id: str = "a1", title: str = "Reset password",
                 content: str = "Use the reset link on the login page.",
                 status: Union[ArticleStatus, str] = ArticleStatus.PUBLISHED) -> KnowledgeArticle:
    return KnowledgeArticle(
        id=article_id, title=title, content=content,
        tags={"account"}, status=ArticleStatus(status)
    )


def make_ticket(status: TicketStatus = TicketStatus.OPEN, submitted_by: str = "cust-1") -> Ticket:
    return Ticket(
        id=str(uuid4()), title="Cannot log in", description="Reset email never arrives",
        submitted_by=submitted_by, status=status
    )


# ========== Fixtures ==========

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        completion_transport="mock",
        vector_backend="memory",
        embedding_dimension=8,
        sync_batch_delay_seconds=0.0,
        openai_api_key=None,
        resend_api_key=None,
    )


@pytest.fixture
def scripted_llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()
