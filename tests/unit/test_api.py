"""
HTTP tests for the FastAPI application.

The app is built with an injected ``ServiceContainer`` of fakes and the
repository-backed services are overridden with in-memory repositories, so
no database or provider is touched.
"""
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from autocrm.container import ServiceContainer
from autocrm.infrastructure.email import IEmailNotifier
from autocrm.infrastructure.vectorstore import InMemoryVectorIndex
from autocrm.knowledge.application import KnowledgeArticleService
from autocrm.knowledge.interfaces.controllers import get_article_service
from autocrm.main import create_app
from autocrm.support.application import TicketWorkflowService
from autocrm.support.interfaces.controllers import get_workflow_service

from conftest import (
    FakeEmbedder,
    InMemoryArticleRepository,
    InMemoryMessageRepository,
    InMemoryTicketRepository,
    ScriptedLLM,
    ai_reply,
)


@pytest.fixture
def llm():
    return ScriptedLLM({
        "priority": {"priority": "High", "reason": "Login blocked"},
        "initial_response": ai_reply("continue", 0.5, message="Did you check spam?"),
        "follow_up_response": ai_reply("potential_resolution", 0.93, message="Great, glad it works."),
        "chat": "Use the reset link on the login page.",
    })


@pytest.fixture
def container(test_settings, llm):
    email = AsyncMock(spec=IEmailNotifier)
    email.send_ticket_resolved.return_value = True
    return ServiceContainer.build(
        test_settings,
        embedder=FakeEmbedder(),
        llm=llm,
        vector_index=InMemoryVectorIndex(),
        email_notifier=email
    )


@pytest.fixture
def client(test_settings, container):
    app = create_app(test_settings, container=container)

    articles = InMemoryArticleRepository()
    tickets = InMemoryTicketRepository()
    messages = InMemoryMessageRepository()

    app.dependency_overrides[get_article_service] = lambda: KnowledgeArticleService(
        articles, container.sync
    )
    app.dependency_overrides[get_workflow_service] = lambda: TicketWorkflowService(
        tickets=tickets,
        messages=messages,
        priority_classifier=container.priority_classifier,
        retrieval=container.retrieval,
        responder=container.responder,
        policy=container.resolution_policy,
        email_notifier=container.email_notifier,
    )
    return TestClient(app)


def _open_ticket(client, submitted_by="cust-1"):
    response = client.post("/tickets", json={
        "title": "Cannot log in",
        "description": "Reset email never arrives",
        "submitted_by": submitted_by,
    })
    assert response.status_code == 201
    return response.json()


class TestTickets:

    def test_create_ticket_returns_ai_reply(self, client):
        body = _open_ticket(client)
        assert body["ticket"]["priority"] == "High"
        assert body["ticket"]["status"] == "Open"
        assert body["ai_message"]["sender_type"] == "ai"
        assert body["ai_message"]["resolution"]["confidence"] == 0.5

    def test_follow_up_resolves_ticket(self, client):
        ticket_id = _open_ticket(client)["ticket"]["id"]

        response = client.post(f"/tickets/{ticket_id}/messages", json={
            "sender_id": "cust-1",
            "content": "Found it in spam",
        })

        assert response.status_code == 201
        body = response.json()
        assert body["ticket"]["status"] == "Resolved"
        assert body["ai_message"]["content"] == "Great, glad it works."

        messages = client.get(f"/tickets/{ticket_id}/messages").json()
        assert [m["sender_type"] for m in messages] == ["human", "ai", "human", "ai"]

    def test_worker_message_has_no_ai_reply(self, client):
        ticket_id = _open_ticket(client)["ticket"]["id"]
        response = client.post(f"/tickets/{ticket_id}/messages", json={
            "sender_id": "worker-1",
            "content": "Checking the mail logs",
        })
        assert response.status_code == 201
        assert response.json()["ai_message"] is None

    def test_unknown_ticket_is_404(self, client):
        response = client.get("/tickets/does-not-exist")
        assert response.status_code == 404
        assert "correlation_id" in response.json()

    def test_reopen_by_other_user_is_403(self, client):
        ticket_id = _open_ticket(client)["ticket"]["id"]
        client.post(f"/tickets/{ticket_id}/resolve", json={"resolution_notes": "Fixed"})

        response = client.post(f"/tickets/{ticket_id}/reopen", json={"requested_by": "intruder"})
        assert response.status_code == 403

        response = client.post(f"/tickets/{ticket_id}/reopen", json={"requested_by": "cust-1"})
        assert response.status_code == 200
        assert response.json()["status"] == "Re-Opened"

    def test_invalid_transition_is_409(self, client):
        ticket_id = _open_ticket(client)["ticket"]["id"]
        response = client.post(f"/tickets/{ticket_id}/close")
        assert response.status_code == 409

    def test_resolve_reports_email(self, client):
        ticket_id = _open_ticket(client)["ticket"]["id"]
        response = client.post(f"/tickets/{ticket_id}/resolve", json={
            "resolution_notes": "Whitelisted the sender",
            "customer_email": "jane@example.com",
        })
        assert response.status_code == 200
        assert response.json()["email_sent"] is True
        assert response.json()["ticket"]["resolution_notes"] == "Whitelisted the sender"

    def test_list_and_filter(self, client):
        first = _open_ticket(client)["ticket"]["id"]
        _open_ticket(client, submitted_by="cust-2")
        client.post(f"/tickets/{first}/assign", json={"worker_id": "worker-9"})

        everything = client.get("/tickets").json()
        assert everything["total"] == 2

        assigned = client.get("/tickets", params={"assigned_to": "worker-9"}).json()
        assert [t["id"] for t in assigned["tickets"]] == [first]

        open_only = client.get("/tickets", params={"status": "Open"}).json()
        assert open_only["total"] == 2


class TestKnowledge:

    def test_article_lifecycle_and_search(self, client):
        created = client.post("/knowledge/articles", json={
            "title": "Password reset",
            "content": "Use the reset link on the login page.",
            "tags": ["Account", "account"],
            "status": "published",
        })
        assert created.status_code == 201
        article = created.json()
        assert article["tags"] == ["account"]

        search = client.post("/knowledge-base/search", json={"query": "forgot password"})
        assert search.status_code == 200
        assert [a["id"] for a in search.json()["articles"]] == [article["id"]]

        updated = client.put(f"/knowledge/articles/{article['id']}", json={"status": "archived"})
        assert updated.json()["status"] == "archived"

        assert client.delete(f"/knowledge/articles/{article['id']}").status_code == 204
        assert client.get(f"/knowledge/articles/{article['id']}").status_code == 404

    def test_blank_search_query(self, client):
        response = client.post("/knowledge-base/search", json={"query": "  "})
        assert response.status_code == 400
        assert response.json() == {"error": "Query is required"}

    def test_sync_uses_camel_case(self, client):
        client.post("/knowledge/articles", json={"title": "A", "content": "B"})

        response = client.post("/knowledge/sync", json={"strategy": "rebuild"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["totalProcessed"] == 1
        assert "errors" not in body

    def test_sync_without_body_defaults_to_diff(self, client):
        response = client.post("/knowledge/sync")
        assert response.status_code == 200
        assert response.json()["message"] == "No articles found to process"


class TestAssistant:

    def test_ai_dispatch(self, client):
        response = client.post("/ai", json={
            "operation": "analyzePriority",
            "title": "Cannot log in",
            "description": "Blocked",
        })
        assert response.status_code == 200
        assert response.json() == {"priority": "High", "reason": "Login blocked"}

    def test_ai_unknown_operation(self, client):
        response = client.post("/ai", json={"operation": "summarize"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid operation specified"

    def test_ai_invalid_json(self, client):
        response = client.post(
            "/ai", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400

    def test_ai_non_object_body(self, client):
        response = client.post("/ai", json=["analyzePriority"])
        assert response.status_code == 400

    def test_chat_answer(self, client):
        client.post("/knowledge/articles", json={
            "title": "Password reset",
            "content": "Use the reset link.",
            "status": "published",
        })

        response = client.post("/chat", json={"message": "How do I reset my password?"})

        assert response.status_code == 200
        body = response.json()
        assert body["response"] == "Use the reset link on the login page."
        assert body["needsLiveAgent"] is False
        assert body["usedArticles"][0]["title"] == "Password reset"

    def test_chat_without_articles_hands_off(self, client):
        body = client.post("/chat", json={"message": "Anything"}).json()
        assert body["needsLiveAgent"] is True
        assert body["usedArticles"] == []

    def test_chat_blank_message(self, client):
        response = client.post("/chat", json={"message": ""})
        assert response.status_code == 400
        assert response.json() == {"error": "Message is required"}


class TestOperational:

    def test_health_reports_providers(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["checks"]["vector_store"] == "available (0 vectors)"
        assert body["checks"]["llm_client"] == "ScriptedLLM"

    def test_root(self, client):
        body = client.get("/").json()
        assert body["service"] == "AutoCRM"

    def test_correlation_id_echoed(self, client):
        response = client.get("/", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"
