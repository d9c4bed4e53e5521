"""
Tests for response generation, priority classification, chat and
ticket pattern analysis.
"""
import json

import httpx
import pytest
import respx

from autocrm.assistant.application import (
    CHAT_FAILURE_MESSAGE,
    DEFAULT_PRIORITY_REASON,
    FALLBACK_REASON,
    FOLLOW_UP_FALLBACK_MESSAGE,
    INITIAL_FALLBACK_MESSAGE,
    NO_ARTICLES_MESSAGE,
    ChatService,
    PriorityClassifier,
    ResponseGenerator,
    TicketPatternAnalyzer,
)
from autocrm.assistant.domain import ConversationTurn, TicketDigest
from autocrm.config import ResolutionStatus, TicketPriority
from autocrm.core import CompletionException
from autocrm.infrastructure.llm import LLMClientConfig, ProxiedCompletionClient
from autocrm.infrastructure.vectorstore import InMemoryVectorIndex, VectorEntry
from autocrm.knowledge.application import KnowledgeRetrievalService

from conftest import FakeEmbedder, ScriptedLLM, ai_reply, make_article


class TestResponseGenerator:

    @pytest.mark.asyncio
    async def test_parses_valid_reply(self):
        llm = ScriptedLLM({"initial_response": ai_reply("potential_resolution", 0.9)})
        response = await ResponseGenerator(llm).generate_initial_response(
            "Cannot log in", "Reset email never arrives", [make_article()]
        )
        assert response.message == "Try restarting the router."
        assert response.resolution.status == ResolutionStatus.POTENTIAL_RESOLUTION
        assert response.resolution.confidence == 0.9

    @pytest.mark.asyncio
    async def test_articles_are_in_prompt(self):
        llm = ScriptedLLM({"initial_response": ai_reply("continue", 0.5)})
        await ResponseGenerator(llm).generate_initial_response(
            "Cannot log in", "Reset email never arrives", [make_article(title="Reset password")]
        )
        user_prompt = llm.calls[0]["messages"][1]["content"]
        assert "Reset password" in user_prompt
        assert llm.calls[0]["max_tokens"] == 500
        assert llm.calls[0]["temperature"] == 0.3

    @pytest.mark.asyncio
    async def test_fenced_and_wrapped_reply(self):
        wrapped = json.dumps({"output": json.dumps(ai_reply("continue", 0.4))})
        llm = ScriptedLLM({"initial_response": f"```json\n{wrapped}\n```"})
        response = await ResponseGenerator(llm).generate_initial_response("t", "d", [])
        assert response.resolution.status == ResolutionStatus.CONTINUE

    @pytest.mark.parametrize("reply", [
        "not json at all",
        {"message": "", "resolution": {"status": "continue", "confidence": 0.5}},
        {"message": "hi", "resolution": {"status": "continue", "confidence": 1.5}},
        {"message": "hi", "resolution": {"status": "done", "confidence": 0.5}},
        {"message": "hi"},
        None,
        CompletionException("timeout"),
    ])
    @pytest.mark.asyncio
    async def test_unusable_reply_escalates(self, reply):
        llm = ScriptedLLM({"initial_response": reply})
        response = await ResponseGenerator(llm).generate_initial_response("t", "d", [])
        assert response.message == INITIAL_FALLBACK_MESSAGE
        assert response.resolution.status == ResolutionStatus.ESCALATE
        assert response.resolution.confidence == 1.0
        assert response.resolution.reason == FALLBACK_REASON

    @pytest.mark.asyncio
    async def test_follow_up_includes_history_and_context(self):
        llm = ScriptedLLM({"follow_up_response": ai_reply("continue", 0.6)})
        response = await ResponseGenerator(llm).generate_follow_up_response(
            ticket_id="T-1",
            title="Cannot log in",
            user_message="Still broken",
            conversation_history=[
                ConversationTurn(role="user", content="First try failed"),
                ConversationTurn(role="assistant", content="Please clear cookies"),
            ],
            ticket_status="Open",
            context="Article: Cookies\n\nContent: Clear them"
        )
        assert response.resolution.confidence == 0.6
        prompt = llm.calls[0]["messages"][1]["content"]
        assert "Please clear cookies" in prompt
        assert "Still broken" in prompt
        assert "Clear them" in prompt

    @pytest.mark.asyncio
    async def test_follow_up_fallback_message(self):
        llm = ScriptedLLM({"follow_up_response": "garbage"})
        response = await ResponseGenerator(llm).generate_follow_up_response(
            "T-1", "t", "m", [], "Open"
        )
        assert response.message == FOLLOW_UP_FALLBACK_MESSAGE


class TestPriorityClassifier:

    @pytest.mark.parametrize("raw,expected", [
        ("high", TicketPriority.HIGH),
        ("LOW", TicketPriority.LOW),
        (" Medium ", TicketPriority.MEDIUM),
    ])
    @pytest.mark.asyncio
    async def test_normalizes_case(self, raw, expected):
        llm = ScriptedLLM({"priority": {"priority": raw, "reason": "because"}})
        analysis = await PriorityClassifier(llm).classify("t", "d")
        assert analysis.priority == expected
        assert analysis.reason == "because"

    @pytest.mark.parametrize("reply", [
        {"priority": "urgent", "reason": "x"},
        "no json",
        CompletionException("down"),
    ])
    @pytest.mark.asyncio
    async def test_defaults_to_medium(self, reply):
        analysis = await PriorityClassifier(ScriptedLLM({"priority": reply})).classify("t", "d")
        assert analysis.priority == TicketPriority.MEDIUM
        assert analysis.reason == DEFAULT_PRIORITY_REASON


async def _chat_service(llm, score_vector):
    """Chat service whose single indexed article scores per ``score_vector``."""
    index = InMemoryVectorIndex()
    article = make_article()
    await index.upsert([VectorEntry(article.id, [1.0, 0.0], article.to_metadata())])
    embedder = FakeEmbedder(default=score_vector)
    return ChatService(KnowledgeRetrievalService(embedder, index), llm, similarity_threshold=0.7)


class TestChatService:

    @pytest.mark.asyncio
    async def test_answers_from_articles(self):
        llm = ScriptedLLM({"chat": "Use the reset link on the login page."})
        service = await _chat_service(llm, [1.0, 0.0])
        answer = await service.answer("How do I reset my password?")
        assert answer.response == "Use the reset link on the login page."
        assert answer.needs_live_agent is False
        assert [s.article.title for s in answer.used_articles] == ["Reset password"]

    @pytest.mark.asyncio
    async def test_below_threshold_hands_off(self):
        llm = ScriptedLLM({"chat": "should not be called"})
        # cosine([1, 0], [0.6, 0.8]) == 0.6
        service = await _chat_service(llm, [0.6, 0.8])
        answer = await service.answer("Unrelated question")
        assert answer.response == NO_ARTICLES_MESSAGE
        assert answer.needs_live_agent is True
        assert answer.used_articles == []
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_live_agent_mention_sets_flag(self):
        llm = ScriptedLLM({"chat": "Let me connect you with a Live Agent."})
        service = await _chat_service(llm, [1.0, 0.0])
        answer = await service.answer("Refund please")
        assert answer.needs_live_agent is True

    @pytest.mark.asyncio
    async def test_provider_failure_apologizes(self):
        llm = ScriptedLLM({"chat": CompletionException("timeout")})
        service = await _chat_service(llm, [1.0, 0.0])
        answer = await service.answer("How do I reset?")
        assert answer.response == CHAT_FAILURE_MESSAGE
        assert answer.needs_live_agent is True

    @pytest.mark.asyncio
    async def test_empty_completion_uses_failure_message(self):
        llm = ScriptedLLM({"chat": None})
        service = await _chat_service(llm, [1.0, 0.0])
        answer = await service.answer("How do I reset?")
        assert answer.response == CHAT_FAILURE_MESSAGE
        assert answer.needs_live_agent is True

    @pytest.mark.asyncio
    @respx.mock
    async def test_malformed_proxy_reply_apologizes(self):
        proxy_url = "https://llm-proxy.internal/v1/chat/completions"
        respx.post(proxy_url).mock(return_value=httpx.Response(200, json=["oops"]))
        llm = ProxiedCompletionClient(proxy_url, LLMClientConfig(api_key=None, model="gpt-4o-mini"))
        service = await _chat_service(llm, [1.0, 0.0])

        answer = await service.answer("how do I reset?")

        assert answer.response == CHAT_FAILURE_MESSAGE
        assert answer.needs_live_agent is True
        await llm.close()


class TestTicketPatternAnalyzer:

    @pytest.mark.asyncio
    async def test_clamps_and_caps_patterns(self):
        reply = [{"text": f"issue {i}", "value": 15 if i == 0 else 0} for i in range(25)]
        llm = ScriptedLLM({"ticket_patterns": reply})
        patterns = await TicketPatternAnalyzer(llm).analyze([TicketDigest("t", "d")])
        assert len(patterns) == 20
        assert patterns[0].value == 10
        assert patterns[1].value == 1

    @pytest.mark.asyncio
    async def test_accepts_wrapped_list(self):
        llm = ScriptedLLM({"ticket_patterns": {"patterns": [{"text": "login", "value": 4}]}})
        patterns = await TicketPatternAnalyzer(llm).analyze([TicketDigest("t", "d", ["m"])])
        assert [(p.text, p.value) for p in patterns] == [("login", 4)]

    @pytest.mark.asyncio
    async def test_no_tickets_skips_model(self):
        llm = ScriptedLLM()
        assert await TicketPatternAnalyzer(llm).analyze([]) == []
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_failure_returns_empty(self):
        llm = ScriptedLLM({"ticket_patterns": "nope"})
        assert await TicketPatternAnalyzer(llm).analyze([TicketDigest("t", "d")]) == []
