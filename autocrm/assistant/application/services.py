"""
Assistant Application Services
===============================

Application services for model-driven support assistance.

Every service here sits on a fallback boundary: provider failures and
unusable model output are logged and replaced by a safe default, so a
ticket is never lost because the model misbehaved. The one exception is
``generate_embedding`` in ``AIOperationsService``, whose errors surface.
"""

import json
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from autocrm.assistant.application import dto
from autocrm.assistant.domain import (
    AIResponse,
    ChatAnswer,
    ChatPromptBuilder,
    ConversationTurn,
    PriorityAnalysis,
    PriorityPromptBuilder,
    ResolutionAssessment,
    ResponsePromptBuilder,
    TicketDigest,
    TicketPattern,
    TicketPatternPromptBuilder,
)
from autocrm.config import ResolutionStatus, TicketPriority
from autocrm.core import LLMException, ValidationException, extract_json
from autocrm.infrastructure.llm import CompletionOptions, ICompletionClient, IEmbeddingClient
from autocrm.knowledge.application import ArticleAssistService, KnowledgeRetrievalService
from autocrm.knowledge.domain import KnowledgeArticle
from autocrm.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

# Errors a model call or its parsing may raise
_MODEL_ERRORS = (LLMException, ValueError, TypeError, KeyError, AttributeError)

INITIAL_FALLBACK_MESSAGE = (
    "I apologize, but I encountered an error. A support agent will review your ticket shortly."
)
FOLLOW_UP_FALLBACK_MESSAGE = (
    "I apologize, but I encountered an error. A support agent will review your message shortly."
)
FALLBACK_REASON = "Error in AI processing"
DEFAULT_PRIORITY_REASON = "Default priority due to analysis error"

NO_ARTICLES_MESSAGE = (
    "I apologize, but I don't have enough information in my knowledge base to help with "
    "this specific issue. Let me connect you with a live agent who can better assist you."
)
CHAT_FAILURE_MESSAGE = (
    "I apologize, but I'm having trouble accessing the knowledge base at the moment. "
    "Let me connect you with a live agent who can help."
)

MAX_PATTERNS = 20


def _fallback_response(message: str) -> AIResponse:
    return AIResponse(
        message=message,
        resolution=ResolutionAssessment(
            status=ResolutionStatus.ESCALATE,
            confidence=1.0,
            reason=FALLBACK_REASON
        )
    )


class ResponseGenerator:
    """
    Service for RAG-based ticket replies.

    Asks the model for a JSON reply ``{message, resolution}`` and validates
    it; anything unusable becomes an escalation with full confidence.
    """

    def __init__(
        self,
        llm_client: ICompletionClient,
        max_tokens: int = 500,
        temperature: float = 0.3
    ):
        self._llm = llm_client
        self._options = CompletionOptions(temperature=temperature, max_tokens=max_tokens)

    async def generate_initial_response(
        self,
        title: str,
        description: str,
        similar_articles: Sequence[KnowledgeArticle]
    ) -> AIResponse:
        """
        Reply to a newly created ticket.

        Args:
            title: Ticket title
            description: Ticket description
            similar_articles: Retrieved knowledge articles (may be empty)

        Returns:
            AIResponse, never raises
        """
        user_prompt = ResponsePromptBuilder.build_initial_prompt(
            title, description, list(similar_articles)
        )
        return await self._generate(
            ResponsePromptBuilder.INITIAL_SYSTEM_PROMPT,
            user_prompt,
            operation="initial_response",
            fallback_message=INITIAL_FALLBACK_MESSAGE
        )

    async def generate_follow_up_response(
        self,
        ticket_id: str,
        title: str,
        user_message: str,
        conversation_history: Sequence[ConversationTurn],
        ticket_status: str,
        context: str = ""
    ) -> AIResponse:
        """
        Reply to a customer's follow-up message.

        Args:
            ticket_id: Ticket identifier (shown to the model)
            title: Ticket title
            user_message: The customer's latest message
            conversation_history: Earlier messages, oldest first
            ticket_status: Current ticket status
            context: Pre-formatted knowledge base context

        Returns:
            AIResponse, never raises
        """
        user_prompt = ResponsePromptBuilder.build_follow_up_prompt(
            ticket_id=ticket_id,
            title=title,
            ticket_status=ticket_status,
            user_message=user_message,
            conversation_history=list(conversation_history),
            context=context
        )
        return await self._generate(
            ResponsePromptBuilder.FOLLOW_UP_SYSTEM_PROMPT,
            user_prompt,
            operation="follow_up_response",
            fallback_message=FOLLOW_UP_FALLBACK_MESSAGE
        )

    async def _generate(
        self,
        system_prompt: str,
        user_prompt: str,
        operation: str,
        fallback_message: str
    ) -> AIResponse:
        reply = ""
        try:
            reply = await self._llm.complete(
                system_prompt, user_prompt, self._options, operation=operation
            )
            return self.parse_response(reply)
        except _MODEL_ERRORS as e:
            logger.warning(
                "AI response unusable, escalating",
                extra={
                    "operation": operation,
                    "error_type": type(e).__name__,
                    "error": str(e),
                    "raw_preview": (reply or "")[:200],
                }
            )
            return _fallback_response(fallback_message)

    @staticmethod
    def parse_response(reply: str) -> AIResponse:
        """
        Parse and validate a model reply.

        Raises:
            ValueError: If the reply is not a usable ``{message, resolution}``
        """
        data = extract_json(reply)
        if not isinstance(data, dict):
            raise ValueError("response must be a JSON object")

        message = str(data.get("message") or "").strip()
        if not message:
            raise ValueError("response message is empty")

        return AIResponse(
            message=message,
            resolution=ResolutionAssessment.from_dict(data.get("resolution"))
        )


class PriorityClassifier:
    """Assigns Low / Medium / High to new tickets."""

    def __init__(self, llm_client: ICompletionClient, max_tokens: int = 500):
        self._llm = llm_client
        self._options = CompletionOptions(temperature=0.3, max_tokens=max_tokens)

    async def classify(self, title: str, description: str) -> PriorityAnalysis:
        """
        Classify a ticket's priority.

        Returns:
            PriorityAnalysis; Medium with a default reason on any failure
        """
        try:
            reply = await self._llm.complete(
                PriorityPromptBuilder.SYSTEM_PROMPT,
                PriorityPromptBuilder.build_prompt(title, description),
                self._options,
                operation="priority"
            )
            data = extract_json(reply)
            if not isinstance(data, dict):
                raise ValueError("priority analysis must be an object")

            raw = str(data.get("priority") or "").strip()
            priority = TicketPriority(raw.capitalize())
            reason = str(data.get("reason") or "").strip() or "No reason provided"
            return PriorityAnalysis(priority=priority, reason=reason)
        except _MODEL_ERRORS as e:
            logger.warning(
                "Priority analysis failed, defaulting to Medium",
                extra={"error_type": type(e).__name__, "error": str(e)}
            )
            return PriorityAnalysis(priority=TicketPriority.MEDIUM, reason=DEFAULT_PRIORITY_REASON)


class ChatService:
    """
    Knowledge base question answering.

    Only articles at or above the similarity threshold are used; without
    any, the customer is handed to a live agent.
    """

    def __init__(
        self,
        retrieval: KnowledgeRetrievalService,
        llm_client: ICompletionClient,
        similarity_threshold: float = 0.7,
        max_tokens: int = 500
    ):
        self._retrieval = retrieval
        self._llm = llm_client
        self._threshold = similarity_threshold
        self._options = CompletionOptions(temperature=0.3, max_tokens=max_tokens)

    async def answer(self, message: str, max_articles: int = 3) -> ChatAnswer:
        """Answer a question strictly from the knowledge base."""
        suggestions = await self._retrieval.find_similar(
            message, limit=max_articles, threshold=self._threshold
        )
        if not suggestions:
            return ChatAnswer(response=NO_ARTICLES_MESSAGE, used_articles=[], needs_live_agent=True)

        try:
            response = await self._llm.complete(
                ChatPromptBuilder.SYSTEM_PROMPT,
                ChatPromptBuilder.build_prompt(message, [s.article for s in suggestions]),
                self._options,
                default=CHAT_FAILURE_MESSAGE,
                operation="chat"
            )
        except _MODEL_ERRORS as e:
            logger.warning("Chat completion failed", extra={"error": str(e)})
            return ChatAnswer(response=CHAT_FAILURE_MESSAGE, used_articles=[], needs_live_agent=True)

        return ChatAnswer(
            response=response,
            used_articles=suggestions,
            needs_live_agent="live agent" in response.lower()
        )


class TicketPatternAnalyzer:
    """Finds recurring issues across a batch of tickets."""

    def __init__(self, llm_client: ICompletionClient, max_tokens: int = 1000):
        self._llm = llm_client
        self._options = CompletionOptions(temperature=0.3, max_tokens=max_tokens)

    async def analyze(self, tickets: Sequence[TicketDigest]) -> List[TicketPattern]:
        """
        Identify up to 20 patterns with a relative frequency of 1-10.

        Returns:
            Patterns, or an empty list on failure
        """
        if not tickets:
            return []

        tickets_json = json.dumps([
            {"title": t.title, "content": "\n".join([t.description, *t.messages])}
            for t in tickets
        ])
        try:
            reply = await self._llm.complete(
                TicketPatternPromptBuilder.SYSTEM_PROMPT,
                TicketPatternPromptBuilder.build_prompt(tickets_json),
                self._options,
                operation="ticket_patterns"
            )
            data = extract_json(reply)
            if isinstance(data, dict):
                data = data.get("patterns", [])
            if not isinstance(data, list):
                raise ValueError("patterns must be a list")
        except _MODEL_ERRORS as e:
            logger.warning("Ticket pattern analysis failed", extra={"error": str(e)})
            return []

        patterns: List[TicketPattern] = []
        for item in data:
            if not isinstance(item, dict):
                continue
            text = str(item.get("text") or "").strip()
            if not text:
                continue
            try:
                value = int(round(float(item.get("value", 1))))
            except (TypeError, ValueError):
                value = 1
            patterns.append(TicketPattern(text=text, value=max(1, min(10, value))))
            if len(patterns) == MAX_PATTERNS:
                break
        return patterns


class AIOperationsService:
    """
    Dispatcher behind the ``POST /ai`` endpoint.

    Each operation name maps to a request model and a handler; handler
    results are plain JSON-ready dicts.
    """

    def __init__(
        self,
        priority_classifier: PriorityClassifier,
        response_generator: ResponseGenerator,
        article_assist: ArticleAssistService,
        pattern_analyzer: TicketPatternAnalyzer,
        embedder: IEmbeddingClient
    ):
        self._priority = priority_classifier
        self._responder = response_generator
        self._assist = article_assist
        self._patterns = pattern_analyzer
        self._embedder = embedder
        self._operations = {
            "analyzePriority": (dto.AnalyzePriorityPayload, self._analyze_priority),
            "generateInitialResponse": (dto.InitialResponsePayload, self._initial_response),
            "generateFollowUpResponse": (dto.FollowUpResponsePayload, self._follow_up_response),
            "generateTags": (dto.GenerateTagsPayload, self._generate_tags),
            "analyzeArticleQuality": (dto.ArticleQualityPayload, self._article_quality),
            "generateEmbedding": (dto.GenerateEmbeddingPayload, self._generate_embedding),
            "generateArticleSuggestions": (dto.ArticleSuggestionsPayload, self._article_suggestions),
            "analyzeTicketPatterns": (dto.TicketPatternsPayload, self._ticket_patterns),
        }

    @property
    def operations(self) -> List[str]:
        return list(self._operations.keys())

    async def execute(self, operation: Optional[str], payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run one named operation.

        Raises:
            ValidationException: Unknown operation or invalid payload
            LLMException: Embedding failures (not masked)
        """
        if operation not in self._operations:
            raise ValidationException(
                "Invalid operation specified",
                {"operation": operation, "supported": self.operations}
            )

        model_cls, handler = self._operations[operation]
        try:
            request = model_cls.model_validate(payload)
        except ValidationError as e:
            raise ValidationException(
                f"Invalid payload for {operation}",
                {"errors": e.errors(include_url=False, include_context=False)}
            )
        return await handler(request)

    async def _analyze_priority(self, request) -> Dict[str, Any]:
        analysis = await self._priority.classify(request.title, request.description)
        return {"priority": analysis.priority.value, "reason": analysis.reason}

    async def _initial_response(self, request) -> Dict[str, Any]:
        response = await self._responder.generate_initial_response(
            request.title,
            request.description,
            [a.to_domain() for a in request.similar_articles]
        )
        return _response_dict(response)

    async def _follow_up_response(self, request) -> Dict[str, Any]:
        response = await self._responder.generate_follow_up_response(
            ticket_id=request.ticket_id,
            title=request.title,
            user_message=request.user_message,
            conversation_history=[
                ConversationTurn(role=turn.role, content=turn.content)
                for turn in request.conversation_history
            ],
            ticket_status=request.ticket_status,
            context=request.context
        )
        return _response_dict(response)

    async def _generate_tags(self, request) -> Dict[str, Any]:
        return {"tags": await self._assist.generate_tags(request.title, request.content)}

    async def _article_quality(self, request) -> Dict[str, Any]:
        analysis = await self._assist.analyze_article_quality(request.title, request.content)
        return {
            "clarity": analysis.clarity,
            "completeness": analysis.completeness,
            "technicalAccuracy": analysis.technical_accuracy,
            "formatting": analysis.formatting,
            "suggestions": analysis.suggestions,
        }

    async def _generate_embedding(self, request) -> Dict[str, Any]:
        return {"embedding": await self._embedder.embed(request.text)}

    async def _article_suggestions(self, request) -> Dict[str, Any]:
        suggestions = await self._assist.generate_article_suggestions(
            request.ticket_title,
            request.ticket_content,
            [a.to_domain() for a in request.similar_articles]
        )
        return {"suggestions": suggestions}

    async def _ticket_patterns(self, request) -> Dict[str, Any]:
        patterns = await self._patterns.analyze([t.to_domain() for t in request.tickets])
        return {"patterns": [{"text": p.text, "value": p.value} for p in patterns]}


def _response_dict(response: AIResponse) -> Dict[str, Any]:
    return {"message": response.message, "resolution": response.resolution.to_dict()}
