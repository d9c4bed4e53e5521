"""
Assistant Application Layer
============================

Application layer for the AI assistant module.

Contains:
- Services: Response generation, priority, chat, pattern analysis, /ai dispatch
- DTOs: Data transfer objects for API serialization
"""

from autocrm.assistant.application.dto import (
    ChatRequest,
    ChatResponse,
    UsedArticle,
)
from autocrm.assistant.application.services import (
    ResponseGenerator,
    PriorityClassifier,
    ChatService,
    TicketPatternAnalyzer,
    AIOperationsService,
    INITIAL_FALLBACK_MESSAGE,
    FOLLOW_UP_FALLBACK_MESSAGE,
    FALLBACK_REASON,
    DEFAULT_PRIORITY_REASON,
    NO_ARTICLES_MESSAGE,
    CHAT_FAILURE_MESSAGE,
)

__all__ = [
    # DTOs
    "ChatRequest",
    "ChatResponse",
    "UsedArticle",
    # Services
    "ResponseGenerator",
    "PriorityClassifier",
    "ChatService",
    "TicketPatternAnalyzer",
    "AIOperationsService",
    # Fallback texts
    "INITIAL_FALLBACK_MESSAGE",
    "FOLLOW_UP_FALLBACK_MESSAGE",
    "FALLBACK_REASON",
    "DEFAULT_PRIORITY_REASON",
    "NO_ARTICLES_MESSAGE",
    "CHAT_FAILURE_MESSAGE",
]
