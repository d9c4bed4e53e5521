"""
Assistant Domain Layer
======================

Domain layer for the AI assistant module.

Contains:
- Value Objects: AIResponse, ResolutionAssessment, PriorityAnalysis, ConversationTurn
- Prompt builders for each model operation

This layer is framework-agnostic and contains pure business logic.
"""

from autocrm.assistant.domain.entities import (
    ResolutionAssessment,
    AIResponse,
    PriorityAnalysis,
    ConversationTurn,
    TicketPattern,
    TicketDigest,
    ChatAnswer,
    ResponsePromptBuilder,
    PriorityPromptBuilder,
    ChatPromptBuilder,
    TicketPatternPromptBuilder,
)

__all__ = [
    "ResolutionAssessment",
    "AIResponse",
    "PriorityAnalysis",
    "ConversationTurn",
    "TicketPattern",
    "TicketDigest",
    "ChatAnswer",
    "ResponsePromptBuilder",
    "PriorityPromptBuilder",
    "ChatPromptBuilder",
    "TicketPatternPromptBuilder",
]
