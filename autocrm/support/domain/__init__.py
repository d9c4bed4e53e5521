"""
Support Domain Layer
====================

Domain layer for the support ticket module.

Contains:
- Entities: Ticket, Message
- Value Objects: HumanSender, AIAssistantSender, ResolutionPolicy

This layer is framework-agnostic and contains pure business logic.
"""

from autocrm.support.domain.entities import (
    AI_ASSISTANT_NAME,
    UNKNOWN_SENDER_NAME,
    HumanSender,
    AIAssistantSender,
    Sender,
    Message,
    Ticket,
    ResolutionPolicy,
)

__all__ = [
    "AI_ASSISTANT_NAME",
    "UNKNOWN_SENDER_NAME",
    "HumanSender",
    "AIAssistantSender",
    "Sender",
    "Message",
    "Ticket",
    "ResolutionPolicy",
]
