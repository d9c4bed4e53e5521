"""
Support Application Layer
==========================

Application layer for the support ticket module.

Contains:
- Services: Ticket workflow orchestration
- DTOs: Data transfer objects for API serialization
"""

from autocrm.support.application.dto import (
    CreateTicketRequest,
    PostMessageRequest,
    ReopenTicketRequest,
    ResolveTicketRequest,
    AssignTicketRequest,
    ResolutionInfo,
    TicketResponse,
    MessageResponse,
    TicketConversationResponse,
    PostMessageResponse,
    ResolveTicketResponse,
    TicketListResponse,
)
from autocrm.support.application.services import (
    ITicketRepository,
    IMessageRepository,
    TicketWorkflowService,
    TicketConversation,
    PostedMessage,
    ResolutionOutcome,
)

__all__ = [
    # DTOs
    "CreateTicketRequest",
    "PostMessageRequest",
    "ReopenTicketRequest",
    "ResolveTicketRequest",
    "AssignTicketRequest",
    "ResolutionInfo",
    "TicketResponse",
    "MessageResponse",
    "TicketConversationResponse",
    "PostMessageResponse",
    "ResolveTicketResponse",
    "TicketListResponse",
    # Services
    "TicketWorkflowService",
    "TicketConversation",
    "PostedMessage",
    "ResolutionOutcome",
    # Repository Interfaces
    "ITicketRepository",
    "IMessageRepository",
]
