"""
Support Application DTOs
=========================

Data Transfer Objects for the ticket API layer.

Pydantic models for request/response validation.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from autocrm.assistant.domain import ResolutionAssessment
from autocrm.support.domain import HumanSender, Message, Ticket


# ========== Type Aliases for Literals ==========
TicketStatusStr = Literal["Open", "In Progress", "Resolved", "Closed", "Re-Opened"]
TicketPriorityStr = Literal["Low", "Medium", "High"]
ResolutionStatusStr = Literal["continue", "potential_resolution", "escalate"]


# ========== Request DTOs ==========

class CreateTicketRequest(BaseModel):
    """Request model for opening a ticket."""
    title: str = Field(..., min_length=1, max_length=500, description="Ticket title")
    description: str = Field(..., min_length=1, description="Problem description")
    submitted_by: str = Field(..., min_length=1, description="Customer user ID")
    submitter_name: Optional[str] = Field(None, description="Customer display name")

    @field_validator("description")
    @classmethod
    def validate_description_length(cls, v: str) -> str:
        """Ensure description is not too long for LLM."""
        if len(v) > 10000:
            raise ValueError("Description too long (max 10000 characters)")
        return v


class PostMessageRequest(BaseModel):
    """Request model for adding a message to a ticket."""
    sender_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1, max_length=10000)
    sender_name: Optional[str] = None


class ReopenTicketRequest(BaseModel):
    requested_by: str = Field(..., min_length=1)


class ResolveTicketRequest(BaseModel):
    """Request model for a worker resolving a ticket."""
    resolution_notes: str = Field(..., min_length=1)
    customer_email: Optional[str] = Field(None, description="Where to send the resolution notice")
    customer_name: Optional[str] = None


class AssignTicketRequest(BaseModel):
    worker_id: str = Field(..., min_length=1)


# ========== Response DTOs ==========

class ResolutionInfo(BaseModel):
    """AI resolution assessment."""
    status: ResolutionStatusStr
    confidence: float = Field(..., ge=0.0, le=1.0)
    reason: str

    @classmethod
    def from_domain(cls, resolution: ResolutionAssessment) -> "ResolutionInfo":
        return cls(
            status=resolution.status.value,
            confidence=resolution.confidence,
            reason=resolution.reason
        )


class TicketResponse(BaseModel):
    """Ticket as returned by the API."""
    id: str
    title: str
    description: str
    status: TicketStatusStr
    priority: TicketPriorityStr
    submitted_by: str
    assigned_to: Optional[str] = None
    resolution_notes: Optional[str] = None
    resolved_at: Optional[datetime] = None
    last_ai_confidence: Optional[float] = None
    last_ai_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, ticket: Ticket) -> "TicketResponse":
        return cls(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            status=ticket.status.value,
            priority=ticket.priority.value,
            submitted_by=ticket.submitted_by,
            assigned_to=ticket.assigned_to,
            resolution_notes=ticket.resolution_notes,
            resolved_at=ticket.resolved_at,
            last_ai_confidence=ticket.last_ai_confidence,
            last_ai_reason=ticket.last_ai_reason,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at
        )


class MessageResponse(BaseModel):
    """Ticket message as returned by the API."""
    id: str
    ticket_id: str
    sender_type: Literal["human", "ai"]
    sender_id: Optional[str] = None
    sender_name: str
    content: str
    created_at: datetime
    resolution: Optional[ResolutionInfo] = None

    @classmethod
    def from_domain(cls, message: Message) -> "MessageResponse":
        sender = message.sender
        return cls(
            id=message.id,
            ticket_id=message.ticket_id,
            sender_type="ai" if message.is_from_ai else "human",
            sender_id=sender.user_id if isinstance(sender, HumanSender) else None,
            sender_name=message.sender_name,
            content=message.content,
            created_at=message.created_at,
            resolution=ResolutionInfo.from_domain(message.resolution) if message.resolution else None
        )


class TicketConversationResponse(BaseModel):
    """Response model for ticket creation."""
    ticket: TicketResponse
    ai_message: MessageResponse


class PostMessageResponse(BaseModel):
    """Response model for a posted message."""
    ticket: TicketResponse
    message: MessageResponse
    ai_message: Optional[MessageResponse] = None


class ResolveTicketResponse(BaseModel):
    ticket: TicketResponse
    email_sent: bool


class TicketListResponse(BaseModel):
    tickets: List[TicketResponse]
    total: int
