"""
Support Domain Entities
=======================

Domain entities for the support ticket module.

Contains pure Python business objects:
- Ticket (the aggregate, owns every status transition)
- Message with a tagged sender (human or the AI assistant)
- ResolutionPolicy (maps an AI assessment onto a status change)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union

from autocrm.assistant.domain import ConversationTurn, ResolutionAssessment
from autocrm.config import ResolutionStatus, TicketPriority, TicketStatus
from autocrm.core import InvalidTransitionException

AI_ASSISTANT_NAME = "AI Assistant"
UNKNOWN_SENDER_NAME = "Unknown User"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class HumanSender:
    """A customer or worker, identified by their user id."""
    user_id: str

    @property
    def is_ai(self) -> bool:
        return False


@dataclass(frozen=True)
class AIAssistantSender:
    """The AI assistant."""

    @property
    def is_ai(self) -> bool:
        return True


Sender = Union[HumanSender, AIAssistantSender]


@dataclass
class Message:
    """
    One message in a ticket conversation.

    ``resolution`` is only present on AI messages and records the model's
    assessment at the time of the reply.
    """
    id: Optional[str]
    ticket_id: str
    sender: Sender
    content: str
    sender_name: str = UNKNOWN_SENDER_NAME
    created_at: datetime = field(default_factory=_utcnow)
    resolution: Optional[ResolutionAssessment] = None

    @property
    def is_from_ai(self) -> bool:
        return self.sender.is_ai

    def to_turn(self) -> ConversationTurn:
        """Conversation history entry for the model."""
        return ConversationTurn(
            role="assistant" if self.is_from_ai else "user",
            content=self.content
        )


@dataclass
class Ticket:
    """
    Support ticket aggregate.

    All status changes go through methods on this class, and every one of
    them refreshes ``updated_at``.
    """
    id: Optional[str]
    title: str
    description: str
    submitted_by: str
    status: TicketStatus = TicketStatus.OPEN
    priority: TicketPriority = TicketPriority.MEDIUM
    assigned_to: Optional[str] = None
    resolution_notes: Optional[str] = None
    resolved_at: Optional[datetime] = None
    last_ai_confidence: Optional[float] = None
    last_ai_reason: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def is_submitted_by(self, user_id: str) -> bool:
        return self.submitted_by == user_id

    def _move_to(self, status: TicketStatus) -> None:
        self.status = status
        self.updated_at = _utcnow()

    def apply_ai_assessment(self, assessment: ResolutionAssessment, target: TicketStatus) -> None:
        """Move to ``target`` because of an AI assessment and record it."""
        self.last_ai_confidence = assessment.confidence
        self.last_ai_reason = assessment.reason
        self._move_to(target)

    def reopen(self) -> None:
        """
        Customer reopens a resolved ticket.

        Raises:
            InvalidTransitionException: If the ticket is not Resolved
        """
        if self.status != TicketStatus.RESOLVED:
            raise InvalidTransitionException(self.status.value, TicketStatus.RE_OPENED.value)
        self._move_to(TicketStatus.RE_OPENED)

    def resolve(self, notes: str) -> None:
        """
        Worker marks the ticket resolved.

        Raises:
            InvalidTransitionException: If the ticket is Closed
        """
        if self.status == TicketStatus.CLOSED:
            raise InvalidTransitionException(self.status.value, TicketStatus.RESOLVED.value)
        self.resolution_notes = notes
        self.resolved_at = _utcnow()
        self._move_to(TicketStatus.RESOLVED)

    def close(self) -> None:
        """
        Close a resolved ticket for good.

        Raises:
            InvalidTransitionException: If the ticket is not Resolved
        """
        if self.status != TicketStatus.RESOLVED:
            raise InvalidTransitionException(self.status.value, TicketStatus.CLOSED.value)
        self._move_to(TicketStatus.CLOSED)

    def assign(self, worker_id: str) -> None:
        """Hand the ticket to a worker."""
        self.assigned_to = worker_id
        self.updated_at = _utcnow()


@dataclass(frozen=True)
class ResolutionPolicy:
    """
    Decides whether an AI assessment moves a ticket.

    A status changes only when the model's confidence is strictly greater
    than ``confidence_threshold``. The policy is memoryless: only the
    latest assessment counts. Closed tickets are never moved.
    """
    confidence_threshold: float = 0.8
    resolved_status: TicketStatus = TicketStatus.RESOLVED
    escalated_status: TicketStatus = TicketStatus.IN_PROGRESS

    def target_status(self, assessment: ResolutionAssessment) -> Optional[TicketStatus]:
        """Status the assessment calls for, or None for no change."""
        if assessment.confidence <= self.confidence_threshold:
            return None
        if assessment.status == ResolutionStatus.POTENTIAL_RESOLUTION:
            return self.resolved_status
        if assessment.status == ResolutionStatus.ESCALATE:
            return self.escalated_status
        return None

    def apply(self, ticket: Ticket, assessment: Optional[ResolutionAssessment]) -> bool:
        """
        Apply an assessment to a ticket.

        Returns:
            True if the ticket's status changed
        """
        if assessment is None or ticket.status == TicketStatus.CLOSED:
            return False
        target = self.target_status(assessment)
        if target is None or target == ticket.status:
            return False
        ticket.apply_ai_assessment(assessment, target)
        return True
