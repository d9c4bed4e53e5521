"""
Support Application Services
=============================

Application services for the ticket lifecycle.

``TicketWorkflowService`` runs the RAG loop for customer interactions:
retrieve articles -> generate a reply -> store the AI message -> let the
resolution policy decide whether the ticket moves.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from autocrm.assistant.application import PriorityClassifier, ResponseGenerator
from autocrm.config import TicketStatus
from autocrm.core import (
    DomainException,
    EmailDeliveryException,
    PermissionDeniedException,
    ResourceNotFoundException,
    ValidationException,
)
from autocrm.infrastructure.email import IEmailNotifier, TicketResolvedEmail
from autocrm.knowledge.application import KnowledgeRetrievalService
from autocrm.knowledge.domain import format_articles_for_prompt
from autocrm.shared.infrastructure.logging import get_logger
from autocrm.support.domain import (
    AI_ASSISTANT_NAME,
    UNKNOWN_SENDER_NAME,
    AIAssistantSender,
    HumanSender,
    Message,
    ResolutionPolicy,
    Ticket,
)

logger = get_logger(__name__)


# ========== Repository Interfaces ==========

class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID."""

    @abstractmethod
    async def list(
        self,
        status: Optional[TicketStatus] = None,
        submitted_by: Optional[str] = None,
        assigned_to: Optional[str] = None
    ) -> List[Ticket]:
        """List tickets, newest first."""

    @abstractmethod
    async def add(self, ticket: Ticket) -> Ticket:
        """Persist a new ticket and return it with its ID."""

    @abstractmethod
    async def save(self, ticket: Ticket) -> Ticket:
        """Persist changes to an existing ticket."""


class IMessageRepository(ABC):
    """Interface for ticket message data access."""

    @abstractmethod
    async def add(self, message: Message) -> Message:
        """Persist a message and return it with its ID."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: str) -> List[Message]:
        """Messages of a ticket, oldest first."""


# ========== Results ==========

@dataclass
class TicketConversation:
    """A ticket plus the AI reply that was just posted to it."""
    ticket: Ticket
    ai_message: Message


@dataclass
class PostedMessage:
    """A stored human message and, for customers, the AI reply."""
    ticket: Ticket
    message: Message
    ai_message: Optional[Message] = None


@dataclass
class ResolutionOutcome:
    ticket: Ticket
    email_sent: bool


# ========== Workflow ==========

class TicketWorkflowService:
    """
    Service for the ticket lifecycle.

    Coordinates priority classification, knowledge retrieval, response
    generation and the resolution policy with the repositories.
    """

    def __init__(
        self,
        tickets: ITicketRepository,
        messages: IMessageRepository,
        priority_classifier: PriorityClassifier,
        retrieval: KnowledgeRetrievalService,
        responder: ResponseGenerator,
        policy: ResolutionPolicy,
        email_notifier: IEmailNotifier,
        retrieval_limit: int = 3
    ):
        self._tickets = tickets
        self._messages = messages
        self._priority = priority_classifier
        self._retrieval = retrieval
        self._responder = responder
        self._policy = policy
        self._email = email_notifier
        self._retrieval_limit = retrieval_limit

    async def get_ticket(self, ticket_id: str) -> Ticket:
        ticket = await self._tickets.get_by_id(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return ticket

    async def list_tickets(
        self,
        status: Optional[TicketStatus] = None,
        submitted_by: Optional[str] = None,
        assigned_to: Optional[str] = None
    ) -> List[Ticket]:
        return await self._tickets.list(
            status=status, submitted_by=submitted_by, assigned_to=assigned_to
        )

    async def list_messages(self, ticket_id: str) -> List[Message]:
        await self.get_ticket(ticket_id)
        return await self._messages.list_for_ticket(ticket_id)

    async def create_ticket(
        self,
        title: str,
        description: str,
        submitted_by: str,
        submitter_name: Optional[str] = None
    ) -> TicketConversation:
        """
        Open a ticket and post the AI's first reply.

        Args:
            title: Ticket title
            description: Customer's description (also stored as first message)
            submitted_by: Customer user ID
            submitter_name: Display name for the first message

        Returns:
            TicketConversation with the (possibly already moved) ticket
        """
        if not title.strip() or not description.strip():
            raise ValidationException("Title and description are required")

        analysis = await self._priority.classify(title, description)
        ticket = await self._tickets.add(Ticket(
            id=None,
            title=title,
            description=description,
            submitted_by=submitted_by,
            priority=analysis.priority
        ))

        await self._messages.add(Message(
            id=None,
            ticket_id=ticket.id,
            sender=HumanSender(submitted_by),
            content=description,
            sender_name=submitter_name or UNKNOWN_SENDER_NAME
        ))

        suggestions = await self._retrieval.find_similar(description, limit=self._retrieval_limit)
        response = await self._responder.generate_initial_response(
            title, description, [s.article for s in suggestions]
        )
        ai_message = await self._post_ai_reply(ticket, response)

        logger.info(
            "Ticket created",
            extra={
                "ticket_id": ticket.id,
                "priority": ticket.priority.value,
                "status": ticket.status.value,
                "articles_used": len(suggestions),
                "ai_resolution": response.resolution.status.value,
                "ai_confidence": response.resolution.confidence,
            }
        )
        return TicketConversation(ticket=ticket, ai_message=ai_message)

    async def post_message(
        self,
        ticket_id: str,
        sender_id: str,
        content: str,
        sender_name: Optional[str] = None
    ) -> PostedMessage:
        """
        Add a human message; the submitter gets an AI follow-up.

        Worker messages are stored without an AI reply.

        Raises:
            ResourceNotFoundException: Unknown ticket
            ValidationException: Empty content
            DomainException: Ticket is closed
        """
        if not content or not content.strip():
            raise ValidationException("Message content is required")

        ticket = await self.get_ticket(ticket_id)
        if ticket.status == TicketStatus.CLOSED:
            raise DomainException("Ticket is closed", {"ticket_id": ticket_id})

        history = await self._messages.list_for_ticket(ticket_id)
        message = await self._messages.add(Message(
            id=None,
            ticket_id=ticket.id,
            sender=HumanSender(sender_id),
            content=content,
            sender_name=sender_name or UNKNOWN_SENDER_NAME
        ))

        if not ticket.is_submitted_by(sender_id):
            return PostedMessage(ticket=ticket, message=message)

        suggestions = await self._retrieval.find_similar(content, limit=self._retrieval_limit)
        response = await self._responder.generate_follow_up_response(
            ticket_id=ticket.id,
            title=ticket.title,
            user_message=content,
            conversation_history=[m.to_turn() for m in history],
            ticket_status=ticket.status.value,
            context=format_articles_for_prompt([s.article for s in suggestions])
        )
        ai_message = await self._post_ai_reply(ticket, response)

        logger.info(
            "Follow-up answered",
            extra={
                "ticket_id": ticket.id,
                "status": ticket.status.value,
                "ai_resolution": response.resolution.status.value,
                "ai_confidence": response.resolution.confidence,
            }
        )
        return PostedMessage(ticket=ticket, message=message, ai_message=ai_message)

    async def _post_ai_reply(self, ticket: Ticket, response) -> Message:
        ai_message = await self._messages.add(Message(
            id=None,
            ticket_id=ticket.id,
            sender=AIAssistantSender(),
            content=response.message,
            sender_name=AI_ASSISTANT_NAME,
            resolution=response.resolution
        ))
        previous = ticket.status
        if self._policy.apply(ticket, response.resolution):
            await self._tickets.save(ticket)
            logger.info(
                "Ticket status changed by AI assessment",
                extra={
                    "ticket_id": ticket.id,
                    "from_status": previous.value,
                    "to_status": ticket.status.value,
                    "ai_confidence": response.resolution.confidence,
                }
            )
        return ai_message

    async def reopen_ticket(self, ticket_id: str, requested_by: str) -> Ticket:
        """
        Customer reopens a resolved ticket.

        Raises:
            PermissionDeniedException: Requester is not the submitter
            InvalidTransitionException: Ticket is not Resolved
        """
        ticket = await self.get_ticket(ticket_id)
        if not ticket.is_submitted_by(requested_by):
            raise PermissionDeniedException(
                "Only the ticket submitter can reopen it",
                {"ticket_id": ticket_id}
            )
        ticket.reopen()
        return await self._tickets.save(ticket)

    async def resolve_ticket(
        self,
        ticket_id: str,
        resolution_notes: str,
        customer_email: Optional[str] = None,
        customer_name: Optional[str] = None
    ) -> ResolutionOutcome:
        """
        Worker resolves a ticket and the customer is emailed.

        Email delivery is best-effort: a failure is logged and reported in
        the outcome but never undoes the resolution.
        """
        ticket = await self.get_ticket(ticket_id)
        ticket.resolve(resolution_notes)
        ticket = await self._tickets.save(ticket)

        email_sent = False
        if customer_email:
            try:
                email_sent = await self._email.send_ticket_resolved(TicketResolvedEmail(
                    to=customer_email,
                    customer_name=customer_name or "there",
                    ticket_id=ticket.id,
                    ticket_title=ticket.title,
                    resolution_notes=resolution_notes
                ))
            except EmailDeliveryException as e:
                logger.warning(
                    "Resolution email failed",
                    extra={"ticket_id": ticket.id, "error": str(e)}
                )

        logger.info(
            "Ticket resolved",
            extra={"ticket_id": ticket.id, "email_sent": email_sent}
        )
        return ResolutionOutcome(ticket=ticket, email_sent=email_sent)

    async def assign_ticket(self, ticket_id: str, worker_id: str) -> Ticket:
        ticket = await self.get_ticket(ticket_id)
        ticket.assign(worker_id)
        return await self._tickets.save(ticket)

    async def close_ticket(self, ticket_id: str) -> Ticket:
        ticket = await self.get_ticket(ticket_id)
        ticket.close()
        return await self._tickets.save(ticket)
