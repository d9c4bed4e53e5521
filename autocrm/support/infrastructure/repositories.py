"""
Support Infrastructure Repositories
====================================

SQLAlchemy implementations of the ticket and message repositories.
"""

from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.assistant.domain import ResolutionAssessment
from autocrm.config import TicketPriority, TicketStatus
from autocrm.core import RepositoryException
from autocrm.shared.infrastructure.logging import get_logger
from autocrm.support.application.services import IMessageRepository, ITicketRepository
from autocrm.support.domain import AIAssistantSender, HumanSender, Message, Ticket
from autocrm.support.infrastructure.models import MessageModel, TicketModel

logger = get_logger(__name__)

SENDER_HUMAN = "human"
SENDER_AI = "ai"


def _to_uuid(value: Optional[str]) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _ticket_to_domain(model: TicketModel) -> Ticket:
    return Ticket(
        id=str(model.id),
        title=model.title,
        description=model.description,
        submitted_by=model.submitted_by,
        status=TicketStatus(model.status),
        priority=TicketPriority(model.priority),
        assigned_to=model.assigned_to,
        resolution_notes=model.resolution_notes,
        resolved_at=model.resolved_at,
        last_ai_confidence=model.last_ai_confidence,
        last_ai_reason=model.last_ai_reason,
        created_at=model.created_at,
        updated_at=model.updated_at
    )


def _message_to_domain(model: MessageModel) -> Message:
    if model.sender_type == SENDER_AI:
        sender = AIAssistantSender()
    else:
        sender = HumanSender(model.sender_id or "")

    resolution = None
    if model.resolution:
        try:
            resolution = ResolutionAssessment.from_dict(model.resolution)
        except (ValueError, TypeError) as e:
            logger.warning(
                "Ignoring malformed stored resolution",
                extra={"message_id": str(model.id), "error": str(e)}
            )

    return Message(
        id=str(model.id),
        ticket_id=str(model.ticket_id),
        sender=sender,
        content=model.content,
        sender_name=model.sender_name,
        created_at=model.created_at,
        resolution=resolution
    )


class SQLAlchemyTicketRepository(ITicketRepository):
    """SQLAlchemy implementation for tickets."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(self, ticket_id: str) -> Optional[TicketModel]:
        ticket_uuid = _to_uuid(ticket_id)
        if ticket_uuid is None:
            return None
        return await self._session.get(TicketModel, ticket_uuid)

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID."""
        model = await self._get_model(ticket_id)
        return _ticket_to_domain(model) if model else None

    async def list(
        self,
        status: Optional[TicketStatus] = None,
        submitted_by: Optional[str] = None,
        assigned_to: Optional[str] = None
    ) -> List[Ticket]:
        """List tickets with optional filters, newest first."""
        stmt = select(TicketModel).order_by(TicketModel.created_at.desc())
        if status is not None:
            stmt = stmt.where(TicketModel.status == TicketStatus(status).value)
        if submitted_by is not None:
            stmt = stmt.where(TicketModel.submitted_by == submitted_by)
        if assigned_to is not None:
            stmt = stmt.where(TicketModel.assigned_to == assigned_to)

        result = await self._session.execute(stmt)
        return [_ticket_to_domain(model) for model in result.scalars().all()]

    async def add(self, ticket: Ticket) -> Ticket:
        """Create new ticket."""
        model = TicketModel(
            id=uuid4(),
            title=ticket.title,
            description=ticket.description,
            status=ticket.status.value,
            priority=ticket.priority.value,
            submitted_by=ticket.submitted_by,
            assigned_to=ticket.assigned_to,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at
        )
        self._session.add(model)
        await self._session.flush()

        ticket.id = str(model.id)
        return ticket

    async def save(self, ticket: Ticket) -> Ticket:
        """Write back ticket state."""
        model = await self._get_model(ticket.id)
        if model is None:
            raise RepositoryException(f"Ticket {ticket.id} does not exist")

        model.status = ticket.status.value
        model.priority = ticket.priority.value
        model.assigned_to = ticket.assigned_to
        model.resolution_notes = ticket.resolution_notes
        model.resolved_at = ticket.resolved_at
        model.last_ai_confidence = ticket.last_ai_confidence
        model.last_ai_reason = ticket.last_ai_reason
        model.updated_at = ticket.updated_at
        await self._session.flush()
        return ticket


class SQLAlchemyMessageRepository(IMessageRepository):
    """SQLAlchemy implementation for ticket messages."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(self, message: Message) -> Message:
        """Store a message."""
        ticket_uuid = _to_uuid(message.ticket_id)
        if ticket_uuid is None:
            raise RepositoryException(f"Invalid ticket ID: {message.ticket_id}")

        sender = message.sender
        model = MessageModel(
            id=uuid4(),
            ticket_id=ticket_uuid,
            sender_type=SENDER_AI if sender.is_ai else SENDER_HUMAN,
            sender_id=sender.user_id if isinstance(sender, HumanSender) else None,
            sender_name=message.sender_name,
            content=message.content,
            resolution=message.resolution.to_dict() if message.resolution else None,
            created_at=message.created_at
        )
        self._session.add(model)
        await self._session.flush()

        message.id = str(model.id)
        return message

    async def list_for_ticket(self, ticket_id: str) -> List[Message]:
        """Messages of a ticket in the order they were written."""
        ticket_uuid = _to_uuid(ticket_id)
        if ticket_uuid is None:
            return []

        stmt = (
            select(MessageModel)
            .where(MessageModel.ticket_id == ticket_uuid)
            .order_by(MessageModel.created_at.asc())
        )
        result = await self._session.execute(stmt)
        return [_message_to_domain(model) for model in result.scalars().all()]
