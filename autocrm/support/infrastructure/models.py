"""
Support Infrastructure Models
==============================

SQLAlchemy ORM models for the support ticket module.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, Float, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from autocrm.config import TicketPriority, TicketStatus
from autocrm.infrastructure.database import Base


class TicketModel(Base):
    """
    Database model for Ticket entity.

    Stores ticket state, worker resolution data and the last AI assessment
    that moved the ticket.
    """
    __tablename__ = "tickets"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Ticket content
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TicketStatus.OPEN.value, index=True
    )
    priority: Mapped[str] = mapped_column(
        String(10), nullable=False, default=TicketPriority.MEDIUM.value
    )
    submitted_by: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    assigned_to: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)

    # Resolution
    resolution_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_ai_confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    last_ai_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )


class MessageModel(Base):
    """
    Database model for Message entity.

    ``sender_type`` is "human" or "ai"; ``sender_id`` is only set for humans.
    ``resolution`` holds the AI assessment as JSON on AI messages.
    """
    __tablename__ = "messages"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Foreign key to ticket
    ticket_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("tickets.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Sender
    sender_type: Mapped[str] = mapped_column(String(10), nullable=False)
    sender_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sender_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Content
    content: Mapped[str] = mapped_column(Text, nullable=False)
    resolution: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # Timestamp
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
