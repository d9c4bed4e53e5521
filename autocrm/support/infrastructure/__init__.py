"""
Support Infrastructure Layer
=============================

Infrastructure implementations for the support ticket module.

Contains:
- Models: SQLAlchemy ORM models
- Repositories: Data access implementations
"""

from autocrm.support.infrastructure.models import TicketModel, MessageModel
from autocrm.support.infrastructure.repositories import (
    SQLAlchemyTicketRepository,
    SQLAlchemyMessageRepository,
)

__all__ = [
    "TicketModel",
    "MessageModel",
    "SQLAlchemyTicketRepository",
    "SQLAlchemyMessageRepository",
]
