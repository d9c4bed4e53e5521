"""
Knowledge Infrastructure Models
================================

SQLAlchemy ORM models for the knowledge base module.
"""

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from autocrm.config import ArticleStatus
from autocrm.infrastructure.database import Base


class KnowledgeArticleModel(Base):
    """
    Database model for KnowledgeArticle entity.

    Similarity scores and vectors are never stored here; the vector index
    holds one embedding per article id.
    """
    __tablename__ = "knowledge_base_articles"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Article content
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ArticleStatus.DRAFT.value,
        index=True
    )
    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

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
