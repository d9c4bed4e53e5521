"""
Knowledge Infrastructure Repositories
======================================

SQLAlchemy implementation of the knowledge article repository.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.config import ArticleStatus
from autocrm.core import RepositoryException
from autocrm.knowledge.application.services import IKnowledgeArticleRepository
from autocrm.knowledge.domain import KnowledgeArticle
from autocrm.knowledge.infrastructure.models import KnowledgeArticleModel


def _to_uuid(article_id: str) -> Optional[UUID]:
    try:
        return UUID(str(article_id))
    except ValueError:
        return None


def _to_domain(model: KnowledgeArticleModel) -> KnowledgeArticle:
    return KnowledgeArticle(
        id=str(model.id),
        title=model.title,
        content=model.content,
        tags=set(model.tags or []),
        status=ArticleStatus(model.status),
        created_by=model.created_by,
        created_at=model.created_at,
        updated_at=model.updated_at
    )


class SQLAlchemyKnowledgeArticleRepository(IKnowledgeArticleRepository):
    """SQLAlchemy implementation for knowledge articles."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_model(self, article_id: str) -> Optional[KnowledgeArticleModel]:
        article_uuid = _to_uuid(article_id)
        if article_uuid is None:
            return None
        return await self._session.get(KnowledgeArticleModel, article_uuid)

    async def get_by_id(self, article_id: str) -> Optional[KnowledgeArticle]:
        """Get article by ID."""
        model = await self._get_model(article_id)
        return _to_domain(model) if model else None

    async def list_all(self, status: Optional[ArticleStatus] = None) -> List[KnowledgeArticle]:
        """List articles ordered by creation time."""
        stmt = select(KnowledgeArticleModel).order_by(KnowledgeArticleModel.created_at.asc())
        if status is not None:
            stmt = stmt.where(KnowledgeArticleModel.status == ArticleStatus(status).value)
        result = await self._session.execute(stmt)
        return [_to_domain(model) for model in result.scalars().all()]

    async def add(self, article: KnowledgeArticle) -> KnowledgeArticle:
        """Create new article."""
        article_uuid = _to_uuid(article.id)
        if article_uuid is None:
            raise RepositoryException(f"Invalid article ID: {article.id}")

        model = KnowledgeArticleModel(
            id=article_uuid,
            title=article.title,
            content=article.content,
            tags=sorted(article.tags),
            status=ArticleStatus(article.status).value,
            created_by=article.created_by,
            created_at=article.created_at,
            updated_at=article.updated_at
        )
        self._session.add(model)
        await self._session.flush()
        return _to_domain(model)

    async def save(self, article: KnowledgeArticle) -> KnowledgeArticle:
        """Write back an edited article."""
        model = await self._get_model(article.id)
        if model is None:
            raise RepositoryException(f"Article {article.id} does not exist")

        model.title = article.title
        model.content = article.content
        model.tags = sorted(article.tags)
        model.status = ArticleStatus(article.status).value
        model.updated_at = article.updated_at
        await self._session.flush()
        return _to_domain(model)

    async def delete(self, article_id: str) -> bool:
        """Delete article by ID."""
        article_uuid = _to_uuid(article_id)
        if article_uuid is None:
            return False
        result = await self._session.execute(
            delete(KnowledgeArticleModel).where(KnowledgeArticleModel.id == article_uuid)
        )
        return result.rowcount > 0
