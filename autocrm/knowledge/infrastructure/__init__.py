"""
Knowledge Infrastructure Layer
===============================

Infrastructure implementations for the knowledge base module.

Contains:
- Models: SQLAlchemy ORM models
- Repositories: Data access implementations
"""

from autocrm.knowledge.infrastructure.models import KnowledgeArticleModel
from autocrm.knowledge.infrastructure.repositories import SQLAlchemyKnowledgeArticleRepository

__all__ = [
    "KnowledgeArticleModel",
    "SQLAlchemyKnowledgeArticleRepository",
]
