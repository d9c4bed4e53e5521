"""
Knowledge Application Layer
============================

Application layer for the knowledge base module.

Contains:
- Services: Retrieval, sync, article assistance and article management
- DTOs: Data transfer objects for API serialization
"""

from autocrm.knowledge.application.dto import (
    SyncRequest,
    SearchRequest,
    ArticleCreateRequest,
    ArticleUpdateRequest,
    SyncResponse,
    ArticleResponse,
    ArticleSearchResult,
    SearchResponse,
)
from autocrm.knowledge.application.services import (
    IKnowledgeArticleRepository,
    KnowledgeRetrievalService,
    KnowledgeSyncService,
    ArticleAssistService,
    KnowledgeArticleService,
    SyncStrategy,
)

__all__ = [
    # DTOs
    "SyncRequest",
    "SearchRequest",
    "ArticleCreateRequest",
    "ArticleUpdateRequest",
    "SyncResponse",
    "ArticleResponse",
    "ArticleSearchResult",
    "SearchResponse",
    # Services
    "KnowledgeRetrievalService",
    "KnowledgeSyncService",
    "ArticleAssistService",
    "KnowledgeArticleService",
    "SyncStrategy",
    # Repository Interfaces
    "IKnowledgeArticleRepository",
]
