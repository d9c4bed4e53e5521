"""
Knowledge Application DTOs
===========================

Data Transfer Objects for the knowledge base API layer.

Pydantic models for request/response validation. Field names follow the
public wire contract, which uses camelCase for the sync report.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from autocrm.knowledge.domain import ArticleSuggestion, KnowledgeArticle, SyncReport


# ========== Type Aliases for Literals ==========
ArticleStatusStr = Literal["draft", "published", "archived"]
SyncStrategyStr = Literal["diff", "rebuild"]


def _clean_tags(tags: Optional[List[str]]) -> Optional[List[str]]:
    if tags is None:
        return None
    cleaned: List[str] = []
    for tag in tags:
        tag = tag.strip().lower()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


# ========== Request DTOs ==========

class SyncRequest(BaseModel):
    """Request model for a knowledge base resync."""
    strategy: SyncStrategyStr = Field(default="diff", description="diff or rebuild")


class SearchRequest(BaseModel):
    """Request model for similarity search."""
    query: str = Field(default="", description="Text to search for")
    limit: int = Field(default=3, ge=1, le=20, description="Maximum articles to return")


class ArticleCreateRequest(BaseModel):
    """Request model for creating an article."""
    title: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    tags: List[str] = Field(default_factory=list)
    status: ArticleStatusStr = "draft"
    created_by: Optional[str] = None

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: List[str]) -> List[str]:
        return _clean_tags(v)


class ArticleUpdateRequest(BaseModel):
    """Request model for editing an article (omitted fields are unchanged)."""
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = Field(None, min_length=1)
    tags: Optional[List[str]] = None
    status: Optional[ArticleStatusStr] = None

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return _clean_tags(v)


# ========== Response DTOs ==========

class SyncResponse(BaseModel):
    """Response model for a knowledge base resync."""
    success: bool
    message: str
    total_processed: int = Field(0, serialization_alias="totalProcessed")
    deleted: int = 0
    errors: Optional[List[str]] = None

    @classmethod
    def from_domain(cls, report: SyncReport) -> "SyncResponse":
        return cls(
            success=report.success,
            message=report.message,
            total_processed=report.total_processed,
            deleted=report.deleted,
            errors=report.errors or None
        )


class ArticleResponse(BaseModel):
    """Knowledge article as returned by the API."""
    id: str
    title: str
    content: str
    tags: List[str]
    status: ArticleStatusStr
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, article: KnowledgeArticle) -> "ArticleResponse":
        return cls(
            id=article.id,
            title=article.title,
            content=article.content,
            tags=sorted(article.tags),
            status=article.status.value,
            created_by=article.created_by,
            created_at=article.created_at,
            updated_at=article.updated_at
        )


class ArticleSearchResult(BaseModel):
    """One search hit."""
    id: str
    title: str
    content: str
    tags: List[str]
    similarity: float

    @classmethod
    def from_domain(cls, suggestion: ArticleSuggestion) -> "ArticleSearchResult":
        article = suggestion.article
        return cls(
            id=article.id,
            title=article.title,
            content=article.content,
            tags=sorted(article.tags),
            similarity=suggestion.similarity
        )


class SearchResponse(BaseModel):
    """Response model for similarity search."""
    articles: List[ArticleSearchResult]
