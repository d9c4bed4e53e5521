"""
Knowledge Domain Entities
=========================

Domain entities for the knowledge base module.

Contains pure Python business objects for articles, retrieval results,
sync reports, and the prompt builders used by article assistance.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Set

from autocrm.config import ArticleStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        try:
            return datetime.fromisoformat(str(value))
        except ValueError:
            pass
    return _utcnow()


@dataclass
class KnowledgeArticle:
    """
    Knowledge base article.

    The embedding of an article is always derived from ``embedding_text``,
    so any change to the title or content requires re-embedding.
    """
    id: str
    title: str
    content: str
    tags: Set[str] = field(default_factory=set)
    status: ArticleStatus = ArticleStatus.DRAFT
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @property
    def embedding_text(self) -> str:
        """Text fed to the embedding model."""
        return f"{self.title}\n\n{self.content}"

    def to_metadata(self) -> dict:
        """Flatten into the metadata stored beside the article's vector."""
        return {
            "title": self.title,
            "content": self.content,
            "tags": sorted(self.tags),
            "status": ArticleStatus(self.status).value,
            "created_by": self.created_by or "",
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_metadata(cls, article_id: str, metadata: dict) -> "KnowledgeArticle":
        """Rebuild an article from vector metadata (missing keys get defaults)."""
        raw_status = metadata.get("status") or ArticleStatus.PUBLISHED.value
        try:
            status = ArticleStatus(raw_status)
        except ValueError:
            status = ArticleStatus.PUBLISHED
        tags = metadata.get("tags") or []
        return cls(
            id=article_id,
            title=str(metadata.get("title", "")),
            content=str(metadata.get("content", "")),
            tags=set(tags) if isinstance(tags, (list, tuple, set)) else set(),
            status=status,
            created_by=metadata.get("created_by") or None,
            created_at=_parse_timestamp(metadata.get("created_at")),
            updated_at=_parse_timestamp(metadata.get("updated_at")),
        )

    def revise(
        self,
        title: Optional[str] = None,
        content: Optional[str] = None,
        tags: Optional[Set[str]] = None,
        status: Optional[ArticleStatus] = None
    ) -> None:
        """Apply an edit; fields left as None keep their value."""
        if title is not None:
            self.title = title
        if content is not None:
            self.content = content
        if tags is not None:
            self.tags = set(tags)
        if status is not None:
            self.status = ArticleStatus(status)
        self.updated_at = _utcnow()


@dataclass
class ArticleSuggestion:
    """An article retrieved for a query, with its similarity score."""
    article: KnowledgeArticle
    similarity: float


@dataclass
class SyncReport:
    """Outcome of a knowledge base resync."""
    success: bool
    message: str
    total_processed: int = 0
    deleted: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class ArticleQualityAnalysis:
    """Scores (0-10) and improvement suggestions for an article."""
    clarity: float = 0.0
    completeness: float = 0.0
    technical_accuracy: float = 0.0
    formatting: float = 0.0
    suggestions: List[str] = field(default_factory=list)


def format_articles_for_prompt(articles: List[KnowledgeArticle]) -> str:
    """Serialize articles into the context block shared by every RAG prompt."""
    return "\n\n---\n\n".join(
        f"Article: {article.title}\n\nContent: {article.content}"
        for article in articles
    )


class TagPromptBuilder:
    """Builds prompts for article tag generation."""

    SYSTEM_PROMPT = """You are a knowledge base editor for a customer support team.

Suggest up to 5 short, lowercase tags that describe what the article covers.
Prefer product areas and problem types over generic words.

Respond ONLY in JSON format:
{
    "tags": ["tag-one", "tag-two"]
}"""

    @classmethod
    def build_prompt(cls, title: str, content: str) -> str:
        return f"""Title: {title}

Content:
{content}

Suggest tags (respond with JSON only):"""


class ArticleQualityPromptBuilder:
    """Builds prompts for article quality review."""

    SYSTEM_PROMPT = """You review customer support knowledge base articles.

Score the article from 0 to 10 on each of:
- clarity: easy to follow for a non-technical customer
- completeness: covers the steps needed to solve the problem
- technical_accuracy: instructions are correct and consistent
- formatting: structure, lists and headings help scanning

Then list concrete improvements.

Respond ONLY in JSON format:
{
    "clarity": 7,
    "completeness": 6,
    "technical_accuracy": 8,
    "formatting": 5,
    "suggestions": ["..."]
}"""

    @classmethod
    def build_prompt(cls, title: str, content: str) -> str:
        return f"""Title: {title}

Content:
{content}

Review this article (respond with JSON only):"""


class ArticleSuggestionPromptBuilder:
    """Builds prompts that draft knowledge base improvements from a ticket."""

    SYSTEM_PROMPT = """You help a support team keep its knowledge base current.

Given a resolved support ticket and the most similar existing articles, explain
briefly whether an existing article should be updated or a new article written,
and outline what it should say. Keep the answer under 200 words."""

    @classmethod
    def build_prompt(
        cls,
        ticket_title: str,
        ticket_content: str,
        similar_articles: List[KnowledgeArticle]
    ) -> str:
        context = format_articles_for_prompt(similar_articles) or "No similar articles found."
        return f"""Ticket Title: {ticket_title}

Ticket Content:
{ticket_content}

Existing Articles:
{context}"""
