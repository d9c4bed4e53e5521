"""
Knowledge Application Services
===============================

Application services for the knowledge base.

- ``KnowledgeRetrievalService``: text -> embedding -> vector query -> articles
- ``KnowledgeSyncService``: keeps exactly one vector per article
- ``ArticleAssistService``: LLM helpers for article authors
- ``KnowledgeArticleService``: article CRUD that keeps the index current
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, List, Literal, Optional, Set
from uuid import uuid4

from autocrm.config import ArticleStatus
from autocrm.core import (
    LLMException,
    ResourceNotFoundException,
    ValidationException,
    extract_json,
)
from autocrm.infrastructure.llm import CompletionOptions, ICompletionClient, IEmbeddingClient
from autocrm.infrastructure.vectorstore import IVectorIndex, VectorEntry
from autocrm.knowledge.domain import (
    ArticleQualityAnalysis,
    ArticleQualityPromptBuilder,
    ArticleSuggestion,
    ArticleSuggestionPromptBuilder,
    KnowledgeArticle,
    SyncReport,
    TagPromptBuilder,
)
from autocrm.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)

SyncStrategy = Literal["diff", "rebuild"]

MAX_TAGS = 5


# ========== Repository Interfaces ==========

class IKnowledgeArticleRepository(ABC):
    """Interface for knowledge article data access."""

    @abstractmethod
    async def get_by_id(self, article_id: str) -> Optional[KnowledgeArticle]:
        """Get article by ID."""

    @abstractmethod
    async def list_all(self, status: Optional[ArticleStatus] = None) -> List[KnowledgeArticle]:
        """List articles, oldest first."""

    @abstractmethod
    async def add(self, article: KnowledgeArticle) -> KnowledgeArticle:
        """Persist a new article."""

    @abstractmethod
    async def save(self, article: KnowledgeArticle) -> KnowledgeArticle:
        """Persist changes to an existing article."""

    @abstractmethod
    async def delete(self, article_id: str) -> bool:
        """Delete an article. Returns False if it did not exist."""


# ========== Retrieval ==========

class KnowledgeRetrievalService:
    """
    Finds the knowledge articles most similar to a piece of text.

    Retrieval is advisory: any failure is logged and reported as "no
    articles" so that ticket handling never fails because of it.
    """

    def __init__(self, embedder: IEmbeddingClient, index: IVectorIndex):
        self._embedder = embedder
        self._index = index

    async def find_similar(
        self,
        text: str,
        limit: int = 3,
        threshold: Optional[float] = None
    ) -> List[ArticleSuggestion]:
        """
        Retrieve similar articles.

        Args:
            text: Query text (ticket description, chat message, ...)
            limit: Maximum number of articles
            threshold: Optional minimum similarity score

        Returns:
            Suggestions ordered by descending similarity, at most ``limit``
        """
        if not text or not text.strip() or limit <= 0:
            return []

        try:
            with log_latency(logger, "knowledge_retrieval", limit=limit):
                vector = await self._embedder.embed(text)
                matches = await self._index.query(vector, top_k=limit)
        except Exception as e:
            logger.warning(
                "Knowledge retrieval failed, continuing without articles",
                extra={"error_type": type(e).__name__, "error": str(e)}
            )
            return []

        suggestions = [
            ArticleSuggestion(
                article=KnowledgeArticle.from_metadata(match.id, match.metadata),
                similarity=match.score
            )
            for match in matches
        ]
        if threshold is not None:
            suggestions = [s for s in suggestions if s.similarity >= threshold]
        return suggestions[:limit]


# ========== Sync ==========

class KnowledgeSyncService:
    """
    Rebuilds the vector index from the article store.

    Articles are embedded and upserted in small batches with a pause in
    between to stay under provider rate limits. A failing batch is recorded
    and the remaining batches still run.
    """

    def __init__(
        self,
        embedder: IEmbeddingClient,
        index: IVectorIndex,
        batch_size: int = 5,
        batch_delay_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._embedder = embedder
        self._index = index
        self._batch_size = batch_size
        self._batch_delay = batch_delay_seconds
        self._sleep = sleep

    async def sync(
        self,
        articles: List[KnowledgeArticle],
        strategy: SyncStrategy = "diff"
    ) -> SyncReport:
        """
        Make the index hold exactly one vector per supplied article.

        Strategies:
            diff: upsert every article, then delete ids no longer present.
                The index is never empty while the sync runs.
            rebuild: clear a non-empty index, then insert every article.

        Returns:
            SyncReport (``success`` is False only when the index itself
            could not be read or cleared)
        """
        if strategy not in ("diff", "rebuild"):
            raise ValidationException(f"Unknown sync strategy: {strategy}")

        cleared = False
        deleted = 0
        try:
            existing_ids: List[str] = []
            if strategy == "rebuild":
                if await self._index.count() > 0:
                    await self._index.delete_all()
                    cleared = True
            else:
                existing_ids = await self._index.list_ids()

            processed, errors = await self._upsert_in_batches(articles)

            if strategy == "diff":
                current_ids = {article.id for article in articles}
                stale_ids = [i for i in existing_ids if i not in current_ids]
                if stale_ids:
                    await self._index.delete(stale_ids)
                    deleted = len(stale_ids)
        except Exception as e:
            logger.error(
                "Knowledge base sync failed",
                extra={"strategy": strategy, "error": str(e)}
            )
            return SyncReport(
                success=False,
                message=f"Failed to sync knowledge base: {str(e)}",
                errors=[str(e)]
            )

        if not articles:
            message = "No articles found to process"
        else:
            message = f"Successfully synced {processed} articles to vector store"
        if cleared:
            message += " (after clearing existing vectors)"
        elif deleted:
            message += f" (removed {deleted} stale vectors)"

        logger.info(
            "Knowledge base sync finished",
            extra={
                "strategy": strategy,
                "total_processed": processed,
                "deleted": deleted,
                "failed_batches": len(errors),
            }
        )
        return SyncReport(
            success=True,
            message=message,
            total_processed=processed,
            deleted=deleted,
            errors=errors
        )

    async def _upsert_in_batches(self, articles: List[KnowledgeArticle]):
        processed = 0
        errors: List[str] = []
        total = len(articles)

        for number, start in enumerate(range(0, total, self._batch_size), 1):
            batch = articles[start:start + self._batch_size]
            try:
                vectors = await self._embedder.embed_many(
                    [article.embedding_text for article in batch]
                )
                await self._index.upsert([
                    VectorEntry(id=article.id, vector=vector, metadata=article.to_metadata())
                    for article, vector in zip(batch, vectors)
                ])
                processed += len(batch)
            except Exception as e:
                logger.warning(
                    "Sync batch failed",
                    extra={"batch": number, "error": str(e)}
                )
                errors.append(f"Batch {number}: {str(e)}")

            if start + self._batch_size < total:
                await self._sleep(self._batch_delay)

        return processed, errors

    async def sync_article(self, article: KnowledgeArticle) -> None:
        """Re-embed one article, replacing its vector."""
        vector = await self._embedder.embed(article.embedding_text)
        await self._index.upsert([
            VectorEntry(id=article.id, vector=vector, metadata=article.to_metadata())
        ])
        logger.info("Article embedding updated", extra={"article_id": article.id})

    async def remove_article(self, article_id: str) -> None:
        """Drop one article's vector."""
        await self._index.delete([article_id])


# ========== Article assistance ==========

class ArticleAssistService:
    """
    LLM helpers for knowledge base authors.

    Every operation degrades to an empty result when the model call or the
    parsing of its reply fails.
    """

    def __init__(self, llm_client: ICompletionClient, max_tokens: int = 500):
        self._llm = llm_client
        self._max_tokens = max_tokens

    def _options(self, temperature: float = 0.3) -> CompletionOptions:
        return CompletionOptions(temperature=temperature, max_tokens=self._max_tokens)

    async def generate_tags(self, title: str, content: str) -> List[str]:
        """Suggest up to five lowercase tags for an article."""
        try:
            reply = await self._llm.complete(
                TagPromptBuilder.SYSTEM_PROMPT,
                TagPromptBuilder.build_prompt(title, content),
                self._options(),
                operation="tags"
            )
            data = extract_json(reply)
            raw_tags = data.get("tags", []) if isinstance(data, dict) else data
            if not isinstance(raw_tags, list):
                raise ValueError("tags must be a list")
        except (LLMException, ValueError, TypeError, AttributeError) as e:
            logger.warning("Tag generation failed", extra={"error": str(e)})
            return []

        tags: List[str] = []
        for tag in raw_tags:
            normalized = str(tag).strip().lower()
            if normalized and normalized not in tags:
                tags.append(normalized)
        return tags[:MAX_TAGS]

    async def analyze_article_quality(self, title: str, content: str) -> ArticleQualityAnalysis:
        """Score an article on clarity, completeness, accuracy and formatting."""
        try:
            reply = await self._llm.complete(
                ArticleQualityPromptBuilder.SYSTEM_PROMPT,
                ArticleQualityPromptBuilder.build_prompt(title, content),
                self._options(),
                operation="article_quality"
            )
            data = extract_json(reply)
            if not isinstance(data, dict):
                raise ValueError("quality analysis must be an object")
            suggestions = data.get("suggestions") or []
            if isinstance(suggestions, str):
                suggestions = [suggestions]
            return ArticleQualityAnalysis(
                clarity=_score(data.get("clarity")),
                completeness=_score(data.get("completeness")),
                technical_accuracy=_score(
                    data.get("technical_accuracy", data.get("technicalAccuracy"))
                ),
                formatting=_score(data.get("formatting")),
                suggestions=[str(s) for s in suggestions if str(s).strip()]
            )
        except (LLMException, ValueError, TypeError) as e:
            logger.warning("Article quality analysis failed", extra={"error": str(e)})
            return ArticleQualityAnalysis()

    async def generate_article_suggestions(
        self,
        ticket_title: str,
        ticket_content: str,
        similar_articles: List[KnowledgeArticle]
    ) -> str:
        """Draft knowledge base improvements prompted by a ticket."""
        try:
            return await self._llm.complete(
                ArticleSuggestionPromptBuilder.SYSTEM_PROMPT,
                ArticleSuggestionPromptBuilder.build_prompt(
                    ticket_title, ticket_content, similar_articles
                ),
                self._options(temperature=0.5),
                operation="article_suggestions"
            )
        except LLMException as e:
            logger.warning("Article suggestion generation failed", extra={"error": str(e)})
            return ""


def _score(value) -> float:
    """Coerce a model score into the 0-10 range."""
    if value is None:
        return 0.0
    return max(0.0, min(10.0, float(value)))


# ========== Article management ==========

class KnowledgeArticleService:
    """
    Article CRUD that keeps the vector index in step with the store.

    Creating or editing an article re-embeds it; deleting it removes its
    vector.
    """

    def __init__(
        self,
        repository: IKnowledgeArticleRepository,
        sync_service: KnowledgeSyncService
    ):
        self._repository = repository
        self._sync = sync_service

    async def get_article(self, article_id: str) -> KnowledgeArticle:
        article = await self._repository.get_by_id(article_id)
        if article is None:
            raise ResourceNotFoundException("KnowledgeArticle", article_id)
        return article

    async def list_articles(self, status: Optional[ArticleStatus] = None) -> List[KnowledgeArticle]:
        return await self._repository.list_all(status)

    async def create_article(
        self,
        title: str,
        content: str,
        tags: Optional[Set[str]] = None,
        status: ArticleStatus = ArticleStatus.DRAFT,
        created_by: Optional[str] = None
    ) -> KnowledgeArticle:
        article = KnowledgeArticle(
            id=str(uuid4()),
            title=title,
            content=content,
            tags=set(tags or ()),
            status=ArticleStatus(status),
            created_by=created_by,
        )
        article = await self._repository.add(article)
        await self._sync.sync_article(article)
        return article

    async def update_article(
        self,
        article_id: str,
        title: Optional[str] = None,
        content: Optional[str] = None,
        tags: Optional[Set[str]] = None,
        status: Optional[ArticleStatus] = None
    ) -> KnowledgeArticle:
        article = await self.get_article(article_id)
        article.revise(title=title, content=content, tags=tags, status=status)
        article = await self._repository.save(article)
        # Metadata (tags, status) lives beside the vector, so always upsert
        await self._sync.sync_article(article)
        return article

    async def delete_article(self, article_id: str) -> None:
        if not await self._repository.delete(article_id):
            raise ResourceNotFoundException("KnowledgeArticle", article_id)
        await self._sync.remove_article(article_id)

    async def resync(self, strategy: SyncStrategy = "diff") -> SyncReport:
        """Resync the whole index from the article store."""
        articles = await self._repository.list_all()
        return await self._sync.sync(articles, strategy)
