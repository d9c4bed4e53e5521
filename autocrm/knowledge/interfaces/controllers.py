"""
Knowledge Controllers (API Routes)
===================================

FastAPI routes for the knowledge base: resync, similarity search and
article management.

Controllers delegate to application services.
"""

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.config import ArticleStatus
from autocrm.container import ServiceContainer, get_container
from autocrm.infrastructure.database import get_session
from autocrm.knowledge.application import (
    ArticleCreateRequest,
    ArticleResponse,
    ArticleSearchResult,
    ArticleUpdateRequest,
    KnowledgeArticleService,
    SearchRequest,
    SearchResponse,
    SyncRequest,
    SyncResponse,
)
from autocrm.knowledge.application.dto import ArticleStatusStr
from autocrm.knowledge.infrastructure import SQLAlchemyKnowledgeArticleRepository
from autocrm.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Knowledge Base"])


# ========== Example payloads for Swagger ==========

SYNC_RESPONSE_EXAMPLE = {
    "success": True,
    "message": "Successfully synced 12 articles to vector store (removed 1 stale vectors)",
    "totalProcessed": 12,
    "deleted": 1
}


# ========== Dependencies ==========

def get_article_service(
    db: AsyncSession = Depends(get_session),
    container: ServiceContainer = Depends(get_container)
) -> KnowledgeArticleService:
    """Article service bound to the request's database session."""
    return KnowledgeArticleService(SQLAlchemyKnowledgeArticleRepository(db), container.sync)


# ========== Route Handlers ==========

@router.post(
    "/knowledge/sync",
    response_model=SyncResponse,
    response_model_exclude_none=True,
    summary="Resync the vector index from the article store",
    description="""
    Re-embeds every knowledge article and writes it to the vector index.

    **Strategies**:
    - `diff` (default): upsert all articles, then delete vectors of removed articles
    - `rebuild`: clear the index first, then insert all articles

    A failing batch is reported in `errors` and the remaining batches still run.
    """,
    responses={
        200: {"content": {"application/json": {"example": SYNC_RESPONSE_EXAMPLE}}},
        500: {"description": "The vector index could not be read or cleared"}
    }
)
async def sync_knowledge_base(
    request: Request,
    payload: Optional[SyncRequest] = Body(default=None),
    service: KnowledgeArticleService = Depends(get_article_service)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    strategy = payload.strategy if payload else "diff"

    logger.info(
        "Knowledge base sync requested",
        extra={"correlation_id": correlation_id, "strategy": strategy}
    )

    report = await service.resync(strategy)
    if not report.success:
        return JSONResponse(
            status_code=500,
            content={"error": report.message, "details": report.errors}
        )
    return SyncResponse.from_domain(report)


@router.post(
    "/knowledge-base/search",
    response_model=SearchResponse,
    summary="Find the articles most similar to a query"
)
async def search_articles(
    payload: SearchRequest,
    container: ServiceContainer = Depends(get_container)
):
    if not payload.query.strip():
        return JSONResponse(status_code=400, content={"error": "Query is required"})

    suggestions = await container.retrieval.find_similar(payload.query, limit=payload.limit)
    return SearchResponse(articles=[ArticleSearchResult.from_domain(s) for s in suggestions])


@router.get(
    "/knowledge/articles",
    response_model=List[ArticleResponse],
    summary="List knowledge articles"
)
async def list_articles(
    status_filter: Optional[ArticleStatusStr] = Query(None, alias="status"),
    service: KnowledgeArticleService = Depends(get_article_service)
):
    status_value = ArticleStatus(status_filter) if status_filter else None
    articles = await service.list_articles(status_value)
    return [ArticleResponse.from_domain(a) for a in articles]


@router.post(
    "/knowledge/articles",
    response_model=ArticleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a knowledge article (embeds it immediately)"
)
async def create_article(
    request: Request,
    payload: ArticleCreateRequest,
    service: KnowledgeArticleService = Depends(get_article_service)
):
    article = await service.create_article(
        title=payload.title,
        content=payload.content,
        tags=set(payload.tags),
        status=ArticleStatus(payload.status),
        created_by=payload.created_by
    )
    logger.info(
        "Article created",
        extra={
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            "article_id": article.id
        }
    )
    return ArticleResponse.from_domain(article)


@router.get(
    "/knowledge/articles/{article_id}",
    response_model=ArticleResponse,
    summary="Get a knowledge article"
)
async def get_article(
    article_id: str,
    service: KnowledgeArticleService = Depends(get_article_service)
):
    return ArticleResponse.from_domain(await service.get_article(article_id))


@router.put(
    "/knowledge/articles/{article_id}",
    response_model=ArticleResponse,
    summary="Edit a knowledge article (re-embeds it)"
)
async def update_article(
    article_id: str,
    payload: ArticleUpdateRequest,
    service: KnowledgeArticleService = Depends(get_article_service)
):
    article = await service.update_article(
        article_id,
        title=payload.title,
        content=payload.content,
        tags=set(payload.tags) if payload.tags is not None else None,
        status=ArticleStatus(payload.status) if payload.status else None
    )
    return ArticleResponse.from_domain(article)


@router.delete(
    "/knowledge/articles/{article_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a knowledge article and its vector"
)
async def delete_article(
    article_id: str,
    service: KnowledgeArticleService = Depends(get_article_service)
):
    await service.delete_article(article_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


knowledge_router = router
