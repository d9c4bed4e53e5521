"""
Service Container
=================

Composition root: builds the provider clients and the stateless services
once at startup and hands them to request handlers through ``app.state``.

Repository-backed services (article management, ticket workflow) need a
database session and are assembled per request in the controllers.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request

from autocrm.assistant.application import (
    AIOperationsService,
    ChatService,
    PriorityClassifier,
    ResponseGenerator,
    TicketPatternAnalyzer,
)
from autocrm.config import Settings
from autocrm.infrastructure.email import IEmailNotifier, build_email_notifier
from autocrm.infrastructure.llm import (
    ICompletionClient,
    IEmbeddingClient,
    build_completion_client,
    build_embedding_client,
)
from autocrm.infrastructure.vectorstore import IVectorIndex, build_vector_index
from autocrm.knowledge.application import (
    ArticleAssistService,
    KnowledgeRetrievalService,
    KnowledgeSyncService,
)
from autocrm.shared.infrastructure.logging import get_logger
from autocrm.support.domain import ResolutionPolicy

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    """Long-lived clients and services shared by every request."""
    settings: Settings
    embedder: IEmbeddingClient
    llm: ICompletionClient
    vector_index: IVectorIndex
    email_notifier: IEmailNotifier
    retrieval: KnowledgeRetrievalService
    sync: KnowledgeSyncService
    article_assist: ArticleAssistService
    responder: ResponseGenerator
    priority_classifier: PriorityClassifier
    chat: ChatService
    pattern_analyzer: TicketPatternAnalyzer
    ai_operations: AIOperationsService
    resolution_policy: ResolutionPolicy

    @classmethod
    def build(
        cls,
        settings: Settings,
        embedder: Optional[IEmbeddingClient] = None,
        llm: Optional[ICompletionClient] = None,
        vector_index: Optional[IVectorIndex] = None,
        email_notifier: Optional[IEmailNotifier] = None
    ) -> "ServiceContainer":
        """
        Wire every service from settings.

        Any client passed in is used instead of the configured one, which
        is how tests substitute fakes.

        Raises:
            ConfigurationException: If a configured provider lacks credentials
        """
        embedder = embedder or build_embedding_client(settings)
        llm = llm or build_completion_client(settings)
        vector_index = vector_index or build_vector_index(settings)
        email_notifier = email_notifier or build_email_notifier(settings)

        retrieval = KnowledgeRetrievalService(embedder, vector_index)
        sync = KnowledgeSyncService(
            embedder,
            vector_index,
            batch_size=settings.sync_batch_size,
            batch_delay_seconds=settings.sync_batch_delay_seconds
        )
        article_assist = ArticleAssistService(llm, max_tokens=settings.llm_max_tokens)
        responder = ResponseGenerator(
            llm,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature
        )
        priority_classifier = PriorityClassifier(llm, max_tokens=settings.llm_max_tokens)
        chat = ChatService(
            retrieval,
            llm,
            similarity_threshold=settings.similarity_threshold,
            max_tokens=settings.llm_max_tokens
        )
        pattern_analyzer = TicketPatternAnalyzer(llm)
        ai_operations = AIOperationsService(
            priority_classifier=priority_classifier,
            response_generator=responder,
            article_assist=article_assist,
            pattern_analyzer=pattern_analyzer,
            embedder=embedder
        )
        policy = ResolutionPolicy(
            confidence_threshold=settings.resolution_confidence_threshold,
            escalated_status=settings.escalation_status
        )

        return cls(
            settings=settings,
            embedder=embedder,
            llm=llm,
            vector_index=vector_index,
            email_notifier=email_notifier,
            retrieval=retrieval,
            sync=sync,
            article_assist=article_assist,
            responder=responder,
            priority_classifier=priority_classifier,
            chat=chat,
            pattern_analyzer=pattern_analyzer,
            ai_operations=ai_operations,
            resolution_policy=policy
        )

    async def startup(self) -> None:
        """Connect the vector index; the API still serves if this fails."""
        try:
            await self.vector_index.initialize()
            logger.info(
                "Vector index initialized",
                extra={"backend": type(self.vector_index).__name__}
            )
        except Exception as e:
            logger.warning(
                "Vector index initialization failed, retrieval will return no articles",
                extra={"error": str(e)}
            )

    async def shutdown(self) -> None:
        """Close provider connections."""
        closed = set()
        for client in (self.llm, self.embedder, self.email_notifier, self.vector_index):
            if id(client) in closed:
                continue
            closed.add(id(client))
            await client.close()


def get_container(request: Request) -> ServiceContainer:
    """FastAPI dependency returning the container from app state."""
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(status_code=503, detail="Services not initialized")
    return container
