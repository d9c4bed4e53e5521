"""
AutoCRM - Main Application
===========================

AI-assisted customer support ticketing backend.

Modules:
- Knowledge: Article management, vector sync and similarity search
- Assistant: LLM operations (``/ai``) and knowledge-base chat (``/chat``)
- Support: Tickets, conversations and AI-driven resolution

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and business rules
- Infrastructure: Database, LLM, vector store, email
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from autocrm.assistant.interfaces import assistant_router
from autocrm.config import Settings, settings as default_settings
from autocrm.container import ServiceContainer
from autocrm.core import ApplicationException
from autocrm.infrastructure.database import close_database, create_tables, init_database
from autocrm.knowledge.interfaces import knowledge_router
from autocrm.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from autocrm.shared.infrastructure.logging import get_logger, setup_logging
from autocrm.support.interfaces import support_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database (create tables outside production)
    3. Build the service container unless one was injected
    4. Connect the vector index

    SHUTDOWN:
    1. Close provider clients
    2. Close database connections
    """
    app_settings: Settings = app.state.settings

    # === STARTUP ===
    setup_logging(level=app_settings.log_level, environment=app_settings.environment)
    logger.info("Starting AutoCRM", extra={
        "version": app_settings.app_version,
        "environment": app_settings.environment
    })

    init_database(app_settings.database_url)
    if app_settings.environment in ("development", "test"):
        logger.info("Creating database tables")
        try:
            await create_tables()
        except Exception as e:
            logger.warning(
                "Database not available - running in degraded mode",
                extra={"error": str(e)}
            )

    if getattr(app.state, "container", None) is None:
        app.state.container = ServiceContainer.build(app_settings)
    container: ServiceContainer = app.state.container
    await container.startup()

    logger.info("AutoCRM started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down AutoCRM")
    await container.shutdown()
    await close_database()
    logger.info("AutoCRM shutdown complete")


def create_app(
    app_settings: Optional[Settings] = None,
    container: Optional[ServiceContainer] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        app_settings: Settings to run with (defaults to the environment's)
        container: Pre-built services; skips building them at startup

    Returns:
        FastAPI: The configured application
    """
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="AutoCRM API",
        description="""
    ## AI-Assisted Customer Support Ticketing

    Tickets are answered by an LLM grounded in the knowledge base (RAG).
    A confident reply can resolve or escalate a ticket on its own.

    ---

    ### Tickets
    - `POST /tickets` - Open a ticket and get the AI's first reply
    - `POST /tickets/{id}/messages` - Continue the conversation
    - `POST /tickets/{id}/reopen|resolve|assign|close` - Lifecycle actions

    ### Knowledge Base
    - `POST /knowledge/sync` - Re-embed every article into the vector index
    - `POST /knowledge-base/search` - Similarity search
    - `/knowledge/articles` - Article CRUD (edits are embedded immediately)

    ### AI Assistant
    - `POST /ai` - Named AI operations (priority, responses, tags, ...)
    - `POST /chat` - Knowledge-base Q&A with live-agent handoff
    """,
        version=app_settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = app_settings
    if container is not None:
        app.state.container = container

    # === CORS Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # === Custom Middleware (from shared) ===
    # Outermost, so LoggingMiddleware already sees the correlation ID
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # === Include Module Routers ===
    app.include_router(support_router)
    app.include_router(knowledge_router)
    app.include_router(assistant_router)

    @app.get("/health", tags=["Health"], responses={
        200: {
            "description": "Service is healthy",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "version": "1.0.0",
                        "environment": "development",
                        "checks": {
                            "llm_client": "OpenAICompletionClient",
                            "vector_store": "available (42 vectors)",
                            "email": "ResendEmailClient"
                        }
                    }
                }
            }
        }
    })
    async def health_check(request: Request):
        """
        Health check endpoint for load balancers and orchestrators.

        Reports which providers are wired and whether the vector index
        answers.
        """
        container = getattr(request.app.state, "container", None)
        if container is None:
            return {
                "status": "starting",
                "version": app_settings.app_version,
                "environment": app_settings.environment,
                "checks": {}
            }

        checks = {
            "llm_client": type(container.llm).__name__,
            "vector_store": "unknown",
            "email": type(container.email_notifier).__name__
        }
        try:
            count = await container.vector_index.count()
            checks["vector_store"] = f"available ({count} vectors)"
        except Exception as e:
            checks["vector_store"] = f"error: {str(e)}"

        return {
            "status": "healthy",
            "version": app_settings.app_version,
            "environment": app_settings.environment,
            "checks": checks
        }

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "AutoCRM",
            "version": app_settings.app_version,
            "architecture": "Clean Architecture / Modular Monolith",
            "docs": "/docs",
            "health": "/health",
            "modules": {
                "support": {
                    "prefix": "/tickets",
                    "endpoints": [
                        "POST /tickets - Open ticket",
                        "GET /tickets - List tickets",
                        "GET /tickets/{id} - Get ticket",
                        "GET|POST /tickets/{id}/messages - Conversation",
                        "POST /tickets/{id}/reopen - Reopen resolved ticket",
                        "POST /tickets/{id}/resolve - Resolve and notify",
                        "POST /tickets/{id}/assign - Assign worker",
                        "POST /tickets/{id}/close - Close resolved ticket"
                    ]
                },
                "knowledge": {
                    "endpoints": [
                        "POST /knowledge/sync - Resync vector index",
                        "POST /knowledge-base/search - Similarity search",
                        "/knowledge/articles - Article CRUD"
                    ]
                },
                "assistant": {
                    "endpoints": [
                        "POST /ai - Named AI operations",
                        "POST /chat - Knowledge-base chat"
                    ]
                }
            }
        }

    return app


app = create_app()


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "autocrm.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.environment == "development",
        log_level="info"
    )
