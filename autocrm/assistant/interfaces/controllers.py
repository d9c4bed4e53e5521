"""
Assistant Controllers (API Routes)
===================================

FastAPI routes for the AI assistant:
- ``POST /ai``: single entry point for the named AI operations
- ``POST /chat``: knowledge-base Q&A for customers

Controllers delegate to application services.
"""

from json import JSONDecodeError

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from autocrm.assistant.application import ChatRequest, ChatResponse
from autocrm.container import ServiceContainer, get_container
from autocrm.core import ValidationException
from autocrm.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["AI Assistant"])


# ========== Example payloads for Swagger ==========

AI_REQUEST_EXAMPLE = {
    "operation": "analyzePriority",
    "title": "Cannot log in",
    "description": "Password reset email never arrives"
}

CHAT_RESPONSE_EXAMPLE = {
    "response": "Open Settings > Security and choose 'Reset password'.",
    "usedArticles": [{"title": "Resetting your password", "similarity": 0.91}],
    "needsLiveAgent": False
}


# ========== Route Handlers ==========

@router.post(
    "/ai",
    summary="Run a named AI operation",
    description="""
    Dispatches on the `operation` field of the JSON body. The remaining
    fields are the operation's arguments (camelCase).

    **Operations**: `analyzePriority`, `generateInitialResponse`,
    `generateFollowUpResponse`, `generateTags`, `analyzeArticleQuality`,
    `generateEmbedding`, `generateArticleSuggestions`, `analyzeTicketPatterns`
    """,
    responses={
        200: {"description": "Operation result"},
        400: {"description": "Unknown operation or invalid body"},
        500: {"description": "Operation failed"}
    },
    openapi_extra={
        "requestBody": {
            "content": {"application/json": {"example": AI_REQUEST_EXAMPLE}},
            "required": True
        }
    }
)
async def run_ai_operation(
    request: Request,
    container: ServiceContainer = Depends(get_container)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    try:
        body = await request.json()
    except (JSONDecodeError, UnicodeDecodeError):
        return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})
    if not isinstance(body, dict):
        return JSONResponse(status_code=400, content={"error": "Request body must be a JSON object"})

    operation = body.pop("operation", None)
    logger.info(
        "AI operation requested",
        extra={"correlation_id": correlation_id, "operation": operation}
    )

    try:
        return await container.ai_operations.execute(operation, body)
    except ValidationException as e:
        return JSONResponse(status_code=400, content={"error": e.message, "details": e.details})
    except Exception as e:
        logger.error(
            "AI operation failed",
            extra={"correlation_id": correlation_id, "operation": operation, "error": str(e)},
            exc_info=True
        )
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "details": str(e)}
        )


@router.post(
    "/chat",
    response_model=ChatResponse,
    summary="Answer a question from the knowledge base",
    responses={
        200: {"content": {"application/json": {"example": CHAT_RESPONSE_EXAMPLE}}},
        400: {"description": "Message is required"}
    }
)
async def chat(
    request: Request,
    payload: ChatRequest,
    container: ServiceContainer = Depends(get_container)
):
    if not payload.message.strip():
        return JSONResponse(status_code=400, content={"error": "Message is required"})

    try:
        answer = await container.chat.answer(payload.message)
    except Exception as e:
        logger.error(
            "Chat failed",
            extra={
                "correlation_id": getattr(request.state, "correlation_id", "unknown"),
                "error": str(e)
            },
            exc_info=True
        )
        return JSONResponse(status_code=500, content={"error": "Failed to process message"})

    return ChatResponse.from_domain(answer)


assistant_router = router
