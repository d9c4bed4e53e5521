"""
Support Controllers (API Routes)
=================================

FastAPI routes for the ticket lifecycle.

Creating a ticket or posting a customer message runs the RAG loop and
returns the AI reply together with the (possibly moved) ticket.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.config import TicketStatus
from autocrm.container import ServiceContainer, get_container
from autocrm.infrastructure.database import get_session
from autocrm.shared.infrastructure.logging import get_logger
from autocrm.support.application import (
    AssignTicketRequest,
    CreateTicketRequest,
    MessageResponse,
    PostMessageRequest,
    PostMessageResponse,
    ReopenTicketRequest,
    ResolveTicketRequest,
    ResolveTicketResponse,
    TicketConversationResponse,
    TicketListResponse,
    TicketResponse,
    TicketWorkflowService,
)
from autocrm.support.application.dto import TicketStatusStr
from autocrm.support.infrastructure import (
    SQLAlchemyMessageRepository,
    SQLAlchemyTicketRepository,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/tickets", tags=["Tickets"])


# ========== Dependencies ==========

def get_workflow_service(
    db: AsyncSession = Depends(get_session),
    container: ServiceContainer = Depends(get_container)
) -> TicketWorkflowService:
    """Workflow service bound to the request's database session."""
    return TicketWorkflowService(
        tickets=SQLAlchemyTicketRepository(db),
        messages=SQLAlchemyMessageRepository(db),
        priority_classifier=container.priority_classifier,
        retrieval=container.retrieval,
        responder=container.responder,
        policy=container.resolution_policy,
        email_notifier=container.email_notifier,
        retrieval_limit=container.settings.retrieval_limit
    )


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=TicketConversationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a ticket and get the AI's first reply",
    description="""
    Classifies the ticket's priority, stores the description as the first
    message, retrieves similar knowledge articles and posts the AI reply.

    A reply with confidence above the threshold may move the ticket straight
    to `Resolved` (potential resolution) or `In Progress` (escalation).
    """
)
async def create_ticket(
    request: Request,
    payload: CreateTicketRequest,
    service: TicketWorkflowService = Depends(get_workflow_service)
):
    conversation = await service.create_ticket(
        title=payload.title,
        description=payload.description,
        submitted_by=payload.submitted_by,
        submitter_name=payload.submitter_name
    )
    logger.info(
        "Ticket opened via API",
        extra={
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            "ticket_id": conversation.ticket.id
        }
    )
    return TicketConversationResponse(
        ticket=TicketResponse.from_domain(conversation.ticket),
        ai_message=MessageResponse.from_domain(conversation.ai_message)
    )


@router.get(
    "",
    response_model=TicketListResponse,
    summary="List tickets, newest first"
)
async def list_tickets(
    status_filter: Optional[TicketStatusStr] = Query(None, alias="status"),
    submitted_by: Optional[str] = None,
    assigned_to: Optional[str] = None,
    service: TicketWorkflowService = Depends(get_workflow_service)
):
    tickets = await service.list_tickets(
        status=TicketStatus(status_filter) if status_filter else None,
        submitted_by=submitted_by,
        assigned_to=assigned_to
    )
    return TicketListResponse(
        tickets=[TicketResponse.from_domain(t) for t in tickets],
        total=len(tickets)
    )


@router.get(
    "/{ticket_id}",
    response_model=TicketResponse,
    summary="Get a ticket"
)
async def get_ticket(
    ticket_id: str,
    service: TicketWorkflowService = Depends(get_workflow_service)
):
    return TicketResponse.from_domain(await service.get_ticket(ticket_id))


@router.get(
    "/{ticket_id}/messages",
    response_model=List[MessageResponse],
    summary="Get a ticket's conversation, oldest first"
)
async def list_messages(
    ticket_id: str,
    service: TicketWorkflowService = Depends(get_workflow_service)
):
    messages = await service.list_messages(ticket_id)
    return [MessageResponse.from_domain(m) for m in messages]


@router.post(
    "/{ticket_id}/messages",
    response_model=PostMessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Post a message to a ticket",
    description="""
    Messages from the ticket's submitter get an AI follow-up reply.
    Messages from anyone else (support workers) are stored without one.
    Posting to a `Closed` ticket returns 409.
    """
)
async def post_message(
    ticket_id: str,
    payload: PostMessageRequest,
    service: TicketWorkflowService = Depends(get_workflow_service)
):
    posted = await service.post_message(
        ticket_id,
        sender_id=payload.sender_id,
        content=payload.content,
        sender_name=payload.sender_name
    )
    return PostMessageResponse(
        ticket=TicketResponse.from_domain(posted.ticket),
        message=MessageResponse.from_domain(posted.message),
        ai_message=MessageResponse.from_domain(posted.ai_message) if posted.ai_message else None
    )


@router.post(
    "/{ticket_id}/reopen",
    response_model=TicketResponse,
    summary="Customer reopens a resolved ticket"
)
async def reopen_ticket(
    ticket_id: str,
    payload: ReopenTicketRequest,
    service: TicketWorkflowService = Depends(get_workflow_service)
):
    return TicketResponse.from_domain(await service.reopen_ticket(ticket_id, payload.requested_by))


@router.post(
    "/{ticket_id}/resolve",
    response_model=ResolveTicketResponse,
    summary="Worker resolves a ticket and notifies the customer"
)
async def resolve_ticket(
    ticket_id: str,
    payload: ResolveTicketRequest,
    service: TicketWorkflowService = Depends(get_workflow_service)
):
    outcome = await service.resolve_ticket(
        ticket_id,
        resolution_notes=payload.resolution_notes,
        customer_email=payload.customer_email,
        customer_name=payload.customer_name
    )
    return ResolveTicketResponse(
        ticket=TicketResponse.from_domain(outcome.ticket),
        email_sent=outcome.email_sent
    )


@router.post(
    "/{ticket_id}/assign",
    response_model=TicketResponse,
    summary="Assign a ticket to a support worker"
)
async def assign_ticket(
    ticket_id: str,
    payload: AssignTicketRequest,
    service: TicketWorkflowService = Depends(get_workflow_service)
):
    return TicketResponse.from_domain(await service.assign_ticket(ticket_id, payload.worker_id))


@router.post(
    "/{ticket_id}/close",
    response_model=TicketResponse,
    summary="Close a resolved ticket"
)
async def close_ticket(
    ticket_id: str,
    service: TicketWorkflowService = Depends(get_workflow_service)
):
    return TicketResponse.from_domain(await service.close_ticket(ticket_id))


support_router = router
