"""
Ticket Controllers (API Routes)
================================

FastAPI routes for the support chat and ticket actions.

Controllers delegate to TicketService. Body validation happens before any
side effect (400). Unknown tickets are 404 and illegal status changes are
409. Downstream failures (AI, email, store) are logged and answered with a
generic 500. Writes that already happened are kept.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from triagedesk.config import settings
from triagedesk.core import (
    ApplicationException,
    DomainException,
    ResourceNotFoundException,
    ValidationException,
)
from triagedesk.infrastructure.database import get_session
from triagedesk.shared.infrastructure.logging import get_logger
from triagedesk.tickets.application import (
    AIMessage,
    ChatRequest,
    ChatResponse,
    INotificationSender,
    ITriageAssistant,
    InitiateRequest,
    InitiateResponse,
    MessageResponse,
    ResolveRequest,
    TicketActionRequest,
    TicketDetailResponse,
    TicketService,
)
from triagedesk.tickets.domain import RoutingConfig
from triagedesk.tickets.infrastructure import SQLAlchemyTicketStore

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["Tickets"])

# Errors the client must see as-is; everything else becomes a generic 500.
CLIENT_ERRORS = (ValidationException, ResourceNotFoundException, DomainException)


# ========== Example payloads for Swagger ==========

CHAT_REQUEST_EXAMPLE = {
    "messages": [
        {"role": "assistant", "content": "Hello A! How can I help you today?"},
        {"role": "user", "content": "My site is down"}
    ],
    "userInfo": {"name": "A", "email": "a@x.com", "phone": None}
}

CHAT_RESPONSE_EXAMPLE = {
    "aiMessage": {
        "role": "assistant",
        "content": "[Website] Sorry to hear that. When did the site stop responding?",
        "ticketId": 1
    }
}


# ========== Dependencies ==========

def get_triage_assistant(request: Request) -> Optional[ITriageAssistant]:
    """Triage assistant built at startup, None when no LLM key is configured."""
    return getattr(request.app.state, "triage_assistant", None)


def require_triage_assistant(
    assistant: Optional[ITriageAssistant] = Depends(get_triage_assistant)
) -> ITriageAssistant:
    if assistant is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI service not configured."
        )
    return assistant


def get_notification_sender(request: Request) -> INotificationSender:
    return request.app.state.notification_sender


def get_routing_config(request: Request) -> RoutingConfig:
    manager = getattr(request.app.state, "routing_config_manager", None)
    return manager.config if manager is not None else RoutingConfig()


def get_ticket_service(
    session: AsyncSession = Depends(get_session),
    assistant: Optional[ITriageAssistant] = Depends(get_triage_assistant),
    notifier: INotificationSender = Depends(get_notification_sender),
    routing: RoutingConfig = Depends(get_routing_config),
) -> TicketService:
    return TicketService(
        store=SQLAlchemyTicketStore(session),
        assistant=assistant,
        notifier=notifier,
        routing=routing,
        allow_messages_after_close=settings.allow_messages_after_close,
    )


def _server_error(
    request: Request,
    exc: ApplicationException,
    public_message: str,
    ticket_id: Optional[int] = None
) -> HTTPException:
    logger.error(
        public_message,
        extra={
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            "ticket_id": ticket_id,
            "error_type": type(exc).__name__,
            "error": exc.message,
        }
    )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=public_message)


# ========== Route Handlers ==========

@router.post(
    "/ticket/initiate",
    response_model=InitiateResponse,
    summary="Acknowledge an initial query",
    description="Echoes the query back. Nothing is persisted."
)
async def initiate_ticket(payload: InitiateRequest):
    return InitiateResponse(message="Received your query!", query=payload.query)


@router.post(
    "/chat",
    response_model=ChatResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_triage_assistant)],
    summary="Send a chat turn",
    description="""
    Forward the chat history to the triage assistant and persist the turn.

    - Without `ticketId` the turn opens a ticket: `userInfo` is required, the
      category is taken from the bracketed label in the reply, the routing
      team is emailed and `aiMessage.ticketId` is returned.
    - With `ticketId` the user turn and the reply are appended to that ticket.
    """,
    responses={
        200: {"content": {"application/json": {"example": CHAT_RESPONSE_EXAMPLE}}},
        400: {"description": "Missing messages or user info"},
        404: {"description": "Unknown ticket"},
        500: {"description": "AI, email or store failure"},
    }
)
async def chat(
    request: Request,
    payload: ChatRequest,
    service: TicketService = Depends(get_ticket_service)
):
    try:
        result = await service.handle_chat_turn(
            history=payload.history(),
            user_info=payload.user_info.to_domain() if payload.user_info else None,
            ticket_id=payload.ticket_id
        )
    except CLIENT_ERRORS:
        raise
    except ApplicationException as e:
        raise _server_error(request, e, "AI service error.", payload.ticket_id)

    return ChatResponse(
        ai_message=AIMessage(
            content=result.reply_text,
            ticket_id=result.ticket_id if result.ticket_created else None
        )
    )


@router.post(
    "/ticket/escalate",
    response_model=MessageResponse,
    summary="Escalate a ticket to a human team"
)
async def escalate_ticket(
    request: Request,
    payload: TicketActionRequest,
    service: TicketService = Depends(get_ticket_service)
):
    try:
        await service.escalate(payload.ticket_id)
    except CLIENT_ERRORS:
        raise
    except ApplicationException as e:
        raise _server_error(request, e, "Failed to escalate ticket.", payload.ticket_id)

    return MessageResponse(message="Ticket escalated successfully.")


@router.post(
    "/ticket/urgent",
    response_model=MessageResponse,
    summary="Mark a ticket as urgent"
)
async def mark_ticket_urgent(
    request: Request,
    payload: TicketActionRequest,
    service: TicketService = Depends(get_ticket_service)
):
    try:
        await service.mark_urgent(payload.ticket_id)
    except CLIENT_ERRORS:
        raise
    except ApplicationException as e:
        raise _server_error(request, e, "Failed to mark ticket as urgent.", payload.ticket_id)

    return MessageResponse(message="Ticket marked as urgent.")


@router.post(
    "/ticket/resolve",
    response_model=MessageResponse,
    summary="Resolve a ticket and submit the review"
)
async def resolve_ticket(
    request: Request,
    payload: ResolveRequest,
    service: TicketService = Depends(get_ticket_service)
):
    try:
        await service.resolve(payload.ticket_id, payload.rating, payload.comment)
    except CLIENT_ERRORS:
        raise
    except ApplicationException as e:
        raise _server_error(request, e, "Failed to resolve ticket.", payload.ticket_id)

    return MessageResponse(message="Ticket resolved and review submitted.")


@router.get(
    "/ticket/{ticket_id}",
    response_model=TicketDetailResponse,
    summary="Get a ticket with its transcript"
)
async def get_ticket(
    ticket_id: int,
    service: TicketService = Depends(get_ticket_service)
):
    ticket, messages = await service.get_ticket_with_transcript(ticket_id)
    return TicketDetailResponse.from_domain(ticket, messages)


# Export router for inclusion in main app
tickets_router = router
