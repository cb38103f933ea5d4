"""
Ticket Application Layer
=========================

Contains:
- Services: TicketService orchestration
- Ports: ITicketStore, ITriageAssistant, INotificationSender
- DTOs: Data transfer objects for API serialization
"""

from triagedesk.tickets.application.dto import (
    UserInfoPayload,
    ChatMessagePayload,
    ChatRequest,
    ChatResponse,
    AIMessage,
    InitiateRequest,
    InitiateResponse,
    TicketActionRequest,
    ResolveRequest,
    MessageResponse,
    TranscriptEntry,
    TicketDetailResponse,
)
from triagedesk.tickets.application.services import (
    TicketService,
    ITicketStore,
    ITriageAssistant,
    INotificationSender,
)

__all__ = [
    # DTOs
    "UserInfoPayload",
    "ChatMessagePayload",
    "ChatRequest",
    "ChatResponse",
    "AIMessage",
    "InitiateRequest",
    "InitiateResponse",
    "TicketActionRequest",
    "ResolveRequest",
    "MessageResponse",
    "TranscriptEntry",
    "TicketDetailResponse",
    # Services
    "TicketService",
    # Ports
    "ITicketStore",
    "ITriageAssistant",
    "INotificationSender",
]
