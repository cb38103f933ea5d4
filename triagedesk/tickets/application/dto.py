"""
Ticket Application DTOs
========================

Data Transfer Objects for the ticket API layer.

Pydantic models for request/response validation. The wire format is
camelCase (``ticketId``, ``userInfo``, ``aiMessage``); Python code uses
snake_case through the alias generator.
"""

from datetime import datetime
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from triagedesk.config import MAX_RATING, MIN_RATING, MessageRole
from triagedesk.tickets.domain import ChatTurn, Message, Ticket, UserInfo


class CamelModel(BaseModel):
    """Base model exposing camelCase aliases."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ========== Request DTOs ==========

class UserInfoPayload(CamelModel):
    """Contact details from the pre-chat form."""
    name: str = Field(..., min_length=1, description="Full name")
    email: str = Field(..., min_length=3, description="Email address")
    phone: Optional[str] = Field(None, description="Phone number")

    def to_domain(self) -> UserInfo:
        return UserInfo(name=self.name, email=self.email, phone=self.phone or None)


class ChatMessagePayload(CamelModel):
    """One turn of the client-side history."""
    role: Literal["user", "assistant"]
    content: str

    def to_domain(self) -> ChatTurn:
        return ChatTurn(role=MessageRole(self.role), content=self.content)


class ChatRequest(CamelModel):
    """Request model for a chat turn."""
    messages: List[ChatMessagePayload] = Field(
        ..., min_length=1, description="Ordered chat history, latest user turn last"
    )
    user_info: Optional[UserInfoPayload] = Field(
        None, description="Required on the first turn, when no ticket exists yet"
    )
    ticket_id: Optional[int] = Field(None, gt=0, description="Ticket to continue")

    def history(self) -> List[ChatTurn]:
        return [m.to_domain() for m in self.messages]


class InitiateRequest(CamelModel):
    """Request model for the query acknowledgment endpoint."""
    query: str = Field(..., min_length=1, description="Initial user query")


class TicketActionRequest(CamelModel):
    """Request model for escalate and urgent actions."""
    ticket_id: int = Field(..., gt=0, description="Ticket identifier")


class ResolveRequest(TicketActionRequest):
    """Request model for resolution with review."""
    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING, description="Star rating")
    comment: str = Field(default="", description="Free-text review")


# ========== Response DTOs ==========

class AIMessage(CamelModel):
    """Assistant reply; ticketId only appears when the turn created the ticket."""
    role: Literal["assistant"] = "assistant"
    content: str
    ticket_id: Optional[int] = None


class ChatResponse(CamelModel):
    """Response model for a chat turn."""
    ai_message: AIMessage


class InitiateResponse(CamelModel):
    message: str
    query: str


class MessageResponse(CamelModel):
    """Plain acknowledgment."""
    message: str


class TranscriptEntry(CamelModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime


class TicketDetailResponse(CamelModel):
    """Ticket fields plus the ordered transcript."""
    id: int
    user_name: str
    user_email: str
    user_phone: Optional[str] = None
    category: str
    status: str
    priority: str
    rating: Optional[int] = None
    review_comment: Optional[str] = None
    created_at: datetime
    messages: List[TranscriptEntry]

    @classmethod
    def from_domain(cls, ticket: Ticket, messages: Sequence[Message]) -> "TicketDetailResponse":
        return cls(
            id=ticket.id,
            user_name=ticket.user_name,
            user_email=ticket.user_email,
            user_phone=ticket.user_phone,
            category=ticket.category,
            status=ticket.status.value,
            priority=ticket.priority.value,
            rating=ticket.rating,
            review_comment=ticket.review_comment,
            created_at=ticket.created_at,
            messages=[
                TranscriptEntry(role=m.role.value, content=m.text, timestamp=m.timestamp)
                for m in messages
            ],
        )
