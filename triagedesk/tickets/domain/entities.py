"""
Ticket Domain Entities
======================

Pure Python business objects for support tickets and their transcripts.

Contains:
- Ticket / Message records and the chat turns that produce them
- The status state machine
- Prompt and notification builders (all text formats in one place)
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from triagedesk.config import MessageRole, TicketPriority, TicketStatus
from triagedesk.core import InvalidStatusTransitionException, ValidationException


@dataclass
class UserInfo:
    """Contact details collected before the chat starts."""
    name: str
    email: str
    phone: Optional[str] = None


@dataclass
class Ticket:
    """
    Support case tied to one user and one conversation.

    ``rating`` and ``review_comment`` stay None until the ticket is resolved.
    """
    id: int
    user_name: str
    user_email: str
    category: str
    status: TicketStatus
    priority: TicketPriority
    created_at: datetime
    user_phone: Optional[str] = None
    rating: Optional[int] = None
    review_comment: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.status == TicketStatus.OPEN


@dataclass
class Message:
    """One persisted transcript turn."""
    id: int
    ticket_id: int
    role: MessageRole
    text: str
    timestamp: datetime


@dataclass(frozen=True)
class ChatTurn:
    """One entry of the linear history sent by the client."""
    role: MessageRole
    content: str


@dataclass
class TriageReply:
    """Assistant answer plus the category it assigned, if any."""
    reply_text: str
    category: Optional[str] = None


@dataclass
class Notification:
    """Email-shaped notification for a routing team."""
    to: str
    subject: str
    text: str


@dataclass
class ChatTurnResult:
    """Outcome of one chat turn handled by the ticket service."""
    reply_text: str
    ticket_id: int
    ticket_created: bool
    category: Optional[str] = None


# ========== Status state machine ==========

ALLOWED_TRANSITIONS: Dict[TicketStatus, FrozenSet[TicketStatus]] = {
    TicketStatus.OPEN: frozenset({TicketStatus.ESCALATED, TicketStatus.RESOLVED}),
    TicketStatus.ESCALATED: frozenset({TicketStatus.ESCALATED, TicketStatus.RESOLVED}),
    # Re-resolving overwrites the review
    TicketStatus.RESOLVED: frozenset({TicketStatus.RESOLVED}),
}


def can_transition(current: TicketStatus, target: TicketStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(TicketStatus(current), frozenset())


def ensure_transition_allowed(
    current: TicketStatus,
    target: TicketStatus,
    ticket_id: Optional[int] = None
) -> None:
    """
    Reject status changes outside ALLOWED_TRANSITIONS.

    Raises:
        InvalidStatusTransitionException: If the edge is not allowed
    """
    if not can_transition(current, target):
        raise InvalidStatusTransitionException(
            ticket_id, TicketStatus(current).value, TicketStatus(target).value
        )


# ========== History helpers ==========

def split_history(turns: Sequence[ChatTurn]) -> Tuple[List[ChatTurn], ChatTurn]:
    """
    Split a client history into (context, latest turn).

    A leading assistant greeting is dropped because the conversation sent to
    the model must start with the user.

    Raises:
        ValidationException: If no turn is left after filtering
    """
    filtered = list(turns)
    if filtered and filtered[0].role == MessageRole.ASSISTANT:
        filtered = filtered[1:]

    if not filtered or not filtered[-1].content:
        raise ValidationException("No user message found.")

    return filtered[:-1], filtered[-1]


def format_transcript(messages: Sequence[Message]) -> str:
    """Render messages as ``ROLE: text`` lines in transcript order."""
    return "\n".join(
        f"{MessageRole(m.role).value.upper()}: {m.text}" for m in messages
    )


# ========== Builders ==========

class TriagePromptBuilder:
    """
    Builds the triage system instruction and reads the category back out.
    """

    SYSTEM_PROMPT = (
        "You are a Support-Triage Assistant. When given a user's initial query, "
        "first classify it into one of [{labels}] and write the chosen category "
        "in square brackets, for example [{example}], somewhere in your first "
        "reply. Then ask up to 3 clarifying questions to diagnose the issue. "
        "When no further questions are needed, suggest a fix and ask the user "
        "whether the issue is resolved?"
    )

    CATEGORY_PATTERN = re.compile(r"\[(.*?)\]")

    @classmethod
    def build_system_prompt(cls, labels: Sequence[str]) -> str:
        return cls.SYSTEM_PROMPT.format(
            labels=", ".join(labels),
            example=labels[0] if labels else "General",
        )

    @classmethod
    def extract_category(cls, reply_text: str) -> Optional[str]:
        """Return the first ``[...]`` label in the reply, or None."""
        match = cls.CATEGORY_PATTERN.search(reply_text or "")
        if not match:
            return None
        return match.group(1).strip() or None


class NotificationComposer:
    """Subjects and bodies of the emails sent to routing teams."""

    @staticmethod
    def _user_details(ticket: Ticket) -> str:
        return (
            "User Details:\n"
            f"Name: {ticket.user_name}\n"
            f"Email: {ticket.user_email}\n"
            f"Phone: {ticket.user_phone or 'N/A'}"
        )

    @classmethod
    def new_ticket(
        cls,
        ticket: Ticket,
        initial_query: str,
        recipient: str,
        ticket_url: str
    ) -> Notification:
        return Notification(
            to=recipient,
            subject=f"New Ticket #{ticket.id}: {ticket.category}",
            text=(
                "A new support ticket has been created.\n\n"
                f"Category: {ticket.category}\n"
                f"Initial Query: {initial_query}\n\n"
                f"View ticket: {ticket_url}"
            ),
        )

    @classmethod
    def escalated(
        cls,
        ticket: Ticket,
        messages: Sequence[Message],
        recipient: str
    ) -> Notification:
        return Notification(
            to=recipient,
            subject=(
                f"Escalated Ticket #{ticket.id} - "
                f"Priority: {TicketPriority(ticket.priority).value}"
            ),
            text=(
                f"A user has escalated ticket #{ticket.id}.\n\n"
                f"{cls._user_details(ticket)}\n\n"
                "Conversation Transcript:\n"
                f"{format_transcript(messages)}"
            ),
        )

    @classmethod
    def resolved(
        cls,
        ticket: Ticket,
        messages: Sequence[Message],
        recipient: str
    ) -> Notification:
        return Notification(
            to=recipient,
            subject=f"Resolved Ticket #{ticket.id} - {ticket.rating}/5 Stars",
            text=(
                f"Ticket #{ticket.id} has been resolved and reviewed.\n\n"
                f"{cls._user_details(ticket)}\n\n"
                "Review:\n"
                f"Rating: {ticket.rating}/5\n"
                f"Comment: {ticket.review_comment or ''}\n\n"
                "Conversation Transcript:\n"
                f"{format_transcript(messages)}"
            ),
        )
