"""
Ticket Application Services
============================

Orchestrates one support conversation per ticket: triage reply, persistence
and team notifications.

Notifications are a best-effort side effect. Every store call commits on its
own, and notifications are sent only after the state they describe has been
persisted, so a failed email never undoes or blocks a write. The failure is
still raised to the caller.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

from triagedesk.config import DEFAULT_CATEGORY, MessageRole, TicketPriority, TicketStatus
from triagedesk.core import TicketClosedException, ValidationException
from triagedesk.shared.infrastructure.logging import get_logger, log_latency
from triagedesk.tickets.domain import (
    ChatTurn,
    ChatTurnResult,
    Message,
    Notification,
    NotificationComposer,
    RoutingConfig,
    Ticket,
    TriageReply,
    UserInfo,
    ensure_transition_allowed,
    split_history,
)

logger = get_logger(__name__)


# ========== Ports ==========

class ITicketStore(ABC):
    """
    Interface for ticket and message persistence.

    Every operation is atomic. Operations on an unknown ticket raise
    ResourceNotFoundException.
    """

    @abstractmethod
    async def create_ticket(self, category: str, user_info: UserInfo) -> Ticket:
        """Insert an open, normal-priority ticket."""

    @abstractmethod
    async def append_message(self, ticket_id: int, role: MessageRole, text: str) -> Message:
        """Append a transcript turn."""

    @abstractmethod
    async def get_ticket(self, ticket_id: int) -> Ticket:
        """Get ticket by ID."""

    @abstractmethod
    async def get_messages(self, ticket_id: int) -> List[Message]:
        """Transcript in timestamp order."""

    @abstractmethod
    async def set_status(self, ticket_id: int, status: TicketStatus) -> Ticket:
        """Change status along an allowed edge."""

    @abstractmethod
    async def set_priority(self, ticket_id: int, priority: TicketPriority) -> Ticket:
        """Overwrite priority."""

    @abstractmethod
    async def resolve(self, ticket_id: int, rating: int, comment: str) -> Ticket:
        """Mark resolved and record the review in one update."""


class ITriageAssistant(ABC):
    """Interface for the AI triage conversation partner."""

    @abstractmethod
    async def classify_and_reply(self, history: Sequence[ChatTurn]) -> TriageReply:
        """Produce the next assistant reply for a linear history."""


class INotificationSender(ABC):
    """Interface for outbound team notifications."""

    @abstractmethod
    async def send(self, notification: Notification) -> None:
        """Deliver one notification; raises NotificationException on failure."""


# ========== Application Services ==========

class TicketService:
    """
    Service for the ticket lifecycle.

    Coordinates between the triage assistant, the ticket store and the
    notification sender.
    """

    def __init__(
        self,
        store: ITicketStore,
        assistant: Optional[ITriageAssistant],
        notifier: INotificationSender,
        routing: RoutingConfig,
        allow_messages_after_close: bool = True
    ):
        self._store = store
        self._assistant = assistant
        self._notifier = notifier
        self._routing = routing
        self._allow_messages_after_close = allow_messages_after_close

    async def handle_chat_turn(
        self,
        history: Sequence[ChatTurn],
        user_info: Optional[UserInfo] = None,
        ticket_id: Optional[int] = None
    ) -> ChatTurnResult:
        """
        Answer one chat turn.

        Without a ticket id the turn opens a new ticket: the reply's category
        (or Unclassified) is stored, the opening exchange is persisted and the
        category's team is notified. With a ticket id the turn is appended to
        that ticket and nobody is notified.

        Raises:
            ValidationException: Empty history, or no user info on the first turn
            ResourceNotFoundException: Unknown ticket id
            TicketClosedException: Ticket closed and late messages are disabled
            LLMException / NotificationException / RepositoryException
        """
        _, latest = split_history(history)

        if ticket_id is None:
            return await self._open_ticket(history, latest, user_info)

        ticket = await self._store.get_ticket(ticket_id)
        if not ticket.is_open and not self._allow_messages_after_close:
            raise TicketClosedException(ticket.id, ticket.status.value)

        with log_latency(logger, "triage_reply", ticket_id=ticket.id):
            reply = await self._assistant.classify_and_reply(history)

        await self._store.append_message(ticket.id, MessageRole.USER, latest.content)
        await self._store.append_message(ticket.id, MessageRole.ASSISTANT, reply.reply_text)

        return ChatTurnResult(
            reply_text=reply.reply_text,
            ticket_id=ticket.id,
            ticket_created=False,
            category=ticket.category
        )

    async def _open_ticket(
        self,
        history: Sequence[ChatTurn],
        latest: ChatTurn,
        user_info: Optional[UserInfo]
    ) -> ChatTurnResult:
        if user_info is None or not user_info.name or not user_info.email:
            raise ValidationException("User info with name and email is required.")

        with log_latency(logger, "triage_reply", ticket_id=None):
            reply = await self._assistant.classify_and_reply(history)

        category = reply.category or DEFAULT_CATEGORY
        ticket = await self._store.create_ticket(category, user_info)
        await self._store.append_message(ticket.id, MessageRole.USER, latest.content)
        await self._store.append_message(ticket.id, MessageRole.ASSISTANT, reply.reply_text)

        logger.info(
            "Ticket created",
            extra={"ticket_id": ticket.id, "category": category}
        )

        await self._notifier.send(
            NotificationComposer.new_ticket(
                ticket,
                initial_query=latest.content,
                recipient=self._routing.recipient_for(category),
                ticket_url=self._routing.ticket_url(ticket.id)
            )
        )

        return ChatTurnResult(
            reply_text=reply.reply_text,
            ticket_id=ticket.id,
            ticket_created=True,
            category=category
        )

    async def escalate(self, ticket_id: int) -> Ticket:
        """
        Hand the ticket to a human team.

        The status is persisted before the escalation email goes out. If the
        email fails the ticket stays escalated and NotificationException is
        raised, which the API answers with a 500.
        """
        ticket = await self._store.get_ticket(ticket_id)
        ensure_transition_allowed(ticket.status, TicketStatus.ESCALATED, ticket.id)

        messages = await self._store.get_messages(ticket.id)
        ticket = await self._store.set_status(ticket.id, TicketStatus.ESCALATED)

        logger.info("Ticket escalated", extra={"ticket_id": ticket.id})

        await self._notifier.send(
            NotificationComposer.escalated(
                ticket, messages, self._routing.escalation_recipient
            )
        )
        return ticket

    async def mark_urgent(self, ticket_id: int) -> Ticket:
        """Raise priority to urgent; status is untouched and nobody is notified."""
        ticket = await self._store.set_priority(ticket_id, TicketPriority.URGENT)
        logger.info("Ticket marked urgent", extra={"ticket_id": ticket.id})
        return ticket

    async def resolve(self, ticket_id: int, rating: int, comment: str) -> Ticket:
        """
        Close the ticket with the user's review.

        Persist first, then read the transcript, then notify, so the email
        reflects the final stored state.
        """
        ticket = await self._store.resolve(ticket_id, rating, comment)
        messages = await self._store.get_messages(ticket.id)

        logger.info(
            "Ticket resolved",
            extra={"ticket_id": ticket.id, "rating": ticket.rating}
        )

        await self._notifier.send(
            NotificationComposer.resolved(
                ticket, messages, self._routing.resolution_recipient
            )
        )
        return ticket

    async def get_ticket_with_transcript(self, ticket_id: int) -> Tuple[Ticket, List[Message]]:
        ticket = await self._store.get_ticket(ticket_id)
        messages = await self._store.get_messages(ticket.id)
        return ticket, messages
