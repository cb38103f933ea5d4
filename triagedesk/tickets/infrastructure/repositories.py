"""
Ticket Infrastructure Repositories
====================================

SQLAlchemy implementation of the ticket store.

Each public method is one unit of work: it commits before returning, or
rolls back and raises. Later failures in the same request therefore never
undo earlier writes.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from triagedesk.config import MessageRole, TicketPriority, TicketStatus
from triagedesk.core import RepositoryException, ResourceNotFoundException
from triagedesk.tickets.application import ITicketStore
from triagedesk.tickets.domain import Message, Ticket, UserInfo, ensure_transition_allowed
from triagedesk.tickets.infrastructure.models import TicketMessageModel, TicketModel


def _as_utc(value: datetime) -> datetime:
    # SQLite hands DateTime columns back without tzinfo; stored values are UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_ticket(model: TicketModel) -> Ticket:
    return Ticket(
        id=model.id,
        user_name=model.user_name,
        user_email=model.user_email,
        user_phone=model.user_phone,
        category=model.category,
        status=TicketStatus(model.status),
        priority=TicketPriority(model.priority),
        rating=model.rating,
        review_comment=model.review_comment,
        created_at=_as_utc(model.created_at),
    )


def _to_message(model: TicketMessageModel) -> Message:
    return Message(
        id=model.id,
        ticket_id=model.ticket_id,
        role=MessageRole(model.role),
        text=model.message,
        timestamp=_as_utc(model.timestamp),
    )


class SQLAlchemyTicketStore(ITicketStore):
    """
    SQLAlchemy implementation of ticket store.

    Sole writer of the tickets and ticket_messages tables.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    @asynccontextmanager
    async def _unit_of_work(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise RepositoryException(
                f"{operation} failed: {e}", {"operation": operation}
            ) from e
        except Exception:
            await self._session.rollback()
            raise

    async def _load(self, ticket_id: int) -> TicketModel:
        model = await self._session.get(TicketModel, ticket_id)
        if model is None:
            raise ResourceNotFoundException("Ticket", str(ticket_id))
        return model

    async def create_ticket(self, category: str, user_info: UserInfo) -> Ticket:
        """Insert an open, normal-priority ticket and return it with its id."""
        async with self._unit_of_work("create_ticket"):
            model = TicketModel(
                user_name=user_info.name,
                user_email=user_info.email,
                user_phone=user_info.phone,
                category=category,
                status=TicketStatus.OPEN.value,
                priority=TicketPriority.NORMAL.value,
            )
            self._session.add(model)
            await self._session.flush()
        return _to_ticket(model)

    async def append_message(self, ticket_id: int, role: MessageRole, text: str) -> Message:
        """
        Append a transcript turn.

        Raises:
            ResourceNotFoundException: If the ticket does not exist
        """
        async with self._unit_of_work("append_message"):
            await self._load(ticket_id)
            model = TicketMessageModel(
                ticket_id=ticket_id,
                role=MessageRole(role).value,
                message=text,
            )
            self._session.add(model)
            await self._session.flush()
        return _to_message(model)

    async def get_ticket(self, ticket_id: int) -> Ticket:
        async with self._unit_of_work("get_ticket"):
            model = await self._load(ticket_id)
        return _to_ticket(model)

    async def get_messages(self, ticket_id: int) -> List[Message]:
        """Transcript ordered by timestamp, insertion order breaking ties."""
        async with self._unit_of_work("get_messages"):
            await self._load(ticket_id)
            stmt = (
                select(TicketMessageModel)
                .where(TicketMessageModel.ticket_id == ticket_id)
                .order_by(TicketMessageModel.timestamp.asc(), TicketMessageModel.id.asc())
            )
            result = await self._session.execute(stmt)
            models = result.scalars().all()
        return [_to_message(m) for m in models]

    async def set_status(self, ticket_id: int, status: TicketStatus) -> Ticket:
        """
        Move the ticket along an allowed status edge.

        Raises:
            InvalidStatusTransitionException: If the edge is not allowed
        """
        async with self._unit_of_work("set_status"):
            model = await self._load(ticket_id)
            ensure_transition_allowed(TicketStatus(model.status), status, ticket_id)
            model.status = TicketStatus(status).value
        return _to_ticket(model)

    async def set_priority(self, ticket_id: int, priority: TicketPriority) -> Ticket:
        async with self._unit_of_work("set_priority"):
            model = await self._load(ticket_id)
            model.priority = TicketPriority(priority).value
        return _to_ticket(model)

    async def resolve(self, ticket_id: int, rating: int, comment: str) -> Ticket:
        """Set status, rating and comment in a single UPDATE."""
        async with self._unit_of_work("resolve"):
            model = await self._load(ticket_id)
            ensure_transition_allowed(
                TicketStatus(model.status), TicketStatus.RESOLVED, ticket_id
            )
            model.status = TicketStatus.RESOLVED.value
            model.rating = rating
            model.review_comment = comment
        return _to_ticket(model)
