"""
Ticket Infrastructure Layer
============================

Contains:
- Models: SQLAlchemy ORM models
- Repositories: Ticket store implementation
- External: LLM assistant, email sender and routing config adapters
"""

from triagedesk.tickets.infrastructure.models import TicketModel, TicketMessageModel
from triagedesk.tickets.infrastructure.repositories import SQLAlchemyTicketStore
from triagedesk.tickets.infrastructure.external import (
    LLMTriageAssistant,
    EmailNotificationSender,
    RoutingConfigManager,
)

__all__ = [
    "TicketModel",
    "TicketMessageModel",
    "SQLAlchemyTicketStore",
    "LLMTriageAssistant",
    "EmailNotificationSender",
    "RoutingConfigManager",
]
