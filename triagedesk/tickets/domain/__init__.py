"""
Ticket Domain Layer
===================

Contains:
- Entities: Ticket, Message, ChatTurn, TriageReply, Notification
- State machine: ALLOWED_TRANSITIONS, ensure_transition_allowed
- Builders: TriagePromptBuilder, NotificationComposer
- Value Objects: RoutingConfig

This layer is framework-agnostic and contains pure business logic.
"""

from triagedesk.tickets.domain.entities import (
    UserInfo,
    Ticket,
    Message,
    ChatTurn,
    TriageReply,
    Notification,
    ChatTurnResult,
    ALLOWED_TRANSITIONS,
    can_transition,
    ensure_transition_allowed,
    split_history,
    format_transcript,
    TriagePromptBuilder,
    NotificationComposer,
)
from triagedesk.tickets.domain.value_objects import RoutingConfig

__all__ = [
    "UserInfo",
    "Ticket",
    "Message",
    "ChatTurn",
    "TriageReply",
    "Notification",
    "ChatTurnResult",
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "ensure_transition_allowed",
    "split_history",
    "format_transcript",
    "TriagePromptBuilder",
    "NotificationComposer",
    "RoutingConfig",
]
