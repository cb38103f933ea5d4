"""
Chat Client
===========

Client side of the support chat: a UI-agnostic session state machine, an
httpx driver for the API, and a terminal front end.
"""

from triagedesk.client.session import (
    ChatSession,
    ChatState,
    DisplayTurn,
    RESOLUTION_CUE,
    TYPING_INDICATOR,
)
from triagedesk.client.api import SupportAPIClient

__all__ = [
    "ChatSession",
    "ChatState",
    "DisplayTurn",
    "RESOLUTION_CUE",
    "TYPING_INDICATOR",
    "SupportAPIClient",
]
