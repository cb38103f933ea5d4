"""
Chat Session State
==================

Client-side state machine for one support conversation:

    no_user_info -> collecting_turns -> awaiting_review -> reviewed

The session only tracks what the user sees and what goes over the wire; it
never performs I/O.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from triagedesk.config import MessageRole
from triagedesk.core import ValidationException

RESOLUTION_CUE = "resolved?"
TYPING_INDICATOR = "..."


class ChatState(str, Enum):
    NO_USER_INFO = "no_user_info"
    COLLECTING_TURNS = "collecting_turns"
    AWAITING_REVIEW = "awaiting_review"
    REVIEWED = "reviewed"


@dataclass
class DisplayTurn:
    """A line of the on-screen transcript."""
    role: MessageRole
    content: str
    is_error: bool = False


@dataclass
class ChatSession:
    """Holds user identity, transcript and ticket id for one conversation."""
    user_info: Optional[Dict[str, Any]] = None
    turns: List[DisplayTurn] = field(default_factory=list)
    ticket_id: Optional[int] = None
    state: ChatState = ChatState.NO_USER_INFO
    pending: bool = False
    show_review_form: bool = False

    def start(self, name: str, email: str, phone: Optional[str] = None) -> None:
        """Store contact details and seed the greeting."""
        if not name or not email:
            raise ValidationException("Name and email are required to start a chat.")

        self.user_info = {"name": name, "email": email, "phone": phone or None}
        self.turns = [
            DisplayTurn(MessageRole.ASSISTANT, f"Hello {name}! How can I help you today?")
        ]
        self.state = ChatState.COLLECTING_TURNS

    @property
    def accepts_input(self) -> bool:
        return self.state == ChatState.COLLECTING_TURNS and not self.pending

    @property
    def can_escalate(self) -> bool:
        """Escalate/urgent actions show once a ticket exists and before resolution."""
        return self.ticket_id is not None and self.state == ChatState.COLLECTING_TURNS

    def history(self) -> List[Dict[str, str]]:
        """Wire history: every non-error turn, oldest first."""
        return [
            {"role": t.role.value, "content": t.content}
            for t in self.turns
            if not t.is_error
        ]

    def visible_turns(self) -> List[DisplayTurn]:
        """Transcript as rendered, with a typing indicator while waiting."""
        if self.pending:
            return self.turns + [DisplayTurn(MessageRole.ASSISTANT, TYPING_INDICATOR)]
        return list(self.turns)

    def begin_turn(self, text: str) -> Dict[str, Any]:
        """
        Optimistically append the user's turn and build the request body.

        Raises:
            ValidationException: Empty text, or the session doesn't take input now
        """
        text = (text or "").strip()
        if not text:
            raise ValidationException("Message is empty.")
        if not self.accepts_input:
            raise ValidationException(f"Session does not accept input in state {self.state.value}.")

        self.turns.append(DisplayTurn(MessageRole.USER, text))
        self.pending = True

        payload: Dict[str, Any] = {"messages": self.history(), "ticketId": self.ticket_id}
        if self.ticket_id is None:
            payload["userInfo"] = self.user_info
        return payload

    def complete_turn(self, ai_message: Dict[str, Any]) -> None:
        """Swap the typing indicator for the reply and watch for the resolution cue."""
        content = ai_message.get("content", "")
        if ai_message.get("ticketId"):
            self.ticket_id = int(ai_message["ticketId"])

        self.turns.append(DisplayTurn(MessageRole.ASSISTANT, content))
        self.pending = False

        if RESOLUTION_CUE in content.lower():
            self.state = ChatState.AWAITING_REVIEW

    def fail_turn(self, error: str) -> None:
        """Show an inline error; the user can resubmit."""
        self.turns.append(DisplayTurn(MessageRole.ASSISTANT, f"Error: {error}", is_error=True))
        self.pending = False

    def request_review(self) -> None:
        if self.state != ChatState.AWAITING_REVIEW or self.ticket_id is None:
            raise ValidationException("Nothing to review yet.")
        self.show_review_form = True

    def mark_reviewed(self) -> None:
        self.state = ChatState.REVIEWED
        self.show_review_form = False

    def reset(self) -> None:
        """Start over for another ticket."""
        self.user_info = None
        self.turns = []
        self.ticket_id = None
        self.state = ChatState.NO_USER_INFO
        self.pending = False
        self.show_review_form = False
