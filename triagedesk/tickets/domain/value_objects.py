"""
Ticket Value Objects
====================

Routing configuration for ticket notifications.

Loaded from YAML and injected into the ticket service, so no email address
is hard-coded in the orchestration logic.
"""

from typing import Dict, List

from pydantic import BaseModel, Field, field_validator

from triagedesk.config import DEFAULT_CATEGORY, DEFAULT_CATEGORY_LABELS


class RoutingConfig(BaseModel):
    """
    Who gets told about what.

    ``category_recipients`` maps a triage label to a team inbox; categories
    without an entry fall back to ``default_recipient``.
    """
    category_labels: List[str] = Field(
        default_factory=lambda: list(DEFAULT_CATEGORY_LABELS),
        description="Labels the assistant may assign"
    )
    category_recipients: Dict[str, str] = Field(
        default_factory=lambda: {
            "Website": "web-team@example.com",
            "Email": "email-team@example.com",
            "Social": "social-team@example.com",
            "Admin": "admin-team@example.com",
            DEFAULT_CATEGORY: "support-leads@example.com",
        },
        description="Team inbox per category"
    )
    default_recipient: str = Field(
        default="support-leads@example.com",
        description="Inbox for categories without a mapping"
    )
    escalation_recipient: str = Field(
        default="escalations@example.com",
        description="Inbox for escalated tickets"
    )
    resolution_recipient: str = Field(
        default="reviews@example.com",
        description="Inbox for resolved and reviewed tickets"
    )
    ticket_url_template: str = Field(
        default="http://localhost:5173/support/{ticket_id}",
        description="Link included in new-ticket emails"
    )

    @field_validator("category_labels")
    @classmethod
    def validate_labels(cls, v: List[str]) -> List[str]:
        labels = [label.strip() for label in v if label and label.strip()]
        if not labels:
            raise ValueError("category_labels must contain at least one label")
        return labels

    @field_validator("default_recipient", "escalation_recipient", "resolution_recipient")
    @classmethod
    def validate_recipient(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError(f"'{v}' is not an email address")
        return v

    @field_validator("category_recipients")
    @classmethod
    def validate_category_recipients(cls, v: Dict[str, str]) -> Dict[str, str]:
        for category, recipient in v.items():
            if "@" not in recipient:
                raise ValueError(f"'{recipient}' for category '{category}' is not an email address")
        return v

    def recipient_for(self, category: str) -> str:
        """Team inbox for a category, falling back to the default recipient."""
        return self.category_recipients.get(category) or self.default_recipient

    def ticket_url(self, ticket_id: int) -> str:
        return self.ticket_url_template.format(ticket_id=ticket_id)
