"""
Core Exceptions
================

Error taxonomy shared by the API and the chat client.

The HTTP layer maps them to status codes: validation 400, not found 404,
domain rule 409, anything downstream 500.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class InvalidStatusTransitionException(DomainException):
    """Raised when a ticket status change is not an allowed edge."""

    def __init__(self, ticket_id: Optional[int], current: str, target: str):
        self.ticket_id = ticket_id
        self.current = current
        self.target = target
        super().__init__(
            f"Ticket cannot move from '{current}' to '{target}'",
            {"ticket_id": ticket_id, "current": current, "target": target}
        )


class TicketClosedException(DomainException):
    """Raised when a chat turn targets a ticket that no longer accepts messages."""

    def __init__(self, ticket_id: int, status: str):
        self.ticket_id = ticket_id
        self.status = status
        super().__init__(
            f"Ticket #{ticket_id} is {status} and no longer accepts messages",
            {"ticket_id": ticket_id, "status": status}
        )


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class LLMException(ExternalServiceException):
    """Exception for LLM API failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("LLM Service", message, details)


class NotificationException(ExternalServiceException):
    """Exception for outbound email failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Notification Service", message, details)


class SupportAPIError(ExternalServiceException):
    """Non-2xx answer from the support API, raised on the client side."""

    def __init__(self, status_code: int, message: str, details: Optional[dict] = None):
        self.status_code = status_code
        self.error = message
        super().__init__("Support API", message, details)
