"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from triagedesk.core.exceptions import (
    ApplicationException,
    DomainException,
    InvalidStatusTransitionException,
    TicketClosedException,
    RepositoryException,
    ValidationException,
    ResourceNotFoundException,
    ConfigurationException,
    ExternalServiceException,
    LLMException,
    NotificationException,
    SupportAPIError,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "InvalidStatusTransitionException",
    "TicketClosedException",
    "RepositoryException",
    "ValidationException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "ExternalServiceException",
    "LLMException",
    "NotificationException",
    "SupportAPIError",
]
