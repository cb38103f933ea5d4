"""AI-assisted customer support ticketing service."""

__version__ = "1.0.0"
