"""
Ticket Interfaces Layer
========================

Interface adapters (controllers) for the ticket module.
"""

from triagedesk.tickets.interfaces.controllers import tickets_router

__all__ = ["tickets_router"]
