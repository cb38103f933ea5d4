"""
Shared Kernel Module
====================

Generic infrastructure shared by every module: structured logging and the
HTTP middleware/exception handlers.

DO NOT add ticket business logic to the shared kernel.
"""

__version__ = "1.0.0"
