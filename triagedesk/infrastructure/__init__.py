"""
Infrastructure Layer
=====================

Technical adapters shared by the modules:
- database: SQLAlchemy async engine and sessions
- llm: chat-completion clients
- mail: outbound email transports
"""
