"""
Tickets Module
==============

Bounded context for AI-assisted support tickets.

Responsibilities:
- Run the triage chat and classify the opening query
- Persist tickets and their transcripts
- Escalate, prioritise and resolve tickets
- Notify routing teams by email
"""

__version__ = "1.0.0"
