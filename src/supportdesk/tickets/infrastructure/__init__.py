"""
Ticket Infrastructure Layer
============================

Contains:
- Models: SQLAlchemy ORM models for tickets, messages and escalations
- Repositories: SQLAlchemy repository implementations and the agent directory
"""

from supportdesk.tickets.infrastructure.models import EscalationModel, MessageModel, TicketModel
from supportdesk.tickets.infrastructure.repositories import (
    SQLAlchemyAgentDirectory,
    SQLAlchemyEscalationRepository,
    SQLAlchemyMessageRepository,
    SQLAlchemyTicketRepository,
)

__all__ = [
    "EscalationModel",
    "MessageModel",
    "TicketModel",
    "SQLAlchemyAgentDirectory",
    "SQLAlchemyEscalationRepository",
    "SQLAlchemyMessageRepository",
    "SQLAlchemyTicketRepository",
]
