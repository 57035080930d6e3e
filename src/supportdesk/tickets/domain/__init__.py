"""
Ticket Domain Layer
===================

Contains:
- Entities: workflow outcomes, agent load, caller identity
- Value Objects: lifecycle table, role mappings, visibility rules

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from supportdesk.tickets.domain.entities import (
    AgentLoad,
    Caller,
    CreateTicketOutcome,
    PostMessageOutcome,
    WorkflowWarning,
)
from supportdesk.tickets.domain.value_objects import (
    AGENT_JOINED_NOTICE,
    TicketLifecycle,
    can_view_internal_notes,
    parse_category,
    parse_priority,
    sender_type_for,
)

__all__ = [
    # Entities
    "AgentLoad",
    "Caller",
    "CreateTicketOutcome",
    "PostMessageOutcome",
    "WorkflowWarning",
    # Value Objects
    "AGENT_JOINED_NOTICE",
    "TicketLifecycle",
    "can_view_internal_notes",
    "parse_category",
    "parse_priority",
    "sender_type_for",
]
