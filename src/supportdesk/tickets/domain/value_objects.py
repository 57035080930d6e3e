"""
Ticket Value Objects
====================

Lifecycle rules, role mappings and visibility rules for tickets.

Pure functions over the enumerations in ``supportdesk.config``; no
infrastructure imports.
"""

from typing import Optional

from supportdesk.config import (
    Priority, TicketCategory, TicketStatus, UserRole, SenderType,
    SUPPORT_ROLES,
)
from supportdesk.core import AuthorizationException, InvalidTransitionException


AGENT_JOINED_NOTICE = "A support agent has joined the conversation and will assist you shortly."


class TicketLifecycle:
    """
    Allowed status transitions.

    ``escalated`` is reachable from open/in_progress only. Nothing leaves
    resolved except closing, and nothing leaves closed.
    """

    VALID_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
        TicketStatus.OPEN: frozenset({
            TicketStatus.IN_PROGRESS, TicketStatus.ESCALATED, TicketStatus.ASSIGNED,
            TicketStatus.RESOLVED, TicketStatus.CLOSED,
        }),
        TicketStatus.IN_PROGRESS: frozenset({
            TicketStatus.ESCALATED, TicketStatus.ASSIGNED,
            TicketStatus.RESOLVED, TicketStatus.CLOSED,
        }),
        TicketStatus.ESCALATED: frozenset({
            TicketStatus.ASSIGNED, TicketStatus.IN_PROGRESS,
            TicketStatus.RESOLVED, TicketStatus.CLOSED,
        }),
        TicketStatus.ASSIGNED: frozenset({
            TicketStatus.ASSIGNED, TicketStatus.IN_PROGRESS,
            TicketStatus.RESOLVED, TicketStatus.CLOSED,
        }),
        TicketStatus.RESOLVED: frozenset({TicketStatus.CLOSED}),
        TicketStatus.CLOSED: frozenset(),
    }

    @classmethod
    def can_transition(
        cls, current: TicketStatus, target: TicketStatus, has_agent: bool = False
    ) -> bool:
        """A ticket with an agent attached never goes back to ``escalated``."""
        if has_agent and target == TicketStatus.ESCALATED:
            return False
        return target in cls.VALID_TRANSITIONS[current]

    @classmethod
    def validate(cls, current: TicketStatus, target: TicketStatus, has_agent: bool = False) -> None:
        """Raise ``InvalidTransitionException`` unless current -> target is allowed."""
        if not cls.can_transition(current, target, has_agent):
            raise InvalidTransitionException(current.value, target.value)

    @staticmethod
    def status_after_reply(current: TicketStatus, acting_role: UserRole) -> TicketStatus:
        """First human support reply moves an open ticket into progress."""
        if current == TicketStatus.OPEN and acting_role in (
            UserRole.SUPPORT_AGENT, UserRole.SENIOR_SUPPORT
        ):
            return TicketStatus.IN_PROGRESS
        return current


def sender_type_for(role: UserRole) -> SenderType:
    """
    Attribute a human message to a sender type.

    Admins have no sender type of their own and post as senior support.
    Vendors never post into support conversations.
    """
    if role == UserRole.STUDENT:
        return SenderType.CUSTOMER
    if role == UserRole.SUPPORT_AGENT:
        return SenderType.SUPPORT_AGENT
    if role in (UserRole.SENIOR_SUPPORT, UserRole.ADMIN):
        return SenderType.SENIOR_SUPPORT
    raise AuthorizationException(
        f"Role '{role.value}' cannot post support messages",
        {"role": role.value}
    )


def can_view_internal_notes(role: UserRole) -> bool:
    return role in SUPPORT_ROLES


def parse_priority(value: Optional[str]) -> Priority:
    """Missing or unknown priorities fall back to medium."""
    if not value:
        return Priority.MEDIUM
    try:
        return Priority(str(value).strip().lower())
    except ValueError:
        return Priority.MEDIUM


def parse_category(value: Optional[str]) -> Optional[TicketCategory]:
    """Return the category, or None when the value is not a known category."""
    if value is None:
        return None
    try:
        return TicketCategory(str(value).strip().lower())
    except ValueError:
        return None
