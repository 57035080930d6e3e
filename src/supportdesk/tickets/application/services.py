"""
Ticket Application Services
============================

The Ticket Store and the Message Ledger.

Following SOLID principles:
- Single Responsibility: the store owns ticket state, the ledger owns messages
- Dependency Inversion: both depend on repository interfaces, not SQLAlchemy
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, List, Optional

from supportdesk.config import (
    Priority, SenderType, TicketStatus, UserRole, SUPPORT_ROLES,
)
from supportdesk.core import (
    AuthorizationException, ResourceNotFoundException, ValidationException,
)
from supportdesk.tickets.domain import (
    AgentLoad, Caller, TicketLifecycle,
    can_view_internal_notes, parse_category, parse_priority, sender_type_for,
)
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def create(
        self,
        customer_id: int,
        category: str,
        subject: str,
        description: str,
        priority: str,
        order_id: Optional[int] = None,
        restaurant_id: Optional[int] = None,
    ) -> Any:
        """Insert a new open ticket."""

    @abstractmethod
    async def get_by_id(self, ticket_id: int) -> Optional[Any]:
        """Get ticket by ID."""

    @abstractmethod
    async def update(self, ticket: Any) -> Any:
        """Persist changes made to a loaded ticket."""

    @abstractmethod
    async def list_for_customer(self, customer_id: int) -> List[dict]:
        """Customer's tickets, newest first, with display names."""

    @abstractmethod
    async def list_open(
        self,
        visible_to_agent: Optional[int] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> List[dict]:
        """Unresolved tickets, most pressing and oldest first."""

    @abstractmethod
    async def get_detail(self, ticket_id: int) -> Optional[dict]:
        """Single ticket row with customer and restaurant names."""


class IMessageRepository(ABC):
    """Interface for message ledger storage."""

    @abstractmethod
    async def create(
        self,
        ticket_id: int,
        sender_id: Optional[int],
        sender_type: str,
        text: str,
        is_internal_note: bool = False,
        is_ai_generated: bool = False,
        confidence: Optional[float] = None,
    ) -> Any:
        """Append a message."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: int, include_internal: bool) -> List[dict]:
        """Messages in creation order, with sender names."""


class IEscalationRepository(ABC):
    """Interface for the escalation audit trail."""

    @abstractmethod
    async def create(
        self,
        ticket_id: int,
        escalated_to: int,
        reason: str,
        level: str,
        escalated_from: Optional[int] = None,
    ) -> Any:
        """Append an escalation record."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: int) -> List[Any]:
        """Escalation records for a ticket, oldest first."""


class IAgentDirectory(ABC):
    """Read access to support staff and their current load."""

    @abstractmethod
    async def agent_loads(self) -> List[AgentLoad]:
        """Active support agents ordered by load, then by id."""

    @abstractmethod
    async def get_active_support_user(self, user_id: int) -> Optional[Any]:
        """An active user holding a support role, or None."""


# ========== Ticket Store ==========

class TicketStore:
    """
    Owns ticket records and their lifecycle.

    Assignment is exposed through ``assign`` but only the escalation engine
    calls it.
    """

    def __init__(self, ticket_repository: ITicketRepository):
        self._repo = ticket_repository

    async def create_ticket(
        self,
        customer_id: int,
        category: Optional[str],
        subject: Optional[str],
        description: Optional[str],
        priority: Optional[str] = None,
        order_id: Optional[int] = None,
        restaurant_id: Optional[int] = None,
    ) -> Any:
        """
        Persist a new ticket in status ``open``.

        Raises:
            ValidationException: category, subject or description missing,
                or the category is unknown
        """
        if not _has_text(category) or not _has_text(subject) or not _has_text(description):
            raise ValidationException(
                "Missing required fields",
                {"required": ["category", "subject", "description"]}
            )

        parsed_category = parse_category(category)
        if parsed_category is None:
            raise ValidationException(
                f"Unknown ticket category '{category}'",
                {"category": category}
            )

        ticket = await self._repo.create(
            customer_id=customer_id,
            category=parsed_category.value,
            subject=subject.strip(),
            description=description.strip(),
            priority=parse_priority(priority).value,
            order_id=order_id,
            restaurant_id=restaurant_id,
        )
        logger.info(
            "Ticket created",
            extra={"ticket_id": ticket.id, "customer_id": customer_id, "category": ticket.category}
        )
        return ticket

    async def get(self, ticket_id: int) -> Any:
        ticket = await self._repo.get_by_id(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return ticket

    async def get_detail(self, ticket_id: int) -> dict:
        detail = await self._repo.get_detail(ticket_id)
        if detail is None:
            raise ResourceNotFoundException("Ticket", ticket_id)
        return detail

    def ensure_can_view(self, ticket: Any, caller: Caller) -> None:
        """Customers may only reach their own tickets; vendors none."""
        if caller.role == UserRole.STUDENT and ticket.customer_id != caller.user_id:
            raise AuthorizationException("Access denied", {"ticket_id": ticket.id})
        if caller.role == UserRole.VENDOR:
            raise AuthorizationException("Access denied", {"ticket_id": ticket.id})

    async def get_tickets_for_customer(self, customer_id: int) -> List[dict]:
        return await self._repo.list_for_customer(customer_id)

    async def get_open_tickets_for_agent(
        self,
        agent_id: int,
        role: UserRole,
        status: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> List[dict]:
        """
        Unresolved tickets for the support queue.

        A plain support agent only sees tickets that are unassigned or
        assigned to them; senior support and admins see the whole queue.
        """
        if role not in SUPPORT_ROLES:
            raise AuthorizationException("Only support staff can list the ticket queue")

        status_filter = None
        if status:
            try:
                status_filter = TicketStatus(status).value
            except ValueError:
                raise ValidationException(f"Unknown status '{status}'", {"status": status})

        priority_filter = None
        if priority:
            try:
                priority_filter = Priority(priority).value
            except ValueError:
                raise ValidationException(f"Unknown priority '{priority}'", {"priority": priority})

        return await self._repo.list_open(
            visible_to_agent=agent_id if role == UserRole.SUPPORT_AGENT else None,
            status=status_filter,
            priority=priority_filter,
        )

    async def transition_on_agent_reply(self, ticket: Any, acting_role: UserRole) -> TicketStatus:
        """Move open -> in_progress on a support reply; always touch updated_at."""
        current = TicketStatus(ticket.status)
        target = TicketLifecycle.status_after_reply(current, acting_role)
        ticket.status = target.value
        ticket.updated_at = datetime.now(timezone.utc)
        await self._repo.update(ticket)
        return target

    async def assign(self, ticket: Any, agent_id: int) -> Any:
        """Hand the ticket to an agent. Status becomes ``assigned``."""
        TicketLifecycle.validate(TicketStatus(ticket.status), TicketStatus.ASSIGNED)
        ticket.assigned_to = agent_id
        ticket.status = TicketStatus.ASSIGNED.value
        ticket.updated_at = datetime.now(timezone.utc)
        return await self._repo.update(ticket)

    async def transition(self, ticket: Any, new_status: TicketStatus) -> Any:
        """
        Explicit status change requested by support staff.

        Raises:
            InvalidTransitionException: the lifecycle forbids the change, or the
                ticket already has an agent and the target is ``escalated``
            ValidationException: moving into ``assigned`` without an agent
        """
        current = TicketStatus(ticket.status)
        TicketLifecycle.validate(current, new_status, has_agent=ticket.assigned_to is not None)
        if new_status == TicketStatus.ASSIGNED and ticket.assigned_to is None:
            raise ValidationException("Use escalation to assign a ticket to an agent")

        ticket.status = new_status.value
        ticket.updated_at = datetime.now(timezone.utc)
        logger.info(
            "Ticket status changed",
            extra={"ticket_id": ticket.id, "from_status": current.value, "to_status": new_status.value}
        )
        return await self._repo.update(ticket)


# ========== Message Ledger ==========

class MessageLedger:
    """
    Append-only conversation log, always addressed by ticket id.

    Reads are ordered by creation time; internal notes are only returned to
    support roles.
    """

    def __init__(self, message_repository: IMessageRepository):
        self._repo = message_repository

    async def append(
        self,
        ticket_id: int,
        sender_id: Optional[int],
        sender_type: SenderType,
        text: Optional[str],
        internal: bool = False,
        ai_generated: bool = False,
        confidence: Optional[float] = None,
    ) -> Any:
        """
        Append a message to the ticket's ledger.

        Raises:
            ValidationException: empty text from a human sender
        """
        if sender_type != SenderType.AI_BOT and not _has_text(text):
            raise ValidationException("Message text is required")

        return await self._repo.create(
            ticket_id=ticket_id,
            sender_id=sender_id,
            sender_type=sender_type.value,
            text=text or "",
            is_internal_note=internal,
            is_ai_generated=ai_generated,
            confidence=confidence if ai_generated else None,
        )

    async def append_from(
        self,
        ticket_id: int,
        caller: Caller,
        text: Optional[str],
        internal: bool = False,
    ) -> Any:
        """Append a human message, attributing it from the caller's role."""
        sender_type = sender_type_for(caller.role)
        return await self.append(
            ticket_id=ticket_id,
            sender_id=caller.user_id,
            sender_type=sender_type,
            text=text,
            internal=internal and sender_type != SenderType.CUSTOMER,
        )

    async def list_for_ticket(self, ticket_id: int, viewer_role: UserRole) -> List[dict]:
        return await self._repo.list_for_ticket(
            ticket_id, include_internal=can_view_internal_notes(viewer_role)
        )


def _has_text(value: Optional[str]) -> bool:
    return value is not None and bool(str(value).strip())
