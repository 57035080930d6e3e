"""
Complaint Application Services
===============================

The Complaint Projector.

A ticket becomes a complaint against a restaurant when one can be
determined. The restaurant is resolved by an ordered chain of strategies;
the first strategy returning an id wins.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

from supportdesk.complaints.domain import complaint_summary, is_resolution_final, validate_rating
from supportdesk.config import TicketStatus
from supportdesk.core import ResourceNotFoundException
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces ==========

class IComplaintRepository(ABC):
    """Interface for complaint projection storage."""

    @abstractmethod
    async def get_by_ticket(self, ticket_id: int) -> Optional[Any]:
        """The complaint projected from a ticket, if any."""

    @abstractmethod
    async def create(
        self,
        ticket_id: int,
        restaurant_id: int,
        complaint_type: str,
        summary: Optional[str],
        resolution_status: str,
    ) -> Any:
        """Insert a complaint row."""

    @abstractmethod
    async def update(self, complaint: Any) -> Any:
        """Persist changes made to a loaded complaint."""

    @abstractmethod
    async def list_for_vendor(self, vendor_id: int, limit: int) -> List[dict]:
        """Complaints for the vendor's restaurants, newest first."""

    @abstractmethod
    async def list_for_ticket(self, ticket_id: int) -> List[dict]:
        """All complaint rows for a ticket (debug view)."""


class IOrderLookup(ABC):
    """Resolves the restaurant an order was placed with."""

    @abstractmethod
    async def restaurant_for_order(self, order_id: int) -> Optional[int]:
        """Restaurant id for the order, or None."""


# ========== Restaurant Resolution ==========

class RestaurantResolver(ABC):
    """One step of the restaurant resolution chain."""

    name: str = "resolver"

    @abstractmethod
    async def resolve(self, ticket: Any, explicit_restaurant_id: Optional[int]) -> Optional[int]:
        """Restaurant id, or None to defer to the next resolver."""


class ExplicitRestaurantResolver(RestaurantResolver):
    """Uses the restaurant given with the request, or already on the ticket."""

    name = "explicit"

    async def resolve(self, ticket: Any, explicit_restaurant_id: Optional[int]) -> Optional[int]:
        if explicit_restaurant_id:
            return explicit_restaurant_id
        return getattr(ticket, "restaurant_id", None) or None


class OrderRestaurantResolver(RestaurantResolver):
    """Infers the restaurant from the ticket's order. Lookup failures yield None."""

    name = "order"

    def __init__(self, order_lookup: IOrderLookup):
        self._orders = order_lookup

    async def resolve(self, ticket: Any, explicit_restaurant_id: Optional[int]) -> Optional[int]:
        order_id = getattr(ticket, "order_id", None)
        if not order_id:
            return None

        try:
            restaurant_id = await self._orders.restaurant_for_order(order_id)
        except Exception as e:
            logger.warning(
                "Failed to infer restaurant from order",
                extra={"ticket_id": ticket.id, "order_id": order_id, "error": str(e)}
            )
            return None

        if restaurant_id:
            logger.info(
                "Inferred restaurant from order",
                extra={"ticket_id": ticket.id, "order_id": order_id, "restaurant_id": restaurant_id}
            )
        return restaurant_id or None


# ========== Application Services ==========

class ComplaintProjector:
    """
    Only writer of complaint rows.

    ``project`` is idempotent per ticket: a second call returns the row
    created by the first.
    """

    def __init__(
        self,
        complaint_repository: IComplaintRepository,
        resolvers: Sequence[RestaurantResolver],
        page_size: int = 50,
    ):
        self._repo = complaint_repository
        self._resolvers = list(resolvers)
        self._page_size = page_size

    @classmethod
    def with_order_lookup(
        cls,
        complaint_repository: IComplaintRepository,
        order_lookup: IOrderLookup,
        page_size: int = 50,
    ) -> "ComplaintProjector":
        """Default chain: explicit restaurant, then order lookup."""
        return cls(
            complaint_repository,
            [ExplicitRestaurantResolver(), OrderRestaurantResolver(order_lookup)],
            page_size,
        )

    async def resolve_restaurant(self, ticket: Any, explicit_restaurant_id: Optional[int] = None) -> Optional[int]:
        for resolver in self._resolvers:
            restaurant_id = await resolver.resolve(ticket, explicit_restaurant_id)
            if restaurant_id:
                return restaurant_id
        return None

    async def project(self, ticket: Any, explicit_restaurant_id: Optional[int] = None) -> Optional[Any]:
        """
        Record a complaint for the ticket when a restaurant is known.

        Returns:
            The complaint row, or None when no restaurant could be resolved
        """
        existing = await self._repo.get_by_ticket(ticket.id)
        if existing is not None:
            return existing

        restaurant_id = await self.resolve_restaurant(ticket, explicit_restaurant_id)
        if restaurant_id is None:
            logger.info("No restaurant association, complaint not recorded", extra={"ticket_id": ticket.id})
            return None

        complaint = await self._repo.create(
            ticket_id=ticket.id,
            restaurant_id=restaurant_id,
            complaint_type=ticket.category,
            summary=complaint_summary(ticket.subject, ticket.description),
            resolution_status=ticket.status,
        )
        logger.info(
            "Restaurant complaint recorded",
            extra={"ticket_id": ticket.id, "restaurant_id": restaurant_id}
        )
        return complaint

    async def mirror_status(self, ticket: Any) -> Optional[Any]:
        """Copy the ticket status onto its complaint, if one exists."""
        complaint = await self._repo.get_by_ticket(ticket.id)
        if complaint is None:
            return None

        status = TicketStatus(ticket.status)
        complaint.resolution_status = status.value
        if is_resolution_final(status):
            complaint.resolved_at = complaint.resolved_at or datetime.now(timezone.utc)
        else:
            complaint.resolved_at = None
        return await self._repo.update(complaint)

    async def annotate(
        self,
        ticket_id: int,
        support_notes: Optional[str] = None,
        customer_rating: Optional[int] = None,
    ) -> Any:
        """
        Attach support notes and/or a customer rating.

        Raises:
            ValidationException: rating outside 1-5
            ResourceNotFoundException: the ticket has no complaint
        """
        rating = validate_rating(customer_rating)

        complaint = await self._repo.get_by_ticket(ticket_id)
        if complaint is None:
            raise ResourceNotFoundException("Complaint for ticket", ticket_id)

        if support_notes is not None:
            complaint.support_notes = support_notes.strip() or None
        if rating is not None:
            complaint.customer_rating = rating
        return await self._repo.update(complaint)

    async def list_for_vendor(self, vendor_id: int, limit: Optional[int] = None) -> List[dict]:
        return await self._repo.list_for_vendor(vendor_id, limit or self._page_size)

    async def list_for_ticket(self, ticket_id: int) -> List[dict]:
        return await self._repo.list_for_ticket(ticket_id)
