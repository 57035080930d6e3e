"""
Complaint Infrastructure Repositories
======================================

SQLAlchemy implementations of the complaint repository and order lookup.
"""

from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from supportdesk.complaints.application import IComplaintRepository, IOrderLookup
from supportdesk.complaints.infrastructure.models import ComplaintModel
from supportdesk.infrastructure.database import repository_operation
from supportdesk.shared.infrastructure.read_models import OrderModel, RestaurantModel
from supportdesk.tickets.infrastructure.models import TicketModel


class SQLAlchemyComplaintRepository(IComplaintRepository):
    """SQLAlchemy implementation of complaint storage."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @repository_operation("load complaint")
    async def get_by_ticket(self, ticket_id: int) -> Optional[Any]:
        stmt = select(ComplaintModel).where(ComplaintModel.ticket_id == ticket_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    @repository_operation("create complaint")
    async def create(
        self,
        ticket_id: int,
        restaurant_id: int,
        complaint_type: str,
        summary: Optional[str],
        resolution_status: str,
    ) -> Any:
        model = ComplaintModel(
            ticket_id=ticket_id,
            restaurant_id=restaurant_id,
            complaint_type=complaint_type,
            complaint_summary=summary,
            resolution_status=resolution_status,
        )
        self._session.add(model)
        await self._session.flush()
        return model

    @repository_operation("update complaint")
    async def update(self, complaint: Any) -> Any:
        await self._session.flush()
        return complaint

    @repository_operation("list vendor complaints")
    async def list_for_vendor(self, vendor_id: int, limit: int) -> List[dict]:
        stmt = (
            select(
                *[column for column in ComplaintModel.__table__.columns],
                TicketModel.order_id,
                TicketModel.priority,
                TicketModel.status,
                TicketModel.created_at.label("ticket_created_at"),
            )
            .join(TicketModel, TicketModel.id == ComplaintModel.ticket_id)
            .join(RestaurantModel, RestaurantModel.id == ComplaintModel.restaurant_id)
            .where(RestaurantModel.vendor_id == vendor_id)
            .order_by(ComplaintModel.created_at.desc(), ComplaintModel.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    @repository_operation("list ticket complaints")
    async def list_for_ticket(self, ticket_id: int) -> List[dict]:
        stmt = (
            select(*[column for column in ComplaintModel.__table__.columns])
            .where(ComplaintModel.ticket_id == ticket_id)
            .order_by(ComplaintModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return [dict(row) for row in result.mappings().all()]


class SQLAlchemyOrderLookup(IOrderLookup):
    """Reads the restaurant of an order from the orders table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @repository_operation("look up order restaurant")
    async def restaurant_for_order(self, order_id: int) -> Optional[int]:
        stmt = select(OrderModel.restaurant_id).where(OrderModel.id == order_id).limit(1)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()
