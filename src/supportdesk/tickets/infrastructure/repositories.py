"""
Ticket Infrastructure Repositories
====================================

Concrete implementations of the ticket repository interfaces using
SQLAlchemy.

Listings are returned as plain dicts enriched with display names from the
read models (users, restaurants, orders) through outer joins, so a missing
restaurant or agent never hides a ticket.
"""

from typing import Any, List, Optional

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from supportdesk.config import (
    ACTIVE_LOAD_STATUSES, CLOSED_STATUSES, PRIORITY_RANK, SUPPORT_ROLES, UserRole,
)
from supportdesk.infrastructure.database import repository_operation
from supportdesk.shared.infrastructure.read_models import OrderModel, RestaurantModel, UserModel
from supportdesk.tickets.application.services import (
    IAgentDirectory, IEscalationRepository, IMessageRepository, ITicketRepository,
)
from supportdesk.tickets.domain import AgentLoad
from supportdesk.tickets.infrastructure.models import EscalationModel, MessageModel, TicketModel


def _ticket_columns() -> list:
    return [column for column in TicketModel.__table__.columns]


def _priority_rank():
    return case(
        {priority.value: rank for priority, rank in PRIORITY_RANK.items()},
        value=TicketModel.priority,
        else_=0,
    )


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of ticket repository.

    Handles persistence of tickets using async SQLAlchemy.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    @repository_operation("create ticket")
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
        model = TicketModel(
            customer_id=customer_id,
            restaurant_id=restaurant_id,
            order_id=order_id,
            category=category,
            subject=subject,
            description=description,
            priority=priority,
        )
        self._session.add(model)
        await self._session.flush()
        return model

    @repository_operation("load ticket")
    async def get_by_id(self, ticket_id: int) -> Optional[Any]:
        return await self._session.get(TicketModel, ticket_id)

    @repository_operation("update ticket")
    async def update(self, ticket: Any) -> Any:
        await self._session.flush()
        return ticket

    @repository_operation("list customer tickets")
    async def list_for_customer(self, customer_id: int) -> List[dict]:
        agent = aliased(UserModel)
        stmt = (
            select(
                *_ticket_columns(),
                RestaurantModel.restaurant_name,
                OrderModel.order_reference,
                agent.full_name.label("assigned_agent_name"),
            )
            .outerjoin(RestaurantModel, RestaurantModel.id == TicketModel.restaurant_id)
            .outerjoin(OrderModel, OrderModel.id == TicketModel.order_id)
            .outerjoin(agent, agent.id == TicketModel.assigned_to)
            .where(TicketModel.customer_id == customer_id)
            .order_by(TicketModel.created_at.desc(), TicketModel.id.desc())
        )
        result = await self._session.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    @repository_operation("list open tickets")
    async def list_open(
        self,
        visible_to_agent: Optional[int] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> List[dict]:
        customer = aliased(UserModel)
        agent = aliased(UserModel)

        conditions = [TicketModel.status.not_in([s.value for s in CLOSED_STATUSES])]
        if visible_to_agent is not None:
            conditions.append(or_(
                TicketModel.assigned_to.is_(None),
                TicketModel.assigned_to == visible_to_agent,
            ))
        if status:
            conditions.append(TicketModel.status == status)
        if priority:
            conditions.append(TicketModel.priority == priority)

        stmt = (
            select(
                *_ticket_columns(),
                customer.full_name.label("customer_name"),
                customer.email.label("customer_email"),
                RestaurantModel.restaurant_name,
                agent.full_name.label("assigned_agent_name"),
            )
            .outerjoin(customer, customer.id == TicketModel.customer_id)
            .outerjoin(RestaurantModel, RestaurantModel.id == TicketModel.restaurant_id)
            .outerjoin(agent, agent.id == TicketModel.assigned_to)
            .where(and_(*conditions))
            .order_by(_priority_rank().desc(), TicketModel.created_at.asc(), TicketModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    @repository_operation("load ticket detail")
    async def get_detail(self, ticket_id: int) -> Optional[dict]:
        customer = aliased(UserModel)
        stmt = (
            select(
                *_ticket_columns(),
                customer.full_name.label("customer_name"),
                RestaurantModel.restaurant_name,
            )
            .outerjoin(customer, customer.id == TicketModel.customer_id)
            .outerjoin(RestaurantModel, RestaurantModel.id == TicketModel.restaurant_id)
            .where(TicketModel.id == ticket_id)
        )
        result = await self._session.execute(stmt)
        row = result.mappings().one_or_none()
        return dict(row) if row is not None else None


class SQLAlchemyMessageRepository(IMessageRepository):
    """SQLAlchemy implementation of the message ledger storage."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @repository_operation("record message")
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
        model = MessageModel(
            ticket_id=ticket_id,
            sender_id=sender_id,
            sender_type=sender_type,
            message_text=text,
            is_internal_note=is_internal_note,
            is_ai_generated=is_ai_generated,
            ai_confidence_score=confidence,
        )
        self._session.add(model)
        await self._session.flush()
        return model

    @repository_operation("list messages")
    async def list_for_ticket(self, ticket_id: int, include_internal: bool) -> List[dict]:
        stmt = (
            select(
                *[column for column in MessageModel.__table__.columns],
                UserModel.full_name.label("sender_name"),
                UserModel.role.label("sender_role"),
            )
            .outerjoin(UserModel, UserModel.id == MessageModel.sender_id)
            .where(MessageModel.ticket_id == ticket_id)
            .order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
        )
        if not include_internal:
            stmt = stmt.where(MessageModel.is_internal_note.is_(False))

        result = await self._session.execute(stmt)
        return [dict(row) for row in result.mappings().all()]


class SQLAlchemyEscalationRepository(IEscalationRepository):
    """SQLAlchemy implementation of the escalation audit trail."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @repository_operation("record escalation")
    async def create(
        self,
        ticket_id: int,
        escalated_to: int,
        reason: str,
        level: str,
        escalated_from: Optional[int] = None,
    ) -> Any:
        model = EscalationModel(
            ticket_id=ticket_id,
            escalated_from=escalated_from,
            escalated_to=escalated_to,
            escalation_reason=reason,
            escalation_level=level,
        )
        self._session.add(model)
        await self._session.flush()
        return model

    @repository_operation("list escalations")
    async def list_for_ticket(self, ticket_id: int) -> List[Any]:
        stmt = (
            select(EscalationModel)
            .where(EscalationModel.ticket_id == ticket_id)
            .order_by(EscalationModel.created_at.asc(), EscalationModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class SQLAlchemyAgentDirectory(IAgentDirectory):
    """Reads active support staff and their load from the users table."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @repository_operation("read agent loads")
    async def agent_loads(self) -> List[AgentLoad]:
        load = func.count(TicketModel.id)
        stmt = (
            select(UserModel.id, load.label("open_tickets"))
            .outerjoin(
                TicketModel,
                and_(
                    TicketModel.assigned_to == UserModel.id,
                    TicketModel.status.in_([s.value for s in ACTIVE_LOAD_STATUSES]),
                ),
            )
            .where(
                UserModel.role == UserRole.SUPPORT_AGENT.value,
                UserModel.is_active.is_(True),
            )
            .group_by(UserModel.id)
            .order_by(load.asc(), UserModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return [AgentLoad(agent_id=row.id, open_tickets=row.open_tickets) for row in result.all()]

    @repository_operation("load support user")
    async def get_active_support_user(self, user_id: int) -> Optional[Any]:
        stmt = select(UserModel).where(
            UserModel.id == user_id,
            UserModel.role.in_([role.value for role in SUPPORT_ROLES]),
            UserModel.is_active.is_(True),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()
