"""
Ticket Controllers (API Routes)
================================

FastAPI routes for the customer and support-agent ticket endpoints.

Controllers are thin - they delegate to the Ticket Service.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from supportdesk.complaints.application import ComplaintProjector
from supportdesk.complaints.infrastructure import (
    SQLAlchemyComplaintRepository, SQLAlchemyOrderLookup,
)
from supportdesk.config import SUPPORT_ROLES, UserRole
from supportdesk.core import ApplicationException
from supportdesk.infrastructure.database import get_session
from supportdesk.shared.api.auth import get_current_caller, require_roles
from supportdesk.shared.infrastructure.logging import get_logger
from supportdesk.tickets.application import (
    CreateTicketRequest, CreateTicketResponse,
    EscalationEngine, EscalationResponse,
    ManualEscalationRequest, MessageLedger, MessageListResponse,
    PostMessageRequest, PostMessageResponse,
    StatusResponse, TicketListResponse, TicketService, TicketStore,
    UpdateStatusRequest, WarningResponse,
)
from supportdesk.tickets.domain import Caller
from supportdesk.tickets.infrastructure import (
    SQLAlchemyAgentDirectory, SQLAlchemyEscalationRepository,
    SQLAlchemyMessageRepository, SQLAlchemyTicketRepository,
)
from supportdesk.triage.application import ClassifierGateway
from supportdesk.triage.infrastructure import SQLAlchemyClassifierLogRepository

logger = get_logger(__name__)
router = APIRouter(prefix="/support", tags=["Support Tickets"])

customer_only = require_roles(UserRole.STUDENT)
support_only = require_roles(SUPPORT_ROLES)
can_post = require_roles(UserRole.STUDENT, SUPPORT_ROLES)


# ========== Example payloads for Swagger ==========

CREATE_TICKET_EXAMPLE = {
    "ticket_type": "payment",
    "subject": "Double charge",
    "description": "I was charged twice for my order",
    "priority": "urgent",
    "order_id": 1042
}

CREATE_TICKET_RESPONSE_EXAMPLE = {
    "message": "Support ticket created successfully",
    "ticket_id": 17,
    "ai_response": "I'm sorry about the duplicate charge. A support agent will check your payment and arrange a refund.",
    "escalated": True,
    "status": "open",
    "warnings": []
}


# ========== Dependencies ==========

def get_classifier_gateway(request: Request) -> ClassifierGateway:
    """Gateway built at startup and kept on the application state."""
    gateway = getattr(request.app.state, "classifier_gateway", None)
    if gateway is None:
        raise RuntimeError("Classifier gateway not initialized. Set app.state.classifier_gateway at startup.")
    return gateway


def get_complaint_projector(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> ComplaintProjector:
    """Get complaint projector instance."""
    settings = getattr(request.app.state, "settings", None)
    page_size = settings.complaints_page_size if settings is not None else 50
    return ComplaintProjector.with_order_lookup(
        SQLAlchemyComplaintRepository(session),
        SQLAlchemyOrderLookup(session),
        page_size=page_size,
    )


async def get_ticket_service(
    session: AsyncSession = Depends(get_session),
    gateway: ClassifierGateway = Depends(get_classifier_gateway),
    projector: ComplaintProjector = Depends(get_complaint_projector),
) -> TicketService:
    """Get ticket service instance wired to the request's session."""
    store = TicketStore(SQLAlchemyTicketRepository(session))
    ledger = MessageLedger(SQLAlchemyMessageRepository(session))
    engine = EscalationEngine(
        store,
        ledger,
        SQLAlchemyEscalationRepository(session),
        SQLAlchemyAgentDirectory(session),
    )
    return TicketService(
        store,
        ledger,
        gateway,
        engine,
        projector,
        SQLAlchemyClassifierLogRepository(session),
        session=session,
    )


# ========== Route Handlers ==========

@router.post(
    "/tickets",
    status_code=status.HTTP_201_CREATED,
    response_model=CreateTicketResponse,
    summary="Create a support ticket",
    description="""
    Open a ticket for the calling student.

    The first message is the ticket description. The AI assistant replies
    immediately; tickets it cannot handle, and every `urgent` ticket, are
    handed to the least loaded support agent.

    **Ticket Types**: `order_issue`, `payment`, `food_quality`, `delivery`, `account`, `other`

    **Priority Levels**: `low`, `medium` (default), `high`, `urgent`
    """,
    responses={
        201: {
            "description": "Ticket created",
            "content": {"application/json": {"example": CREATE_TICKET_RESPONSE_EXAMPLE}}
        },
        400: {"description": "Missing required fields"}
    }
)
async def create_ticket(
    body: CreateTicketRequest,
    caller: Caller = Depends(customer_only),
    session: AsyncSession = Depends(get_session),
    service: TicketService = Depends(get_ticket_service),
):
    try:
        outcome = await service.create_ticket(
            caller,
            category=body.ticket_type,
            subject=body.subject,
            description=body.description,
            priority=body.priority,
            order_id=body.order_id,
            restaurant_id=body.restaurant_id,
        )
        await session.commit()
    except ApplicationException:
        raise
    except Exception as e:
        await session.rollback()
        logger.error("Create ticket failed", extra={"customer_id": caller.user_id, "error": str(e)})
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to create support ticket", "details": str(e)}
        )

    return CreateTicketResponse(
        ticket_id=outcome.ticket_id,
        ai_response=outcome.ai_response,
        escalated=outcome.escalated,
        status=outcome.status.value,
        warnings=[WarningResponse(**w.to_dict()) for w in outcome.warnings],
    )


@router.get(
    "/tickets/my-tickets",
    response_model=TicketListResponse,
    summary="List my tickets",
)
async def get_my_tickets(
    caller: Caller = Depends(customer_only),
    service: TicketService = Depends(get_ticket_service),
):
    """The calling student's tickets, newest first."""
    tickets = await service.list_customer_tickets(caller)
    return {"tickets": tickets}


@router.get(
    "/tickets/{ticket_id}/messages",
    response_model=MessageListResponse,
    summary="Get ticket conversation",
)
async def get_ticket_messages(
    ticket_id: int,
    caller: Caller = Depends(get_current_caller),
    service: TicketService = Depends(get_ticket_service),
):
    """
    Conversation in creation order.

    Internal notes are only returned to support staff; students may only
    read their own tickets.
    """
    messages = await service.list_messages(ticket_id, caller)
    return {"messages": messages}


@router.post(
    "/tickets/{ticket_id}/messages",
    status_code=status.HTTP_201_CREATED,
    response_model=PostMessageResponse,
    summary="Post a message",
)
async def send_message(
    ticket_id: int,
    body: PostMessageRequest,
    caller: Caller = Depends(can_post),
    session: AsyncSession = Depends(get_session),
    service: TicketService = Depends(get_ticket_service),
):
    outcome = await service.post_message(
        ticket_id, caller, body.message_text, internal=body.is_internal_note
    )
    await session.commit()

    return PostMessageResponse(
        message_id=outcome.message_id,
        warnings=[WarningResponse(**w.to_dict()) for w in outcome.warnings],
    )


@router.get(
    "/tickets",
    response_model=TicketListResponse,
    summary="Support ticket queue",
    description="""
    Unresolved tickets, most urgent first and oldest first within a priority.

    Support agents see unassigned tickets and their own; senior support and
    admins see the whole queue.

    **Query Parameters:**
    - `status`: open, in_progress, escalated, assigned
    - `priority`: low, medium, high, urgent
    """,
)
async def get_agent_tickets(
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    caller: Caller = Depends(support_only),
    service: TicketService = Depends(get_ticket_service),
):
    tickets = await service.list_agent_tickets(caller, status=status_filter, priority=priority)
    return {"tickets": tickets}


@router.patch(
    "/tickets/{ticket_id}/status",
    response_model=StatusResponse,
    summary="Change ticket status",
    responses={409: {"description": "Transition not permitted from the current status"}}
)
async def update_ticket_status(
    ticket_id: int,
    body: UpdateStatusRequest,
    caller: Caller = Depends(support_only),
    session: AsyncSession = Depends(get_session),
    service: TicketService = Depends(get_ticket_service),
):
    ticket = await service.update_status(ticket_id, caller, body.status)
    await session.commit()
    return StatusResponse(ticket_id=ticket.id, status=ticket.status)


@router.post(
    "/tickets/{ticket_id}/escalate",
    response_model=EscalationResponse,
    summary="Hand a ticket to another support user",
)
async def escalate_ticket(
    ticket_id: int,
    body: ManualEscalationRequest,
    caller: Caller = Depends(support_only),
    session: AsyncSession = Depends(get_session),
    service: TicketService = Depends(get_ticket_service),
):
    record = await service.manual_escalate(
        ticket_id, caller, body.to_agent_id, body.reason, body.level
    )
    await session.commit()
    return EscalationResponse(
        ticket_id=ticket_id,
        assigned_to=record.escalated_to,
        escalation_id=record.id,
    )


@router.get(
    "/debug/ticket/{ticket_id}",
    summary="Ticket, messages and complaint rows (support only)",
)
async def debug_ticket(
    ticket_id: int,
    caller: Caller = Depends(support_only),
    service: TicketService = Depends(get_ticket_service),
):
    return await service.debug_ticket(ticket_id)
