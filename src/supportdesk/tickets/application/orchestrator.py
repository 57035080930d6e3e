"""
Ticket Service
==============

Orchestrates the create-ticket and post-message workflows across the
Ticket Store, Message Ledger, Classifier Gateway, Escalation Engine and
Complaint Projector.

Primary steps (persisting the ticket, the customer's message and the
first AI reply) fail the whole workflow. Secondary steps run inside a
SAVEPOINT: when one fails only its own writes are rolled back and the
failure is reported as a ``WorkflowWarning`` on the outcome.
"""

from typing import Any, Awaitable, Callable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from supportdesk.complaints.application import ComplaintProjector
from supportdesk.config import (
    EscalationLevel, Priority, SenderType, TicketStatus, UserRole,
)
from supportdesk.tickets.application.escalation import EscalationEngine
from supportdesk.tickets.application.services import MessageLedger, TicketStore
from supportdesk.tickets.domain import (
    Caller, CreateTicketOutcome, PostMessageOutcome, WorkflowWarning,
)
from supportdesk.triage.application import ClassifierGateway, IClassifierLogRepository
from supportdesk.triage.domain import Verdict
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

ESCALATE_NEEDS_HUMAN = "Auto-escalation: human assistance needed"
ESCALATE_URGENT = "Auto-escalation: urgent priority"
ESCALATE_ON_REPLY = "AI escalation recommended"


class TicketService:
    """
    Application service behind the support endpoints.

    One instance serves one request and shares that request's session with
    every repository it was built from.
    """

    def __init__(
        self,
        ticket_store: TicketStore,
        ledger: MessageLedger,
        gateway: ClassifierGateway,
        escalation_engine: EscalationEngine,
        complaint_projector: ComplaintProjector,
        classifier_log: IClassifierLogRepository,
        session: Optional[AsyncSession] = None,
    ):
        self._store = ticket_store
        self._ledger = ledger
        self._gateway = gateway
        self._escalation = escalation_engine
        self._projector = complaint_projector
        self._classifier_log = classifier_log
        self._session = session

    # ========== Workflows ==========

    async def create_ticket(
        self,
        caller: Caller,
        category: Optional[str],
        subject: Optional[str],
        description: Optional[str],
        priority: Optional[str] = None,
        order_id: Optional[int] = None,
        restaurant_id: Optional[int] = None,
    ) -> CreateTicketOutcome:
        """
        Open a ticket for the calling customer and give the first reply.

        Raises:
            ValidationException: missing fields or unknown category
            ClassifierException: classifier failed and fallback is disabled
        """
        ticket = await self._store.create_ticket(
            customer_id=caller.user_id,
            category=category,
            subject=subject,
            description=description,
            priority=priority,
            order_id=order_id,
            restaurant_id=restaurant_id,
        )
        ticket_id = ticket.id
        urgent = ticket.priority == Priority.URGENT.value

        await self._ledger.append(
            ticket_id=ticket_id,
            sender_id=caller.user_id,
            sender_type=SenderType.CUSTOMER,
            text=ticket.description,
        )

        verdict = await self._gateway.classify(ticket.description, ticket.category)
        await self._record_reply(ticket_id, ticket.description, verdict)

        warnings: List[WorkflowWarning] = []
        escalated = verdict.needs_human or urgent
        assigned_agent_id = None

        if escalated:
            reason = ESCALATE_NEEDS_HUMAN if verdict.needs_human else ESCALATE_URGENT
            record = await self._attempt(
                "escalation", warnings, ticket,
                lambda: self._escalation.escalate(ticket, reason),
            )
            if record is not None:
                assigned_agent_id = record.escalated_to

        complaint = await self._attempt(
            "complaint_projection", warnings, ticket,
            lambda: self._projector.project(ticket, restaurant_id),
        )

        logger.info(
            "Create-ticket workflow finished",
            extra={
                "ticket_id": ticket_id,
                "escalated": escalated,
                "assigned_agent_id": assigned_agent_id,
                "warnings": len(warnings),
            }
        )
        return CreateTicketOutcome(
            ticket_id=ticket_id,
            ai_response=verdict.message,
            escalated=escalated,
            status=TicketStatus.OPEN,
            assigned_agent_id=assigned_agent_id,
            complaint_id=complaint.id if complaint is not None else None,
            warnings=warnings,
        )

    async def post_message(
        self,
        ticket_id: int,
        caller: Caller,
        text: Optional[str],
        internal: bool = False,
    ) -> PostMessageOutcome:
        """
        Add a message to a ticket's conversation.

        A customer writing on a ticket no agent has picked up yet gets an AI
        reply, and an escalation when the classifier asks for one.

        Raises:
            ResourceNotFoundException: unknown ticket
            AuthorizationException: caller may not reach this ticket
            ValidationException: blank message
        """
        ticket = await self._store.get(ticket_id)
        self._store.ensure_can_view(ticket, caller)

        message = await self._ledger.append_from(ticket_id, caller, text, internal)
        await self._store.transition_on_agent_reply(ticket, caller.role)

        warnings: List[WorkflowWarning] = []
        ai_response = None
        escalated = False

        if caller.role == UserRole.STUDENT and ticket.assigned_to is None:
            verdict = await self._attempt(
                "classification", warnings, ticket,
                lambda: self._gateway.classify(message.message_text, ticket.category),
            )
            if verdict is not None:
                recorded = await self._attempt(
                    "ai_response", warnings, ticket,
                    lambda: self._record_reply(ticket_id, message.message_text, verdict),
                )
                if recorded is not None:
                    ai_response = verdict.message

                if verdict.needs_human:
                    record = await self._attempt(
                        "escalation", warnings, ticket,
                        lambda: self._escalation.escalate(ticket, ESCALATE_ON_REPLY),
                    )
                    escalated = record is not None

        return PostMessageOutcome(
            message_id=message.id,
            ticket_status=TicketStatus(ticket.status),
            ai_response=ai_response,
            escalated=escalated,
            warnings=warnings,
        )

    async def update_status(self, ticket_id: int, caller: Caller, new_status: str) -> Any:
        """
        Support-staff status change; the complaint projection follows.

        Raises:
            InvalidTransitionException: not allowed from the current status
        """
        ticket = await self._store.get(ticket_id)
        await self._store.transition(ticket, TicketStatus(new_status))

        warnings: List[WorkflowWarning] = []
        await self._attempt(
            "complaint_status", warnings, ticket,
            lambda: self._projector.mirror_status(ticket),
        )
        logger.info(
            "Ticket status updated by support",
            extra={"ticket_id": ticket_id, "agent_id": caller.user_id, "status": ticket.status}
        )
        return ticket

    async def manual_escalate(
        self,
        ticket_id: int,
        caller: Caller,
        to_agent_id: int,
        reason: str,
        level: str = EscalationLevel.AGENT.value,
    ) -> Any:
        ticket = await self._store.get(ticket_id)
        return await self._escalation.reassign(
            ticket,
            to_agent_id=to_agent_id,
            reason=reason,
            acting_agent_id=caller.user_id,
            level=EscalationLevel(level),
        )

    # ========== Queries ==========

    async def list_customer_tickets(self, caller: Caller) -> List[dict]:
        return await self._store.get_tickets_for_customer(caller.user_id)

    async def list_messages(self, ticket_id: int, caller: Caller) -> List[dict]:
        """Conversation of a ticket; customers only reach their own tickets."""
        ticket = await self._store.get(ticket_id)
        self._store.ensure_can_view(ticket, caller)
        return await self._ledger.list_for_ticket(ticket_id, caller.role)

    async def list_agent_tickets(
        self,
        caller: Caller,
        status: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> List[dict]:
        return await self._store.get_open_tickets_for_agent(
            caller.user_id, caller.role, status=status, priority=priority
        )

    async def debug_ticket(self, ticket_id: int) -> dict:
        """Ticket row, full message history and complaint rows."""
        ticket = await self._store.get_detail(ticket_id)
        messages = await self._ledger.list_for_ticket(ticket_id, UserRole.ADMIN)
        complaints = await self._projector.list_for_ticket(ticket_id)
        return {"ticket": ticket, "messages": messages, "restaurant_complaints": complaints}

    # ========== Helpers ==========

    async def _record_reply(self, ticket_id: int, query_text: str, verdict: Verdict) -> Any:
        message = await self._ledger.append(
            ticket_id=ticket_id,
            sender_id=None,
            sender_type=SenderType.AI_BOT,
            text=verdict.message,
            ai_generated=True,
            confidence=verdict.confidence_score,
        )
        await self._classifier_log.create(ticket_id, query_text, verdict)
        return message

    async def _attempt(
        self,
        step: str,
        warnings: List[WorkflowWarning],
        ticket: Any,
        action: Callable[[], Awaitable[Any]],
    ) -> Optional[Any]:
        """Run a secondary step; on failure roll it back and record a warning."""
        try:
            if self._session is None:
                return await action()
            async with self._session.begin_nested():
                return await action()
        except Exception as e:
            # A rolled back savepoint expires what it touched.
            if self._session is not None:
                await self._session.refresh(ticket)
            logger.warning(
                "Secondary workflow step failed",
                extra={"ticket_id": ticket.id, "step": step, "error": str(e)}
            )
            warnings.append(WorkflowWarning(step=step, message=str(e)))
            return None
