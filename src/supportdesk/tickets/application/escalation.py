"""
Escalation Engine
=================

Hands tickets to human agents.

Agent selection reads the current load of every active support agent and
picks the least loaded one, lowest id first on ties. Selection and
assignment are two separate statements, so two escalations running at the
same moment may pick the same agent. That only skews the balance slightly
and never corrupts data, so no lock is taken.
"""

from typing import Any, List, Optional

from supportdesk.config import EscalationLevel, SenderType
from supportdesk.core import ValidationException
from supportdesk.tickets.application.services import (
    IAgentDirectory, IEscalationRepository, MessageLedger, TicketStore,
)
from supportdesk.tickets.domain import AGENT_JOINED_NOTICE, AgentLoad
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class EscalationEngine:
    """
    The only writer of escalation records and the only caller of
    ``TicketStore.assign``.
    """

    def __init__(
        self,
        ticket_store: TicketStore,
        ledger: MessageLedger,
        escalation_repository: IEscalationRepository,
        agent_directory: IAgentDirectory,
    ):
        self._store = ticket_store
        self._ledger = ledger
        self._escalations = escalation_repository
        self._agents = agent_directory

    async def select_agent(self) -> Optional[AgentLoad]:
        """Least-loaded active agent, or None when nobody is on duty."""
        loads = await self._agents.agent_loads()
        if not loads:
            return None
        return min(loads, key=lambda load: (load.open_tickets, load.agent_id))

    async def escalate(
        self,
        ticket: Any,
        reason: str,
        source_agent_id: Optional[int] = None,
        level: EscalationLevel = EscalationLevel.AGENT,
    ) -> Optional[Any]:
        """
        Assign the ticket to the least-loaded agent and record why.

        Returns:
            The escalation record, or None when no active agent exists
        """
        selected = await self.select_agent()
        if selected is None:
            logger.warning(
                "No active support agent available, ticket left unassigned",
                extra={"ticket_id": ticket.id, "reason": reason}
            )
            return None

        return await self._hand_off(ticket, selected.agent_id, reason, source_agent_id, level)

    async def reassign(
        self,
        ticket: Any,
        to_agent_id: int,
        reason: str,
        acting_agent_id: int,
        level: EscalationLevel = EscalationLevel.AGENT,
    ) -> Any:
        """
        Manual hand-off chosen by a support user.

        Raises:
            ValidationException: the target is not an active support user
        """
        target = await self._agents.get_active_support_user(to_agent_id)
        if target is None:
            raise ValidationException(
                f"User {to_agent_id} is not an active support user",
                {"to_agent_id": to_agent_id}
            )
        return await self._hand_off(ticket, to_agent_id, reason, acting_agent_id, level)

    async def history(self, ticket_id: int) -> List[Any]:
        return await self._escalations.list_for_ticket(ticket_id)

    async def _hand_off(
        self,
        ticket: Any,
        agent_id: int,
        reason: str,
        source_agent_id: Optional[int],
        level: EscalationLevel,
    ) -> Any:
        await self._store.assign(ticket, agent_id)
        await self._ledger.append(
            ticket_id=ticket.id,
            sender_id=None,
            sender_type=SenderType.AI_BOT,
            text=AGENT_JOINED_NOTICE,
            ai_generated=True,
        )
        record = await self._escalations.create(
            ticket_id=ticket.id,
            escalated_to=agent_id,
            reason=reason,
            level=level.value,
            escalated_from=source_agent_id,
        )
        logger.info(
            "Ticket escalated",
            extra={
                "ticket_id": ticket.id,
                "agent_id": agent_id,
                "source_agent_id": source_agent_id,
                "level": level.value,
                "reason": reason,
            }
        )
        return record
