"""
Ticket Domain Entities
======================

Plain dataclasses describing workflow results.

The ORM rows in ``tickets.infrastructure.models`` hold the persisted state;
these objects carry what a workflow produced back to its caller, including
the best-effort steps that did not succeed.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from supportdesk.config import TicketStatus, UserRole


@dataclass(frozen=True)
class AgentLoad:
    """An active agent and the number of tickets currently on their plate."""
    agent_id: int
    open_tickets: int


@dataclass(frozen=True)
class WorkflowWarning:
    """A secondary step that failed without failing the workflow."""
    step: str
    message: str

    def to_dict(self) -> dict:
        return {"step": self.step, "message": self.message}


@dataclass(frozen=True)
class Caller:
    """The authenticated user performing an operation."""
    user_id: int
    role: UserRole


@dataclass
class CreateTicketOutcome:
    """Result of the create-ticket workflow."""
    ticket_id: int
    ai_response: str
    escalated: bool
    status: TicketStatus = TicketStatus.OPEN
    assigned_agent_id: Optional[int] = None
    complaint_id: Optional[int] = None
    warnings: List[WorkflowWarning] = field(default_factory=list)


@dataclass
class PostMessageOutcome:
    """Result of the post-message workflow."""
    message_id: int
    ticket_status: TicketStatus
    ai_response: Optional[str] = None
    escalated: bool = False
    warnings: List[WorkflowWarning] = field(default_factory=list)
