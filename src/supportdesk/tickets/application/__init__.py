"""
Ticket Application Layer
=========================

Contains:
- Services: Ticket Store, Message Ledger, Escalation Engine
- Orchestrator: the Ticket Service workflows
- DTOs: request/response models for the support endpoints
- Interfaces: repository abstractions
"""

from supportdesk.tickets.application.dto import (
    CreateTicketRequest,
    CreateTicketResponse,
    EscalationResponse,
    ManualEscalationRequest,
    MessageListResponse,
    MessageView,
    PostMessageRequest,
    PostMessageResponse,
    StatusResponse,
    TicketListResponse,
    TicketSummary,
    UpdateStatusRequest,
    WarningResponse,
)
from supportdesk.tickets.application.escalation import EscalationEngine
from supportdesk.tickets.application.orchestrator import TicketService
from supportdesk.tickets.application.services import (
    IAgentDirectory,
    IEscalationRepository,
    IMessageRepository,
    ITicketRepository,
    MessageLedger,
    TicketStore,
)

__all__ = [
    # DTOs
    "CreateTicketRequest",
    "CreateTicketResponse",
    "EscalationResponse",
    "ManualEscalationRequest",
    "MessageListResponse",
    "MessageView",
    "PostMessageRequest",
    "PostMessageResponse",
    "StatusResponse",
    "TicketListResponse",
    "TicketSummary",
    "UpdateStatusRequest",
    "WarningResponse",
    # Services
    "EscalationEngine",
    "MessageLedger",
    "TicketService",
    "TicketStore",
    # Interfaces
    "IAgentDirectory",
    "IEscalationRepository",
    "IMessageRepository",
    "ITicketRepository",
]
