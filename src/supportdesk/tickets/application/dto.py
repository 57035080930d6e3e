"""
Ticket Application DTOs
========================

Pydantic models for the ticket endpoints.

Required fields of the create request are declared optional here; the
Ticket Store reports missing ones as a single "Missing required fields"
error instead of a per-field validation list.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# ========== Type Aliases for Literals ==========
PriorityStr = Literal["low", "medium", "high", "urgent"]
TicketStatusStr = Literal["open", "in_progress", "escalated", "assigned", "resolved", "closed"]
EscalationLevelStr = Literal["agent", "senior", "admin"]


# ========== Request DTOs ==========

class CreateTicketRequest(BaseModel):
    """Request body for a new support ticket."""
    ticket_type: Optional[str] = Field(None, description="Ticket category, e.g. payment")
    subject: Optional[str] = Field(None, description="Short summary")
    description: Optional[str] = Field(None, description="Full problem description")
    priority: Optional[str] = Field(None, description="low, medium, high or urgent; defaults to medium")
    order_id: Optional[int] = Field(None, description="Related order")
    restaurant_id: Optional[int] = Field(None, description="Related restaurant")


class PostMessageRequest(BaseModel):
    """Request body for a message on an existing ticket."""
    message_text: Optional[str] = Field(None, description="Message body")
    is_internal_note: bool = Field(False, description="Hidden from the customer (support only)")


class UpdateStatusRequest(BaseModel):
    status: TicketStatusStr


class ManualEscalationRequest(BaseModel):
    """Hand a ticket to a specific support user."""
    to_agent_id: int = Field(..., description="Receiving support user")
    reason: str = Field(..., min_length=1, description="Why the ticket is handed over")
    level: EscalationLevelStr = Field("agent", description="Escalation tier")


# ========== Response DTOs ==========

class WarningResponse(BaseModel):
    """A secondary step that did not complete."""
    step: str
    message: str


class CreateTicketResponse(BaseModel):
    message: str = "Support ticket created successfully"
    ticket_id: int
    ai_response: str
    escalated: bool
    status: str
    warnings: List[WarningResponse] = []


class PostMessageResponse(BaseModel):
    message: str = "Message sent successfully"
    message_id: int
    warnings: List[WarningResponse] = []


class TicketSummary(BaseModel):
    """Ticket row as listed to customers and agents."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_id: int
    restaurant_id: Optional[int] = None
    order_id: Optional[int] = None
    category: str
    subject: str
    description: str
    priority: str
    status: str
    assigned_to: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    restaurant_name: Optional[str] = None
    order_reference: Optional[str] = None
    assigned_agent_name: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None


class TicketListResponse(BaseModel):
    tickets: List[TicketSummary]


class MessageView(BaseModel):
    """Ledger message with sender display data."""
    id: int
    ticket_id: int
    sender_id: Optional[int] = None
    sender_type: str
    message_text: str
    is_internal_note: bool
    is_ai_generated: bool
    ai_confidence_score: Optional[float] = None
    created_at: datetime
    sender_name: Optional[str] = None
    sender_role: Optional[str] = None


class MessageListResponse(BaseModel):
    messages: List[MessageView]


class StatusResponse(BaseModel):
    ticket_id: int
    status: str


class EscalationResponse(BaseModel):
    ticket_id: int
    assigned_to: int
    escalation_id: int
