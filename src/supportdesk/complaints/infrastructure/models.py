"""
Complaint Infrastructure Models
================================

SQLAlchemy ORM model for the vendor-facing complaint projection.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from supportdesk.config import TicketStatus
from supportdesk.infrastructure.database import Base


class ComplaintModel(Base):
    """
    Complaint against a restaurant, derived from a ticket.

    Maps to the 'restaurant_complaints' table. One row per ticket at most.
    """
    __tablename__ = "restaurant_complaints"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("support_tickets.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )
    restaurant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("restaurants.id"), nullable=False, index=True
    )

    complaint_type: Mapped[str] = mapped_column(String(50), nullable=False)
    complaint_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    support_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    customer_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    resolution_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TicketStatus.OPEN.value
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
