"""
Complaint Application DTOs
===========================

Pydantic models for the complaint endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AnnotateComplaintRequest(BaseModel):
    """Support-team annotation of a complaint."""
    support_notes: Optional[str] = Field(None, description="Notes visible to the vendor")
    customer_rating: Optional[int] = Field(None, description="Customer rating, 1 to 5")


class ComplaintResponse(BaseModel):
    """A complaint row as shown to support staff and vendors."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_id: int
    restaurant_id: int
    complaint_type: str
    complaint_summary: Optional[str] = None
    support_notes: Optional[str] = None
    customer_rating: Optional[int] = None
    resolution_status: str
    created_at: datetime
    resolved_at: Optional[datetime] = None


class VendorComplaintResponse(ComplaintResponse):
    """Complaint joined with the ticket's current priority and status."""
    order_id: Optional[int] = None
    priority: str
    status: str
    ticket_created_at: datetime


class VendorComplaintListResponse(BaseModel):
    complaints: List[VendorComplaintResponse]
