"""
Complaint Controllers (API Routes)
===================================

Vendor listing and support annotation of restaurant complaints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from supportdesk.complaints.application import (
    AnnotateComplaintRequest, ComplaintProjector,
    ComplaintResponse, VendorComplaintListResponse,
)
from supportdesk.config import SUPPORT_ROLES, UserRole
from supportdesk.infrastructure.database import get_session
from supportdesk.shared.api.auth import require_roles
from supportdesk.tickets.domain import Caller
from supportdesk.tickets.interfaces.controllers import get_complaint_projector

router = APIRouter(prefix="/support", tags=["Restaurant Complaints"])


@router.get(
    "/complaints/restaurant",
    response_model=VendorComplaintListResponse,
    summary="Complaints about my restaurants",
)
async def get_restaurant_complaints(
    caller: Caller = Depends(require_roles(UserRole.VENDOR)),
    projector: ComplaintProjector = Depends(get_complaint_projector),
):
    """Read-only view for vendors, newest first."""
    complaints = await projector.list_for_vendor(caller.user_id)
    return {"complaints": complaints}


@router.patch(
    "/complaints/{ticket_id}",
    response_model=ComplaintResponse,
    summary="Annotate a complaint",
)
async def annotate_complaint(
    ticket_id: int,
    body: AnnotateComplaintRequest,
    caller: Caller = Depends(require_roles(SUPPORT_ROLES)),
    session: AsyncSession = Depends(get_session),
    projector: ComplaintProjector = Depends(get_complaint_projector),
):
    complaint = await projector.annotate(
        ticket_id,
        support_notes=body.support_notes,
        customer_rating=body.customer_rating,
    )
    await session.commit()
    return ComplaintResponse.model_validate(complaint)
