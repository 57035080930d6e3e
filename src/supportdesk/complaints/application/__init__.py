"""
Complaints Application Layer
=============================

Contains:
- Services: the Complaint Projector and its restaurant resolution chain
- DTOs: request/response models for the complaint endpoints
- Interfaces: complaint repository and order lookup
"""

from supportdesk.complaints.application.dto import (
    AnnotateComplaintRequest,
    ComplaintResponse,
    VendorComplaintListResponse,
    VendorComplaintResponse,
)
from supportdesk.complaints.application.services import (
    ComplaintProjector,
    ExplicitRestaurantResolver,
    IComplaintRepository,
    IOrderLookup,
    OrderRestaurantResolver,
    RestaurantResolver,
)

__all__ = [
    # DTOs
    "AnnotateComplaintRequest",
    "ComplaintResponse",
    "VendorComplaintListResponse",
    "VendorComplaintResponse",
    # Services
    "ComplaintProjector",
    "ExplicitRestaurantResolver",
    "IComplaintRepository",
    "IOrderLookup",
    "OrderRestaurantResolver",
    "RestaurantResolver",
]
