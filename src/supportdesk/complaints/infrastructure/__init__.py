"""
Complaints Infrastructure Layer
================================

Contains:
- Models: the restaurant_complaints table
- Repositories: complaint storage and order lookup
"""

from supportdesk.complaints.infrastructure.models import ComplaintModel
from supportdesk.complaints.infrastructure.repositories import (
    SQLAlchemyComplaintRepository,
    SQLAlchemyOrderLookup,
)

__all__ = [
    "ComplaintModel",
    "SQLAlchemyComplaintRepository",
    "SQLAlchemyOrderLookup",
]
