"""
Complaints Domain Layer
=======================

Summary and rating rules for complaint projections.
"""

from supportdesk.complaints.domain.value_objects import (
    MAX_RATING,
    MIN_RATING,
    complaint_summary,
    is_resolution_final,
    validate_rating,
)

__all__ = [
    "MAX_RATING",
    "MIN_RATING",
    "complaint_summary",
    "is_resolution_final",
    "validate_rating",
]
