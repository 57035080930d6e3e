"""
Complaint Value Objects
=======================

Small, pure rules shared by the projector and its tests.
"""

from typing import Optional

from supportdesk.config import CLOSED_STATUSES, TicketStatus
from supportdesk.core import ValidationException

MIN_RATING = 1
MAX_RATING = 5


def complaint_summary(subject: Optional[str], description: Optional[str]) -> Optional[str]:
    """Subject if present, else the description, else nothing."""
    for candidate in (subject, description):
        if candidate and candidate.strip():
            return candidate.strip()
    return None


def validate_rating(rating: Optional[int]) -> Optional[int]:
    """
    Raises:
        ValidationException: rating outside 1-5
    """
    if rating is None:
        return None
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationException(
            f"Customer rating must be between {MIN_RATING} and {MAX_RATING}",
            {"customer_rating": rating}
        )
    return rating


def is_resolution_final(status: TicketStatus) -> bool:
    return status in CLOSED_STATUSES
