"""
Complaints Interfaces Layer
===========================

FastAPI route handlers for restaurant complaints.
"""

from supportdesk.complaints.interfaces.controllers import router as complaints_router

__all__ = ["complaints_router"]
