"""
Ticket Interfaces Layer
=======================

FastAPI route handlers for the support ticket endpoints.
"""

from supportdesk.tickets.interfaces.controllers import router as tickets_router

__all__ = ["tickets_router"]
