"""
Complaints Module
=================

Vendor-facing projection of tickets that concern a restaurant.

Responsibilities:
- Complaint Projector: one complaint row per restaurant-linked ticket
- Status mirroring and support annotations
- Vendor listing of complaints against their restaurants
"""
