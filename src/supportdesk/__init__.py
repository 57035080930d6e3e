"""
Support Desk
============

Customer-support ticketing engine for a campus food marketplace: tickets,
threaded messages, AI triage, least-loaded escalation and restaurant
complaint projections.
"""

__version__ = "1.0.0"
