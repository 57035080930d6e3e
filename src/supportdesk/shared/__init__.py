"""
Shared Kernel Module
====================

Infrastructure and API plumbing shared by every bounded context
(tickets, triage, complaints): logging, middleware, caller identity and the
read models owned by neighbouring services.

DO NOT add ticket, triage or complaint business rules to the shared kernel.
"""
