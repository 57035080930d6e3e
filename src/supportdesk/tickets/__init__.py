"""
Tickets Module
==============

Bounded context for the support ticket lifecycle.

Responsibilities:
- Ticket Store: ticket records, status changes, assignment
- Message Ledger: ordered, role-filtered conversation per ticket
- Escalation Engine: least-loaded agent hand-off and its audit trail
- Ticket Service: create-ticket and post-message workflows
"""
