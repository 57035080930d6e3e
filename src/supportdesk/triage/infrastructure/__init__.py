"""
Triage Infrastructure Layer
============================

Contains:
- Models: the ai_bot_logs audit table
- Repositories: SQLAlchemy classifier log repository
- External: LLM and keyword classifier backends
"""

from supportdesk.triage.infrastructure.models import ClassifierLogModel
from supportdesk.triage.infrastructure.repositories import SQLAlchemyClassifierLogRepository

__all__ = [
    "ClassifierLogModel",
    "SQLAlchemyClassifierLogRepository",
]
