"""
Triage Infrastructure Repositories
====================================

SQLAlchemy implementation of the classifier log repository.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from supportdesk.infrastructure.database import repository_operation
from supportdesk.triage.application import IClassifierLogRepository
from supportdesk.triage.domain import Verdict
from supportdesk.triage.infrastructure.models import ClassifierLogModel


class SQLAlchemyClassifierLogRepository(IClassifierLogRepository):
    """SQLAlchemy implementation for classifier log entries."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @repository_operation("record classifier log")
    async def create(self, ticket_id: int, query_text: str, verdict: Verdict) -> Any:
        model = ClassifierLogModel(
            ticket_id=ticket_id,
            user_query=query_text,
            ai_response=verdict.message,
            intent_detected=verdict.intent,
            confidence_score=verdict.confidence_score,
            escalated_to_human=verdict.needs_human,
            created_at=verdict.created_at,
        )
        self._session.add(model)
        await self._session.flush()
        return model

