"""
Triage Application Services
============================

The Classifier Gateway.

Wraps whichever classifier backend is configured, bounds each call with a
timeout and, when allowed, substitutes a fallback verdict that hands the
ticket to a human.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Optional

from supportdesk.config import Settings, TicketCategory
from supportdesk.core import ClassifierException
from supportdesk.triage.domain import Verdict
from supportdesk.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)

FALLBACK_INTENT = "fallback"


# ========== Interfaces ==========

class IClassifier(ABC):
    """A triage backend: free text in, verdict out."""

    @abstractmethod
    async def classify(self, query_text: str, category: TicketCategory) -> Verdict:
        """Classify a customer message."""


class IClassifierLogRepository(ABC):
    """Interface for the classifier audit log."""

    @abstractmethod
    async def create(self, ticket_id: int, query_text: str, verdict: Verdict) -> Any:
        """Append a log entry for one classifier call."""


# ========== Application Services ==========

class ClassifierGateway:
    """
    Single entry point the ticket workflows use to reach the classifier.

    Low-confidence verdicts are turned into hand-off requests here so every
    backend gets the same escalation policy.
    """

    def __init__(
        self,
        classifier: IClassifier,
        timeout_seconds: float = 10.0,
        fallback_enabled: bool = True,
        fallback_message: str = "A member of the support team will pick up your request.",
        confidence_threshold: float = 0.6,
    ):
        self._classifier = classifier
        self._timeout = timeout_seconds
        self._fallback_enabled = fallback_enabled
        self._fallback_message = fallback_message
        self._threshold = confidence_threshold

    @classmethod
    def from_settings(cls, classifier: IClassifier, settings: Settings) -> "ClassifierGateway":
        return cls(
            classifier,
            timeout_seconds=settings.classifier_timeout_seconds,
            fallback_enabled=settings.classifier_fallback_enabled,
            fallback_message=settings.classifier_fallback_message,
            confidence_threshold=settings.escalation_confidence_threshold,
        )

    async def classify(self, query_text: str, category: TicketCategory | str) -> Verdict:
        """
        Classify a customer message.

        Raises:
            ClassifierException: the backend failed or timed out and the
                fallback verdict is disabled
        """
        category = TicketCategory(category)
        try:
            with log_latency(logger, "classifier_call", category=category.value):
                verdict = await asyncio.wait_for(
                    self._classifier.classify(query_text, category),
                    timeout=self._timeout,
                )
        except asyncio.TimeoutError:
            return self._fallback(f"timed out after {self._timeout}s")
        except ClassifierException as e:
            return self._fallback(e.message)
        except Exception as e:
            return self._fallback(str(e))

        if not verdict.needs_human and verdict.confidence_score < self._threshold:
            verdict = replace(verdict, needs_human=True)
        return verdict

    def _fallback(self, reason: str) -> Verdict:
        if not self._fallback_enabled:
            raise ClassifierException(reason)

        logger.warning("Classifier unavailable, using fallback verdict", extra={"reason": reason})
        return Verdict(
            message=self._fallback_message,
            confidence_score=0.0,
            intent=FALLBACK_INTENT,
            needs_human=True,
            is_fallback=True,
        )


def build_gateway(
    settings: Settings,
    classifier: Optional[IClassifier] = None,
    metrics: Optional[Any] = None,
) -> ClassifierGateway:
    """Assemble the gateway for the configured backend; ``metrics`` feeds LLM usage to Grafana."""
    if classifier is None:
        from supportdesk.triage.infrastructure.external import build_classifier
        classifier = build_classifier(settings, metrics)
    return ClassifierGateway.from_settings(classifier, settings)
