"""
Triage Application Layer
=========================

Contains:
- Services: the Classifier Gateway
- Interfaces: classifier backends and the classifier log repository
"""

from supportdesk.triage.application.services import (
    FALLBACK_INTENT,
    ClassifierGateway,
    IClassifier,
    IClassifierLogRepository,
    build_gateway,
)

__all__ = [
    "FALLBACK_INTENT",
    "ClassifierGateway",
    "IClassifier",
    "IClassifierLogRepository",
    "build_gateway",
]
