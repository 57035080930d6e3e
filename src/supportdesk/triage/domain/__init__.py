"""
Triage Domain Layer
===================

Contains the classifier ``Verdict`` and the LLM prompt builder.
"""

from supportdesk.triage.domain.entities import TriagePromptBuilder, Verdict

__all__ = [
    "TriagePromptBuilder",
    "Verdict",
]
