"""
Triage Domain Entities
======================

The classifier verdict and the prompt used to obtain it from an LLM.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from supportdesk.config import TicketCategory


@dataclass(frozen=True)
class Verdict:
    """
    Structured output of the triage classifier.

    ``message`` is the reply posted to the customer; ``needs_human`` asks
    for a hand-off to an agent.
    """
    message: str
    confidence_score: float  # 0.0 to 1.0
    intent: str
    needs_human: bool
    is_fallback: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        """Validate verdict."""
        if not 0.0 <= self.confidence_score <= 1.0:
            raise ValueError("Confidence must be between 0 and 1")


class TriagePromptBuilder:
    """
    Builds prompts for ticket triage.

    All prompt wording lives here.
    """

    SYSTEM_PROMPT = """You are the first-line support assistant for a campus food ordering marketplace.
Students contact support about their orders, payments, food quality, deliveries and accounts.

For each message:
1. Write a short, friendly reply the student will read.
2. Name the intent in snake_case (for example: refund_request, missing_item, double_charge, late_delivery, general_question).
3. Estimate how confident you are that your reply resolves the issue (0.0 to 1.0).
4. Decide whether a human agent must take over (refunds, charges, safety or allergy issues, angry customers, or anything you cannot resolve).

Respond ONLY in JSON format:
{
    "message": "reply to the student",
    "intent": "intent_name",
    "confidence": 0.85,
    "needs_human": false
}"""

    @classmethod
    def build_prompt(cls, query_text: str, category: TicketCategory) -> str:
        """Build the user prompt from the customer's text."""
        return f"""Ticket category: {category.value}

Student message:
{query_text}

Reply with JSON only:"""

    @classmethod
    def get_system_prompt(cls) -> str:
        return cls.SYSTEM_PROMPT
