"""
Triage Classifier Backends
===========================

Concrete ``IClassifier`` implementations:

- ``LLMClassifier``: asks an LLM (OpenAI or Z.AI) for a JSON verdict
- ``KeywordClassifier``: deterministic rules loaded from YAML, used when no
  LLM is configured and in tests
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

import yaml

from supportdesk.config import Settings, TicketCategory
from supportdesk.core import ClassifierException, ConfigurationException, LLMException
from supportdesk.infrastructure.llm import ILLMClient, create_llm_client
from supportdesk.shared.infrastructure.grafana import GrafanaOTLPExporter
from supportdesk.shared.infrastructure.logging import get_logger
from supportdesk.triage.application import IClassifier
from supportdesk.triage.domain import TriagePromptBuilder, Verdict

logger = get_logger(__name__)


class LLMClassifier(IClassifier):
    """
    Classifier backed by a chat completion model.

    Token usage and latency of every call are logged and, when an exporter
    is configured, pushed to Grafana.
    """

    def __init__(
        self,
        llm_client: ILLMClient,
        temperature: float = 0.3,
        max_tokens: int = 500,
        metrics: Optional[GrafanaOTLPExporter] = None,
    ):
        self._llm = llm_client
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._metrics = metrics

    async def classify(self, query_text: str, category: TicketCategory) -> Verdict:
        messages = [
            {"role": "system", "content": TriagePromptBuilder.get_system_prompt()},
            {"role": "user", "content": TriagePromptBuilder.build_prompt(query_text, category)},
        ]

        try:
            response = await self._llm.chat_completion(
                messages,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except LLMException as e:
            raise ClassifierException(e.message) from e

        logger.info(
            "Classifier LLM call",
            extra={
                "model": response.model,
                "category": category.value,
                "prompt_tokens": response.prompt_tokens,
                "completion_tokens": response.completion_tokens,
                "latency_ms": response.latency_ms
            }
        )
        if self._metrics is not None and self._metrics.is_enabled():
            await self._metrics.export_llm_metrics(
                model=response.model,
                prompt_tokens=response.prompt_tokens,
                completion_tokens=response.completion_tokens,
                latency_ms=response.latency_ms,
                attributes={"category": category.value},
            )

        return self.parse(response.content)

    @staticmethod
    def parse(content: str) -> Verdict:
        """
        Turn raw model output into a verdict.

        Raises:
            ClassifierException: output is not the expected JSON object
        """
        content_text = content.strip()
        if "```json" in content_text:
            content_text = content_text.split("```json")[1].split("```")[0].strip()
        elif "```" in content_text:
            content_text = content_text.split("```")[1].split("```")[0].strip()

        try:
            data = json.loads(content_text)
        except json.JSONDecodeError as e:
            raise ClassifierException(f"Failed to parse classifier response: {e}")

        if not isinstance(data, dict) or not str(data.get("message") or "").strip():
            raise ClassifierException("Classifier response has no reply message")

        try:
            confidence = float(data.get("confidence", 0.0))
        except (TypeError, ValueError):
            raise ClassifierException("Classifier confidence is not a number")

        return Verdict(
            message=str(data["message"]).strip(),
            confidence_score=min(max(confidence, 0.0), 1.0),
            intent=str(data.get("intent") or "general_question"),
            needs_human=bool(data.get("needs_human", False)),
        )


@dataclass(frozen=True)
class KeywordRule:
    """Phrases that identify one intent, and the reply to give."""
    intent: str
    keywords: tuple
    reply: str
    confidence: float
    needs_human: bool = False
    pattern: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.keywords:
            raise ValueError(f"rule '{self.intent}' has no keywords")
        # Whole words only: "raw" must not fire on "withdraw".
        alternatives = "|".join(re.escape(keyword) for keyword in self.keywords)
        object.__setattr__(self, "pattern", re.compile(rf"\b(?:{alternatives})\b"))

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


DEFAULT_RULES = [
    KeywordRule(
        intent="human_request",
        keywords=("human", "real person", "speak to someone", "talk to someone", "agent"),
        reply="Sure, I'm bringing in a member of our support team to help you.",
        confidence=0.9,
        needs_human=True,
    ),
    KeywordRule(
        intent="food_safety",
        keywords=("allergy", "allergic", "food poisoning", "got sick", "raw", "hair in"),
        reply="I'm sorry to hear that. Your safety comes first, so a support agent will review this right away.",
        confidence=0.9,
        needs_human=True,
    ),
    KeywordRule(
        intent="double_charge",
        keywords=("charged twice", "double charge", "double charged", "charged two times", "charged me twice"),
        reply="I'm sorry about the duplicate charge. A support agent will check your payment and arrange a refund.",
        confidence=0.85,
        needs_human=True,
    ),
    KeywordRule(
        intent="refund_request",
        keywords=("refund", "money back", "chargeback"),
        reply="I understand you'd like a refund. A support agent will review your order and follow up.",
        confidence=0.8,
        needs_human=True,
    ),
    KeywordRule(
        intent="account_access",
        keywords=("password", "log in", "login", "sign in", "locked out"),
        reply="You can reset your password from the sign-in screen using 'Forgot password'.",
        confidence=0.8,
    ),
    KeywordRule(
        intent="missing_item",
        keywords=("missing", "didn't receive", "did not receive", "not in my bag", "forgot my", "forgot the"),
        reply="Sorry about the missing item. Please confirm which item was missing and we'll sort it out with the restaurant.",
        confidence=0.7,
    ),
    KeywordRule(
        intent="late_delivery",
        keywords=("late", "delayed", "still waiting", "where is my order", "taking too long"),
        reply="Sorry for the wait. Deliveries can be delayed at peak times; you can follow your order status in the app.",
        confidence=0.75,
    ),
]

DEFAULT_REPLIES = {
    TicketCategory.ORDER_ISSUE: "Thanks for reporting this order issue. We're looking into it.",
    TicketCategory.PAYMENT: "Thanks for reaching out about your payment. We're checking the details.",
    TicketCategory.FOOD_QUALITY: "Thanks for letting us know about the food quality. We'll share this with the restaurant.",
    TicketCategory.DELIVERY: "Thanks for reaching out about your delivery. We're checking its status.",
    TicketCategory.ACCOUNT: "Thanks for reaching out about your account. We're looking into it.",
    TicketCategory.OTHER: "Thanks for contacting support. We've received your message.",
}

DEFAULT_CONFIDENCE = 0.65


class KeywordClassifier(IClassifier):
    """
    Rule based classifier.

    Rules are checked in order against the lowercased text; the first rule
    with a matching phrase wins. Text matching no rule gets the category's
    default reply.
    """

    def __init__(
        self,
        rules: Optional[Iterable[KeywordRule]] = None,
        default_replies: Optional[dict] = None,
        default_confidence: float = DEFAULT_CONFIDENCE,
    ):
        self._rules: List[KeywordRule] = list(rules) if rules is not None else list(DEFAULT_RULES)
        self._replies = {**DEFAULT_REPLIES, **(default_replies or {})}
        self._default_confidence = default_confidence

    @classmethod
    def from_yaml(cls, path: Path) -> "KeywordClassifier":
        """
        Load rules from a YAML file.

        Expected layout::

            rules:
              - intent: refund_request
                keywords: [refund, money back]
                reply: A support agent will review your refund.
                confidence: 0.8
                needs_human: true
            default:
              confidence: 0.65
              replies:
                payment: We're checking your payment.

        Raises:
            ConfigurationException: the file is unreadable or malformed
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationException(f"Cannot load triage rules from {path}: {e}")

        try:
            rules = [
                KeywordRule(
                    intent=str(item["intent"]),
                    keywords=tuple(str(k).lower() for k in item["keywords"]),
                    reply=str(item["reply"]),
                    confidence=float(item.get("confidence", DEFAULT_CONFIDENCE)),
                    needs_human=bool(item.get("needs_human", False)),
                )
                for item in data.get("rules", [])
            ]
            default = data.get("default") or {}
            replies = {
                TicketCategory(key): str(value)
                for key, value in (default.get("replies") or {}).items()
            }
            confidence = float(default.get("confidence", DEFAULT_CONFIDENCE))
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationException(f"Malformed triage rules in {path}: {e}")

        return cls(rules or None, replies, confidence)

    async def classify(self, query_text: str, category: TicketCategory) -> Verdict:
        text = query_text.lower()
        for rule in self._rules:
            if rule.matches(text):
                return Verdict(
                    message=rule.reply,
                    confidence_score=rule.confidence,
                    intent=rule.intent,
                    needs_human=rule.needs_human,
                )

        return Verdict(
            message=self._replies[category],
            confidence_score=self._default_confidence,
            intent="general_question",
            needs_human=False,
        )


def build_classifier(settings: Settings, metrics: Optional[GrafanaOTLPExporter] = None) -> IClassifier:
    """Build the backend selected by ``settings.llm_provider``."""
    if settings.llm_provider == "keyword":
        if settings.triage_rules_path and Path(settings.triage_rules_path).is_file():
            logger.info("Loading triage rules", extra={"path": str(settings.triage_rules_path)})
            return KeywordClassifier.from_yaml(Path(settings.triage_rules_path))
        return KeywordClassifier()

    return LLMClassifier(
        create_llm_client(settings),
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        metrics=metrics,
    )
