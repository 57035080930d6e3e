"""Unit tests for the keyword and LLM classifier backends."""

from pathlib import Path

import pytest

from supportdesk.config import Settings, TicketCategory
from supportdesk.core import ClassifierException, ConfigurationException, LLMException
from supportdesk.infrastructure.llm import ChatCompletionResult, ILLMClient
from supportdesk.triage.infrastructure.external import (
    KeywordClassifier,
    KeywordRule,
    LLMClassifier,
    build_classifier,
)

RULES_FILE = Path(__file__).resolve().parents[2] / "triage_rules.yaml"


class FakeLLM(ILLMClient):
    def __init__(self, content: str = "", error: Exception = None):
        self.content = content
        self.error = error
        self.messages = None

    async def chat_completion(self, messages, temperature=0.3, max_tokens=500):
        self.messages = messages
        if self.error is not None:
            raise self.error
        return ChatCompletionResult(self.content, "fake-model", 10, 20, 5)


class RecordingExporter:
    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.calls = []

    def is_enabled(self):
        return self.enabled

    async def export_llm_metrics(self, **kwargs):
        self.calls.append(kwargs)
        return True


class TestKeywordClassifier:
    @pytest.mark.parametrize("text,intent,needs_human", [
        ("I was charged twice for my order", "double_charge", True),
        ("Can I get a refund please", "refund_request", True),
        ("I need to talk to a real person", "human_request", True),
        ("My drink was missing from the bag", "missing_item", False),
        ("The delivery is so late", "late_delivery", False),
        ("I can't log in to my account", "account_access", False),
    ])
    async def test_default_rules(self, text, intent, needs_human):
        verdict = await KeywordClassifier().classify(text, TicketCategory.OTHER)

        assert verdict.intent == intent
        assert verdict.needs_human is needs_human

    @pytest.mark.parametrize("text,intent,needs_human", [
        ("I forgot my password", "account_access", False),
        ("The chocolate cake never came", "general_question", False),
        ("I want to withdraw my complaint", "general_question", False),
        ("You forgot the fries", "missing_item", False),
    ])
    async def test_keywords_match_whole_words(self, text, intent, needs_human):
        verdict = await KeywordClassifier().classify(text, TicketCategory.OTHER)

        assert verdict.intent == intent
        assert verdict.needs_human is needs_human

    @pytest.mark.parametrize("text,intent", [
        ("I forgot my password", "account_access"),
        ("The chocolate cake never came", "general_question"),
        ("I want to withdraw my complaint", "general_question"),
        ("I was charged twice for my order", "double_charge"),
    ])
    async def test_shipped_rules_file_agrees_with_defaults(self, text, intent):
        classifier = KeywordClassifier.from_yaml(RULES_FILE)

        verdict = await classifier.classify(text, TicketCategory.OTHER)

        assert verdict.intent == intent

    def test_rule_without_keywords_is_rejected(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("rules:\n  - intent: empty\n    keywords: []\n    reply: hi\n")

        with pytest.raises(ConfigurationException):
            KeywordClassifier.from_yaml(path)

    async def test_matching_is_case_insensitive(self):
        verdict = await KeywordClassifier().classify("DOUBLE CHARGE on my card", TicketCategory.PAYMENT)
        assert verdict.intent == "double_charge"

    async def test_unmatched_text_gets_category_reply(self):
        verdict = await KeywordClassifier().classify("The naan was cold", TicketCategory.FOOD_QUALITY)

        assert verdict.intent == "general_question"
        assert verdict.needs_human is False
        assert "food quality" in verdict.message

    async def test_first_matching_rule_wins(self):
        classifier = KeywordClassifier(rules=[
            KeywordRule("first", ("refund",), "one", 0.9),
            KeywordRule("second", ("refund",), "two", 0.9),
        ])

        verdict = await classifier.classify("refund", TicketCategory.PAYMENT)

        assert verdict.intent == "first"

    async def test_loads_rules_from_yaml(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(
            "rules:\n"
            "  - intent: cutlery\n"
            "    keywords: [Fork, spoon]\n"
            "    reply: We'll remind the restaurant.\n"
            "    confidence: 0.75\n"
            "default:\n"
            "  confidence: 0.5\n"
            "  replies:\n"
            "    other: Custom default reply.\n"
        )

        classifier = KeywordClassifier.from_yaml(path)

        matched = await classifier.classify("no fork included", TicketCategory.ORDER_ISSUE)
        assert matched.intent == "cutlery"
        assert matched.confidence_score == 0.75

        fallback = await classifier.classify("something else", TicketCategory.OTHER)
        assert fallback.message == "Custom default reply."
        assert fallback.confidence_score == 0.5

    def test_malformed_yaml_rules(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("rules:\n  - intent: missing_keywords\n")

        with pytest.raises(ConfigurationException):
            KeywordClassifier.from_yaml(path)

    def test_unreadable_rules_file(self, tmp_path):
        with pytest.raises(ConfigurationException):
            KeywordClassifier.from_yaml(tmp_path / "absent.yaml")

    def test_build_classifier_reads_rules_file(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("rules:\n  - intent: x\n    keywords: [y]\n    reply: z\n")

        classifier = build_classifier(Settings(llm_provider="keyword", triage_rules_path=path))

        assert isinstance(classifier, KeywordClassifier)


class TestLLMClassifier:
    async def test_parses_json_verdict(self):
        llm = FakeLLM('{"message": "Sorry!", "intent": "missing_item", "confidence": 0.82, "needs_human": false}')

        verdict = await LLMClassifier(llm).classify("Fries missing", TicketCategory.ORDER_ISSUE)

        assert verdict.message == "Sorry!"
        assert verdict.intent == "missing_item"
        assert verdict.confidence_score == 0.82
        assert verdict.needs_human is False
        assert llm.messages[0]["role"] == "system"
        assert "Fries missing" in llm.messages[1]["content"]

    def test_strips_code_fences(self):
        verdict = LLMClassifier.parse(
            '```json\n{"message": "On it", "intent": "refund_request", "confidence": 0.7, "needs_human": true}\n```'
        )
        assert verdict.intent == "refund_request"
        assert verdict.needs_human is True

    def test_clamps_confidence(self):
        verdict = LLMClassifier.parse('{"message": "ok", "confidence": 7}')
        assert verdict.confidence_score == 1.0

    @pytest.mark.parametrize("content", [
        "not json at all",
        '{"intent": "x", "confidence": 0.5}',
        '{"message": "hi", "confidence": "high"}',
        "[1, 2, 3]",
    ])
    def test_rejects_bad_output(self, content):
        with pytest.raises(ClassifierException):
            LLMClassifier.parse(content)

    async def test_llm_failure_becomes_classifier_error(self):
        llm = FakeLLM(error=LLMException("rate limited"))

        with pytest.raises(ClassifierException):
            await LLMClassifier(llm).classify("hello", TicketCategory.OTHER)

    def test_llm_provider_requires_key(self):
        with pytest.raises(ConfigurationException):
            build_classifier(Settings(llm_provider="openai", openai_api_key=None))

    async def test_reports_usage_to_metrics_exporter(self):
        exporter = RecordingExporter()
        llm = FakeLLM('{"message": "Sorry!", "intent": "missing_item", "confidence": 0.8, "needs_human": false}')

        await LLMClassifier(llm, metrics=exporter).classify("Fries missing", TicketCategory.ORDER_ISSUE)

        assert exporter.calls == [{
            "model": "fake-model",
            "prompt_tokens": 10,
            "completion_tokens": 20,
            "latency_ms": 5,
            "attributes": {"category": "order_issue"},
        }]

    async def test_disabled_exporter_is_skipped(self):
        exporter = RecordingExporter(enabled=False)
        llm = FakeLLM('{"message": "ok", "confidence": 0.8}')

        await LLMClassifier(llm, metrics=exporter).classify("hello", TicketCategory.OTHER)

        assert exporter.calls == []
