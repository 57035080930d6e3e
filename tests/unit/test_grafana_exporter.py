"""Unit tests for the Grafana OTLP exporter, using an in-memory httpx transport."""

import base64
import json

import httpx

from supportdesk.config import Settings
from supportdesk.shared.infrastructure.grafana import GrafanaOTLPExporter


def exporter_with(handler) -> GrafanaOTLPExporter:
    return GrafanaOTLPExporter(
        host="https://otlp.example.grafana.net/",
        api_key="secret",
        instance_id="12345",
        service_name="support-desk",
        environment="test",
        transport=httpx.MockTransport(handler),
    )


class TestGrafanaOTLPExporter:
    async def test_pushes_token_and_latency_gauges(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200)

        exported = await exporter_with(handler).export_llm_metrics(
            model="gpt-4o-mini",
            prompt_tokens=10,
            completion_tokens=20,
            latency_ms=5,
            attributes={"category": "payment"},
        )

        assert exported is True
        request = requests[0]
        assert str(request.url) == "https://otlp.example.grafana.net/otlp/v1/metrics"
        assert request.headers["Authorization"] == "Basic " + base64.b64encode(b"12345:secret").decode()
        assert request.headers["X-Grafana-Org-Id"] == "12345"

        body = json.loads(request.content)
        metrics = body["resourceMetrics"][0]["scopeMetrics"][0]["metrics"]
        values = {m["name"]: m["gauge"]["dataPoints"][0]["asInt"] for m in metrics}
        assert values == {
            "llm_tokens_total": 30,
            "llm_prompt_tokens": 10,
            "llm_completion_tokens": 20,
            "llm_latency_ms": 5,
        }
        labels = {a["key"]: a["value"]["stringValue"] for a in metrics[0]["gauge"]["dataPoints"][0]["attributes"]}
        assert labels["model"] == "gpt-4o-mini"
        assert labels["category"] == "payment"

    async def test_full_endpoint_url_is_not_doubled(self):
        urls = []

        def handler(request):
            urls.append(str(request.url))
            return httpx.Response(202)

        exporter = GrafanaOTLPExporter(
            host="https://otlp.example.grafana.net/otlp/v1/metrics",
            api_key="secret",
            instance_id="12345",
            transport=httpx.MockTransport(handler),
        )

        assert await exporter.export_llm_metrics("m", 1, 1, 1) is True
        assert urls == ["https://otlp.example.grafana.net/otlp/v1/metrics"]

    async def test_rejected_push_reports_false(self):
        exporter = exporter_with(lambda request: httpx.Response(500, text="boom"))

        assert await exporter.export_llm_metrics("m", 1, 1, 1) is False

    async def test_transport_error_reports_false(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        assert await exporter_with(handler).export_llm_metrics("m", 1, 1, 1) is False

    async def test_disabled_without_credentials(self):
        calls = []
        exporter = GrafanaOTLPExporter(
            host="https://otlp.example.grafana.net",
            transport=httpx.MockTransport(lambda request: calls.append(request) or httpx.Response(200)),
        )

        assert exporter.is_enabled() is False
        assert await exporter.export_llm_metrics("m", 1, 1, 1) is False
        assert calls == []

    def test_from_settings(self):
        exporter = GrafanaOTLPExporter.from_settings(Settings(
            grafana_host="https://otlp.example.grafana.net",
            grafana_api_key="secret",
            grafana_instance_id="12345",
        ))

        assert exporter.is_enabled() is True
