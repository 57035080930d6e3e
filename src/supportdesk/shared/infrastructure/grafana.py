"""
Grafana OTLP Metrics Exporter
==============================

Pushes classifier LLM usage (tokens, latency) to Grafana Cloud over the
OTLP/HTTP JSON endpoint.

Metrics exported per LLM call:
- llm_tokens_total: prompt + completion tokens
- llm_prompt_tokens / llm_completion_tokens
- llm_latency_ms: request latency in milliseconds

The exporter is disabled unless host, API key and instance id are all set.
Export failures are logged and reported as ``False``; they never reach the
ticket workflow.
"""

import base64
import time
from typing import Dict, List, Optional

import httpx

from supportdesk.config import Settings
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

OTLP_METRICS_PATH = "/otlp/v1/metrics"


class GrafanaOTLPExporter:
    """Export LLM metrics to Grafana Cloud via OTLP."""

    def __init__(
        self,
        host: Optional[str] = None,
        api_key: Optional[str] = None,
        instance_id: Optional[str] = None,
        service_name: str = "support-desk",
        service_version: str = "1.0.0",
        environment: str = "development",
        timeout_seconds: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._enabled = bool(host and api_key and instance_id)
        self._instance_id = instance_id
        self._timeout = timeout_seconds
        self._transport = transport
        self._resource = [
            _attribute("service.name", service_name),
            _attribute("service.version", service_version),
            _attribute("deployment.environment", environment),
        ]
        self._service_name = service_name

        if not self._enabled:
            logger.info(
                "Grafana OTLP exporter not configured - metrics will not be exported",
                extra={
                    "host_configured": bool(host),
                    "api_key_configured": bool(api_key),
                    "instance_id_configured": bool(instance_id)
                }
            )
            return

        credentials = base64.b64encode(f"{instance_id}:{api_key}".encode()).decode()
        self._headers = {
            "Content-Type": "application/json",
            "Authorization": f"Basic {credentials}",
            "X-Grafana-Org-Id": str(instance_id),
        }
        host = host.rstrip("/")
        self._url = host if host.endswith(OTLP_METRICS_PATH) else f"{host}{OTLP_METRICS_PATH}"
        logger.info("Grafana OTLP exporter initialized", extra={"url": self._url})

    @classmethod
    def from_settings(cls, settings: Settings) -> "GrafanaOTLPExporter":
        return cls(
            host=settings.grafana_host,
            api_key=settings.grafana_api_key,
            instance_id=settings.grafana_instance_id,
            service_name=settings.app_name,
            service_version=settings.app_version,
            environment=settings.environment,
            timeout_seconds=settings.grafana_timeout_seconds,
        )

    def is_enabled(self) -> bool:
        return self._enabled

    async def export_llm_metrics(
        self,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: int,
        operation: str = "triage_classification",
        attributes: Optional[Dict[str, str]] = None
    ) -> bool:
        """
        Push one LLM call's usage.

        Returns:
            True when Grafana accepted the payload
        """
        if not self._enabled:
            return False

        labels = [
            _attribute("model", model),
            _attribute("operation", operation),
            _attribute("service", self._service_name),
        ]
        labels.extend(_attribute(key, value) for key, value in (attributes or {}).items())

        timestamp_ns = time.time_ns()
        metrics = [
            _gauge("llm_tokens_total", "1", prompt_tokens + completion_tokens, timestamp_ns, labels),
            _gauge("llm_prompt_tokens", "1", prompt_tokens, timestamp_ns, labels),
            _gauge("llm_completion_tokens", "1", completion_tokens, timestamp_ns, labels),
            _gauge("llm_latency_ms", "ms", latency_ms, timestamp_ns, labels),
        ]
        return await self._post(metrics, {"model": model, "operation": operation})

    async def _post(self, metrics: List[dict], context: dict) -> bool:
        payload = {
            "resourceMetrics": [{
                "resource": {"attributes": self._resource},
                "scopeMetrics": [{"metrics": metrics}],
            }]
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, headers=self._headers, json=payload)
        except httpx.HTTPError as e:
            logger.warning("Error exporting metrics to Grafana", extra={"error": str(e), **context})
            return False

        if response.status_code in (200, 202):
            logger.debug("Metrics exported to Grafana", extra={"status_code": response.status_code, **context})
            return True

        logger.warning(
            "Grafana rejected metrics",
            extra={"status_code": response.status_code, "response": response.text[:500], **context}
        )
        return False


def _attribute(key: str, value: object) -> dict:
    return {"key": key, "value": {"stringValue": str(value)}}


def _gauge(name: str, unit: str, value: int, timestamp_ns: int, labels: List[dict]) -> dict:
    return {
        "name": name,
        "unit": unit,
        "gauge": {
            "dataPoints": [{"asInt": int(value), "timeUnixNano": timestamp_ns, "attributes": labels}]
        },
    }
