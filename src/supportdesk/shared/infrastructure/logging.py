"""
Structured Logging
==================

JSON-structured logging with correlation ID tracking.

Provides:
- Structured JSON logs (parseable by log aggregators)
- Correlation ID for request tracing
- Contextual loggers for modules
- Latency timing for collaborator calls

Usage:
    from supportdesk.shared.infrastructure.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Ticket escalated", extra={"ticket_id": 42, "agent_id": 7})
"""

import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, MutableMapping

from pythonjsonlogger.json import JsonFormatter

SENSITIVE_KEYS = ("password", "api_key", "secret")


class CustomJsonFormatter(JsonFormatter):
    """
    JSON formatter that adds a UTC timestamp, the correlation id and the
    environment name, and redacts credentials passed through ``extra``.
    """

    def __init__(self, *args: Any, environment: str = "unknown", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._environment = environment

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        if hasattr(record, "correlation_id"):
            log_record["correlation_id"] = record.correlation_id

        log_record["environment"] = self._environment

        for key, value in list(log_record.items()):
            if not isinstance(value, str):
                continue
            lowered = key.lower()
            if any(marker in lowered for marker in SENSITIVE_KEYS):
                log_record[key] = "***REDACTED***"
            elif "token" in lowered and "tokens_used" not in lowered:
                log_record[key] = "***REDACTED***"


def setup_logging(
    level: str = "INFO",
    environment: str = "development",
) -> None:
    """
    Configure structured JSON logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        environment: Environment name for log context
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))
    handler.setFormatter(CustomJsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        environment=environment,
    ))
    root_logger.addHandler(handler)

    # Silence noisy loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        logging.Logger: Configured logger instance
    """
    return logging.getLogger(name)


class ContextLoggerAdapter(logging.LoggerAdapter):
    """Adds fixed context to each record, keeping any per-call ``extra``."""

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_context_logger(
    name: str,
    correlation_id: str | None = None,
) -> logging.Logger | logging.LoggerAdapter:
    """
    Get a logger that stamps every record with a correlation id.

    Args:
        name: Logger name
        correlation_id: Request correlation ID

    Returns:
        The plain logger, or an adapter carrying ``correlation_id``
    """
    logger = get_logger(name)
    if correlation_id:
        return ContextLoggerAdapter(logger, {"correlation_id": correlation_id})
    return logger


@contextmanager
def log_latency(logger: logging.Logger, operation: str, **extra_context: Any):
    """
    Context manager for measuring and logging operation latency.

    Usage:
        with log_latency(logger, "classifier_call", ticket_id=12):
            verdict = await classifier.classify(text, category)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        latency_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"{operation} completed",
            extra={
                "operation": operation,
                "latency_ms": round(latency_ms, 2),
                **extra_context,
            },
        )
