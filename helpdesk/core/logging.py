"""Log and trace setup for the helpdesk service."""

from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from helpdesk.core.config import Settings

APP_LOGGER = "helpdesk"
CONTEXT_FIELDS = ("ticket_id", "task_id")

_tracer_provider: TracerProvider | None = None


class TicketContextFilter(logging.Filter):
    """Give every record ``ticket_id``/``task_id`` so formats may reference them.

    Values passed through ``extra=`` are left as they are; records without
    them get ``"-"``.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for name in CONTEXT_FIELDS:
            if not hasattr(record, name):
                setattr(record, name, "-")
        return True


def parse_otlp_headers(raw: str | None) -> dict[str, str]:
    """Parse ``key=value,key=value`` as used by ``OTEL_EXPORTER_OTLP_HEADERS``."""

    headers: dict[str, str] = {}
    for pair in (raw or "").split(","):
        key, sep, value = pair.partition("=")
        if sep and key.strip():
            headers[key.strip()] = value.strip()
    return headers


def logging_config(settings: Settings) -> dict[str, Any]:
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"ticket_context": {"()": TicketContextFilter}},
        "formatters": {"helpdesk": {"format": settings.log_format}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "helpdesk",
                "filters": ["ticket_context"],
            }
        },
        "loggers": {APP_LOGGER: {"level": level}},
        "root": {"handlers": ["console"], "level": level},
    }


def configure_logging(settings: Settings) -> logging.Logger:
    """Install the service log configuration and return the ``helpdesk`` logger."""

    dictConfig(logging_config(settings))
    return logging.getLogger(APP_LOGGER)


def _span_exporter(settings: Settings) -> OTLPSpanExporter:
    options: dict[str, Any] = {}
    if settings.otel_exporter_otlp_endpoint:
        options["endpoint"] = settings.otel_exporter_otlp_endpoint
    headers = parse_otlp_headers(settings.otel_exporter_otlp_headers)
    if headers:
        options["headers"] = headers
    return OTLPSpanExporter(**options)


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Install an OTLP tracer provider once, when tracing is enabled."""

    global _tracer_provider

    if not settings.otel_enabled or _tracer_provider is not None:
        return None

    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.otel_service_name,
                "deployment.environment": settings.environment,
            }
        )
    )
    provider.add_span_processor(BatchSpanProcessor(_span_exporter(settings)))
    trace.set_tracer_provider(provider)
    _tracer_provider = provider
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    """Flush and stop ``provider``; the next ``init_tracer`` may install a new one."""

    global _tracer_provider

    if provider is None:
        return
    provider.shutdown()
    if provider is _tracer_provider:
        _tracer_provider = None
