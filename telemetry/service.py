"""
Structured logging, metrics and tracing for the location service.

Every log line is one JSON object on stdout carrying the ID of the request
being served. Metrics are debug log lines. Store calls run inside client
spans when an OTLP endpoint is configured; otherwise the spans do nothing.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from middleware.request_id import request_id_var

METRICS_LOGGER = "telemetry"


class JSONFormatter(logging.Formatter):
    """
    Render a log record as a single-line JSON object.

    Always present: ``timestamp`` (UTC, ``Z`` suffix), ``level``,
    ``logger``, ``message`` and ``request_id`` (empty outside a request).
    The call site is added as ``module``/``function``/``line``. Anything
    passed as ``extra={"extra_data": {...}}`` is merged in at the top level.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_var.get(""),
        }
        entry.update(self._call_site(record))
        entry.update(getattr(record, "extra_data", None) or {})

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack_trace"] = self.formatStack(record.stack_info)

        return json.dumps(entry, default=str)

    @staticmethod
    def _call_site(record: logging.LogRecord) -> Dict[str, Any]:
        site: Dict[str, Any] = {"module": record.module, "line": record.lineno}
        if record.funcName and record.funcName != "<module>":
            site["function"] = record.funcName
        return site


def configure_logging(log_level: str = "INFO") -> None:
    """Route every logger through a single stdout handler using JSONFormatter."""
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    # force=True drops handlers installed earlier (uvicorn, reloads, tests)
    logging.basicConfig(level=level, handlers=[handler], force=True)


def configure_tracing(endpoint: Optional[str], service_name: str):
    """
    Install an OTLP tracer provider and return a tracer for ``service_name``.

    Returns None when no endpoint is configured or the ``tracing`` extra is
    not installed.
    """
    logger = logging.getLogger(METRICS_LOGGER)
    if not endpoint:
        logger.debug("No OTLP endpoint configured, store spans are no-ops")
        return None

    try:
        from opentelemetry import trace
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.resources import SERVICE_NAME, Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as e:
        logger.warning(
            "OTLP endpoint configured but the tracing extra is not installed",
            extra={"extra_data": {"otel_endpoint": endpoint, "error": str(e)}}
        )
        return None

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    trace.set_tracer_provider(provider)

    logger.info(
        "Exporting traces",
        extra={"extra_data": {"otel_endpoint": endpoint, "service_name": service_name}}
    )
    return trace.get_tracer(service_name)


class _NoOpSpan:
    """Span stand-in: a context manager that records nothing."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return False

    def set_attribute(self, key: str, value: Any) -> None:
        pass


class TelemetryService:
    """
    Metrics and spans for the service layer.

    Constructing one configures logging and tracing from ``settings``
    (``log_level``, ``otel_endpoint``, ``otel_service_name``); any object
    with those attributes will do.

    Attributes:
        tracer: OpenTelemetry tracer, or None when tracing is off
    """

    def __init__(self, settings: Optional[Any] = None):
        self.settings = settings
        self._metrics = logging.getLogger(METRICS_LOGGER)

        log_level = getattr(settings, "log_level", None) or "INFO"
        configure_logging(log_level)
        self.tracer = configure_tracing(
            getattr(settings, "otel_endpoint", None),
            getattr(settings, "otel_service_name", None) or "location-service",
        )

        self._metrics.info(
            "Telemetry configured",
            extra={"extra_data": {"log_level": log_level, "tracing": self.tracer is not None}}
        )

    def record_metric(self, name: str, value: float, tags: Optional[Dict[str, str]] = None) -> None:
        """Emit ``name=value`` as a debug line on the ``telemetry`` logger."""
        metric_data: Dict[str, Any] = {"metric_name": name, "metric_value": value}
        if tags:
            metric_data["tags"] = tags
        self._metrics.debug(f"Metric: {name}={value}", extra={"extra_data": metric_data})

    def create_span(self, name: str, attributes: Optional[Dict[str, Any]] = None):
        if self.tracer is None:
            return _NoOpSpan()
        return self.tracer.start_as_current_span(name, attributes=attributes)

    def create_store_span(self, operation: str, attributes: Optional[Dict[str, Any]] = None):
        """
        Client span named ``store.<operation>`` around one store call.

        Args:
            operation: "insert" or "scan"
            attributes: Extra span attributes, e.g. the source label
        """
        return self.create_span(
            f"store.{operation}",
            {
                "db.system": "sql",
                "db.operation": operation,
                "span.kind": "client",
                **(attributes or {}),
            },
        )


_telemetry_service: Optional[TelemetryService] = None


def get_telemetry_service() -> Optional[TelemetryService]:
    """Return the service set up by initialize_telemetry, if any."""
    return _telemetry_service


def initialize_telemetry(settings: Optional[Any] = None) -> TelemetryService:
    """Create the process-wide TelemetryService and return it."""
    global _telemetry_service
    _telemetry_service = TelemetryService(settings)
    return _telemetry_service
