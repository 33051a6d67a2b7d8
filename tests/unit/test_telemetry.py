"""
Unit tests for the telemetry module.

Tests cover:
- JSON log formatting with request correlation and extra fields
- Root logger setup
- Metric recording and no-op spans when tracing is disabled
"""

import json
import logging
import sys
from types import SimpleNamespace

import pytest

import telemetry.service as telemetry_module
from middleware.request_id import request_id_var
from telemetry.service import (
    JSONFormatter,
    TelemetryService,
    configure_logging,
    configure_tracing,
    get_telemetry_service,
    initialize_telemetry,
)


def _record(message: str = "Record added: 1", level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="locations.service",
        level=level,
        pathname=__file__,
        lineno=42,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def telemetry_settings():
    return SimpleNamespace(log_level="DEBUG", otel_endpoint=None, otel_service_name="test")


@pytest.fixture
def restore_global_telemetry(monkeypatch):
    monkeypatch.setattr(telemetry_module, "_telemetry_service", None)


class TestJSONFormatter:

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["message"] == "Record added: 1"
        assert data["logger"] == "locations.service"
        assert data["line"] == 42
        assert data["timestamp"].endswith("Z")

    def test_request_id_from_context(self):
        token = request_id_var.set("req-abc")
        try:
            data = json.loads(JSONFormatter().format(_record()))
        finally:
            request_id_var.reset(token)

        assert data["request_id"] == "req-abc"

    def test_request_id_empty_outside_requests(self):
        data = json.loads(JSONFormatter().format(_record()))
        assert data["request_id"] == ""

    def test_extra_data_is_merged(self):
        record = _record(extra_data={"record_id": 7, "source": "gps"})

        data = json.loads(JSONFormatter().format(record))

        assert data["record_id"] == 7
        assert data["source"] == "gps"

    def test_exception_is_rendered(self):
        try:
            raise ValueError("bad value")
        except ValueError:
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))

        assert "ValueError: bad value" in data["exception"]


class TestTelemetryService:

    def test_installs_single_json_handler(self, telemetry_settings, preserve_root_logging):
        TelemetryService(telemetry_settings)

        root_logger = logging.getLogger()
        assert root_logger.level == logging.DEBUG
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0].formatter, JSONFormatter)

    def test_tracing_disabled_without_endpoint(self, telemetry_settings, preserve_root_logging):
        service = TelemetryService(telemetry_settings)
        assert service.tracer is None

    def test_store_span_is_noop_without_tracer(self, telemetry_settings, preserve_root_logging):
        service = TelemetryService(telemetry_settings)

        with service.create_store_span("insert", {"location.source": "gps"}) as span:
            span.set_attribute("db.rows", 1)

    def test_noop_span_does_not_swallow_errors(self, telemetry_settings, preserve_root_logging):
        service = TelemetryService(telemetry_settings)

        with pytest.raises(RuntimeError):
            with service.create_store_span("scan"):
                raise RuntimeError("scan failed")

    def test_record_metric_logs_at_debug(self, telemetry_settings, preserve_root_logging, caplog):
        service = TelemetryService(telemetry_settings)
        # setup replaced every root handler, caplog's included
        logging.getLogger().addHandler(caplog.handler)

        with caplog.at_level(logging.DEBUG, logger="telemetry"):
            service.record_metric("location_record_duration_ms", 1.5, {"operation": "record"})

        record = next(r for r in caplog.records if r.getMessage().startswith("Metric:"))
        assert record.extra_data == {
            "metric_name": "location_record_duration_ms",
            "metric_value": 1.5,
            "tags": {"operation": "record"},
        }


class TestGlobalTelemetry:

    def test_initialize_sets_global(self, telemetry_settings, preserve_root_logging,
                                    restore_global_telemetry):
        assert get_telemetry_service() is None

        service = initialize_telemetry(telemetry_settings)

        assert get_telemetry_service() is service


class TestConfigureFunctions:

    def test_unknown_level_falls_back_to_info(self, preserve_root_logging):
        configure_logging("CHATTY")
        assert logging.getLogger().level == logging.INFO

    def test_reconfiguring_does_not_stack_handlers(self, preserve_root_logging):
        configure_logging("INFO")
        configure_logging("WARNING")

        root_logger = logging.getLogger()
        assert len(root_logger.handlers) == 1
        assert root_logger.level == logging.WARNING

    def test_no_endpoint_means_no_tracer(self):
        assert configure_tracing(None, "location-service") is None
