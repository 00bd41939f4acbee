"""
Tests for observability features: structured logging and Prometheus metrics.
"""

import pytest
import json
import logging
import time
from unittest.mock import patch

from horoscope_api.obs.logging import (
    JsonFormatter, StructuredLogger, set_request_context,
    clear_request_context, get_request_id, TimedOperation
)
from horoscope_api.obs.metrics import (
    metrics, get_metrics_content, RequestMetricsMiddleware,
    REQUEST_COUNT, HOROSCOPES_COMPUTED, ERRORS_TOTAL
)


def _record(msg="Test message"):
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None
    )


class TestJsonFormatter:
    """Tests for JSON log formatting."""

    def test_basic_formatting(self):
        log_data = json.loads(JsonFormatter().format(_record()))

        assert log_data["level"] == "INFO"
        assert log_data["logger"] == "test.logger"
        assert log_data["message"] == "Test message"
        assert "timestamp" in log_data

    def test_request_context_inclusion(self):
        set_request_context("test-request-123")
        try:
            log_data = json.loads(JsonFormatter().format(_record("Test with context")))
        finally:
            clear_request_context()

        assert log_data["request_id"] == "test-request-123"

    def test_no_request_id_outside_request(self):
        clear_request_context()
        log_data = json.loads(JsonFormatter().format(_record()))
        assert "request_id" not in log_data

    def test_extra_fields(self):
        record = _record("Test with extras")
        record.operation = "horoscope_computed"
        record.duration_ms = 1.23
        record.location = "delhi"

        log_data = json.loads(JsonFormatter().format(record))

        assert log_data["operation"] == "horoscope_computed"
        assert log_data["duration_ms"] == 1.23
        assert log_data["location"] == "delhi"


class TestRequestContext:
    """Tests for request id generation."""

    def test_generated_request_id(self):
        request_id = set_request_context()
        try:
            assert request_id
            assert get_request_id() == request_id
        finally:
            clear_request_context()

        assert get_request_id() is None


class TestStructuredLogger:
    """Tests for structured business logging."""

    def setup_method(self):
        self.logger = StructuredLogger("test.business")

    def test_horoscope_computed_logging(self):
        with patch.object(self.logger.logger, 'info') as mock_info:
            self.logger.horoscope_computed(
                location="delhi",
                julian_day=2460311.0,
                body_count=12,
                skipped=[],
                duration_ms=4.5
            )

            mock_info.assert_called_once()
            call_args = mock_info.call_args
            assert "Horoscope computed successfully" in call_args[0][0]

            extra = call_args[1]["extra"]
            assert extra["operation"] == "horoscope_computed"
            assert extra["location"] == "delhi"
            assert extra["body_count"] == 12
            assert extra["duration_ms"] == 4.5
            assert extra["performance_category"] == "fast"

    def test_horoscope_error_logging(self):
        with patch.object(self.logger.logger, 'warning') as mock_warning:
            self.logger.horoscope_error(
                error_code="LOCATION.UNSUPPORTED",
                error_message="Unsupported location",
                location="atlantis",
                duration_ms=0.5
            )

            mock_warning.assert_called_once()
            extra = mock_warning.call_args[1]["extra"]
            assert extra["operation"] == "horoscope_error"
            assert extra["error_code"] == "LOCATION.UNSUPPORTED"
            assert extra["location"] == "atlantis"

    def test_body_skipped_logging(self):
        with patch.object(self.logger.logger, 'warning') as mock_warning:
            self.logger.body_skipped("Pluto", 2460311.0, "body 9: simulated failure")

            extra = mock_warning.call_args[1]["extra"]
            assert extra["operation"] == "body_skipped"
            assert extra["body"] == "Pluto"
            assert extra["swisseph_error"] == "body 9: simulated failure"

    def test_startup_error_level(self):
        with patch.object(self.logger.logger, 'log') as mock_log:
            self.logger.startup_event("city_table", "error")

            assert mock_log.call_args[0][0] == logging.ERROR


class TestTimedOperation:
    """Tests for timed operation context manager."""

    def test_successful_operation(self):
        logger = StructuredLogger("test.timed")

        with patch.object(logger.logger, 'info') as mock_info:
            with TimedOperation(logger, "load_city_table", path="cities.yaml"):
                time.sleep(0.01)

            extra = mock_info.call_args[1]["extra"]
            assert extra["operation"] == "load_city_table"
            assert extra["path"] == "cities.yaml"
            assert extra["duration_ms"] > 0

    def test_failed_operation(self):
        logger = StructuredLogger("test.timed")

        with patch.object(logger.logger, 'error') as mock_error:
            with pytest.raises(ValueError):
                with TimedOperation(logger, "failing_operation"):
                    raise ValueError("Test error")

            extra = mock_error.call_args[1]["extra"]
            assert extra["error_type"] == "ValueError"
            assert extra["error_message"] == "Test error"


class TestMetricsCollection:
    """Tests for Prometheus metrics collection."""

    def test_request_metrics(self):
        labels = ("POST", "/horoscope", "200")
        before = REQUEST_COUNT.labels(*labels)._value.get()

        metrics.record_request("POST", "/horoscope", 200, 0.015)

        assert REQUEST_COUNT.labels(*labels)._value.get() == before + 1

    def test_horoscope_metrics(self):
        before = HOROSCOPES_COMPUTED.labels("pune")._value.get()
        summary_before = metrics.get_metrics_summary()["horoscopes_computed"]

        metrics.record_horoscope("pune", 0.003)

        assert HOROSCOPES_COMPUTED.labels("pune")._value.get() == before + 1
        assert metrics.get_metrics_summary()["horoscopes_computed"] == summary_before + 1

    def test_error_metrics(self):
        labels = ("INPUT.MISSING_REQUIRED", "INPUT")
        before = ERRORS_TOTAL.labels(*labels)._value.get()

        metrics.record_error("INPUT.MISSING_REQUIRED")

        assert ERRORS_TOTAL.labels(*labels)._value.get() == before + 1

    def test_metrics_summary(self):
        summary = metrics.get_metrics_summary()

        assert isinstance(summary["uptime_seconds"], (int, float))
        assert {"horoscopes_computed", "bodies_skipped", "errors"} <= set(summary)

    def test_metrics_export(self):
        metrics.record_request("GET", "/healthz", 200, 0.001)
        content, content_type = get_metrics_content()

        assert isinstance(content, str)
        assert "text/plain" in content_type
        assert "horoscope_requests_total" in content
        assert "horoscope_app_start_time_seconds" in content


class TestEndpointNormalization:
    """Tests for metrics path grouping."""

    @pytest.mark.parametrize("path,expected", [
        ("/horoscope", "/horoscope"),
        ("/healthz", "/healthz"),
        ("/metrics", "/metrics"),
        ("/docs/oauth2-redirect", "/docs"),
        ("/openapi.json", "/openapi"),
        ("/wp-admin", "/other"),
        ("/", "/other"),
    ])
    def test_normalize(self, path, expected):
        middleware = RequestMetricsMiddleware(app=None)
        assert middleware._normalize_endpoint(path) == expected
