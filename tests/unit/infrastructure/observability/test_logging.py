"""Tests for structured logging."""

import json
import logging
import sys

from listenstats.infrastructure.observability.logging import (
    CompactExceptionFormatter,
    CorrelationIdFilter,
    CustomJsonFormatter,
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)


class TestCorrelationId:
    """Test correlation ID functionality."""

    def test_set_and_get_correlation_id(self):
        result = set_correlation_id("test-123-abc")
        assert result == "test-123-abc"
        assert get_correlation_id() == "test-123-abc"

    def test_set_correlation_id_generates_uuid_when_none(self):
        result = set_correlation_id(None)
        assert len(result) == 36
        assert get_correlation_id() == result

    def test_filter_attaches_id_to_record(self):
        set_correlation_id("req-42")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)

        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "req-42"


class TestLoggingConfiguration:
    """Test logging configuration."""

    def test_configure_logging_sets_level(self):
        configure_logging(log_level="DEBUG", json_format=False, app_name="test-app")
        assert logging.getLogger().level == logging.DEBUG

        configure_logging(log_level="INFO", json_format=False, app_name="test-app")
        assert logging.getLogger().level == logging.INFO

    def test_configure_logging_replaces_handlers(self):
        configure_logging(log_level="INFO", json_format=False)
        configure_logging(log_level="INFO", json_format=True)

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, CustomJsonFormatter)

    def test_text_format_uses_compact_formatter(self):
        configure_logging(log_level="INFO", json_format=False)
        assert isinstance(
            logging.getLogger().handlers[0].formatter, CompactExceptionFormatter
        )

    def test_noisy_libraries_are_quieted(self):
        configure_logging(log_level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("uvicorn.access").level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        configure_logging(log_level="LOUD")
        assert logging.getLogger().level == logging.INFO


class TestFormatters:
    def test_json_formatter_includes_correlation_id(self):
        formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        record = logging.LogRecord(
            "listenstats.test", logging.WARNING, __file__, 10, "hello", None, None
        )
        record.correlation_id = "cid-1"

        payload = json.loads(formatter.format(record))

        assert payload["message"] == "hello"
        assert payload["level"] == "WARNING"
        assert payload["logger"] == "listenstats.test"
        assert payload["correlation_id"] == "cid-1"

    def test_compact_formatter_shows_root_cause_first(self):
        formatter = CompactExceptionFormatter()
        try:
            try:
                raise KeyError("inner")
            except KeyError as e:
                raise RuntimeError("outer") from e
        except RuntimeError:
            text = formatter.formatException(sys.exc_info())

        lines = [line for line in text.splitlines() if line.startswith("╰─►")]
        assert lines[0].startswith("╰─► KeyError")
        assert lines[1].startswith("╰─► RuntimeError: outer")
