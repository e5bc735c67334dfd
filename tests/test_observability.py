"""Tests for observability module."""

import json
import logging
import time

import pytest

from workers_kv.observability import (
    LogContext,
    LogEntry,
    LogLevel,
    RequestContext,
    StructuredFormatter,
    StructuredLogger,
    Timer,
    configure_logging,
    get_logger,
    request_id_var,
)


def make_record(msg: str = "Test message", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogContext:
    """Tests for LogContext."""

    def test_current_returns_empty_when_no_context(self) -> None:
        """Current returns empty context when no vars set."""
        context = LogContext.current()
        assert context.request_id is None
        assert context.to_dict() == {}

    def test_to_dict_excludes_none_values(self) -> None:
        """to_dict excludes None values."""
        assert LogContext(request_id="req-123").to_dict() == {"request_id": "req-123"}

    def test_to_dict_includes_extra(self) -> None:
        """to_dict includes extra fields."""
        context = LogContext(request_id="req-123", extra={"custom": "value"})
        result = context.to_dict()

        assert result["request_id"] == "req-123"
        assert result["custom"] == "value"


class TestLogEntry:
    """Tests for LogEntry."""

    def test_to_json_basic(self) -> None:
        """to_json produces valid JSON without optional members."""
        entry = LogEntry(
            level=LogLevel.INFO,
            message="Test message",
            timestamp="2024-01-01T00:00:00Z",
            logger="test",
        )
        result = json.loads(entry.to_json())

        assert result == {
            "level": "INFO",
            "message": "Test message",
            "timestamp": "2024-01-01T00:00:00Z",
            "logger": "test",
        }

    def test_to_json_with_error_and_duration(self) -> None:
        """to_json includes error info and duration."""
        entry = LogEntry(
            level=LogLevel.ERROR,
            message="Failed",
            timestamp="2024-01-01T00:00:00Z",
            logger="test",
            error={"type": "TransportError", "message": "timed out"},
            duration_ms=12.5,
        )
        result = json.loads(entry.to_json())

        assert result["error"]["type"] == "TransportError"
        assert result["duration_ms"] == 12.5


class TestStructuredFormatter:
    """Tests for StructuredFormatter."""

    def test_formats_as_json(self) -> None:
        """Formats log record as JSON."""
        parsed = json.loads(StructuredFormatter().format(make_record()))

        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Test message"
        assert parsed["logger"] == "test"
        assert "timestamp" in parsed

    def test_merges_record_context_with_context_vars(self) -> None:
        """Record context is merged over the ambient request context."""
        record = make_record(context={"status": 500}, duration_ms=3.0)

        with RequestContext(request_id="req-1"):
            parsed = json.loads(StructuredFormatter().format(record))

        assert parsed["context"] == {
            "request_id": "req-1",
            "status": 500,
        }
        assert parsed["duration_ms"] == 3.0


class TestStructuredLogger:
    """Tests for StructuredLogger."""

    def test_warning_carries_context(self, caplog: pytest.LogCaptureFixture) -> None:
        """Context dict is attached to the record."""
        logger = StructuredLogger("test.warning")

        with caplog.at_level(logging.WARNING, logger="test.warning"):
            logger.warning("Bad status", context={"status": 503})

        assert len(caplog.records) == 1
        assert caplog.records[0].levelname == "WARNING"
        assert caplog.records[0].context == {"status": 503}

    def test_error_with_exception(self, caplog: pytest.LogCaptureFixture) -> None:
        """Error method attaches exception info."""
        logger = StructuredLogger("test.error")

        with caplog.at_level(logging.ERROR, logger="test.error"):
            logger.error("Failed", error=ValueError("boom"))

        assert caplog.records[0].exc_info[0] is ValueError


class TestRequestContext:
    """Tests for RequestContext."""

    def test_sets_and_resets_context_vars(self) -> None:
        """Sets context variables within context and resets them after."""
        with RequestContext(request_id="req-123"):
            assert request_id_var.get() == "req-123"

        assert request_id_var.get() is None

    def test_generates_request_id_if_not_provided(self) -> None:
        """Generates request ID if not provided."""
        with RequestContext() as ctx:
            assert ctx.request_id
            assert request_id_var.get() == ctx.request_id

    @pytest.mark.asyncio
    async def test_works_as_async_context_manager(self) -> None:
        """Works as async context manager."""
        async with RequestContext(request_id="async-req") as ctx:
            assert ctx.request_id == "async-req"
            assert request_id_var.get() == "async-req"


class TestTimer:
    """Tests for Timer."""

    def test_measures_duration(self) -> None:
        """Measures elapsed time."""
        with Timer() as timer:
            time.sleep(0.05)

        assert timer.duration_ms >= 40  # Allow some variance


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.fixture(autouse=True)
    def restore_logger(self):
        logger = logging.getLogger("workers_kv")
        level, handlers = logger.level, list(logger.handlers)
        yield
        logger.setLevel(level)
        logger.handlers[:] = handlers

    def test_configures_package_logger(self) -> None:
        """Configures the package logger with one JSON handler."""
        configure_logging(level=LogLevel.DEBUG, format="json")

        logger = logging.getLogger("workers_kv")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, StructuredFormatter)

    def test_text_format(self) -> None:
        """Text format uses a plain formatter."""
        configure_logging(format="text")

        handler = logging.getLogger("workers_kv").handlers[0]
        assert not isinstance(handler.formatter, StructuredFormatter)

    def test_get_logger_returns_structured_logger(self) -> None:
        """get_logger returns StructuredLogger."""
        assert isinstance(get_logger("test.module"), StructuredLogger)
