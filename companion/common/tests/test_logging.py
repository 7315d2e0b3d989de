"""Tests for structured logging configuration."""

import json
import logging
from io import StringIO

import pytest

from companion.common.logging import configure_logging, correlation_context, get_logger


def _records(output: StringIO) -> list[dict]:
    return [json.loads(line) for line in output.getvalue().splitlines() if line.strip()]


class TestConfigureLogging:
    """Test logging configuration functionality."""

    @pytest.mark.unit
    def test_json_output_includes_standard_fields(self, isolated_structlog):
        """Test JSON logs carry event, fields, service, level and timestamp."""
        output = StringIO()
        configure_logging("INFO", json_logs=True, service_name="companion", stream=output)

        get_logger("test_logger").info("text_monitor.caption_emitted", index=2)

        (record,) = _records(output)
        assert record["event"] == "text_monitor.caption_emitted"
        assert record["index"] == 2
        assert record["service"] == "companion"
        assert record["level"] == "info"
        assert "timestamp" in record

    @pytest.mark.unit
    def test_console_output_is_not_json(self, isolated_structlog):
        """Test console rendering."""
        output = StringIO()
        configure_logging("INFO", json_logs=False, service_name="companion", stream=output)

        get_logger("test_logger").info("console message", detail="value")

        text = output.getvalue()
        assert "console message" in text
        assert "value" in text
        with pytest.raises(json.JSONDecodeError):
            json.loads(text.strip())

    @pytest.mark.unit
    def test_level_filters_lower_levels(self, isolated_structlog):
        """Test messages below the configured level are dropped."""
        output = StringIO()
        configure_logging("WARNING", json_logs=True, stream=output)

        logger = get_logger("test_logger")
        logger.info("dropped")
        logger.warning("kept")

        assert [r["event"] for r in _records(output)] == ["kept"]

    @pytest.mark.unit
    def test_unknown_level_falls_back_to_info(self, isolated_structlog):
        output = StringIO()
        configure_logging("CHATTY", json_logs=True, stream=output)

        assert logging.getLogger().level == logging.INFO

    @pytest.mark.unit
    def test_httpx_request_logs_are_quieted(self, isolated_structlog):
        configure_logging("DEBUG", json_logs=True, stream=StringIO())

        assert logging.getLogger("httpx").level == logging.WARNING

    @pytest.mark.unit
    def test_bound_service_name_wins_over_default(self, isolated_structlog):
        """Test a logger bound to a service keeps its own service name."""
        output = StringIO()
        configure_logging("INFO", json_logs=True, service_name="companion", stream=output)

        get_logger("test_logger", service_name="controller").info("bound")

        assert _records(output)[0]["service"] == "controller"


class TestCorrelationContext:
    """Test correlation ID binding."""

    @pytest.mark.unit
    def test_correlation_id_is_bound_inside_block(self, isolated_structlog):
        output = StringIO()
        configure_logging("INFO", json_logs=True, stream=output)

        with correlation_context("dispatch-1") as logger:
            logger.info("inside")
        get_logger("test_logger").info("outside")

        inside, outside = _records(output)
        assert inside["correlation_id"] == "dispatch-1"
        assert "correlation_id" not in outside

    @pytest.mark.unit
    def test_nested_contexts_restore_previous_id(self, isolated_structlog):
        output = StringIO()
        configure_logging("INFO", json_logs=True, stream=output)

        with correlation_context("outer"):
            with correlation_context("inner") as logger:
                logger.info("nested")
            get_logger("test_logger").info("restored")

        nested, restored = _records(output)
        assert nested["correlation_id"] == "inner"
        assert restored["correlation_id"] == "outer"

    @pytest.mark.unit
    def test_get_logger_binds_explicit_correlation_id(self, isolated_structlog):
        output = StringIO()
        configure_logging("INFO", json_logs=True, stream=output)

        get_logger("test_logger", correlation_id="abc-123").info("bound")

        assert _records(output)[0]["correlation_id"] == "abc-123"
