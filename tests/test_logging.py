"""Tests for Structured Logging.

Tests cover:
- configure_logging with JSON and console formats
- bind_model and unbind_model
- ModelLogger events
- ExpressionLogger events
"""

import logging

import pytest
from structlog.testing import capture_logs

from puppet_expressions.observability.logging import (
    ExpressionLogger,
    ModelLogger,
    _level_number,
    bind_model,
    configure_logging,
    get_logger,
    init_logging,
    unbind_model,
)


@pytest.fixture(autouse=True)
def debug_logging():
    """Let every level through so captured logs are complete."""
    configure_logging(level="DEBUG", json_format=False)


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_configure_json_format(self):
        configure_logging(level="INFO", json_format=True)

    def test_configure_console_format(self):
        configure_logging(level="DEBUG", json_format=False)

    def test_init_logging(self):
        init_logging(json_format=False, level="WARN")

    @pytest.mark.parametrize("level,expected", [
        ("DEBUG", logging.DEBUG),
        ("info", logging.INFO),
        ("WARN", logging.WARNING),
        ("ERROR", logging.ERROR),
    ])
    def test_level_number(self, level, expected):
        assert _level_number(level) == expected


class TestContextBinding:
    """Tests for bind_model and unbind_model."""

    def test_bind_unbind_cycle(self):
        bind_model("hiyori")
        unbind_model()
        bind_model("mark")
        unbind_model()

    def test_get_logger_has_bind(self):
        assert hasattr(get_logger("test"), "bind")


class TestModelLogger:
    """Tests for ModelLogger class."""

    def test_model_loaded(self):
        with capture_logs() as logs:
            ModelLogger("hiyori").model_loaded("hiyori", 7, 4)

        assert logs[0]["event"] == "model_loaded"
        assert logs[0]["event_type"] == "model.loaded"
        assert logs[0]["parameter_count"] == 7
        assert logs[0]["log_level"] == "info"

    def test_descriptor_rejected(self):
        with capture_logs() as logs:
            ModelLogger().descriptor_rejected("missing Parameters array", "/m/a.cdi3.json")

        assert logs[0]["event"] == "descriptor_rejected"
        assert logs[0]["log_level"] == "error"
        assert logs[0]["path"] == "/m/a.cdi3.json"

    def test_descriptor_found(self):
        with capture_logs() as logs:
            ModelLogger().descriptor_found("/m/hiyori.model3.json", None)

        assert logs[0]["found"] is False


class TestExpressionLogger:
    """Tests for ExpressionLogger class."""

    def test_expression_applied(self):
        with capture_logs() as logs:
            ExpressionLogger("hiyori").expression_applied("Smile", 0.8, 300, skipped=1)

        entry = logs[0]
        assert entry["event"] == "expression_applied"
        assert entry["expression"] == "Smile"
        assert entry["skipped_parameters"] == 1
        assert entry["model_name"] == "hiyori"

    def test_rebind(self):
        with capture_logs() as logs:
            logger = ExpressionLogger("hiyori")
            logger.rebind("mark")
            logger.expression_reset()

        assert logs[0]["model_name"] == "mark"

    def test_transition_events(self):
        with capture_logs() as logs:
            logger = ExpressionLogger()
            logger.transition_started(None, "Smile", 300)
            logger.transition_retargeted("Smile", "Sad", 0.5)
            logger.transition_completed("Sad", 300.0)

        assert [e["event"] for e in logs] == [
            "transition_started",
            "transition_retargeted",
            "transition_completed",
        ]

    def test_warnings(self):
        with capture_logs() as logs:
            logger = ExpressionLogger()
            logger.parameter_skipped("ParamFoo", "unknown_parameter")
            logger.validation_failed("Smile", ["Expression name is required"])

        assert all(e["log_level"] == "warning" for e in logs)
        assert logs[1]["warnings"] == []

    def test_tick_failed_context(self):
        with capture_logs() as logs:
            ExpressionLogger().tick_failed("boom", component="runtime")

        assert logs[0]["component"] == "runtime"
        assert logs[0]["log_level"] == "error"
