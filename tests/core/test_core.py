"""Tests for errors, settings and logging."""

import json
import logging

import pytest

from numtower.core.config import Settings, get_settings
from numtower.core.errors import (
    CoercionError,
    ConvergenceError,
    GosperStallError,
    NumericArithmeticError,
    NumericError,
    NumericValueError,
    ParseError,
)
from numtower.core.logging import StructuredFormatter, get_context_logger, get_logger, setup_logging
from numtower.numerics.context import default_context
from numtower.numerics.value import Rung


@pytest.fixture
def fresh_settings():
    """Drop the cached settings before and after a test that changes the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestErrors:
    """Test the exception hierarchy."""

    def test_coercion_error(self):
        error = CoercionError("No coercion path", "Real", Rung.INTEGER)
        assert isinstance(error, NumericError)
        assert error.source == "Real"
        assert error.target == Rung.INTEGER
        assert "Real ->" in error.message
        assert error.details["source"] == "Real"

    def test_arithmetic_error_is_builtin(self):
        """Test library errors can be caught as their builtin counterparts."""
        with pytest.raises(ArithmeticError):
            raise NumericArithmeticError("Division by zero")

    def test_parse_error(self):
        error = ParseError("Integer", "12a")
        assert isinstance(error, NumericValueError)
        assert isinstance(error, ValueError)
        assert "'12a'" in error.message
        assert error.details == {"kind": "Integer", "text": "12a"}

    def test_gosper_stall(self):
        error = GosperStallError("No output term", 50)
        assert isinstance(error, ConvergenceError)
        assert isinstance(error, NumericArithmeticError)
        assert error.iterations == 50
        assert error.details == {"iterations": 50}

    def test_default_details(self):
        assert NumericError("boom").details == {}


class TestSettings:
    """Test environment-driven configuration."""

    def test_defaults(self):
        settings = Settings()
        assert settings.DEFAULT_PRECISION == 34
        assert settings.GOSPER_INGEST_LIMIT == 2000
        assert settings.LOG_FORMAT == "text"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("NUMTOWER_DEFAULT_PRECISION", "20")
        monkeypatch.setenv("NUMTOWER_EXTENDED_COMPLEX", "true")
        settings = Settings()
        assert settings.DEFAULT_PRECISION == 20
        assert settings.EXTENDED_COMPLEX is True

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_default_context_follows_settings(self, monkeypatch, fresh_settings):
        monkeypatch.setenv("NUMTOWER_DEFAULT_PRECISION", "12")
        assert default_context().precision == 12


class TestLogging:
    """Test logger configuration and structured output."""

    def test_get_logger(self):
        assert get_logger("numtower.numerics").name == "numtower.numerics"

    def test_structured_formatter(self):
        record = logging.LogRecord("numtower.test", logging.WARNING, __file__, 10, "hello %s", ("world",), None)
        record.extra_data = {"ingested": 5}
        data = json.loads(StructuredFormatter().format(record))
        assert data["message"] == "hello world"
        assert data["level"] == "WARNING"
        assert data["ingested"] == 5

    def test_context_logger(self, caplog):
        """Test permanent context is merged with per-call data."""
        adapter = get_context_logger("numtower.test", operation="add")
        with caplog.at_level(logging.WARNING, logger="numtower.test"):
            adapter.warning("stalled", extra_data={"ingested": 3})
        record = caplog.records[-1]
        assert record.extra_data == {"operation": "add", "ingested": 3}

    def test_setup_logging(self, monkeypatch, fresh_settings):
        monkeypatch.setenv("NUMTOWER_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("NUMTOWER_LOG_FORMAT", "json")
        root = logging.getLogger("numtower")
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            setup_logging()
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
