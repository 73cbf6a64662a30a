"""
Unit Tests for Configuration, Logging and Error Tracking

Run with: pytest tests/test_config_logging.py -v
"""

import json
import logging
import sys

import pytest

from config import Settings, get_settings, validate_environment
from logging_config import (
    JSONFormatter,
    ReportContextFilter,
    clear_report_context,
    set_report_context,
    setup_logging,
    setup_logging_from_settings,
)
from sentry_integration import (
    capture_exception,
    filter_sensitive_data,
    init_sentry,
    init_sentry_from_settings,
    redact_dict,
)


def make_record(message="Report built", level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="ifta.report_builder",
        level=level,
        pathname="report_builder.py",
        lineno=42,
        msg=message,
        args=(),
        exc_info=exc_info,
    )


class TestSettings:
    """Test engine tunables."""

    def test_defaults(self):
        settings = Settings()

        assert settings.MIN_REPORT_ENTRIES == 2
        assert settings.INSIGHT_LIST_SIZE == 3
        assert settings.ANOMALY_STDDEV_MULTIPLIER == 2.0
        assert (settings.OFF_HOURS_START, settings.OFF_HOURS_END) == (0, 4)
        assert (settings.FORECAST_TRAILING_MONTHS, settings.FORECAST_HORIZON_MONTHS) == (6, 3)
        assert settings.validate_engine_config() == []

    def test_invalid_values_reported(self):
        settings = Settings(
            MIN_REPORT_ENTRIES=1,
            INSIGHT_LIST_SIZE=0,
            OFF_HOURS_START=5,
            OFF_HOURS_END=3,
        )

        errors = settings.validate_engine_config()

        assert len(errors) == 3
        assert any("MIN_REPORT_ENTRIES" in e for e in errors)
        assert any("before OFF_HOURS_END" in e for e in errors)

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("INSIGHT_LIST_SIZE", "5")
        assert Settings().INSIGHT_LIST_SIZE == 5

    def test_get_settings_rejects_invalid(self, monkeypatch):
        monkeypatch.setenv("FORECAST_HORIZON_MONTHS", "0")
        get_settings.cache_clear()
        try:
            with pytest.raises(ValueError):
                get_settings()
        finally:
            get_settings.cache_clear()

    def test_environment_flags(self):
        assert Settings(ENVIRONMENT="Production").is_production
        assert Settings(ENVIRONMENT="development").debug_enabled
        assert not Settings(ENVIRONMENT="staging").debug_enabled

    def test_validate_environment(self):
        status = validate_environment(Settings(SENTRY_DSN="", OFF_HOURS_END=30))

        assert status["valid"] is False
        assert status["variables"]["SENTRY_DSN"] == "Not set"
        assert "Error tracking disabled" in status["warnings"]
        assert status["errors"]


class TestJSONLogging:
    """Test structured log output."""

    def test_json_fields(self):
        formatter = JSONFormatter(service_name="iftaway-engine")

        data = json.loads(formatter.format(make_record()))

        assert data["message"] == "Report built"
        assert data["level"] == "INFO"
        assert data["logger"] == "ifta.report_builder"
        assert data["service"] == "iftaway-engine"
        assert data["location"]["line"] == 42
        assert "exception" not in data

    def test_extra_fields_included(self):
        record = make_record()
        record.report_id = "q1-2024"

        data = json.loads(JSONFormatter().format(record))

        assert data["extra"] == {"report_id": "q1-2024"}

    def test_exception_info(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = make_record("failed", logging.ERROR, exc_info=sys.exc_info())

        data = json.loads(JSONFormatter().format(record))

        assert data["exception"]["type"] == "RuntimeError"
        assert data["exception"]["message"] == "boom"

    def test_report_context_filter(self):
        context = ReportContextFilter()
        context.set_report_context(report_id="q1-2024", user_id="fleet-7")
        record = make_record()

        assert context.filter(record) is True
        assert (record.report_id, record.user_id) == ("q1-2024", "fleet-7")

        context.clear_report_context()
        context.filter(record)
        assert record.report_id is None


class TestSetupLogging:
    """Test root logger configuration."""

    @pytest.fixture
    def root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield root
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        for handler in handlers:
            root.addHandler(handler)
        root.setLevel(level)

    def test_single_json_handler(self, root_logger):
        setup_logging(level="debug", json_format=True)

        assert root_logger.level == logging.DEBUG
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0].formatter, JSONFormatter)

    def test_module_level_context(self, root_logger):
        setup_logging(json_format=False)
        handler = root_logger.handlers[0]
        record = make_record()

        set_report_context(report_id="q2-2024")
        handler.filter(record)
        assert record.report_id == "q2-2024"

        clear_report_context()
        handler.filter(record)
        assert record.report_id is None

    def test_from_settings(self, root_logger):
        setup_logging_from_settings(Settings(LOG_LEVEL="WARNING", LOG_JSON=False))

        assert root_logger.level == logging.WARNING
        assert not isinstance(root_logger.handlers[0].formatter, JSONFormatter)

    def test_debug_setting_forces_debug_level(self, root_logger):
        setup_logging_from_settings(Settings(DEBUG=True, LOG_LEVEL="ERROR"))
        assert root_logger.level == logging.DEBUG


class TestSentryIntegration:
    """Test error tracking helpers without a DSN."""

    def test_init_without_dsn(self, monkeypatch):
        monkeypatch.delenv("SENTRY_DSN", raising=False)
        assert init_sentry(dsn="") is False

    def test_init_from_settings_without_dsn(self, monkeypatch):
        monkeypatch.delenv("SENTRY_DSN", raising=False)
        assert init_sentry_from_settings(Settings(SENTRY_DSN="")) is False

    def test_capture_without_init(self):
        assert capture_exception(RuntimeError("boom"), entry_count=3) is None

    def test_redact_dict(self):
        data = {
            "entry_count": 3,
            "receipt_url": "https://receipts.example.com/1.jpg",
            "nested": {"api_key": "abc", "window_start": "2024-01-01"},
            "items": [{"token": "t"}, 5],
        }

        redacted = redact_dict(data)

        assert redacted["entry_count"] == 3
        assert redacted["receipt_url"] == "[REDACTED]"
        assert redacted["nested"] == {"api_key": "[REDACTED]", "window_start": "2024-01-01"}
        assert redacted["items"] == [{"token": "[REDACTED]"}, 5]

    def test_filter_sensitive_data(self):
        event = {
            "extra": {"receipt_url": "x", "entry_count": 2},
            "contexts": {"auth": {"authorization": "Bearer abc"}},
            "message": "IFTA report calculation error",
        }

        filtered = filter_sensitive_data(event, {})

        assert filtered["extra"] == {"receipt_url": "[REDACTED]", "entry_count": 2}
        assert filtered["contexts"]["auth"]["authorization"] == "[REDACTED]"
        assert filtered["message"] == "IFTA report calculation error"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
