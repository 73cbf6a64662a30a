"""
IFTA Engine - Structured JSON Logging

Provides structured logging for production environments.
Outputs JSON format for log aggregation (Datadog, CloudWatch, etc.)
"""

import logging
import json
import sys
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import traceback


# LogRecord attributes that are not user supplied extras
_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName"
}


class JSONFormatter(logging.Formatter):
    """
    Custom formatter that outputs JSON logs.
    Compatible with log aggregation services.
    """

    def __init__(self, service_name: str = "iftaway-engine"):
        super().__init__()
        self.service_name = service_name
        self.environment = os.environ.get("ENVIRONMENT", "development")
        self.hostname = os.environ.get("HOSTNAME", "unknown")

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "environment": self.environment,
            "hostname": self.hostname,
        }

        log_data["location"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info) if record.exc_info[0] else None,
            }

        extra_fields = {
            key: value for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str)


class ReportContextFilter(logging.Filter):
    """
    Adds report context to log records.
    """

    def __init__(self):
        super().__init__()
        self._report_id: Optional[str] = None
        self._user_id: Optional[str] = None

    def set_report_context(
        self,
        report_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ):
        self._report_id = report_id
        self._user_id = user_id

    def clear_report_context(self):
        self._report_id = None
        self._user_id = None

    def filter(self, record: logging.LogRecord) -> bool:
        record.report_id = self._report_id
        record.user_id = self._user_id
        return True


# Global report context filter instance
_report_context_filter: Optional[ReportContextFilter] = None


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    service_name: str = "iftaway-engine"
) -> logging.Logger:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON format (True for production)
        service_name: Service name for log aggregation

    Returns:
        Configured root logger
    """
    global _report_context_filter

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper(), logging.INFO))

    if json_format:
        handler.setFormatter(JSONFormatter(service_name=service_name))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))

    _report_context_filter = ReportContextFilter()
    handler.addFilter(_report_context_filter)

    root_logger.addHandler(handler)

    return root_logger


def setup_logging_from_settings(settings) -> logging.Logger:
    """Configure logging from a config.Settings instance."""
    return setup_logging(
        level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
        json_format=settings.LOG_JSON,
        service_name=settings.SERVICE_NAME,
    )


def set_report_context(
    report_id: Optional[str] = None,
    user_id: Optional[str] = None,
):
    """Set report context for logging."""
    if _report_context_filter:
        _report_context_filter.set_report_context(report_id, user_id)


def clear_report_context():
    """Clear report context."""
    if _report_context_filter:
        _report_context_filter.clear_report_context()
