"""Logging infrastructure for Fridge Chef.

Provides centralized logging with configurable format (text/JSON) and level.
Configured via environment variables:
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- LOG_TYPE: text, json (default: text)

Analysis logs carry correlation fields passed through `extra`:
- request_id: id of the analysis request that produced the record
- failure_kind: FailureKind value of a classified failure
Use analysis_context() to build that dict.
"""

import json
import logging
import os
import sys
from typing import Any, Optional, TextIO


# Record attributes promoted into structured output when present
CONTEXT_FIELDS = ("request_id", "failure_kind")


def analysis_context(request_id: str, failure_kind: Optional[Any] = None) -> dict[str, str]:
    """Build the `extra` dict for a log call tied to one analysis request."""
    context = {"request_id": request_id}
    if failure_kind is not None:
        context["failure_kind"] = str(getattr(failure_kind, "value", failure_kind))
    return context


def _record_context(record: logging.LogRecord) -> dict[str, str]:
    return {field: str(getattr(record, field)) for field in CONTEXT_FIELDS if hasattr(record, field)}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format.

        Returns:
            JSON string with timestamp, level, logger name, message, correlation
            fields and optional traceback.
        """
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(_record_context(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


class RichTextFormatter(logging.Formatter):
    """Colored single-line output with an emoji per level, for the terminal."""

    COLORS = {
        "DEBUG": "\033[36m",      # Cyan
        "INFO": "\033[32m",       # Green
        "WARNING": "\033[33m",    # Yellow
        "ERROR": "\033[31m",      # Red
        "RESET": "\033[0m",
    }

    ICONS = {
        "DEBUG": "🔍",
        "INFO": "ℹ️",
        "WARNING": "⚠️",
        "ERROR": "❌",
    }

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        color = self.COLORS.get(level, self.COLORS["RESET"])
        icon = self.ICONS.get(level, "")
        reset = self.COLORS["RESET"]

        timestamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        context = " ".join(f"{k}={v}" for k, v in _record_context(record).items())
        suffix = f" [{context}]" if context else ""

        message = f"{color}{icon} {timestamp} {level:<8} {record.name:<20} {record.getMessage()}{suffix}{reset}"

        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return message


def get_logger(name: str, stream: Optional[TextIO] = None) -> logging.Logger:
    """Create and configure logger instance.

    Args:
        name: Logger name, typically module name.
        stream: Output stream for the handler (default: stdout).

    Returns:
        Configured logger instance. A logger that already has handlers is
        returned unchanged.
    """
    logger_instance = logging.getLogger(name)
    if logger_instance.handlers:
        return logger_instance

    log_level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    log_type = os.getenv("LOG_TYPE", "text").lower()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(JSONFormatter() if log_type == "json" else RichTextFormatter())

    logger_instance.setLevel(log_level)
    logger_instance.addHandler(handler)
    # Records stop here so a host app's root handler does not print them twice
    logger_instance.propagate = False

    return logger_instance


logger = get_logger("fridge_chef")

# Suppress verbose request logging from the Gemini SDK and its HTTP transport
logging.getLogger("google.genai").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
