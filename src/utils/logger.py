"""Logging infrastructure for the recipe conversation assistant.

Provides centralized logging with configurable format (text/JSON) and level.
Configured via environment variables:
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- LOG_TYPE: text, json (default: text)

Per-turn context (session_id, user_id, request_id) is attached with
turn_logger(), which wraps the module logger in a LoggerAdapter.
"""

import json
import logging
import os
import sys
import uuid
from typing import Any, Optional

# Record attributes copied into JSON output when present
CONTEXT_FIELDS = ("request_id", "session_id", "user_id")


class JSONFormatter(logging.Formatter):
    """Formatter that outputs structured JSON."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format.

        Returns:
            JSON string with timestamp, level, logger name, message, turn context and optional traceback.
        """
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        return json.dumps(log_data)


class RichTextFormatter(logging.Formatter):
    """Formatter that outputs colored text with emoji icons."""

    COLORS = {
        "DEBUG": "\033[36m",      # Cyan
        "INFO": "\033[32m",       # Green
        "WARNING": "\033[33m",    # Yellow
        "ERROR": "\033[31m",      # Red
        "RESET": "\033[0m",
    }

    ICONS = {
        "DEBUG": "🔍",
        "INFO": "🍳",
        "WARNING": "⚠️",
        "ERROR": "❌",
    }

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        color = self.COLORS.get(level, self.COLORS["RESET"])
        icon = self.ICONS.get(level, "")
        reset = self.COLORS["RESET"]

        timestamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")

        # Short session tag
        session = getattr(record, "session_id", None)
        tag = f"[{str(session)[:8]}] " if session else ""

        message = f"{color}{icon} {timestamp} {level:<8} {record.name:<20} {tag}{record.getMessage()}{reset}"

        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return message


def get_logger(name: str) -> logging.Logger:
    """Create and configure logger instance.

    Args:
        name: Logger name, typically module name.

    Returns:
        Configured logger instance.
    """
    logger_instance = logging.getLogger(name)

    # Return existing logger if already configured
    if logger_instance.handlers:
        return logger_instance

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_type = os.getenv("LOG_TYPE", "text").lower()

    log_level = getattr(logging, log_level_str, logging.INFO)
    logger_instance.setLevel(log_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)

    if log_type == "json":
        formatter = JSONFormatter()
    else:
        formatter = RichTextFormatter()

    handler.setFormatter(formatter)
    logger_instance.addHandler(handler)

    return logger_instance


def turn_logger(
    session_id: str,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> logging.LoggerAdapter:
    """Return an adapter over the module logger that tags every record with turn context.

    Args:
        session_id: Conversation session identifier.
        user_id: Optional user identifier.
        request_id: Optional request identifier. A short random id is generated when omitted.

    Returns:
        LoggerAdapter whose records carry session_id, user_id and request_id attributes.
    """
    extra = {
        "session_id": session_id,
        "request_id": request_id or uuid.uuid4().hex[:12],
    }
    if user_id:
        extra["user_id"] = user_id
    return logging.LoggerAdapter(logger, extra)


# Create module-level logger instance
logger = get_logger("recipe_assistant")

# Suppress verbose informational logs from external libraries
logging.getLogger("google.genai").setLevel(logging.WARNING)
logging.getLogger("PIL").setLevel(logging.WARNING)
