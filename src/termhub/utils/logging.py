"""
Logging and error handling framework for termhub.

This module provides:
- Structured logging configuration
- Custom exception classes
- Context-aware logging utilities
- Audit logging for lifecycle operations
"""

import functools
import json
import logging
import logging.config
import sys
import traceback
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any


class LogLevel(str, Enum):
    """Log level enumeration for type safety."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogContext(str, Enum):
    """Log context categories for structured logging."""

    FOCUS = "focus"
    REGISTRY = "registry"
    EVENTS = "events"
    TRANSPORT = "transport"
    CONFIG = "config"


class TermhubException(Exception):
    """Base exception class for all termhub errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)


class SessionError(TermhubException):
    """Errors related to session lifecycle management."""

    pass


class UnknownSessionError(SessionError):
    """Raised when an operation references a session the registry does not hold."""

    def __init__(self, session_id: str):
        super().__init__(
            f"Unknown session: {session_id}", context={"session_id": session_id}
        )
        self.session_id = session_id


class InvalidTransitionError(SessionError):
    """Raised when a lifecycle change violates the allowed state graph."""

    def __init__(self, session_id: str, current: str, requested: str):
        super().__init__(
            f"Invalid transition for session {session_id}: {current} -> {requested}",
            context={
                "session_id": session_id,
                "current": current,
                "requested": requested,
            },
        )
        self.session_id = session_id
        self.current = current
        self.requested = requested


class TransportError(TermhubException):
    """Errors surfaced by the connection establishment collaborator."""

    pass


class AuthError(TransportError):
    """Invalid or missing credential material."""

    pass


class ConfigError(TransportError):
    """Malformed connection profile."""

    pass


class NetworkError(TransportError):
    """Socket-level connection failure."""

    pass


class ConfigurationError(TermhubException):
    """Errors related to configuration and setup."""

    pass


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    # Attributes every LogRecord carries; anything else came in via extra=
    standard_fields = {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "context",
        "session_id",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "context"):
            log_data["context"] = record.context

        if getattr(record, "session_id", None):
            log_data["session_id"] = record.session_id

        for key, value in record.__dict__.items():
            if key not in self.standard_fields and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data, default=str)


class ContextualLogger:
    """Logger with context management for structured logging."""

    def __init__(self, name: str, context: LogContext):
        self.logger = logging.getLogger(name)
        self.context = context.value
        self.session_id: str | None = None

    def set_session_id(self, session_id: str) -> None:
        """Set the session ID for all subsequent log messages."""
        self.session_id = session_id

    def _log(
        self, level: int, message: str, extra_context: dict[str, Any] | None = None
    ) -> None:
        """Internal logging method with context injection."""
        extra: dict[str, Any] = {
            "context": self.context,
        }

        if self.session_id:
            extra["session_id"] = self.session_id

        if extra_context:
            extra.update(extra_context)

        self.logger.log(level, message, extra=extra)

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message with context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs) -> None:
        """Log info message with context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message with context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, exception: Exception | None = None, **kwargs) -> None:
        """Log error message with context and optional exception."""
        if exception:
            self.logger.error(
                message,
                exc_info=exception,
                extra={
                    "context": self.context,
                    "session_id": self.session_id,
                    **kwargs,
                },
            )
        else:
            self._log(logging.ERROR, message, kwargs)


def get_logger(name: str, context: LogContext) -> ContextualLogger:
    """Get a contextual logger instance."""
    return ContextualLogger(name, context)


def setup_logging(
    log_level: str | LogLevel = LogLevel.INFO,
    log_file: Path | None = None,
    enable_structured: bool = True,
    enable_console: bool = True,
) -> None:
    """
    Setup logging configuration.

    Args:
        log_level: Minimum log level to capture
        log_file: Optional file path for log output
        enable_structured: Use JSON structured logging format
        enable_console: Enable console output
    """
    if isinstance(log_level, LogLevel):
        log_level = log_level.value

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = []

    if enable_console:
        handlers.append(logging.StreamHandler(sys.stdout))

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        if enable_structured:
            handler.setFormatter(StructuredFormatter())
        else:
            handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
                )
            )

    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    # paramiko is chatty at INFO during key exchange
    logging.getLogger("paramiko").setLevel(logging.WARNING)


def audit_log(action: str, log_context: LogContext = LogContext.REGISTRY):
    """Decorator for audit logging of important operations."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger(f"{func.__module__}.audit", log_context)

            logger.info(
                f"Audit: {action} started",
                action=action,
                function=func.__name__,
            )

            try:
                result = func(*args, **kwargs)

                logger.info(
                    f"Audit: {action} completed successfully",
                    action=action,
                    function=func.__name__,
                    status="success",
                )

                return result

            except Exception as e:
                logger.error(
                    f"Audit: {action} failed",
                    action=action,
                    function=func.__name__,
                    status="error",
                    error=str(e),
                )

                raise

        return wrapper

    return decorator
