"""
Unit tests for the logging framework.

Tests cover:
- Logging setup and configuration
- Structured formatter
- Contextual logger functionality
- Audit decorator
- Exception hierarchy
"""

import json
import logging

import pytest

from termhub.core.logging_utils import log_session_lifecycle
from termhub.utils.logging import (
    AuthError,
    ContextualLogger,
    InvalidTransitionError,
    LogContext,
    LogLevel,
    SessionError,
    StructuredFormatter,
    TermhubException,
    TransportError,
    UnknownSessionError,
    audit_log,
    get_logger,
    setup_logging,
)


class TestLoggingSetup:
    """Test logging setup and configuration."""

    def test_setup_logging_console_only(self, reset_logging):
        setup_logging(
            log_level=LogLevel.DEBUG, enable_console=True, enable_structured=False
        )

        root_logger = logging.getLogger()
        assert root_logger.level == logging.DEBUG
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0], logging.StreamHandler)

    def test_setup_logging_file_only(self, temp_log_file, reset_logging):
        setup_logging(
            log_level="warning",
            log_file=temp_log_file,
            enable_console=False,
            enable_structured=True,
        )

        root_logger = logging.getLogger()
        assert root_logger.level == logging.WARNING
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0], logging.FileHandler)
        assert isinstance(root_logger.handlers[0].formatter, StructuredFormatter)

    def test_paramiko_is_quieted(self, reset_logging):
        setup_logging(log_level=LogLevel.DEBUG)
        assert logging.getLogger("paramiko").level == logging.WARNING


class TestStructuredFormatter:
    """Test JSON formatting of records."""

    def test_format_includes_context_and_extras(self):
        record = logging.LogRecord(
            name="termhub.test",
            level=logging.INFO,
            pathname=__file__,
            lineno=10,
            msg="Focus changed",
            args=(),
            exc_info=None,
        )
        record.context = "focus"
        record.session_id = "abc"
        record.previous_focus = None

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "Focus changed"
        assert data["level"] == "INFO"
        assert data["context"] == "focus"
        assert data["session_id"] == "abc"
        assert data["previous_focus"] is None

    def test_format_exception(self):
        try:
            raise ValueError("bad")
        except ValueError:
            import sys

            exc_info = sys.exc_info()

        record = logging.LogRecord(
            "termhub.test", logging.ERROR, __file__, 1, "failed", (), exc_info
        )
        data = json.loads(StructuredFormatter().format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "bad"


class TestContextualLogger:
    """Test context injection."""

    def test_context_and_session_are_attached(self, caplog):
        logger = get_logger("termhub.test.ctx", LogContext.REGISTRY)
        assert isinstance(logger, ContextualLogger)
        logger.set_session_id("s-1")

        with caplog.at_level(logging.DEBUG, logger="termhub.test.ctx"):
            logger.info("Session created", action="create")

        record = caplog.records[-1]
        assert record.context == "registry"
        assert record.session_id == "s-1"
        assert record.action == "create"

    def test_error_with_exception(self, caplog):
        logger = get_logger("termhub.test.err", LogContext.EVENTS)

        with caplog.at_level(logging.ERROR, logger="termhub.test.err"):
            logger.error("Listener failed", exception=RuntimeError("boom"))

        assert caplog.records[-1].exc_info is not None

    def test_lifecycle_helper_levels(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="termhub.core.logging_utils"):
            log_session_lifecycle("s-2", "transition", status="error")

        assert caplog.records[-1].levelno == logging.ERROR
        assert caplog.records[-1].session_id == "s-2"


class TestAuditLog:
    """Test the audit decorator."""

    def test_success_passes_result_through(self, caplog):
        @audit_log("demo")
        def operation(value):
            return value * 2

        with caplog.at_level(logging.INFO):
            assert operation(21) == 42

        messages = [r.getMessage() for r in caplog.records]
        assert "Audit: demo started" in messages
        assert "Audit: demo completed successfully" in messages

    def test_failure_is_logged_and_reraised(self, caplog):
        @audit_log("demo")
        def operation():
            raise UnknownSessionError("s-3")

        with caplog.at_level(logging.INFO), pytest.raises(UnknownSessionError):
            operation()

        assert caplog.records[-1].status == "error"


class TestExceptions:
    """Test the exception hierarchy."""

    def test_session_errors(self):
        error = InvalidTransitionError("s", "running", "idle")

        assert isinstance(error, SessionError)
        assert isinstance(error, TermhubException)
        assert error.context == {
            "session_id": "s",
            "current": "running",
            "requested": "idle",
        }
        assert "running -> idle" in str(error)

    def test_transport_errors(self):
        error = AuthError("bad key", context={"profile_id": "p"})

        assert isinstance(error, TransportError)
        assert error.message == "bad key"
        assert error.timestamp is not None
