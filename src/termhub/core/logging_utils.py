"""
Logging utilities for core routing components.

This module provides specialized logging functions for:
- Focus transitions
- Session lifecycle
- Command activity
- Event delivery
"""

from collections.abc import Callable
from typing import Any

from ..utils.logging import LogContext, audit_log, get_logger

# Core component loggers
focus_logger = get_logger(__name__ + ".focus", LogContext.FOCUS)
registry_logger = get_logger(__name__ + ".registry", LogContext.REGISTRY)
events_logger = get_logger(__name__ + ".events", LogContext.EVENTS)


def log_focus_change(
    previous: str | None, current: str | None, context_id: str | None = None
) -> None:
    """Log a change of the globally focused session."""
    focus_logger.debug(
        "Focus changed",
        previous_focus=previous,
        current_focus=current,
        context_id=context_id,
    )


def log_session_lifecycle(
    session_id: str,
    action: str,
    status: str = "success",
    details: dict[str, Any] | None = None,
) -> None:
    """Log session lifecycle events."""
    logger = get_logger(__name__ + ".registry", LogContext.REGISTRY)
    logger.set_session_id(session_id)

    if status == "success":
        logger.info(f"Session {action} completed", action=action, details=details or {})
    elif status == "error":
        logger.error(f"Session {action} failed", action=action, details=details or {})
    else:
        logger.info(
            f"Session {action} in progress",
            action=action,
            status=status,
            details=details or {},
        )


def log_command_recorded(session_id: str, command_count: int) -> None:
    """Log command activity on a session."""
    logger = get_logger(__name__ + ".registry", LogContext.REGISTRY)
    logger.set_session_id(session_id)
    logger.debug("Command recorded", command_count=command_count)


def log_event_dropped(kind: str, reason: str) -> None:
    """Log an event that could not be delivered."""
    events_logger.debug("Event dropped", event_kind=kind, reason=reason)


def log_session_operation(operation_name: str) -> Callable[..., Any]:
    """Decorator for registry operations with automatic logging."""
    return audit_log(f"session_{operation_name}", LogContext.REGISTRY)
