"""Core session and focus routing functionality."""

from .enums import FocusEventKind, SessionState, SessionType
from .events import EventChannel, FocusEvent, Subscription
from .focus import FocusRouter, FocusSnapshot
from .registry import RegistryStats, SessionRegistry
from .session import SessionConfig, SessionInstance, SessionSnapshot, SessionStats

__all__ = [
    "EventChannel",
    "FocusEvent",
    "FocusEventKind",
    "FocusRouter",
    "FocusSnapshot",
    "RegistryStats",
    "SessionConfig",
    "SessionInstance",
    "SessionRegistry",
    "SessionSnapshot",
    "SessionState",
    "SessionStats",
    "SessionType",
    "Subscription",
]
