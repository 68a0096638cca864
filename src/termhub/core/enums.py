"""Shared enums for termhub."""

from enum import Enum


class SessionType(Enum):
    """Kind of worker backing a terminal session."""

    LOCAL = "local"
    REMOTE_SHELL = "remote_shell"
    SOCKET = "socket"


class SessionState(Enum):
    """Lifecycle state of a terminal session."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    ERROR = "error"


class FocusEventKind(Enum):
    """Kinds of transitions published by the focus router."""

    FOCUS_CHANGED = "focus_changed"
    BLOCK_DEACTIVATED = "block_deactivated"


# Forward edges of the lifecycle graph; any state may additionally move to ERROR
ALLOWED_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.STARTING}),
    SessionState.STARTING: frozenset({SessionState.RUNNING}),
    SessionState.RUNNING: frozenset({SessionState.STOPPING}),
    SessionState.STOPPING: frozenset({SessionState.STOPPED}),
    SessionState.STOPPED: frozenset(),
    SessionState.ERROR: frozenset(),
}

TERMINAL_STATES = frozenset({SessionState.STOPPED, SessionState.ERROR})
