"""Terminal session instances and their read-only snapshots."""

import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Union

from .enums import SessionState, SessionType

if TYPE_CHECKING:
    from ..transport.profile import RemoteProfile

StatValue = Union[str, int, float, bool]

DEFAULT_RECENT_COMMAND_LIMIT = 50

# Auto-focus flags when the caller does not set them explicitly
DEFAULT_FOCUS_FLAGS: dict[SessionType, tuple[bool, bool]] = {
    SessionType.LOCAL: (True, False),
    SessionType.REMOTE_SHELL: (True, True),
    SessionType.SOCKET: (False, True),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SessionStats:
    """Per-session statistics."""

    focus_count: int = 0
    last_focused_at: datetime | None = None
    extra: dict[str, StatValue] = field(default_factory=dict)

    def update(self, values: dict[str, Any]) -> None:
        """Merge free-form values into ``extra``.

        Raises:
            TypeError: If a value is not a str, int, float or bool
        """
        for key, value in values.items():
            if not isinstance(value, (str, int, float, bool)):
                raise TypeError(
                    f"Unsupported stat value for {key!r}: {type(value).__name__}"
                )
        self.extra.update(values)

    def copy(self) -> "SessionStats":
        return SessionStats(
            focus_count=self.focus_count,
            last_focused_at=self.last_focused_at,
            extra=dict(self.extra),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "focusCount": self.focus_count,
            "lastFocusedAt": (
                self.last_focused_at.isoformat() if self.last_focused_at else None
            ),
            **self.extra,
        }


@dataclass
class SessionConfig:
    """Options for creating a session.

    ``requires_input`` and ``is_persistent`` drive the auto-focus policy
    once the session is running; left as None they default by session type.
    """

    requires_input: bool | None = None
    is_persistent: bool | None = None
    context_id: str | None = None
    working_directory: str | None = None
    profile: "RemoteProfile | None" = None
    websocket_url: str | None = None
    command: str | None = None

    def focus_flags(
        self,
        session_type: SessionType,
        defaults: dict[SessionType, tuple[bool, bool]] | None = None,
    ) -> tuple[bool, bool]:
        """Resolve (requires_input, is_persistent) for a session type."""
        requires_input, is_persistent = (defaults or DEFAULT_FOCUS_FLAGS)[session_type]
        if self.requires_input is not None:
            requires_input = self.requires_input
        if self.is_persistent is not None:
            is_persistent = self.is_persistent
        return requires_input, is_persistent


class SessionInstance:
    """A live terminal session owned by the SessionRegistry."""

    def __init__(
        self,
        session_type: SessionType,
        config: SessionConfig | None = None,
        session_id: str | None = None,
        state: SessionState = SessionState.STARTING,
        recent_command_limit: int = DEFAULT_RECENT_COMMAND_LIMIT,
    ) -> None:
        self.config = config or SessionConfig()
        self._id = session_id or str(uuid.uuid4())
        self._type = session_type
        self.state = state

        self.created_at = _utcnow()
        self.last_activity_at = self.created_at
        self.command_count = 0
        self.recent_commands: deque[str] = deque(maxlen=recent_command_limit)
        self.session_stats = SessionStats()
        self.current_working_directory = self.config.working_directory
        self.profile = self.config.profile
        self.websocket_url = self.config.websocket_url

    @property
    def id(self) -> str:
        return self._id

    @property
    def type(self) -> SessionType:
        return self._type

    def update_activity(self) -> None:
        self.last_activity_at = _utcnow()

    def add_command(self, command: str) -> None:
        """Record a command; the oldest entry is evicted past the limit."""
        self.command_count += 1
        self.recent_commands.append(command)
        self.update_activity()

    def record_focus(self, when: datetime) -> None:
        self.session_stats.focus_count += 1
        self.session_stats.last_focused_at = when

    def snapshot(self) -> "SessionSnapshot":
        return SessionSnapshot(
            id=self._id,
            type=self._type,
            state=self.state,
            created_at=self.created_at,
            last_activity_at=self.last_activity_at,
            command_count=self.command_count,
            recent_commands=tuple(self.recent_commands),
            session_stats=self.session_stats.copy(),
            current_working_directory=self.current_working_directory,
            profile=self.profile,
            websocket_url=self.websocket_url,
        )


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a session at a point in time."""

    id: str
    type: SessionType
    state: SessionState
    created_at: datetime
    last_activity_at: datetime
    command_count: int
    recent_commands: tuple[str, ...]
    session_stats: SessionStats
    current_working_directory: str | None = None
    profile: "RemoteProfile | None" = None
    websocket_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the shape consumed by diagnostics and UI layers."""
        return {
            "id": self.id,
            "type": self.type.value,
            "state": self.state.value,
            "createdAt": self.created_at.isoformat(),
            "lastActivityAt": self.last_activity_at.isoformat(),
            "commandCount": self.command_count,
            "recentCommands": list(self.recent_commands),
            "currentWorkingDirectory": self.current_working_directory,
            "sessionStats": self.session_stats.to_dict(),
            "profile": self.profile.to_public_dict() if self.profile else None,
            "websocketUrl": self.websocket_url,
        }
