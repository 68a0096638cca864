"""
Registry of live terminal sessions.

The registry is the only owner of SessionInstance objects. It validates
lifecycle transitions and drives the FocusRouter: auto-focus when a
session starts running, deactivation when it stops or fails. Terminated
sessions are removed once the router has been told about them.
"""

import functools
import threading
from collections import Counter
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from ..utils.logging import (
    InvalidTransitionError,
    TransportError,
    UnknownSessionError,
)
from .enums import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATES,
    FocusEventKind,
    SessionState,
    SessionType,
)
from .events import FocusEvent
from .focus import FocusRouter
from .logging_utils import (
    log_command_recorded,
    log_session_lifecycle,
    log_session_operation,
    registry_logger,
)
from .session import (
    DEFAULT_FOCUS_FLAGS,
    DEFAULT_RECENT_COMMAND_LIMIT,
    SessionConfig,
    SessionInstance,
    SessionSnapshot,
    SessionStats,
)

if TYPE_CHECKING:
    from ..config import TermhubConfig
    from ..transport.profile import RemoteProfile

Connector = Callable[["RemoteProfile"], Awaitable[Any]]


@dataclass(frozen=True)
class RegistryStats:
    """Aggregate session counts."""

    total: int
    by_state: dict[str, int] = field(default_factory=dict)
    by_type: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalSessions": self.total,
            "byState": dict(self.by_state),
            "byType": dict(self.by_type),
        }


class SessionRegistry:
    """Owns terminal sessions and keeps the focus router consistent with them."""

    def __init__(
        self,
        router: FocusRouter,
        recent_command_limit: int = DEFAULT_RECENT_COMMAND_LIMIT,
        focus_defaults: dict[SessionType, tuple[bool, bool]] | None = None,
        connector: Connector | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            router: Focus router to drive on lifecycle transitions
            recent_command_limit: Capacity of each session's recent-command log
            focus_defaults: Per-type (requires_input, is_persistent) defaults
            connector: Default connector awaited by ``open_session`` for
                remote shell sessions
        """
        self.router = router
        self.recent_command_limit = recent_command_limit
        self.focus_defaults = {**DEFAULT_FOCUS_FLAGS, **(focus_defaults or {})}
        self.connector = connector
        self.sessions: dict[str, SessionInstance] = {}
        self.connections: dict[str, Any] = {}
        self._lock = threading.RLock()
        # Leaf lock for session statistics; never held while calling out
        self._stats_lock = threading.Lock()
        self._detach_listener = router.events.add_listener(self._on_focus_event)

    @classmethod
    def from_config(
        cls, config: "TermhubConfig", router: FocusRouter | None = None
    ) -> "SessionRegistry":
        """Build a registry (and a router, if none is given) from configuration.

        Remote shell sessions connect through ``establish_connection`` with
        the configured timeout.
        """
        from ..transport.connection import establish_connection

        return cls(
            router or FocusRouter.from_config(config),
            recent_command_limit=config.recent_command_limit,
            focus_defaults=config.focus_defaults(),
            connector=functools.partial(
                establish_connection, timeout=config.connect_timeout
            ),
        )

    @log_session_operation("create")
    def create_session(
        self, session_type: SessionType, config: SessionConfig | None = None
    ) -> str:
        """Allocate a new session in the starting state.

        Auto-focus is applied later, when the session transitions to running.

        Returns:
            The new session id
        """
        with self._lock:
            instance = SessionInstance(
                session_type,
                config,
                recent_command_limit=self.recent_command_limit,
            )
            self.sessions[instance.id] = instance

        log_session_lifecycle(
            instance.id,
            "create",
            details={
                "type": session_type.value,
                "command": instance.config.command,
            },
        )
        return instance.id

    def record_command(self, session_id: str, command: str) -> None:
        """Record a command sent to a session.

        Raises:
            UnknownSessionError: If the session is not registered
        """
        with self._lock:
            instance = self._require(session_id)
            instance.add_command(command)
            count = instance.command_count

        log_command_recorded(session_id, count)

    @log_session_operation("transition")
    def transition(self, session_id: str, new_state: SessionState) -> None:
        """Move a session along the lifecycle graph.

        Entering running applies auto-focus. Entering stopped or error
        deactivates the session in the router and removes it.

        Raises:
            UnknownSessionError: If the session is not registered
            InvalidTransitionError: If the graph does not allow the change
        """
        with self._lock:
            instance = self._require(session_id)
            current = instance.state

            if new_state is not SessionState.ERROR and (
                new_state not in ALLOWED_TRANSITIONS[current]
            ):
                registry_logger.warning(
                    "Rejected session transition",
                    session_id=session_id,
                    current=current.value,
                    requested=new_state.value,
                )
                raise InvalidTransitionError(session_id, current.value, new_state.value)

            instance.state = new_state
            instance.update_activity()
            log_session_lifecycle(
                session_id,
                "transition",
                status="error" if new_state is SessionState.ERROR else "success",
                details={"from": current.value, "to": new_state.value},
            )

            if new_state is SessionState.RUNNING:
                self._on_running(instance)
            elif new_state in TERMINAL_STATES:
                self._destroy(instance)

    def get(self, session_id: str) -> SessionSnapshot | None:
        with self._lock, self._stats_lock:
            instance = self.sessions.get(session_id)
            return instance.snapshot() if instance else None

    def list_sessions(self, state: SessionState | None = None) -> list[SessionSnapshot]:
        """List snapshots of registered sessions, optionally filtered by state."""
        with self._lock, self._stats_lock:
            return [
                instance.snapshot()
                for instance in self.sessions.values()
                if state is None or instance.state is state
            ]

    def active_session_ids(self) -> list[str]:
        with self._lock:
            return [
                session_id
                for session_id, instance in self.sessions.items()
                if instance.state is SessionState.RUNNING
            ]

    def set_working_directory(self, session_id: str, path: str | None) -> None:
        with self._lock:
            instance = self._require(session_id)
            instance.current_working_directory = path
            instance.update_activity()

    def update_stats(self, session_id: str, **values: Any) -> None:
        """Merge free-form statistics into a session.

        Raises:
            UnknownSessionError: If the session is not registered
            TypeError: If a value is not a str, int, float or bool
        """
        with self._lock:
            instance = self._require(session_id)
            with self._stats_lock:
                instance.session_stats.update(values)
            instance.update_activity()

    def session_stats(self, session_id: str) -> dict[str, Any]:
        """Get activity statistics for a session.

        Raises:
            UnknownSessionError: If the session is not registered
        """
        with self._lock:
            instance = self._require(session_id)
            uptime = datetime.now(timezone.utc) - instance.created_at
            minutes = int(uptime.total_seconds() // 60)
            with self._stats_lock:
                focus_count = instance.session_stats.focus_count

            return {
                "sessionId": session_id,
                "uptime": int(uptime.total_seconds()),
                "commandCount": instance.command_count,
                "averageCommandsPerMinute": instance.command_count / max(minutes, 1),
                "lastActivity": instance.last_activity_at.isoformat(),
                "sessionType": instance.type.value,
                "isActive": instance.state is SessionState.RUNNING,
                "focusCount": focus_count,
            }

    def clear_session_history(self, session_id: str) -> None:
        """Forget a session's recent commands, command count and statistics.

        Raises:
            UnknownSessionError: If the session is not registered
        """
        with self._lock:
            instance = self._require(session_id)
            instance.recent_commands.clear()
            instance.command_count = 0
            with self._stats_lock:
                instance.session_stats = SessionStats()

        registry_logger.info("Session history cleared", session_id=session_id)

    def export_session_data(self, session_id: str) -> dict[str, Any]:
        """Export a session's serialized state and statistics.

        Raises:
            UnknownSessionError: If the session is not registered
        """
        with self._lock:
            snapshot = self.get(session_id)
            if snapshot is None:
                raise UnknownSessionError(session_id)

            return {
                "sessionInfo": snapshot.to_dict(),
                "commandHistory": list(snapshot.recent_commands),
                "stats": self.session_stats(session_id),
                "exportedAt": datetime.now(timezone.utc).isoformat(),
            }

    def stats(self) -> RegistryStats:
        with self._lock:
            by_state = Counter(i.state.value for i in self.sessions.values())
            by_type = Counter(i.type.value for i in self.sessions.values())
            return RegistryStats(
                total=len(self.sessions),
                by_state=dict(by_state),
                by_type=dict(by_type),
            )

    async def open_session(
        self,
        session_type: SessionType,
        config: SessionConfig | None = None,
        connector: Connector | None = None,
    ) -> str:
        """Create a session and bring it to running.

        Remote shell sessions first await ``connector(config.profile)``
        (falling back to the registry's default connector); the returned
        handle is kept in ``connections``. Any failure while connecting,
        cancellation included, moves the session to error (removing it) and
        is re-raised.

        Raises:
            UnknownSessionError: If the session was torn down while connecting;
                the handle is closed rather than kept

        Returns:
            The new session id
        """
        config = config or SessionConfig()
        connector = connector or self.connector
        session_id = self.create_session(session_type, config)

        if session_type is not SessionType.REMOTE_SHELL or connector is None:
            self.transition(session_id, SessionState.RUNNING)
            return session_id

        try:
            handle = await connector(config.profile)
        except TransportError as e:
            registry_logger.error(
                "Connection failed, discarding session",
                session_id=session_id,
                error_type=type(e).__name__,
                error=e.message,
            )
            self._discard(session_id)
            raise
        except BaseException:
            registry_logger.warning(
                "Connection interrupted, discarding session", session_id=session_id
            )
            self._discard(session_id)
            raise

        with self._lock:
            if session_id not in self.sessions:
                _close_handle(handle)
                registry_logger.warning(
                    "Session removed while connecting, closed its connection",
                    session_id=session_id,
                )
                raise UnknownSessionError(session_id)

            self.connections[session_id] = handle
            try:
                self.transition(session_id, SessionState.RUNNING)
            except BaseException:
                if self.connections.pop(session_id, None) is not None:
                    _close_handle(handle)
                self._discard(session_id)
                raise

        return session_id

    def shutdown(self) -> None:
        """Stop every live session, leaving the registry empty."""
        with self._lock:
            session_ids = list(self.sessions)

            for session_id in session_ids:
                instance = self.sessions.get(session_id)
                if instance is None:
                    continue
                if instance.state is SessionState.RUNNING:
                    self.transition(session_id, SessionState.STOPPING)
                if instance.state is SessionState.STOPPING:
                    self.transition(session_id, SessionState.STOPPED)
                else:
                    self.transition(session_id, SessionState.ERROR)

        registry_logger.info("Session registry shut down", stopped=len(session_ids))

    def _require(self, session_id: str) -> SessionInstance:
        instance = self.sessions.get(session_id)
        if instance is None:
            raise UnknownSessionError(session_id)
        return instance

    def _on_running(self, instance: SessionInstance) -> None:
        config = instance.config
        requires_input, is_persistent = config.focus_flags(
            instance.type, self.focus_defaults
        )

        if config.context_id is not None:
            self.router.bind_context(config.context_id, instance.id)

        self.router.apply_auto_focus(
            instance.id,
            requires_input=requires_input,
            is_persistent=is_persistent,
            context_id=config.context_id,
        )

    def _discard(self, session_id: str) -> None:
        with self._lock:
            if session_id in self.sessions:
                self.transition(session_id, SessionState.ERROR)

    def _destroy(self, instance: SessionInstance) -> None:
        self.router.handle_deactivation(instance.id)
        del self.sessions[instance.id]

        handle = self.connections.pop(instance.id, None)
        if handle is not None:
            _close_handle(handle)

        log_session_lifecycle(
            instance.id, "cleanup", details={"final_state": instance.state.value}
        )

    def _on_focus_event(self, event: FocusEvent) -> None:
        if event.kind is not FocusEventKind.FOCUS_CHANGED or event.session_id is None:
            return
        # Only focus grants name the new focus; a clear names the previous one
        if not self.router.is_focused(event.session_id):
            return

        with self._stats_lock:
            instance = self.sessions.get(event.session_id)
            if instance is not None:
                instance.record_focus(event.timestamp)


def _close_handle(handle: Any) -> None:
    if hasattr(handle, "close"):
        handle.close()
