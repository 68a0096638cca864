"""
Focus routing for terminal sessions.

The router is the sole authority on which session currently receives
keyboard input, and on which session each conversation context routes to.
It never validates session ids against a registry: focus can be granted
before a session finishes starting, and missing references degrade to
no-ops. Every observable transition is published on the router's
EventChannel.
"""

import threading
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .enums import FocusEventKind
from .events import EventChannel, FocusEvent
from .logging_utils import focus_logger, log_focus_change

if TYPE_CHECKING:
    from ..config import TermhubConfig


@dataclass(frozen=True)
class FocusSnapshot:
    """Immutable copy of the router state for diagnostics."""

    focused_session: str | None
    context_bindings: Mapping[str, str]
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "focusedSession": self.focused_session,
            "contextBindings": dict(self.context_bindings),
            "totalBindings": self.count,
            "hasFocus": self.focused_session is not None,
        }


class FocusRouter:
    """Tracks the focused session and the context to session bindings."""

    def __init__(self, events: EventChannel | None = None) -> None:
        """Initialize the router.

        Args:
            events: Channel to publish transitions on; a new one is created
                when omitted
        """
        self.events = events or EventChannel()
        self._focused_session: str | None = None
        self._context_bindings: dict[str, str] = {}
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: "TermhubConfig") -> "FocusRouter":
        """Build a router whose channel uses the configured queue size."""
        return cls(EventChannel(default_maxsize=config.event_queue_size))

    @property
    def focused_session(self) -> str | None:
        return self._focused_session

    def focus(self, session_id: str, context_id: str | None = None) -> None:
        """Give input focus to a session.

        Always publishes a focus_changed event, even when the session was
        already focused.
        """
        with self._lock:
            previous = self._focused_session
            self._focused_session = session_id

            self._emit(
                FocusEventKind.FOCUS_CHANGED,
                session_id,
                f"Session focused (previous: {previous})",
                context_id=context_id,
            )
            log_focus_change(previous, session_id, context_id)

    def clear_focus(self) -> None:
        """Remove focus; publishes only if something was focused."""
        with self._lock:
            previous = self._focused_session
            self._focused_session = None

            if previous is not None:
                self._emit(FocusEventKind.FOCUS_CHANGED, previous, "Focus cleared")
                log_focus_change(previous, None)

    def is_focused(self, session_id: str) -> bool:
        return self._focused_session == session_id

    def bind_context(self, context_id: str, session_id: str) -> None:
        """Route a context's input to a session, replacing any prior binding."""
        with self._lock:
            self._context_bindings[context_id] = session_id

    def unbind_context(self, context_id: str) -> None:
        with self._lock:
            self._context_bindings.pop(context_id, None)

    def bound_session(self, context_id: str) -> str | None:
        return self._context_bindings.get(context_id)

    def unbind_session(self, session_id: str) -> None:
        """Remove every context binding that points at a session."""
        with self._lock:
            stale = [
                context_id
                for context_id, bound in self._context_bindings.items()
                if bound == session_id
            ]
            for context_id in stale:
                del self._context_bindings[context_id]

            if stale:
                focus_logger.debug(
                    "Removed context bindings",
                    session_id=session_id,
                    contexts=stale,
                )

    def apply_auto_focus(
        self,
        session_id: str,
        requires_input: bool,
        is_persistent: bool,
        context_id: str | None = None,
    ) -> None:
        """Focus a newly running session according to the auto-focus policy.

        Interactive sessions always take focus. Persistent sessions only
        fill an empty focus slot. Anything else leaves focus alone.
        """
        with self._lock:
            if requires_input:
                self.focus(session_id, context_id)
                return

            if is_persistent and self._focused_session is None:
                self.focus(session_id, context_id)
                return

            focus_logger.debug("No auto-focus applied", session_id=session_id)

    def handle_deactivation(self, session_id: str) -> None:
        """Purge a session that is no longer valid.

        Publishes exactly one block_deactivated event for the session,
        whether or not it held focus.
        """
        with self._lock:
            self.unbind_session(session_id)

            if self._focused_session == session_id:
                self.clear_focus()

            self._emit(
                FocusEventKind.BLOCK_DEACTIVATED,
                session_id,
                "Session deactivated and bindings removed",
            )

    def cleanup_context(self, context_id: str) -> None:
        """Tear down a context, clearing focus only if it held it."""
        with self._lock:
            bound = self._context_bindings.pop(context_id, None)

            if bound is not None and self._focused_session == bound:
                self.clear_focus()

            if bound is not None:
                focus_logger.debug(
                    "Cleaned up context binding",
                    context_id=context_id,
                    bound_session=bound,
                )

    def snapshot(self) -> FocusSnapshot:
        with self._lock:
            bindings = dict(self._context_bindings)
            return FocusSnapshot(
                focused_session=self._focused_session,
                context_bindings=MappingProxyType(bindings),
                count=len(bindings),
            )

    def reset(self) -> None:
        """Clear all routing state without publishing anything."""
        with self._lock:
            self._focused_session = None
            self._context_bindings.clear()
            focus_logger.info("All focus state reset")

    def _emit(
        self,
        kind: FocusEventKind,
        session_id: str | None,
        message: str,
        context_id: str | None = None,
    ) -> None:
        self.events.publish(
            FocusEvent(
                kind=kind,
                session_id=session_id,
                message=message,
                context_id=context_id,
            )
        )
