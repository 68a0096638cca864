"""Focus events and the broadcast channel they are published on."""

import asyncio
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .enums import FocusEventKind
from .logging_utils import events_logger, log_event_dropped

EventListener = Callable[["FocusEvent"], None]

# Queued after the last event once a subscription ends
_END = object()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FocusEvent:
    """A single focus or lifecycle transition."""

    kind: FocusEventKind
    session_id: str | None
    message: str
    context_id: str | None = None
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "sessionId": self.session_id,
            "contextId": self.context_id,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


class Subscription:
    """A consumer's view of an EventChannel.

    Events are buffered in an asyncio queue up to ``maxsize``; once the
    buffer is full further events are dropped for this subscriber only and
    counted in ``dropped``. Iterating with ``async for`` ends after the
    channel (or the subscription) is closed and the buffer is drained.
    """

    def __init__(self, channel: "EventChannel", maxsize: int = 0) -> None:
        self._channel = channel
        # Unbounded so the end marker always fits; maxsize is enforced in _offer
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self.maxsize = maxsize
        self.dropped = 0
        self._ended = False

    @property
    def closed(self) -> bool:
        return self._ended

    def _offer(self, event: FocusEvent) -> bool:
        if self._ended:
            return False
        if self.maxsize and self._queue.qsize() >= self.maxsize:
            self.dropped += 1
            log_event_dropped(event.kind.value, "subscriber queue full")
            return False
        self._queue.put_nowait(event)
        return True

    def _end(self) -> None:
        if not self._ended:
            self._ended = True
            self._queue.put_nowait(_END)

    def close(self) -> None:
        """Stop receiving events. Buffered events can still be drained."""
        self._channel.unsubscribe(self)
        self._end()

    def pending(self) -> int:
        """Number of buffered events."""
        size = self._queue.qsize()
        return size - 1 if self._ended and size else size

    async def get(self) -> FocusEvent | None:
        """Wait for the next event; None once the subscription has ended."""
        item = await self._queue.get()
        if item is _END:
            self._queue.put_nowait(_END)
            return None
        return item

    def get_nowait(self) -> FocusEvent | None:
        """Return the next buffered event, or None if there is none."""
        try:
            item = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        if item is _END:
            self._queue.put_nowait(_END)
            return None
        return item

    def drain(self) -> list[FocusEvent]:
        """Return every buffered event without waiting."""
        events = []
        while (event := self.get_nowait()) is not None:
            events.append(event)
        return events

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> FocusEvent:
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        return event


class EventChannel:
    """Single-producer, multi-consumer broadcast channel for focus events.

    Publishing never blocks. Closing is terminal and idempotent: events
    published after ``close()`` are silently dropped.
    """

    def __init__(self, default_maxsize: int = 256) -> None:
        self.default_maxsize = default_maxsize
        self._subscriptions: list[Subscription] = []
        self._listeners: list[EventListener] = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions) + len(self._listeners)

    def subscribe(self, maxsize: int | None = None) -> Subscription:
        """Attach a queue-backed subscriber."""
        subscription = Subscription(
            self, self.default_maxsize if maxsize is None else maxsize
        )
        with self._lock:
            if self._closed:
                subscription._end()
            else:
                self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def add_listener(self, listener: EventListener) -> Callable[[], None]:
        """Attach a synchronous callback; returns a function that detaches it."""
        with self._lock:
            if not self._closed:
                self._listeners.append(listener)
        return lambda: self.remove_listener(listener)

    def remove_listener(self, listener: EventListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def publish(self, event: FocusEvent) -> int:
        """Deliver an event to every subscriber.

        Returns:
            Number of subscribers and listeners that received the event
        """
        with self._lock:
            if self._closed:
                log_event_dropped(event.kind.value, "channel closed")
                return 0
            subscriptions = list(self._subscriptions)
            listeners = list(self._listeners)

        delivered = sum(1 for sub in subscriptions if sub._offer(event))

        for listener in listeners:
            try:
                listener(event)
                delivered += 1
            except Exception as e:
                events_logger.error(
                    "Event listener failed",
                    exception=e,
                    event_kind=event.kind.value,
                )

        return delivered

    def close(self) -> None:
        """Close the channel; later publishes are dropped."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscriptions = list(self._subscriptions)
            self._subscriptions.clear()
            self._listeners.clear()

        for subscription in subscriptions:
            subscription._end()

        events_logger.debug(
            "Event channel closed", subscriber_count=len(subscriptions)
        )
