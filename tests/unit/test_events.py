"""Unit tests for focus events and the broadcast channel."""

import asyncio
from unittest.mock import Mock

import pytest

from termhub.core.enums import FocusEventKind
from termhub.core.events import EventChannel, FocusEvent


def make_event(session_id: str = "a") -> FocusEvent:
    return FocusEvent(
        kind=FocusEventKind.FOCUS_CHANGED,
        session_id=session_id,
        message="Session focused (previous: None)",
    )


class TestFocusEvent:
    """Test the event record."""

    def test_event_is_immutable(self):
        event = make_event()
        with pytest.raises(AttributeError):
            event.session_id = "b"  # type: ignore[misc]

    def test_to_dict(self):
        event = make_event()
        data = event.to_dict()

        assert data["kind"] == "focus_changed"
        assert data["sessionId"] == "a"
        assert data["contextId"] is None
        assert data["timestamp"] == event.timestamp.isoformat()


class TestListeners:
    """Test synchronous listeners."""

    def test_listener_receives_events(self, channel):
        listener = Mock()
        channel.add_listener(listener)

        event = make_event()
        delivered = channel.publish(event)

        listener.assert_called_once_with(event)
        assert delivered == 1

    def test_detach_listener(self, channel):
        listener = Mock()
        detach = channel.add_listener(listener)
        detach()

        channel.publish(make_event())

        listener.assert_not_called()
        assert channel.subscriber_count == 0

    def test_failing_listener_does_not_disrupt_others(self, channel):
        failing = Mock(side_effect=RuntimeError("boom"))
        healthy = Mock()
        channel.add_listener(failing)
        channel.add_listener(healthy)

        delivered = channel.publish(make_event())

        healthy.assert_called_once()
        assert delivered == 1

    def test_listener_added_after_close_is_ignored(self, channel):
        channel.close()
        listener = Mock()
        channel.add_listener(listener)

        channel.publish(make_event())

        listener.assert_not_called()


class TestSubscriptions:
    """Test queue-backed subscriptions."""

    @pytest.mark.asyncio
    async def test_subscriber_receives_in_order(self, channel):
        subscription = channel.subscribe()
        channel.publish(make_event("a"))
        channel.publish(make_event("b"))

        first = await subscription.get()
        second = await subscription.get()

        assert [first.session_id, second.session_id] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_full_subscription_drops_without_blocking(self, channel):
        subscription = channel.subscribe(maxsize=2)

        for session_id in ("a", "b", "c"):
            channel.publish(make_event(session_id))

        assert subscription.pending() == 2
        assert subscription.dropped == 1
        assert [e.session_id for e in subscription.drain()] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_iteration_ends_after_close(self, channel):
        subscription = channel.subscribe()
        channel.publish(make_event("a"))
        channel.close()

        received = [event.session_id async for event in subscription]

        assert received == ["a"]
        assert subscription.closed

    @pytest.mark.asyncio
    async def test_waiting_consumer_wakes_on_close(self, channel):
        subscription = channel.subscribe()

        waiter = asyncio.create_task(subscription.get())
        await asyncio.sleep(0)
        channel.close()

        assert await asyncio.wait_for(waiter, timeout=1) is None

    @pytest.mark.asyncio
    async def test_subscription_close_unsubscribes(self, channel):
        subscription = channel.subscribe()
        subscription.close()

        channel.publish(make_event())

        assert subscription.drain() == []
        assert channel.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_subscribe_after_close_is_ended(self, channel):
        channel.close()
        subscription = channel.subscribe()

        assert subscription.closed
        assert await subscription.get() is None


class TestClose:
    """Test channel closure semantics."""

    def test_publish_after_close_is_dropped(self, channel):
        listener = Mock()
        channel.add_listener(listener)
        channel.close()

        assert channel.publish(make_event()) == 0
        listener.assert_not_called()

    def test_close_is_idempotent(self, channel):
        channel.close()
        channel.close()
        assert channel.closed

    def test_default_maxsize_applies(self):
        channel = EventChannel(default_maxsize=1)
        subscription = channel.subscribe()

        channel.publish(make_event("a"))
        channel.publish(make_event("b"))

        assert subscription.maxsize == 1
        assert subscription.dropped == 1
