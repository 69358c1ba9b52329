"""Tests for session change notifications and realtime socket handling."""

import pytest

from memeboard.routers.realtime import CLOSE_SIGNED_OUT, ConnectionManager
from memeboard.services.session_events import SessionEvent, SessionEventType, SessionEvents


class FakeWebSocket:
    def __init__(self):
        self.accepted = False
        self.sent = []
        self.closed_with = None

    async def accept(self):
        self.accepted = True

    async def send_json(self, message):
        if self.closed_with is not None:
            raise RuntimeError("socket closed")
        self.sent.append(message)

    async def close(self, code=1000):
        self.closed_with = code


class TestSessionEvents:
    """Test the session publish/subscribe hub."""

    @pytest.mark.asyncio
    async def test_subscribers_receive_events(self):
        events = SessionEvents()
        received = []

        async def on_change(event):
            received.append(event)

        events.subscribe(on_change)
        await events.publish(SessionEvent(SessionEventType.SIGNED_IN, 5))

        assert received == [SessionEvent(SessionEventType.SIGNED_IN, 5)]
        assert received[0].current_user_id == 5

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_delivery(self):
        events = SessionEvents()
        received = []

        async def on_change(event):
            received.append(event)

        unsubscribe = events.subscribe(on_change)
        unsubscribe()
        unsubscribe()
        await events.publish(SessionEvent(SessionEventType.SIGNED_OUT, 5))

        assert received == []
        assert events.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_block_others(self):
        events = SessionEvents()
        received = []

        async def broken(event):
            raise ValueError("boom")

        async def on_change(event):
            received.append(event.type)

        events.subscribe(broken)
        events.subscribe(on_change)
        await events.publish(SessionEvent(SessionEventType.SIGNED_OUT, 5))

        assert received == [SessionEventType.SIGNED_OUT]

    def test_signed_out_has_no_current_user(self):
        assert SessionEvent(SessionEventType.SIGNED_OUT, 5).current_user_id is None


class TestConnectionManager:
    """Test feed socket bookkeeping."""

    @pytest.mark.asyncio
    async def test_broadcast_reaches_everyone(self):
        manager = ConnectionManager()
        first, second = FakeWebSocket(), FakeWebSocket()
        await manager.connect(first, 1)
        await manager.connect(second, 2)

        await manager.broadcast({"type": "feed_changed"})

        assert first.sent == [{"type": "feed_changed"}]
        assert second.sent == [{"type": "feed_changed"}]
        assert manager.get_connection_count() == 2

    @pytest.mark.asyncio
    async def test_sign_out_closes_only_that_users_sockets(self):
        manager = ConnectionManager()
        events = SessionEvents()
        events.subscribe(manager.handle_session_event)
        mine, other = FakeWebSocket(), FakeWebSocket()
        await manager.connect(mine, 1)
        await manager.connect(other, 2)

        await events.publish(SessionEvent(SessionEventType.SIGNED_OUT, 1))

        assert mine.closed_with == CLOSE_SIGNED_OUT
        assert other.closed_with is None
        assert manager.get_connection_count() == 1

    @pytest.mark.asyncio
    async def test_sign_out_closes_only_that_sessions_sockets(self):
        manager = ConnectionManager()
        events = SessionEvents()
        events.subscribe(manager.handle_session_event)
        laptop, laptop_tab, phone = FakeWebSocket(), FakeWebSocket(), FakeWebSocket()
        await manager.connect(laptop, 1, "token-a")
        await manager.connect(laptop_tab, 1, "token-a")
        await manager.connect(phone, 1, "token-b")

        await events.publish(SessionEvent(SessionEventType.SIGNED_OUT, 1, "token-a"))

        assert laptop.closed_with == CLOSE_SIGNED_OUT
        assert laptop_tab.closed_with == CLOSE_SIGNED_OUT
        assert phone.closed_with is None
        assert manager.get_connection_count() == 1
        assert manager.session_tokens == {phone: "token-b"}

    @pytest.mark.asyncio
    async def test_sign_out_without_token_closes_every_session(self):
        manager = ConnectionManager()
        laptop, phone = FakeWebSocket(), FakeWebSocket()
        await manager.connect(laptop, 1, "token-a")
        await manager.connect(phone, 1, "token-b")

        await manager.handle_session_event(SessionEvent(SessionEventType.SIGNED_OUT, 1))

        assert laptop.closed_with == CLOSE_SIGNED_OUT
        assert phone.closed_with == CLOSE_SIGNED_OUT
        assert manager.get_connection_count() == 0

    @pytest.mark.asyncio
    async def test_sign_in_leaves_sockets_open(self):
        manager = ConnectionManager()
        socket = FakeWebSocket()
        await manager.connect(socket, 1)

        await manager.handle_session_event(SessionEvent(SessionEventType.SIGNED_IN, 1))

        assert socket.closed_with is None

    @pytest.mark.asyncio
    async def test_dead_sockets_dropped_on_broadcast(self):
        manager = ConnectionManager()
        socket = FakeWebSocket()
        await manager.connect(socket, 1)
        socket.closed_with = 1006

        await manager.broadcast({"type": "feed_changed"})

        assert manager.get_connection_count() == 0
