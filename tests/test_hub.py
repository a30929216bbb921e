"""Tests for the WebSocket hub."""

import asyncio

import pytest

from fitup.realtime.events import PING
from fitup.realtime.hub import ClientConnection, Hub


@pytest.fixture
async def hub():
    hub = Hub(ping_interval=0, drain_timeout=0.5)
    yield hub
    await hub.close()


async def wait_until(predicate, timeout: float = 1.0) -> None:
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout)


class TestConnections:
    """Tests for connect, replace and disconnect."""

    async def test_send_to_connected_user(self, hub, socket_factory):
        socket = socket_factory()
        await hub.connect("alice", socket)

        assert await hub.send_to_user("alice", {"type": "hello"})
        await socket.wait_for(1)
        assert socket.sent == [{"type": "hello"}]

    async def test_send_to_offline_user(self, hub):
        assert not await hub.send_to_user("nobody", {"type": "hello"})

    async def test_second_connection_replaces_first(self, hub, socket_factory):
        first, second = socket_factory(), socket_factory()
        await hub.connect("alice", first)
        await hub.connect("alice", second)

        assert first.close_reason == "replaced"
        await hub.send_to_user("alice", {"type": "hello"})
        await second.wait_for(1)
        assert first.sent == []
        assert hub.connected_users() == ["alice"]

    async def test_disconnect_leaves_channels(self, hub, socket_factory):
        await hub.connect("alice", socket_factory())
        await hub.subscribe("alice", "conversation:1")

        await hub.disconnect("alice")

        assert not hub.is_connected("alice")
        assert hub.user_subscriptions("alice") == set()
        assert hub.stats()["channels"] == 0

    async def test_disconnect_of_replaced_connection_is_ignored(self, hub, socket_factory):
        old = await hub.connect("alice", socket_factory())
        await hub.connect("alice", socket_factory())

        await hub.disconnect("alice", old)
        assert hub.is_connected("alice")

    async def test_failed_send_drops_connection(self, hub, socket_factory):
        await hub.connect("alice", socket_factory(fail=True))
        await hub.subscribe("alice", "conversation:1")

        await hub.send_to_user("alice", {"type": "hello"})

        await wait_until(lambda: not hub.is_connected("alice"))
        assert hub.channel_subscribers("conversation:1") == set()

    async def test_failed_send_drop_task_is_tracked(self, hub, socket_factory):
        connection = await hub.connect("alice", socket_factory(fail=True))

        async with hub._lock:
            assert connection.enqueue({"type": "hello"})
            await wait_until(lambda: len(hub._drop_tasks) == 1)
            assert hub.is_connected("alice")

        await wait_until(lambda: not hub.is_connected("alice"))
        await wait_until(lambda: not hub._drop_tasks)

    async def test_failure_callback_runs_on_send_error(self, socket_factory):
        failed = []
        connection = ClientConnection("alice", socket_factory(fail=True), on_failure=failed.append)
        connection.start()

        assert connection.enqueue({"type": "hello"})
        await wait_until(lambda: failed == [connection])
        assert connection.closed


class TestChannels:
    """Tests for subscriptions and channel broadcast."""

    async def test_broadcast_reaches_connected_subscribers(self, hub, socket_factory):
        coach, client, other = socket_factory(), socket_factory(), socket_factory()
        await hub.connect("coach", coach)
        await hub.connect("client", client)
        await hub.connect("other", other)
        for user_id in ("coach", "client", "offline"):
            await hub.subscribe(user_id, "conversation:7")

        delivered = await hub.broadcast_to_channel("conversation:7", {"type": "new_message"})

        assert delivered == 2
        await coach.wait_for(1)
        await client.wait_for(1)
        assert other.sent == []

    async def test_subscribe_unsubscribe_subscribe(self, hub):
        await hub.subscribe("alice", "conversation:1")
        await hub.unsubscribe("alice", "conversation:1")
        await hub.subscribe("alice", "conversation:1")
        assert hub.channel_subscribers("conversation:1") == {"alice"}

    async def test_unsubscribe_unknown_channel(self, hub):
        await hub.unsubscribe("alice", "conversation:404")
        assert hub.stats()["channels"] == 0

    async def test_per_connection_order(self, hub, socket_factory):
        socket = socket_factory()
        await hub.connect("alice", socket)
        await hub.subscribe("alice", "c")
        for i in range(5):
            await hub.broadcast_to_channel("c", {"type": "n", "i": i})

        await socket.wait_for(5)
        assert [frame["i"] for frame in socket.sent] == [0, 1, 2, 3, 4]

    async def test_send_to_users(self, hub, socket_factory):
        await hub.connect("a", socket_factory())
        await hub.connect("b", socket_factory())
        assert await hub.send_to_users(["a", "b", "b", "c"], {"type": "x"}) == 2


class TestShutdown:
    """Tests for closing the hub."""

    async def test_close_drains_queues(self, socket_factory):
        hub = Hub(ping_interval=0, drain_timeout=1.0)
        socket = socket_factory()
        await hub.connect("alice", socket)
        for i in range(3):
            await hub.send_to_user("alice", {"type": "n", "i": i})

        await hub.close()

        assert len(socket.sent) == 3
        assert socket.close_reason == "server shutdown"
        assert hub.closed
        assert hub.connected_users() == []

    async def test_ping_loop(self, socket_factory):
        hub = Hub(ping_interval=0.05, drain_timeout=0.5)
        socket = socket_factory()
        await hub.connect("alice", socket)
        hub.start()

        await socket.wait_for(1)
        assert socket.sent[0] == PING
        await hub.close()

    async def test_closed_connection_rejects_enqueue(self, socket_factory):
        connection = ClientConnection("alice", socket_factory())
        connection.start()
        await connection.close()

        assert not connection.enqueue({"type": "late"})
