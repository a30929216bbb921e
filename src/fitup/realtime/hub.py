"""WebSocket hub: connections, channels and per-connection outbound queues.

Every connection owns a FIFO queue drained by its own writer task, so
broadcasts only enqueue and a slow client never blocks the others. Maps are
guarded by a single lock; sends happen outside it on a snapshot.
"""

import asyncio
import logging
from typing import Any, Protocol

from .events import PING

logger = logging.getLogger(__name__)

PING_INTERVAL = 30.0
DRAIN_TIMEOUT = 5.0
MAX_QUEUE_SIZE = 256

_CLOSE = object()


class SocketLike(Protocol):
    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


class ClientConnection:
    """One connected user and its outbound queue."""

    def __init__(self, user_id: str, websocket: SocketLike, on_failure=None):
        self.user_id = user_id
        self.websocket = websocket
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=MAX_QUEUE_SIZE)
        self.closed = False
        self._on_failure = on_failure
        self._writer: asyncio.Task | None = None

    def start(self) -> None:
        self._writer = asyncio.create_task(self._write_loop())

    def enqueue(self, payload: dict) -> bool:
        """Queue a payload. False when the connection is closed or backed up."""
        if self.closed:
            return False
        try:
            self.queue.put_nowait(payload)
        except asyncio.QueueFull:
            return False
        return True

    async def _write_loop(self) -> None:
        while True:
            payload = await self.queue.get()
            if payload is _CLOSE:
                return
            try:
                await self.websocket.send_json(payload)
            except Exception as e:
                logger.warning("Send to %s failed: %s", self.user_id, e)
                self.closed = True
                if self._on_failure is not None:
                    self._on_failure(self)
                return

    async def close(self, reason: str = "closed", timeout: float = DRAIN_TIMEOUT) -> None:
        """Drain queued payloads within ``timeout`` then close the socket."""
        if self._writer is not None and not self._writer.done():
            self.closed = True
            try:
                self.queue.put_nowait(_CLOSE)
                await asyncio.wait_for(asyncio.shield(self._writer), timeout)
            except (asyncio.QueueFull, asyncio.TimeoutError):
                self._writer.cancel()
        self.closed = True
        try:
            await self.websocket.close(code=1000, reason=reason)
        except Exception as e:
            logger.debug("Close of %s socket raised: %s", self.user_id, e)


class Hub:
    """Process-wide registry of connected users and channel subscriptions."""

    def __init__(self, ping_interval: float = PING_INTERVAL, drain_timeout: float = DRAIN_TIMEOUT):
        self.ping_interval = ping_interval
        self.drain_timeout = drain_timeout
        self._connections: dict[str, ClientConnection] = {}
        self._channels: dict[str, set[str]] = {}
        self._lock = asyncio.Lock()
        self._closing = asyncio.Event()
        self._ping_task: asyncio.Task | None = None
        self._drop_tasks: set[asyncio.Task] = set()

    @property
    def closed(self) -> bool:
        return self._closing.is_set()

    def start(self) -> None:
        """Start the keepalive task."""
        if self._ping_task is None and self.ping_interval > 0:
            self._ping_task = asyncio.create_task(self._ping_loop())

    async def _ping_loop(self) -> None:
        while not self._closing.is_set():
            try:
                await asyncio.wait_for(self._closing.wait(), self.ping_interval)
            except asyncio.TimeoutError:
                await self.broadcast_to_all(PING)

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    async def connect(self, user_id: str, websocket: SocketLike) -> ClientConnection:
        """Register a user's socket, closing any previous one with reason "replaced"."""
        connection = ClientConnection(user_id, websocket, on_failure=self._schedule_drop)
        connection.start()
        async with self._lock:
            previous = self._connections.get(user_id)
            self._connections[user_id] = connection
        if previous is not None:
            logger.info("Replacing connection for user %s", user_id)
            await previous.close("replaced", self.drain_timeout)
        logger.info("User %s connected (%d online)", user_id, len(self._connections))
        return connection

    async def disconnect(self, user_id: str, connection: ClientConnection | None = None) -> None:
        """Remove a user from the hub and every channel.

        When ``connection`` is given, only that connection is removed; a newer
        replacement is left alone.
        """
        async with self._lock:
            current = self._connections.get(user_id)
            if current is None or (connection is not None and current is not connection):
                return
            del self._connections[user_id]
            for channel in list(self._channels):
                members = self._channels[channel]
                members.discard(user_id)
                if not members:
                    del self._channels[channel]
        await current.close("disconnected", self.drain_timeout)
        logger.info("User %s disconnected", user_id)

    def _schedule_drop(self, connection: ClientConnection) -> None:
        # The loop only keeps weak references to tasks
        task = asyncio.create_task(self._drop(connection))
        self._drop_tasks.add(task)
        task.add_done_callback(self._drop_tasks.discard)

    async def _drop(self, connection: ClientConnection) -> None:
        logger.warning("Dropping unresponsive connection for user %s", connection.user_id)
        await self.disconnect(connection.user_id, connection)

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    async def subscribe(self, user_id: str, channel: str) -> None:
        async with self._lock:
            self._channels.setdefault(channel, set()).add(user_id)

    async def unsubscribe(self, user_id: str, channel: str) -> None:
        async with self._lock:
            members = self._channels.get(channel)
            if members is None:
                return
            members.discard(user_id)
            if not members:
                del self._channels[channel]

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def broadcast_to_channel(self, channel: str, payload: dict) -> int:
        """Queue a payload for every connected subscriber. Returns the delivery count."""
        async with self._lock:
            targets = [
                self._connections[uid]
                for uid in self._channels.get(channel, ())
                if uid in self._connections
            ]
        return await self._deliver(targets, payload)

    async def send_to_user(self, user_id: str, payload: dict) -> bool:
        async with self._lock:
            connection = self._connections.get(user_id)
        if connection is None:
            return False
        return await self._deliver([connection], payload) == 1

    async def send_to_users(self, user_ids: list[str], payload: dict) -> int:
        async with self._lock:
            targets = [self._connections[uid] for uid in set(user_ids) if uid in self._connections]
        return await self._deliver(targets, payload)

    async def broadcast_to_all(self, payload: dict) -> int:
        async with self._lock:
            targets = list(self._connections.values())
        return await self._deliver(targets, payload)

    async def _deliver(self, targets: list[ClientConnection], payload: dict) -> int:
        delivered = 0
        failed = []
        for connection in targets:
            if connection.enqueue(payload):
                delivered += 1
            else:
                failed.append(connection)
        for connection in failed:
            logger.warning("Delivery to user %s failed; dropping", connection.user_id)
            await self.disconnect(connection.user_id, connection)
        return delivered

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def is_connected(self, user_id: str) -> bool:
        return user_id in self._connections

    def connected_users(self) -> list[str]:
        return sorted(self._connections)

    def channel_subscribers(self, channel: str) -> set[str]:
        return set(self._channels.get(channel, ()))

    def user_subscriptions(self, user_id: str) -> set[str]:
        return {channel for channel, members in self._channels.items() if user_id in members}

    def stats(self) -> dict:
        return {
            "connections": len(self._connections),
            "channels": len(self._channels),
            "subscriptions": sum(len(m) for m in self._channels.values()),
            "queued": sum(c.queue.qsize() for c in self._connections.values()),
        }

    async def close(self) -> None:
        """Stop keepalives and close every connection after draining its queue."""
        self._closing.set()
        if self._ping_task is not None:
            self._ping_task.cancel()
            try:
                await self._ping_task
            except asyncio.CancelledError:
                pass
            self._ping_task = None

        async with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
            self._channels.clear()
        await asyncio.gather(
            *(c.close("server shutdown", self.drain_timeout) for c in connections)
        )
        if self._drop_tasks:
            await asyncio.gather(*self._drop_tasks, return_exceptions=True)
        logger.info("Hub closed (%d connections)", len(connections))
