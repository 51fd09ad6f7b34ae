"""Online users and realtime event delivery for the websocket endpoint."""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Dict, List, Tuple

from app.metrics.prometheus import online_connections

log = logging.getLogger(__name__)


class PresenceRegistry:
    """Maps each user to their open connections, each with a bounded outbound queue.

    One registry is built per application (see the lifespan in ``app.main``)
    and handed to whoever needs it; there is no module-level instance.
    """

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._connections: Dict[str, Dict[int, asyncio.Queue]] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def connect(self, user_id: str) -> Tuple[int, asyncio.Queue]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        async with self._lock:
            connection_id = next(self._ids)
            self._connections.setdefault(user_id, {})[connection_id] = queue
        online_connections.inc()
        log.info(f"User {user_id} connected (connection {connection_id})")
        return connection_id, queue

    async def disconnect(self, user_id: str, connection_id: int) -> None:
        async with self._lock:
            connections = self._connections.get(user_id)
            if not connections or connections.pop(connection_id, None) is None:
                return
            if not connections:
                del self._connections[user_id]
        online_connections.dec()
        log.info(f"User {user_id} disconnected (connection {connection_id})")

    async def is_online(self, user_id: str) -> bool:
        async with self._lock:
            return bool(self._connections.get(user_id))

    async def online_users(self) -> List[str]:
        async with self._lock:
            return sorted(self._connections)

    async def online_count(self) -> int:
        async with self._lock:
            return len(self._connections)

    async def publish(self, user_id: str, event: Dict[str, Any]) -> int:
        """Queue ``event`` on every connection of ``user_id``; returns how many accepted it."""
        async with self._lock:
            queues = list(self._connections.get(user_id, {}).items())
        delivered = 0
        for connection_id, queue in queues:
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                log.warning(f"Dropping {event.get('type')} event for {user_id}: connection {connection_id} queue is full")
        return delivered

    async def clear(self) -> None:
        async with self._lock:
            dropped = sum(len(c) for c in self._connections.values())
            self._connections.clear()
        if dropped:
            online_connections.dec(dropped)
        log.info(f"Presence registry cleared ({dropped} connections)")
