"""WebSocket connection manager for the real-time alert feed."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks active WebSocket connections keyed by user_id."""

    def __init__(self) -> None:
        # user_id -> set of active websocket connections
        self._connections: dict[int, set[WebSocket]] = {}
        # user_id -> role of the connected user
        self._roles: dict[int, str] = {}
        self._loop: asyncio.AbstractEventLoop | None = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop | None) -> None:
        """Remember the loop that owns the sockets; publish() schedules onto it."""
        self._loop = loop

    async def connect(self, websocket: WebSocket, user_id: int, role: str | None = None) -> None:
        await websocket.accept()
        if role is not None:
            self._roles[user_id] = role
        if user_id not in self._connections:
            self._connections[user_id] = set()
        self._connections[user_id].add(websocket)
        logger.info("WS connected: user=%s (total=%s)", user_id, self.total_connections)

    def disconnect(self, websocket: WebSocket, user_id: int) -> None:
        conns = self._connections.get(user_id)
        if conns:
            conns.discard(websocket)
            if not conns:
                del self._connections[user_id]
                self._roles.pop(user_id, None)
        logger.info("WS disconnected: user=%s (total=%s)", user_id, self.total_connections)

    async def send_to_user(self, user_id: int, event: str, data: Any) -> None:
        """Send event to all connections for a user."""
        conns = self._connections.get(user_id, set())
        payload = json.dumps({"event": event, "data": data}, default=str)
        dead: list[WebSocket] = []
        for ws in list(conns):
            try:
                await ws.send_text(payload)
            except Exception:
                dead.append(ws)
        for ws in dead:
            conns.discard(ws)

    async def send_to_users(self, user_ids: list[int], event: str, data: Any) -> None:
        """Broadcast event to multiple users."""
        for uid in user_ids:
            await self.send_to_user(uid, event, data)

    async def send_to_all(self, event: str, data: Any) -> None:
        await self.send_to_users(list(self._connections), event, data)

    async def send_to_audience(self, event: str, data: Any, user_ids: list[int], roles: tuple[str, ...]) -> None:
        """Send to ``user_ids`` plus every connected user holding one of ``roles``."""
        targets = set(user_ids)
        targets.update(uid for uid in self._connections if self._roles.get(uid) in roles)
        await self.send_to_users(sorted(targets), event, data)

    def publish(
        self,
        event: str,
        data: Any,
        user_ids: list[int] | None = None,
        roles: tuple[str, ...] | None = None,
    ) -> None:
        """Fire-and-forget send, callable from any thread.

        With neither ``user_ids`` nor ``roles`` the event goes to everyone.
        """
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug("No event loop bound; dropping %s", event)
            return
        if user_ids is None and roles is None:
            coro = self.send_to_all(event, data)
        elif roles is not None:
            coro = self.send_to_audience(event, data, user_ids or [], roles)
        else:
            coro = self.send_to_users(user_ids, event, data)
        asyncio.run_coroutine_threadsafe(coro, loop)

    @property
    def total_connections(self) -> int:
        return sum(len(c) for c in self._connections.values())


# Shared connection registry used by the /ws endpoint and the alert feed
ws_manager = ConnectionManager()
