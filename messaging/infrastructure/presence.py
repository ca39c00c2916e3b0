# messaging/infrastructure/presence.py
import asyncio
from collections.abc import Awaitable, Callable

from fastapi import WebSocket


class PresenceTracker:
    """Open conversation feeds per user.

    A user is online while at least one of their feeds is open, so a second
    tab closing leaves the first one online. Presence writes go through
    ``sync`` one at a time; the stored flag is rewritten only when it no
    longer matches the open feeds.
    """

    def __init__(self) -> None:
        self.active_connections: dict[str, list[WebSocket]] = {}
        self.marked_online: set[str] = set()
        self._lock = asyncio.Lock()

    def connect(self, user_id: str, websocket: WebSocket) -> None:
        self.active_connections.setdefault(user_id, []).append(websocket)

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        connections = self.active_connections.get(user_id, [])
        if websocket in connections:
            connections.remove(websocket)
        if not connections:
            self.active_connections.pop(user_id, None)

    def is_online(self, user_id: str) -> bool:
        return bool(self.active_connections.get(user_id))

    async def sync(self, user_id: str, write: Callable[[bool], Awaitable[None]]) -> None:
        async with self._lock:
            is_online = self.is_online(user_id)
            if is_online == (user_id in self.marked_online):
                return
            await write(is_online)
            if is_online:
                self.marked_online.add(user_id)
            else:
                self.marked_online.discard(user_id)
