from typing import Dict, Set, Any
from fastapi import WebSocket
import anyio.from_thread
import asyncio
import logging

logger = logging.getLogger(__name__)


class Connection:
    def __init__(self, websocket: WebSocket, user_id: int, user_name: str):
        self.websocket = websocket
        self.user_id = user_id
        self.user_name = user_name
        self.chat_ids: Set[int] = set()

    async def send(self, event: str, data: Any):
        await self.websocket.send_json({"event": event, "data": data})


class ConnectionManager:
    def __init__(self):
        # chat_id -> set of Connection
        self.active_connections: Dict[int, Set[Connection]] = {}
        self._lock = asyncio.Lock()

    async def join(self, chat_id: int, conn: Connection):
        async with self._lock:
            if chat_id not in self.active_connections:
                self.active_connections[chat_id] = set()
            self.active_connections[chat_id].add(conn)
            conn.chat_ids.add(chat_id)

    async def leave(self, chat_id: int, conn: Connection):
        async with self._lock:
            self._discard(chat_id, conn)

    async def disconnect(self, conn: Connection):
        async with self._lock:
            for chat_id in list(conn.chat_ids):
                self._discard(chat_id, conn)

    def _discard(self, chat_id: int, conn: Connection):
        conn.chat_ids.discard(chat_id)
        if chat_id in self.active_connections:
            self.active_connections[chat_id].discard(conn)
            if not self.active_connections[chat_id]:
                del self.active_connections[chat_id]

    async def remove_user(self, chat_id: int, user_id: int):
        """Unsubscribe every connection of `user_id` from the chat's group."""
        async with self._lock:
            for conn in list(self.active_connections.get(chat_id, ())):
                if conn.user_id == user_id:
                    self._discard(chat_id, conn)

    async def drop_group(self, chat_id: int):
        async with self._lock:
            for conn in list(self.active_connections.get(chat_id, ())):
                self._discard(chat_id, conn)

    def subscribers(self, chat_id: int) -> Set[Connection]:
        return set(self.active_connections.get(chat_id, ()))

    async def broadcast(self, chat_id: int, event: str, data: Any):
        conns = []
        async with self._lock:
            if chat_id in self.active_connections:
                conns = list(self.active_connections[chat_id])
        dead = []
        for c in conns:
            try:
                await c.send(event, data)
            except Exception:
                # client went away mid-send; drop it from every group
                logger.debug("Dropping connection for user %s", c.user_id, exc_info=True)
                dead.append(c)
        for c in dead:
            await self.disconnect(c)


manager = ConnectionManager()


def run_from_thread(func, *args):
    """Run a manager coroutine from a sync route running in the threadpool."""
    return anyio.from_thread.run(func, *args)
