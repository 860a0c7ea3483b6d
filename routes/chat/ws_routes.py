from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, Query
from fastapi.concurrency import run_in_threadpool
from typing import Optional, Tuple
import time
import json
import logging

from db import get_session_factory
from services.auth_service import user_from_token
from services.membership import is_member
from services.ws_manager import Connection, manager

logger = logging.getLogger(__name__)

router = APIRouter()


def _chat_id(data) -> Optional[int]:
    if not isinstance(data, dict):
        return None
    try:
        return int(data.get("chatId"))
    except (TypeError, ValueError):
        return None


# Each check opens its own session; a socket never holds a pooled connection while idle
def _authenticate(session_factory, token: Optional[str]) -> Tuple[int, str]:
    with session_factory() as db:
        user = user_from_token(db, token)
        return user.id, user.name


def _is_member(session_factory, chat_id: int, user_id: int) -> bool:
    with session_factory() as db:
        return is_member(db, chat_id, user_id)


@router.websocket("/ws")
async def chat_ws(websocket: WebSocket, token: Optional[str] = Query(None), session_factory=Depends(get_session_factory)):
    """Realtime channel for chat events.

    Authenticate with `?token=<bearer token>`, then send
    `{"event": "join" | "typing", "data": {"chatId": <id>}}` frames. Membership
    is re-checked on every event.
    """
    try:
        user_id, user_name = await run_in_threadpool(_authenticate, session_factory, token)
    except HTTPException:
        await websocket.close(code=4001)
        return

    await websocket.accept()
    conn = Connection(websocket, user_id, user_name)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                payload = json.loads(raw)
            except ValueError:
                await conn.send("error", {"code": 400, "detail": "Invalid JSON"})
                continue
            if not isinstance(payload, dict):
                await conn.send("error", {"code": 400, "detail": "Invalid frame"})
                continue

            event = payload.get("event")
            chat_id = _chat_id(payload.get("data"))
            if event not in ("join", "typing"):
                await conn.send("error", {"code": 400, "detail": "Unknown event"})
                continue
            if chat_id is None:
                await conn.send("error", {"code": 400, "detail": "chatId required"})
                continue

            if not await run_in_threadpool(_is_member, session_factory, chat_id, user_id):
                logger.warning("User %s refused %s on chat %s", user_id, event, chat_id)
                await conn.send("error", {"code": 403, "detail": "forbidden", "event": event, "chatId": chat_id})
                continue

            if event == "join":
                await manager.join(chat_id, conn)
                await conn.send("joined", {"chatId": chat_id})
            else:
                await manager.broadcast(chat_id, "typing", {
                    "chatId": chat_id,
                    "user_id": user_id,
                    "user_name": user_name,
                    "at": int(time.time() * 1000),
                })

    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(conn)
