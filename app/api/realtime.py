"""Websocket push of new notifications to online users."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from jose import JWTError

from app.core.dependencies import claims_identity, decode_token

log = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["realtime"])


async def _forward(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        event = await queue.get()
        await websocket.send_json(event)


async def _receive(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive_text()
        if message.strip().lower() == "ping":
            await websocket.send_json({"type": "pong"})


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, token: str = Query(...)):
    """Register the caller as online and stream ``notification`` events until they disconnect."""
    try:
        user_id, _ = claims_identity(decode_token(token))
    except JWTError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    presence = websocket.app.state.presence
    await websocket.accept()
    connection_id, queue = await presence.connect(user_id)
    tasks = [
        asyncio.create_task(_forward(websocket, queue)),
        asyncio.create_task(_receive(websocket)),
    ]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                log.warning(f"Realtime connection {connection_id} for {user_id} failed: {exc}")
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await presence.disconnect(user_id, connection_id)
