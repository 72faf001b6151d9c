"""
Realtime WebSocket channel. Clients connect with `?token=<ID token>` and
receive `{"event", "data"}` messages such as `chat:stream`.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from backend.auth import verify_token
from backend.config import Settings, get_settings
from backend.dependencies import get_connection_hub
from backend.errors import ApiError
from backend.realtime import ConnectionHub

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/realtime")
async def realtime(
    websocket: WebSocket,
    token: str = Query(""),
    settings: Settings = Depends(get_settings),
    hub: ConnectionHub = Depends(get_connection_hub),
):
    try:
        user = verify_token(token, settings)
    except ApiError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    connection = hub.register(user.id, websocket)
    await websocket.send_json({"event": "connected", "data": {"userId": user.id}})
    try:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_json({"event": "pong", "data": {}})
    except WebSocketDisconnect:
        logger.info("Realtime connection closed for %s", user.id)
    finally:
        hub.unregister(user.id, connection)
