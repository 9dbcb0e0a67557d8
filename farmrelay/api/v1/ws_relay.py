from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from farmrelay.api.deps import get_ws_relay
from farmrelay.core.auth import decode_token, token_from_headers
from farmrelay.core.errors import AuthRejected
from farmrelay.runtime.connections import Connection
from farmrelay.schemas.connection import classify_identity
from farmrelay.schemas.ws import RelayFrame
from farmrelay.services.relay_router import RelayRouter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/relay", tags=["relay-ws"])


@router.websocket("/ws")
async def relay_ws(
    websocket: WebSocket,
    token: str | None = Query(default=None),
    relay: RelayRouter = Depends(get_ws_relay),
):
    token = token or token_from_headers(websocket.headers.get("authorization"))
    try:
        identity = classify_identity(decode_token(token))
    except AuthRejected as e:
        logger.info("Handshake rejected: %s", e)
        await websocket.accept()
        await websocket.close(code=1008, reason="unauthorized")
        return

    conn = Connection(identity=identity, socket=websocket)

    await websocket.accept()

    try:
        await relay.connect(conn)
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            raw = message.get("text")
            if raw is None:
                logger.debug("Binary frame from %s dropped", conn.describe())
                continue

            # Parse incoming frame
            try:
                frame = RelayFrame.model_validate(json.loads(raw))
            except (json.JSONDecodeError, ValidationError):
                logger.debug("Unparseable frame from %s dropped", conn.describe())
                continue

            await relay.dispatch_frame(conn, frame)

    except WebSocketDisconnect:
        pass
    finally:
        await relay.disconnect(conn)
