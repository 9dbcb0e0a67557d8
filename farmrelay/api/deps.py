from __future__ import annotations

from fastapi import Request, WebSocket

from farmrelay.services.relay_router import RelayRouter


def relay_from_app(app) -> RelayRouter:
    relay = getattr(app.state, "relay", None)
    if relay is None:
        raise RuntimeError("relay not initialised; startup hook has not run")
    return relay


def get_relay(request: Request) -> RelayRouter:
    return relay_from_app(request.app)


def get_ws_relay(websocket: WebSocket) -> RelayRouter:
    return relay_from_app(websocket.app)
