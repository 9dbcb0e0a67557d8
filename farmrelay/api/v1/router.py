from fastapi import APIRouter
from farmrelay.api.v1 import health, ws_relay

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(ws_relay.router, tags=["relay-ws"])
