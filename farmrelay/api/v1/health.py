from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from farmrelay.api.deps import get_relay
from farmrelay.services.relay_router import RelayRouter

router = APIRouter()


class HealthOut(BaseModel):
    status: str = "ok"
    hosts: int
    users: int
    rooms: int


@router.get("", response_model=HealthOut)
async def health(relay: RelayRouter = Depends(get_relay)) -> HealthOut:
    return HealthOut(**relay.stats())
