from __future__ import annotations

from datetime import datetime
from typing import Any
from pydantic import BaseModel, ConfigDict, Field

ONLINE_STATUS = {"type": "Online"}
OFFLINE_STATUS = {"type": "Offline"}


class HostRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    host_id: str
    online: bool
    connected_at: datetime | None = None


class PrinterRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    remote_address: str
    host_id: str | None = None
    online: bool = False
    status: dict[str, Any] = Field(default_factory=lambda: dict(OFFLINE_STATUS))
    connected_at: datetime | None = None
    friendly_name: str = ""
    loaded_filament: dict[str, Any] | None = None


class PrinterStatusOut(BaseModel):
    """Presence change pushed to every user connection."""
    model_config = ConfigDict(populate_by_name=True)

    remote_address: str = Field(alias="remoteAddress")
    host_id: str | None = Field(default=None, alias="hostId")
    online: bool
    status: dict[str, Any]
    connected_at: datetime | None = Field(default=None, alias="connectedAt")
