from __future__ import annotations

from typing import Any, Literal
from pydantic import BaseModel, ConfigDict, Field


class RelayFrame(BaseModel):
    """Wire envelope in both directions: {"event": ..., "data": {...}}."""
    event: str = Field(..., min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)


# ---- host/user -> relay ----

class AddressedIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    remote_address: str = Field(..., alias="remoteAddress", min_length=1)


class PrinterEventIn(AddressedIn):
    type: Literal["printer"]


class PrinterStatusIn(PrinterEventIn):
    status: dict[str, Any]


class PrinterPresenceIn(PrinterEventIn):
    model_config = ConfigDict(populate_by_name=True, extra="allow", coerce_numbers_to_str=True)

    host_id: str | None = Field(default=None, alias="hostId")


class RoomIn(AddressedIn):
    pass


class TemperatureIn(AddressedIn):
    pass


class CommandIn(AddressedIn):
    type: str = Field(..., min_length=1)
