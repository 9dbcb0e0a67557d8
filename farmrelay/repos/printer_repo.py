from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from farmrelay.models import Printer

# Columns a presence/status transition is allowed to write.
UPDATABLE_FIELDS = frozenset({"host_id", "online", "status", "connected_at"})


class PrinterRepo:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, remote_address: str) -> Printer | None:
        res = await self.db.execute(select(Printer).where(Printer.remote_address == remote_address))
        return res.scalar_one_or_none()

    async def create(
        self,
        *,
        remote_address: str,
        host_id: str | None,
        online: bool,
        status: dict,
        connected_at: datetime | None,
        friendly_name: str = "",
        loaded_filament: dict | None = None,
    ) -> Printer:
        printer = Printer(
            remote_address=remote_address,
            host_id=host_id,
            online=online,
            status=status,
            connected_at=connected_at,
            friendly_name=friendly_name,
            loaded_filament=loaded_filament,
        )
        self.db.add(printer)
        await self.db.flush()
        return printer

    async def update_fields(self, remote_address: str, **fields: Any) -> Printer | None:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"cannot update printer fields: {sorted(unknown)}")

        printer = await self.get(remote_address)
        if printer is None:
            return None
        for name, value in fields.items():
            setattr(printer, name, value)
        await self.db.flush()
        return printer

    async def list_for_host(self, host_id: str) -> list[Printer]:
        stmt = select(Printer).where(Printer.host_id == host_id).order_by(Printer.remote_address)
        res = await self.db.execute(stmt)
        return list(res.scalars().all())
