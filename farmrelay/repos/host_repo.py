from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from farmrelay.models import Host


class HostRepo:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, host_id: str) -> Host | None:
        res = await self.db.execute(select(Host).where(Host.host_id == host_id))
        return res.scalar_one_or_none()

    async def upsert(self, host_id: str, *, online: bool, connected_at: datetime | None) -> Host:
        host = await self.get(host_id)
        if host is None:
            host = Host(host_id=host_id)
            self.db.add(host)
        host.online = online
        host.connected_at = connected_at
        await self.db.flush()
        return host

    async def delete(self, host_id: str) -> bool:
        res = await self.db.execute(delete(Host).where(Host.host_id == host_id))
        return (res.rowcount or 0) > 0

    async def delete_all(self) -> int:
        res = await self.db.execute(delete(Host))
        return res.rowcount or 0
