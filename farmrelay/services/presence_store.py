from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from farmrelay.core.errors import PersistenceUnavailable
from farmrelay.repos.host_repo import HostRepo
from farmrelay.repos.printer_repo import PrinterRepo
from farmrelay.schemas.printer import PrinterRecord


class PresenceStore(Protocol):
    """Durable host/printer records as seen by the presence logic."""

    async def upsert_host(self, host_id: str, *, online: bool, connected_at: datetime | None) -> None: ...

    async def delete_host(self, host_id: str) -> bool: ...

    async def clear_hosts(self) -> int: ...

    async def get_printer(self, remote_address: str) -> PrinterRecord | None: ...

    async def insert_printer(self, record: PrinterRecord) -> None: ...

    async def update_printer(self, remote_address: str, **fields: Any) -> bool: ...

    async def list_printers_for_host(self, host_id: str) -> list[PrinterRecord]: ...


class SqlPresenceStore:
    """
    PresenceStore backed by SQLAlchemy.

    Every call runs in its own short transaction. Driver and connection
    errors surface as PersistenceUnavailable.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None):
        if session_factory is None:
            from farmrelay.core.db import AsyncSessionLocal
            session_factory = AsyncSessionLocal
        self.session_factory = session_factory
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_factory() as db:
                async with db.begin():
                    yield db
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceUnavailable(operation, e) from e

    async def upsert_host(self, host_id: str, *, online: bool, connected_at: datetime | None) -> None:
        async with self._transaction("upsert_host") as db:
            await HostRepo(db).upsert(host_id, online=online, connected_at=connected_at)

    async def delete_host(self, host_id: str) -> bool:
        async with self._transaction("delete_host") as db:
            return await HostRepo(db).delete(host_id)

    async def clear_hosts(self) -> int:
        async with self._transaction("clear_hosts") as db:
            return await HostRepo(db).delete_all()

    async def get_printer(self, remote_address: str) -> PrinterRecord | None:
        async with self._transaction("get_printer") as db:
            printer = await PrinterRepo(db).get(remote_address)
            return PrinterRecord.model_validate(printer) if printer is not None else None

    async def insert_printer(self, record: PrinterRecord) -> None:
        async with self._transaction("insert_printer") as db:
            await PrinterRepo(db).create(**record.model_dump())

    async def update_printer(self, remote_address: str, **fields: Any) -> bool:
        async with self._transaction("update_printer") as db:
            printer = await PrinterRepo(db).update_fields(remote_address, **fields)
            return printer is not None

    async def list_printers_for_host(self, host_id: str) -> list[PrinterRecord]:
        async with self._transaction("list_printers_for_host") as db:
            printers = await PrinterRepo(db).list_for_host(host_id)
            return [PrinterRecord.model_validate(p) for p in printers]
