from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from fastapi.encoders import jsonable_encoder

from farmrelay.core.errors import PersistenceUnavailable
from farmrelay.schemas.printer import OFFLINE_STATUS, ONLINE_STATUS, PrinterRecord, PrinterStatusOut
from farmrelay.services.presence_store import PresenceStore

StatusEmitter = Callable[[dict[str, Any]], Awaitable[None]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PresenceTracker:
    """
    Host and printer presence state machine.

    Each printer transition reads the current record, inserts or updates it,
    then emits a status payload. The read and the write are separate awaits,
    so two transitions on the same address may interleave; the store keeps
    whichever write lands last.

    Store failures never stop a transition: they are logged and the payload
    computed here is emitted anyway.
    """

    def __init__(self, store: PresenceStore, emit_status: StatusEmitter):
        self.store = store
        self.emit_status = emit_status
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # ---------- hosts ----------

    async def host_connect(self, host_id: str) -> None:
        try:
            await self.store.upsert_host(host_id, online=True, connected_at=_utc_now())
            self.logger.info("Host online: %s", host_id)
        except PersistenceUnavailable as e:
            self.logger.error("Could not record host %s as online: %s", host_id, e)

    async def host_disconnect(self, host_id: str) -> list[dict[str, Any]]:
        """Drop the host record and force every printer it owns offline."""
        try:
            if await self.store.delete_host(host_id):
                self.logger.info("Host removed: %s", host_id)
            else:
                self.logger.warning("Host not found in hosts collection: %s", host_id)
        except PersistenceUnavailable as e:
            self.logger.error("Could not remove host %s: %s", host_id, e)

        try:
            printers = await self.store.list_printers_for_host(host_id)
        except PersistenceUnavailable as e:
            self.logger.error("Could not list printers for host %s: %s", host_id, e)
            return []

        if not printers:
            self.logger.info("No printers found for host: %s", host_id)
            return []

        emitted: list[dict[str, Any]] = []
        for printer in printers:
            try:
                updated = await self.store.update_printer(
                    printer.remote_address,
                    online=False,
                    status=dict(OFFLINE_STATUS),
                    connected_at=None,
                )
                if not updated:
                    self.logger.warning("Printer vanished before offline sweep: %s", printer.remote_address)
            except PersistenceUnavailable as e:
                self.logger.error("Could not mark printer %s offline: %s", printer.remote_address, e)

            payload = self._status_payload(
                remote_address=printer.remote_address,
                host_id=printer.host_id,
                online=False,
                status=OFFLINE_STATUS,
                connected_at=None,
            )
            self.logger.info("Sending offline status for: %s", printer.remote_address)
            await self.emit_status(payload)
            emitted.append(payload)

        self.logger.info("Marked %d printers offline for host: %s", len(emitted), host_id)
        return emitted

    async def clear_hosts(self) -> int:
        try:
            deleted = await self.store.clear_hosts()
        except PersistenceUnavailable as e:
            self.logger.error("Could not clear hosts collection: %s", e)
            return 0
        self.logger.info("Deleted %d documents from hosts collection", deleted)
        return deleted

    # ---------- printers ----------

    async def printer_online(self, remote_address: str, host_id: str | None) -> dict[str, Any]:
        return await self._set_presence(
            remote_address,
            host_id=host_id,
            online=True,
            status=ONLINE_STATUS,
            connected_at=_utc_now(),
        )

    async def printer_offline(self, remote_address: str, host_id: str | None) -> dict[str, Any]:
        return await self._set_presence(
            remote_address,
            host_id=host_id,
            online=False,
            status=OFFLINE_STATUS,
            connected_at=None,
        )

    async def printer_status(self, remote_address: str, payload: dict[str, Any]) -> dict[str, Any] | None:
        """
        Replace only the printer's status. Unknown printers are ignored:
        nothing is written and nothing is emitted.
        """
        status = payload.get("status")
        try:
            existing = await self.store.get_printer(remote_address)
        except PersistenceUnavailable as e:
            # cannot tell whether the printer exists; relay without writing
            self.logger.error("Could not read printer %s for status update: %s", remote_address, e)
            await self.emit_status(payload)
            return payload

        if existing is None:
            self.logger.debug("Status for unknown printer %s ignored", remote_address)
            return None

        try:
            if await self.store.update_printer(remote_address, status=status):
                self.logger.debug("Printer status updated: %s -> %s", remote_address, status)
            else:
                self.logger.warning("Printer not updated: %s", remote_address)
        except PersistenceUnavailable as e:
            self.logger.error("Could not store status for printer %s: %s", remote_address, e)

        await self.emit_status(payload)
        return payload

    async def _set_presence(
        self,
        remote_address: str,
        *,
        host_id: str | None,
        online: bool,
        status: dict[str, Any],
        connected_at: datetime | None,
    ) -> dict[str, Any]:
        try:
            existing = await self.store.get_printer(remote_address)
            if existing is not None:
                updated = await self.store.update_printer(
                    remote_address,
                    online=online,
                    status=dict(status),
                    connected_at=connected_at,
                    host_id=host_id,
                )
                if updated:
                    self.logger.info("Printer updated: %s (online=%s)", remote_address, online)
                else:
                    self.logger.warning("Printer not updated: %s", remote_address)
            else:
                await self.store.insert_printer(PrinterRecord(
                    remote_address=remote_address,
                    host_id=host_id,
                    online=online,
                    status=dict(status),
                    connected_at=connected_at,
                ))
                self.logger.info("New printer added: %s (online=%s)", remote_address, online)
        except PersistenceUnavailable as e:
            self.logger.error("Could not store presence for printer %s: %s", remote_address, e)

        payload = self._status_payload(
            remote_address=remote_address,
            host_id=host_id,
            online=online,
            status=status,
            connected_at=connected_at,
        )
        self.logger.debug("Sending status data %s", payload)
        await self.emit_status(payload)
        return payload

    @staticmethod
    def _status_payload(**fields: Any) -> dict[str, Any]:
        fields["status"] = dict(fields["status"])
        return jsonable_encoder(PrinterStatusOut(**fields))
