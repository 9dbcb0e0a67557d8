from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from farmrelay.runtime.connections import Connection, ConnectionRegistry
from farmrelay.runtime.rooms import RoomMembership
from farmrelay.schemas.connection import Role
from farmrelay.schemas.ws import (
    CommandIn,
    PrinterPresenceIn,
    PrinterStatusIn,
    RelayFrame,
    RoomIn,
    TemperatureIn,
)
from farmrelay.services.presence_store import PresenceStore
from farmrelay.services.presence_tracker import PresenceTracker

M = TypeVar("M", bound=BaseModel)
Handler = Callable[[Connection, dict[str, Any]], Awaitable[None]]


class RelayRouter:
    """
    Routes role-tagged events between hosts and users.

    Presence and status changes go to every user connection. Temperature
    readings and commands only go to the members of the printer's room.
    """

    def __init__(
        self,
        store: PresenceStore,
        *,
        registry: ConnectionRegistry | None = None,
        rooms: RoomMembership | None = None,
    ):
        self.registry = registry or ConnectionRegistry()
        self.rooms = rooms or RoomMembership()
        self.presence = PresenceTracker(store, self.send_status_to_users)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        # event -> (roles allowed to send it, handler)
        self._handlers: dict[str, tuple[frozenset[Role], Handler]] = {
            "status": (frozenset({Role.HOST}), self._on_status),
            "online": (frozenset({Role.HOST}), self._on_online),
            "offline": (frozenset({Role.HOST}), self._on_offline),
            "join": (frozenset({Role.HOST, Role.USER}), self._on_join),
            "leave": (frozenset({Role.HOST, Role.USER}), self._on_leave),
            "temperature": (frozenset({Role.HOST}), self._on_temperature),
            "command": (frozenset({Role.USER}), self._on_command),
        }

    # ---------- lifecycle ----------

    async def connect(self, conn: Connection) -> None:
        self.registry.register(conn)
        self.logger.info("Connected: %s (%s)", conn.describe(), conn.connection_id)
        if conn.is_host:
            await self.presence.host_connect(conn.host_id)

    async def disconnect(self, conn: Connection) -> None:
        self.registry.unregister(conn.connection_id)
        self.rooms.leave_all(conn.connection_id)
        self.logger.info("Disconnected: %s (%s)", conn.describe(), conn.connection_id)
        if conn.is_host:
            await self.presence.host_disconnect(conn.host_id)

    # ---------- inbound ----------

    async def dispatch(self, conn: Connection, event: str, data: dict[str, Any]) -> None:
        entry = self._handlers.get(event)
        if entry is None:
            self.logger.debug("Unknown event %r from %s dropped", event, conn.describe())
            return

        allowed, handler = entry
        if conn.role not in allowed:
            self.logger.debug("Event %r not allowed for %s, dropped", event, conn.describe())
            return

        await handler(conn, data)

    async def dispatch_frame(self, conn: Connection, frame: RelayFrame) -> None:
        await self.dispatch(conn, frame.event, frame.data)

    def _parse(self, model: type[M], event: str, data: dict[str, Any]) -> M | None:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            self.logger.debug("Malformed %r event dropped: %s", event, e.errors())
            return None

    def _sender_host_id(self, conn: Connection, claimed: str | None) -> str | None:
        return claimed if claimed is not None else conn.host_id

    async def _on_status(self, conn: Connection, data: dict[str, Any]) -> None:
        msg = self._parse(PrinterStatusIn, "status", data)
        if msg is None:
            return
        self.logger.info("Setting %s status to %s", msg.remote_address, msg.status)
        await self.presence.printer_status(msg.remote_address, data)

    async def _on_online(self, conn: Connection, data: dict[str, Any]) -> None:
        msg = self._parse(PrinterPresenceIn, "online", data)
        if msg is None:
            return
        self.logger.info("Setting %s to online", msg.remote_address)
        await self.presence.printer_online(msg.remote_address, self._sender_host_id(conn, msg.host_id))
        self.rooms.join(msg.remote_address, conn.connection_id)

    async def _on_offline(self, conn: Connection, data: dict[str, Any]) -> None:
        msg = self._parse(PrinterPresenceIn, "offline", data)
        if msg is None:
            return
        self.logger.info("Setting %s to offline", msg.remote_address)
        await self.presence.printer_offline(msg.remote_address, self._sender_host_id(conn, msg.host_id))

    async def _on_join(self, conn: Connection, data: dict[str, Any]) -> None:
        msg = self._parse(RoomIn, "join", data)
        if msg is None:
            return
        self.logger.debug("%s joining room %s", conn.describe(), msg.remote_address)
        self.rooms.join(msg.remote_address, conn.connection_id)

    async def _on_leave(self, conn: Connection, data: dict[str, Any]) -> None:
        msg = self._parse(RoomIn, "leave", data)
        if msg is None:
            return
        self.logger.debug("%s leaving room %s", conn.describe(), msg.remote_address)
        self.rooms.leave(msg.remote_address, conn.connection_id)

    async def _on_temperature(self, conn: Connection, data: dict[str, Any]) -> None:
        msg = self._parse(TemperatureIn, "temperature", data)
        if msg is None:
            return
        await self.emit_to_room(msg.remote_address, "temperature", data, exclude=conn.connection_id)

    async def _on_command(self, conn: Connection, data: dict[str, Any]) -> None:
        msg = self._parse(CommandIn, "command", data)
        if msg is None:
            return
        self.logger.debug("Command %r for %s from %s", msg.type, msg.remote_address, conn.describe())
        await self.emit_to_room(msg.remote_address, msg.type, data, exclude=conn.connection_id)

    # ---------- outbound ----------

    async def _send(self, conn: Connection, event: str, data: dict[str, Any]) -> bool:
        frame = RelayFrame(event=event, data=data)
        try:
            await conn.socket.send_json(frame.model_dump())
        except Exception as e:
            # the recipient's own disconnect will clean it up
            self.logger.warning("Delivery of %r to %s failed: %s", event, conn.describe(), e)
            return False
        return True

    async def send_status_to_users(self, payload: dict[str, Any]) -> int:
        delivered = 0
        for conn in self.registry.connections_by_role(Role.USER):
            if await self._send(conn, "status", payload):
                delivered += 1
        return delivered

    async def emit_to_room(
        self,
        address: str,
        event: str,
        data: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> int:
        delivered = 0
        for connection_id in sorted(self.rooms.members(address)):
            if connection_id == exclude:
                continue
            conn = self.registry.get(connection_id)
            if conn is None:
                continue
            if await self._send(conn, event, data):
                delivered += 1
        return delivered

    def stats(self) -> dict[str, int]:
        return {
            "hosts": self.registry.count_by_role(Role.HOST),
            "users": self.registry.count_by_role(Role.USER),
            "rooms": len(self.rooms),
        }
