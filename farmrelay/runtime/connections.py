from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from farmrelay.schemas.connection import HostIdentity, Identity, Role


class Outbound(Protocol):
    async def send_json(self, data: Any) -> None: ...


def new_connection_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Connection:
    identity: Identity
    socket: Outbound
    connection_id: str = field(default_factory=new_connection_id)
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def role(self) -> Role:
        return self.identity.role

    @property
    def is_host(self) -> bool:
        return isinstance(self.identity, HostIdentity)

    @property
    def host_id(self) -> str | None:
        return self.identity.host_id if isinstance(self.identity, HostIdentity) else None

    def describe(self) -> str:
        if isinstance(self.identity, HostIdentity):
            return f"host {self.identity.host_id}"
        return f"user {self.identity.user_id}"


class ConnectionRegistry:
    """
    Live connections keyed by connection id.

    The same host or user may appear under several ids while an old
    connection is still waiting for its disconnect.
    """

    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}

    def register(self, connection: Connection) -> None:
        self._connections[connection.connection_id] = connection

    def unregister(self, connection_id: str) -> Connection | None:
        return self._connections.pop(connection_id, None)

    def get(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    def connections_by_role(self, role: Role) -> list[Connection]:
        return [c for c in self._connections.values() if c.role == role]

    def list_by_role(self, role: Role) -> list[str]:
        return [c.connection_id for c in self.connections_by_role(role)]

    def count_by_role(self, role: Role) -> int:
        return sum(1 for c in self._connections.values() if c.role == role)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)
