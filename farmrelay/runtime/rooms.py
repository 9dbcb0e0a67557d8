from __future__ import annotations

from collections import defaultdict


class RoomMembership:
    """Connection ids grouped by printer address."""

    def __init__(self) -> None:
        # remote_address -> set(connection_ids)
        self._rooms: defaultdict[str, set[str]] = defaultdict(set)
        # connection_id -> set(remote_addresses)
        self._joined: defaultdict[str, set[str]] = defaultdict(set)

    def join(self, address: str, connection_id: str) -> None:
        self._rooms[address].add(connection_id)
        self._joined[connection_id].add(address)

    def leave(self, address: str, connection_id: str) -> None:
        members = self._rooms.get(address)
        if members is not None:
            members.discard(connection_id)
            if not members:
                del self._rooms[address]

        joined = self._joined.get(connection_id)
        if joined is not None:
            joined.discard(address)
            if not joined:
                del self._joined[connection_id]

    def leave_all(self, connection_id: str) -> list[str]:
        addresses = sorted(self._joined.get(connection_id, ()))
        for address in addresses:
            self.leave(address, connection_id)
        return addresses

    def members(self, address: str) -> set[str]:
        return set(self._rooms.get(address, ()))

    def rooms_of(self, connection_id: str) -> set[str]:
        return set(self._joined.get(connection_id, ()))

    def __len__(self) -> int:
        return len(self._rooms)
