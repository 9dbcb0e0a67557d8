from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Union

from farmrelay.core.errors import AuthRejected


class Role(str, Enum):
    HOST = "host"
    USER = "user"


@dataclass(frozen=True)
class HostIdentity:
    host_id: str
    role: Role = Role.HOST


@dataclass(frozen=True)
class UserIdentity:
    user_id: str
    email: str | None = None
    role: Role = Role.USER


Identity = Union[HostIdentity, UserIdentity]


def classify_identity(claims: Mapping[str, Any]) -> Identity:
    """
    Turn decoded token claims into a connection identity.

    A `hostId` claim makes the connection a host; anything else must carry
    a user `id`.
    """
    if "hostId" in claims:
        host_id = claims["hostId"]
        if host_id is None or str(host_id) == "":
            raise AuthRejected("hostId claim is empty")
        return HostIdentity(host_id=str(host_id))

    user_id = claims.get("id")
    if user_id is None or str(user_id) == "":
        raise AuthRejected("token carries neither hostId nor id")
    email = claims.get("email")
    return UserIdentity(user_id=str(user_id), email=str(email) if email is not None else None)
