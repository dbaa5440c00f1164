"""Domain models for identities, room records and roster entries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class UserIdentity:
    user_id: str
    display_name: str
    color: str | None = None


@dataclass(frozen=True)
class RoomConfig:
    max_players: int
    password_required: bool
    password_hash: str | None
    level_data: bytes


@dataclass(frozen=True)
class RoomRecord:
    code: str
    host_user_id: str
    max_players: int
    password_required: bool
    password_hash: str | None
    level_data: bytes
    created_at: datetime


@dataclass(frozen=True)
class RosterEntry:
    id: str
    name: str
    color: str

    def as_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "color": self.color}
