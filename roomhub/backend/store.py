"""Persistence interfaces and implementations for room records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from roomhub.backend.logging_config import get_logger
from roomhub.backend.models import RoomRecord

logger = get_logger(__name__)


class RoomStore(Protocol):
    async def create_if_absent(self, code: str, record: RoomRecord) -> bool:
        """Persist ``record`` under ``code`` unless the code is taken; report success."""

    async def get(self, code: str) -> RoomRecord | None:
        """Return the record stored under ``code``."""

    async def delete(self, code: str) -> None:
        """Remove the record stored under ``code`` if present."""


@dataclass
class InMemoryRoomStore:
    def __post_init__(self) -> None:
        self._rooms: dict[str, RoomRecord] = {}

    async def create_if_absent(self, code: str, record: RoomRecord) -> bool:
        if code in self._rooms:
            return False
        self._rooms[code] = record
        return True

    async def get(self, code: str) -> RoomRecord | None:
        return self._rooms.get(code)

    async def delete(self, code: str) -> None:
        self._rooms.pop(code, None)

    def codes(self) -> list[str]:
        return sorted(self._rooms)


@dataclass
class PostgresRoomStore:
    database_url: str

    async def _connect(self) -> Any:
        import psycopg

        return await psycopg.AsyncConnection.connect(self.database_url)

    async def create_if_absent(self, code: str, record: RoomRecord) -> bool:
        async with await self._connect() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    INSERT INTO rooms (code, host_user_id, max_players, password_required, password_hash, level_data, created_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (code) DO NOTHING
                    """,
                    (
                        code,
                        record.host_user_id,
                        record.max_players,
                        record.password_required,
                        record.password_hash,
                        record.level_data,
                        record.created_at,
                    ),
                )
                inserted = cur.rowcount == 1
            await conn.commit()
        if not inserted:
            logger.debug(f"Room code {code} already present in database")
        return inserted

    async def get(self, code: str) -> RoomRecord | None:
        async with await self._connect() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    SELECT host_user_id, max_players, password_required, password_hash, level_data, created_at
                    FROM rooms
                    WHERE code = %s
                    """,
                    (code,),
                )
                row = await cur.fetchone()

        if row is None:
            return None

        host_user_id, max_players, password_required, password_hash, level_data, created_at = row
        return RoomRecord(
            code=code,
            host_user_id=host_user_id,
            max_players=int(max_players),
            password_required=bool(password_required),
            password_hash=password_hash,
            level_data=bytes(level_data),
            created_at=created_at,
        )

    async def delete(self, code: str) -> None:
        async with await self._connect() as conn:
            async with conn.cursor() as cur:
                await cur.execute("DELETE FROM rooms WHERE code = %s", (code,))
            await conn.commit()


def create_store(database_url: str | None) -> RoomStore:
    if database_url:
        return PostgresRoomStore(database_url=database_url)
    return InMemoryRoomStore()
