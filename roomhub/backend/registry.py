"""Room registry: code generation and persisted room configuration."""

from __future__ import annotations

import asyncio
import random
import secrets
from datetime import datetime, timezone
from typing import Awaitable, TypeVar

from roomhub.backend.errors import GenerationExhausted, RoomNotFound
from roomhub.backend.logging_config import get_logger
from roomhub.backend.models import RoomConfig, RoomRecord
from roomhub.backend.store import RoomStore

logger = get_logger(__name__)

ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH = 6
MAX_CODE_ATTEMPTS = 10

T = TypeVar("T")


def generate_room_code(rng: random.Random | None = None) -> str:
    if rng is None:
        return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))
    return "".join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


def normalize_room_code(code: str) -> str:
    return code.strip().upper()


def is_valid_room_code(code: str) -> bool:
    return len(code) == ROOM_CODE_LENGTH and all(char in ROOM_CODE_ALPHABET for char in code)


class RoomRegistry:
    def __init__(
        self,
        store: RoomStore,
        timeout_seconds: float = 5.0,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._timeout_seconds = timeout_seconds
        self._rng = rng

    async def _bounded(self, call: Awaitable[T]) -> T:
        return await asyncio.wait_for(call, timeout=self._timeout_seconds)

    async def create_room(self, host_user_id: str, config: RoomConfig) -> str:
        """Mint a fresh code and persist ``config`` under it."""
        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            code = generate_room_code(self._rng)
            record = RoomRecord(
                code=code,
                host_user_id=host_user_id,
                max_players=config.max_players,
                password_required=config.password_required,
                password_hash=config.password_hash,
                level_data=config.level_data,
                created_at=datetime.now(timezone.utc),
            )
            if await self._bounded(self._store.create_if_absent(code, record)):
                logger.info(f"Room {code} created for host {host_user_id} (attempt {attempt})")
                return code
            logger.debug(f"Room code collision on {code} (attempt {attempt})")

        logger.warning(f"Room code generation exhausted after {MAX_CODE_ATTEMPTS} attempts")
        raise GenerationExhausted()

    async def lookup_room(self, code: str) -> RoomRecord:
        normalized = normalize_room_code(code)
        if not is_valid_room_code(normalized):
            raise RoomNotFound()
        record = await self._bounded(self._store.get(normalized))
        if record is None:
            raise RoomNotFound()
        return record

    async def delete_room(self, code: str) -> None:
        await self._bounded(self._store.delete(code))
        logger.info(f"Room {code} deleted")
