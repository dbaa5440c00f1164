"""Identity gate and user directory implementations."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Protocol

from roomhub.backend.colors import parse_color
from roomhub.backend.errors import AuthError
from roomhub.backend.logging_config import get_logger
from roomhub.backend.models import UserIdentity
from roomhub.backend.security import decode_credential, issue_credential

logger = get_logger(__name__)


class UserDirectory(Protocol):
    async def resolve(self, credential: str) -> UserIdentity:
        """Resolve a bearer credential or raise AuthError."""


def _normalize_color(raw: str | None) -> str | None:
    if not raw or parse_color(raw) is None:
        return None
    return "#" + raw.strip().removeprefix("#").upper()


@dataclass
class InMemoryUserDirectory:
    token_secret: str

    def __post_init__(self) -> None:
        self._users: dict[str, UserIdentity] = {}

    def register_user(self, user_id: str, display_name: str, color: str | None = None) -> UserIdentity:
        identity = UserIdentity(user_id=user_id, display_name=display_name, color=_normalize_color(color))
        self._users[user_id] = identity
        return identity

    def delete_user(self, user_id: str) -> None:
        self._users.pop(user_id, None)

    def issue_credential(self, user_id: str) -> str:
        return issue_credential(user_id, self.token_secret)

    async def resolve(self, credential: str) -> UserIdentity:
        payload = decode_credential(credential, self.token_secret)
        if payload is None:
            raise AuthError("Invalid token")
        identity = self._users.get(payload["userId"])
        if identity is None:
            raise AuthError("User not found")
        return identity


@dataclass
class PostgresUserDirectory:
    database_url: str
    token_secret: str

    async def _connect(self) -> Any:
        import psycopg

        return await psycopg.AsyncConnection.connect(self.database_url)

    async def resolve(self, credential: str) -> UserIdentity:
        payload = decode_credential(credential, self.token_secret)
        if payload is None:
            raise AuthError("Invalid token")

        async with await self._connect() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    SELECT id, display_name, color
                    FROM users
                    WHERE id = %s
                      AND deleted_at IS NULL
                    """,
                    (payload["userId"],),
                )
                row = await cur.fetchone()

        if row is None:
            raise AuthError("User not found")
        user_id, display_name, color = row
        return UserIdentity(user_id=user_id, display_name=display_name, color=_normalize_color(color))


def create_user_directory(database_url: str | None, token_secret: str) -> UserDirectory:
    if database_url:
        return PostgresUserDirectory(database_url=database_url, token_secret=token_secret)
    return InMemoryUserDirectory(token_secret=token_secret)


class IdentityGate:
    def __init__(self, directory: UserDirectory, timeout_seconds: float = 5.0) -> None:
        self._directory = directory
        self._timeout_seconds = timeout_seconds

    async def authenticate(self, credential: str) -> UserIdentity:
        """Resolve ``credential`` to a user identity; read-only."""
        if not credential.strip():
            raise AuthError("Invalid token")
        identity = await asyncio.wait_for(self._directory.resolve(credential.strip()), timeout=self._timeout_seconds)
        logger.debug(f"Credential resolved to user {identity.user_id}")
        return identity
