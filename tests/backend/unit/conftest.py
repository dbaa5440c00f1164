from __future__ import annotations

import random
from typing import Any

import pytest

from roomhub.backend.coordinator import Coordinator
from roomhub.backend.identity import IdentityGate, InMemoryUserDirectory
from roomhub.backend.registry import RoomRegistry
from roomhub.backend.sessions import Session
from roomhub.backend.store import InMemoryRoomStore, RoomStore


class RecordingConnection:
    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    def send(self, message: dict[str, Any]) -> None:
        self.sent.append(message)

    def of_type(self, message_type: str) -> list[dict[str, Any]]:
        return [message for message in self.sent if message["type"] == message_type]

    def last(self) -> dict[str, Any]:
        return self.sent[-1]

    def clear(self) -> None:
        self.sent.clear()


class Harness:
    def __init__(self, store: RoomStore | None = None, host_grace_seconds: float = 0.0) -> None:
        self.store = store if store is not None else InMemoryRoomStore()
        self.directory = InMemoryUserDirectory(token_secret="test-secret")
        self.coordinator = Coordinator(
            gate=IdentityGate(self.directory),
            registry=RoomRegistry(self.store),
            server_salt="test-salt",
            host_grace_seconds=host_grace_seconds,
            rng=random.Random(5),
        )

    async def connect(self, user_id: str | None = None, name: str | None = None) -> tuple[Session, RecordingConnection]:
        connection = RecordingConnection()
        session = self.coordinator.connect(connection)
        if user_id is not None:
            self.directory.register_user(user_id, name or user_id.title())
            await self.send(session, {"type": "auth", "credential": self.directory.issue_credential(user_id)})
        return session, connection

    async def send(self, session: Session, payload: dict[str, Any]) -> None:
        await self.coordinator.dispatch(session, payload)

    async def create_room(self, session: Session, connection: RecordingConnection, **fields: Any) -> str:
        await self.send(session, {"type": "create_room", "levelData": {"blocks": []}, **fields})
        return connection.of_type("room_created")[-1]["code"]


@pytest.fixture
def make_harness():
    return Harness
