"""Live session table owned by the coordinator's event loop."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, Iterator, Protocol

from roomhub.backend.colors import Color
from roomhub.backend.logging_config import get_logger
from roomhub.backend.models import RosterEntry, UserIdentity
from roomhub.backend.security import generate_token

logger = get_logger(__name__)


class Connection(Protocol):
    def send(self, message: dict[str, Any]) -> None:
        """Queue ``message`` for delivery without blocking."""


@dataclass
class Session:
    session_id: str
    connection: Connection
    user_id: str | None = None
    display_name: str | None = None
    room_code: str | None = None
    is_host: bool = False
    color: Color | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def in_room(self) -> bool:
        return self.room_code is not None

    def bind_identity(self, identity: UserIdentity) -> None:
        self.user_id = identity.user_id
        self.display_name = identity.display_name

    def enter_room(self, code: str, is_host: bool, color: Color) -> None:
        self.room_code = code
        self.is_host = is_host
        self.color = color

    def clear_room(self) -> None:
        self.room_code = None
        self.is_host = False

    def roster_entry(self) -> RosterEntry:
        return RosterEntry(
            id=self.session_id,
            name=self.display_name or "",
            color=self.color.to_hex() if self.color is not None else "",
        )


class SessionTable:
    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._serial = itertools.count(1)

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))

    def open(self, connection: Connection) -> Session:
        # The serial prefix keeps ids unique for the life of the process.
        session_id = f"{next(self._serial)}-{generate_token()}"
        session = Session(session_id=session_id, connection=connection)
        self._sessions[session_id] = session
        logger.debug(f"Session {session_id} opened ({len(self._sessions)} live)")
        return session

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def is_live(self, session: Session) -> bool:
        return self._sessions.get(session.session_id) is session

    def remove(self, session: Session) -> None:
        if self._sessions.pop(session.session_id, None) is not None:
            logger.debug(f"Session {session.session_id} removed ({len(self._sessions)} live)")

    def roster(self, code: str, exclude: Session | None = None) -> list[Session]:
        return [
            session
            for session in self._sessions.values()
            if session.room_code == code and session.is_authenticated and session is not exclude
        ]

    def send(self, session: Session, message: dict[str, Any]) -> None:
        session.connection.send(message)

    def broadcast(self, code: str, message: dict[str, Any], exclude: Session | None = None) -> int:
        recipients = self.roster(code, exclude=exclude)
        for session in recipients:
            session.connection.send(message)
        return len(recipients)
