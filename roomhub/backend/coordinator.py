"""Inbound message dispatch and the outermost error boundary."""

from __future__ import annotations

import random
from typing import Any

from roomhub.backend import messages
from roomhub.backend.errors import INTERNAL_ERROR_MESSAGE, CoordinatorError, NotAuthorized
from roomhub.backend.identity import IdentityGate
from roomhub.backend.lifecycle import RoomLifecycleController
from roomhub.backend.logging_config import get_logger
from roomhub.backend.messages import (
    AuthMessage,
    ChatMessage,
    CreateRoomMessage,
    JoinRoomMessage,
    KickPlayerMessage,
    LeaveRoomMessage,
    PositionMessage,
    RejoinRoomMessage,
    parse_inbound,
)
from roomhub.backend.models import RoomRecord
from roomhub.backend.registry import RoomRegistry
from roomhub.backend.relay import Relay
from roomhub.backend.sessions import Connection, Session, SessionTable

logger = get_logger(__name__)


class Coordinator:
    """Single event-loop actor that owns every live session and room roster."""

    def __init__(
        self,
        gate: IdentityGate,
        registry: RoomRegistry,
        server_salt: str,
        host_grace_seconds: float = 0.0,
        max_players_limit: int = 50,
        rng: random.Random | None = None,
    ) -> None:
        self.sessions = SessionTable()
        self.registry = registry
        self.lifecycle = RoomLifecycleController(
            sessions=self.sessions,
            gate=gate,
            registry=registry,
            server_salt=server_salt,
            host_grace_seconds=host_grace_seconds,
            max_players_limit=max_players_limit,
            rng=rng,
        )
        self.relay = Relay(self.sessions)

    def connect(self, connection: Connection) -> Session:
        return self.sessions.open(connection)

    async def dispatch(self, session: Session, data: Any) -> None:
        """Handle one decoded frame; errors are reported to the session, never raised."""
        try:
            message = parse_inbound(data)
            await self._route(session, message)
        except CoordinatorError as exc:
            logger.info(f"Session {session.session_id} request rejected: {exc.message}")
            if self.sessions.is_live(session):
                self.sessions.send(session, messages.error(exc.message))
        except Exception:
            logger.error(f"Unexpected failure handling message for session {session.session_id}", exc_info=True)
            if self.sessions.is_live(session):
                self.sessions.send(session, messages.error(INTERNAL_ERROR_MESSAGE))

    async def _route(self, session: Session, message: Any) -> None:
        if isinstance(message, AuthMessage):
            await self.lifecycle.authenticate(session, message.credential)
            return
        if not session.is_authenticated:
            raise NotAuthorized()

        if isinstance(message, CreateRoomMessage):
            await self.lifecycle.create_room(session, message)
        elif isinstance(message, JoinRoomMessage):
            await self.lifecycle.join_room(session, message)
        elif isinstance(message, RejoinRoomMessage):
            await self.lifecycle.rejoin_room(session, message)
        elif isinstance(message, LeaveRoomMessage):
            await self.lifecycle.leave_room(session)
        elif isinstance(message, PositionMessage):
            self.relay.position(session, message)
        elif isinstance(message, KickPlayerMessage):
            self.lifecycle.kick_player(session, message)
        elif isinstance(message, ChatMessage):
            self.relay.chat(session, message)

    async def disconnect(self, session: Session) -> None:
        try:
            await self.lifecycle.disconnect(session)
        except Exception:
            logger.error(f"Leave side effects failed for session {session.session_id}", exc_info=True)
        logger.info(f"Session {session.session_id} disconnected")

    async def lookup_room(self, code: str) -> RoomRecord:
        return await self.registry.lookup_room(code)

    def player_count(self, code: str) -> int:
        return len(self.sessions.roster(code))

    async def shutdown(self) -> None:
        await self.lifecycle.shutdown()
