"""Room lifecycle state machine: create, join, rejoin, leave, kick, disconnect."""

from __future__ import annotations

import asyncio
import random

from roomhub.backend import messages
from roomhub.backend.colors import Color, allocate
from roomhub.backend.errors import (
    AlreadyInRoom,
    DuplicateAccountInRoom,
    NotAuthorized,
    PasswordRequired,
    RoomFull,
    RoomNotFound,
)
from roomhub.backend.identity import IdentityGate
from roomhub.backend.logging_config import get_logger
from roomhub.backend.messages import CreateRoomMessage, JoinRoomMessage, KickPlayerMessage, RejoinRoomMessage
from roomhub.backend.models import RoomConfig, RoomRecord
from roomhub.backend.registry import RoomRegistry
from roomhub.backend.security import hash_token, verify_token
from roomhub.backend.sessions import Session, SessionTable

logger = get_logger(__name__)

DEFAULT_MAX_PLAYERS = 10


class RoomLifecycleController:
    def __init__(
        self,
        sessions: SessionTable,
        gate: IdentityGate,
        registry: RoomRegistry,
        server_salt: str,
        host_grace_seconds: float = 0.0,
        max_players_limit: int = 50,
        rng: random.Random | None = None,
    ) -> None:
        self._sessions = sessions
        self._gate = gate
        self._registry = registry
        self._server_salt = server_salt
        self._host_grace_seconds = host_grace_seconds
        self._max_players_limit = max_players_limit
        self._rng = rng
        self._closing: set[str] = set()
        self._pending_closures: dict[str, asyncio.Task[None]] = {}

    @property
    def pending_closures(self) -> list[str]:
        return sorted(self._pending_closures)

    async def authenticate(self, session: Session, credential: str) -> None:
        identity = await self._gate.authenticate(credential)
        if not self._sessions.is_live(session):
            return
        if session.in_room and session.user_id != identity.user_id:
            raise AlreadyInRoom()
        session.bind_identity(identity)
        logger.info(f"Session {session.session_id} authenticated as user {identity.user_id}")
        self._sessions.send(session, messages.auth_success(session.session_id))

    async def create_room(self, session: Session, message: CreateRoomMessage) -> None:
        user_id = self._require_identity(session)
        if session.in_room:
            raise AlreadyInRoom()

        max_players = min(message.max_players or DEFAULT_MAX_PLAYERS, self._max_players_limit)
        password_required = message.password_required and bool(message.password)
        config = RoomConfig(
            max_players=max_players,
            password_required=password_required,
            password_hash=hash_token(message.password, self._server_salt) if password_required and message.password else None,
            level_data=messages.encode_level_data(message.level_data),
        )
        code = await self._registry.create_room(user_id, config)

        if not self._sessions.is_live(session):
            logger.info(f"Session {session.session_id} vanished while creating room {code}, discarding it")
            await self._registry.delete_room(code)
            return

        session.enter_room(code, is_host=True, color=allocate([], self._rng))
        self._sessions.send(session, messages.room_created(code))

    async def join_room(self, session: Session, message: JoinRoomMessage) -> None:
        user_id = self._require_identity(session)
        if session.in_room:
            raise AlreadyInRoom()

        record = await self._lookup_open_room(message.code)
        if not self._sessions.is_live(session):
            return

        if record.password_required and not self._password_matches(record, message.password):
            logger.info(f"Session {session.session_id} rejected from room {record.code}: bad password")
            raise PasswordRequired()

        roster = self._admissible_roster(record, user_id)
        color = allocate(_colors_of(roster), self._rng)
        session.enter_room(record.code, is_host=False, color=color)
        logger.info(f"Session {session.session_id} joined room {record.code} ({len(roster) + 1}/{record.max_players})")

        self._sessions.broadcast(record.code, messages.player_joined(session.roster_entry()), exclude=session)
        self._sessions.send(
            session,
            messages.room_joined(record.code, record.level_data, [member.roster_entry() for member in roster]),
        )

    async def rejoin_room(self, session: Session, message: RejoinRoomMessage) -> None:
        user_id = self._require_identity(session)
        if session.in_room:
            raise AlreadyInRoom()

        try:
            record = await self._lookup_open_room(message.code)
        except RoomNotFound:
            raise RoomNotFound("Room no longer exists.") from None
        if not self._sessions.is_live(session):
            return

        roster = self._admissible_roster(record, user_id)
        is_host = record.host_user_id == user_id
        session.enter_room(record.code, is_host=is_host, color=allocate(_colors_of(roster), self._rng))
        if is_host:
            self._cancel_pending_closure(record.code)
        logger.info(f"Session {session.session_id} rejoined room {record.code} (host={is_host})")

        self._sessions.broadcast(record.code, messages.player_joined(session.roster_entry()), exclude=session)
        self._sessions.send(
            session,
            messages.room_rejoined(record.code, is_host, [member.roster_entry() for member in roster]),
        )

    async def leave_room(self, session: Session) -> None:
        code = session.room_code
        if code is None:
            return
        was_host = session.is_host
        session.clear_room()

        if was_host:
            logger.info(f"Host session {session.session_id} left room {code}, closing it")
            await self._close_room(code)
            return

        logger.info(f"Session {session.session_id} left room {code}")
        self._sessions.broadcast(code, messages.player_left(session.session_id, session.display_name or ""))

    def kick_player(self, session: Session, message: KickPlayerMessage) -> None:
        self._require_identity(session)
        code = session.room_code
        if not session.is_host or code is None:
            raise NotAuthorized("Only the host can kick players")

        target = self._sessions.get(message.target_session_id)
        if target is None or target is session or target.room_code != code:
            logger.debug(f"Kick of {message.target_session_id} ignored: not in room {code}")
            return

        self._sessions.send(target, messages.player_kicked())
        target.clear_room()
        logger.info(f"Session {target.session_id} kicked from room {code}")
        self._sessions.broadcast(code, messages.player_left(target.session_id, target.display_name or "", kicked=True))

    async def disconnect(self, session: Session) -> None:
        """Run leave side effects for ``session`` and drop it from the table."""
        try:
            if session.in_room and session.is_host and self._host_grace_seconds > 0:
                self._hold_room_for_host(session)
            else:
                await self.leave_room(session)
        finally:
            self._sessions.remove(session)

    async def shutdown(self) -> None:
        tasks = list(self._pending_closures.values())
        self._pending_closures.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def _require_identity(self, session: Session) -> str:
        if session.user_id is None:
            raise NotAuthorized()
        return session.user_id

    def _password_matches(self, record: RoomRecord, supplied: str | None) -> bool:
        if supplied is None or record.password_hash is None:
            return False
        return verify_token(supplied, record.password_hash, self._server_salt)

    async def _lookup_open_room(self, code: str) -> RoomRecord:
        record = await self._registry.lookup_room(code)
        if record.code in self._closing:
            raise RoomNotFound()
        return record

    def _admissible_roster(self, record: RoomRecord, user_id: str) -> list[Session]:
        roster = self._sessions.roster(record.code)
        # A host inside the grace period still holds a seat.
        held_seats = 1 if record.code in self._pending_closures and user_id != record.host_user_id else 0
        if len(roster) + held_seats >= record.max_players:
            raise RoomFull()
        if any(member.user_id == user_id for member in roster):
            raise DuplicateAccountInRoom()
        return roster

    async def _close_room(self, code: str, notice: str = "Host left the room") -> None:
        self._cancel_pending_closure(code)
        self._closing.add(code)
        try:
            for member in self._sessions.roster(code):
                self._sessions.send(member, messages.room_closed(notice))
                member.clear_room()
            await self._registry.delete_room(code)
        finally:
            self._closing.discard(code)

    def _hold_room_for_host(self, session: Session) -> None:
        code = session.room_code
        if code is None:
            return
        session.clear_room()
        self._sessions.broadcast(code, messages.player_left(session.session_id, session.display_name or ""))
        self._cancel_pending_closure(code)
        self._pending_closures[code] = asyncio.get_running_loop().create_task(self._close_after_grace(code))
        logger.info(f"Host of room {code} disconnected, holding room for {self._host_grace_seconds}s")

    async def _close_after_grace(self, code: str) -> None:
        await asyncio.sleep(self._host_grace_seconds)
        self._pending_closures.pop(code, None)
        logger.info(f"Host of room {code} did not return, closing it")
        try:
            await self._close_room(code, "Host disconnected")
        except Exception:
            logger.error(f"Failed to close room {code} after host grace period", exc_info=True)

    def _cancel_pending_closure(self, code: str) -> None:
        task = self._pending_closures.pop(code, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            logger.info(f"Pending closure of room {code} cancelled")


def _colors_of(roster: list[Session]) -> list[Color]:
    return [member.color for member in roster if member.color is not None]
