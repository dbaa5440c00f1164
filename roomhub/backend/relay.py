"""Fan-out of position updates and chat within a room."""

from __future__ import annotations

from roomhub.backend import messages
from roomhub.backend.logging_config import get_logger
from roomhub.backend.messages import ChatMessage, PositionMessage
from roomhub.backend.sessions import Session, SessionTable

logger = get_logger(__name__)


class Relay:
    def __init__(self, sessions: SessionTable) -> None:
        self._sessions = sessions

    def position(self, session: Session, message: PositionMessage) -> None:
        if session.room_code is None:
            return
        update = messages.player_position(
            session.session_id,
            x=message.x,
            y=message.y,
            vx=message.vx or 0,
            vy=message.vy or 0,
        )
        self._sessions.broadcast(session.room_code, update, exclude=session)

    def chat(self, session: Session, message: ChatMessage) -> None:
        if session.room_code is None or not message.message:
            return
        outgoing = messages.chat_message(session.roster_entry(), message.message)
        delivered = self._sessions.broadcast(session.room_code, outgoing)
        logger.debug(f"Chat from {session.session_id} in room {session.room_code} delivered to {delivered} sessions")
