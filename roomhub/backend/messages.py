"""Wire protocol: inbound message models and outbound message builders."""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from roomhub.backend.errors import InvalidMessage
from roomhub.backend.models import RosterEntry

CHAT_MAX_LENGTH = 200


class _Inbound(BaseModel):
    model_config = ConfigDict(extra="ignore")


class AuthMessage(_Inbound):
    type: Literal["auth"]
    credential: str = Field(validation_alias=AliasChoices("credential", "token"))


class CreateRoomMessage(_Inbound):
    type: Literal["create_room"]
    level_data: Any = Field(default=None, validation_alias=AliasChoices("levelData", "mapData"))
    max_players: int | None = Field(default=None, ge=1, validation_alias=AliasChoices("maxPlayers", "max_players"))
    password_required: bool = Field(
        default=False,
        validation_alias=AliasChoices("passwordRequired", "usePassword", "password_required"),
    )
    password: str | None = None


class JoinRoomMessage(_Inbound):
    type: Literal["join_room"]
    code: str = Field(validation_alias=AliasChoices("code", "roomCode"))
    password: str | None = None


class RejoinRoomMessage(_Inbound):
    type: Literal["rejoin_room"]
    code: str = Field(validation_alias=AliasChoices("code", "roomCode"))


class LeaveRoomMessage(_Inbound):
    type: Literal["leave_room"]


class PositionMessage(_Inbound):
    type: Literal["position"]
    x: float
    y: float
    vx: float | None = None
    vy: float | None = None


class KickPlayerMessage(_Inbound):
    type: Literal["kick_player"]
    target_session_id: str = Field(validation_alias=AliasChoices("targetSessionId", "playerId"))


class ChatMessage(_Inbound):
    type: Literal["chat"]
    message: str = ""


InboundMessage = Annotated[
    Union[
        AuthMessage,
        CreateRoomMessage,
        JoinRoomMessage,
        RejoinRoomMessage,
        LeaveRoomMessage,
        PositionMessage,
        KickPlayerMessage,
        ChatMessage,
    ],
    Field(discriminator="type"),
]

_inbound_adapter: TypeAdapter[Any] = TypeAdapter(InboundMessage)


def parse_inbound(data: Any) -> Any:
    """Validate a decoded JSON frame into one of the inbound message models."""
    try:
        return _inbound_adapter.validate_python(data)
    except ValidationError as exc:
        raise InvalidMessage() from exc


def truncate_chat(message: str) -> str:
    """Cut ``message`` to 200 UTF-16 code units, dropping a split surrogate pair."""
    encoded = message.encode("utf-16-le")
    if len(encoded) <= CHAT_MAX_LENGTH * 2:
        return message
    return encoded[: CHAT_MAX_LENGTH * 2].decode("utf-16-le", errors="ignore")


def encode_level_data(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":")).encode("utf-8")


def decode_level_data(blob: bytes) -> Any:
    return json.loads(blob.decode("utf-8"))


def auth_success(session_id: str) -> dict[str, Any]:
    return {"type": "auth_success", "sessionId": session_id}


def error(message: str) -> dict[str, Any]:
    return {"type": "error", "message": message}


def room_created(code: str) -> dict[str, Any]:
    return {"type": "room_created", "code": code}


def room_joined(code: str, level_data: bytes, roster: list[RosterEntry]) -> dict[str, Any]:
    return {
        "type": "room_joined",
        "code": code,
        "levelData": decode_level_data(level_data),
        "roster": [entry.as_dict() for entry in roster],
    }


def room_rejoined(code: str, is_host: bool, roster: list[RosterEntry]) -> dict[str, Any]:
    return {
        "type": "room_rejoined",
        "code": code,
        "isHost": is_host,
        "roster": [entry.as_dict() for entry in roster],
    }


def player_joined(entry: RosterEntry) -> dict[str, Any]:
    return {"type": "player_joined", **entry.as_dict()}


def player_left(session_id: str, name: str, kicked: bool = False) -> dict[str, Any]:
    message: dict[str, Any] = {"type": "player_left", "id": session_id, "name": name}
    if kicked:
        message["kicked"] = True
    return message


def player_position(session_id: str, x: float, y: float, vx: float, vy: float) -> dict[str, Any]:
    return {"type": "player_position", "id": session_id, "x": x, "y": y, "vx": vx, "vy": vy}


def player_kicked(message: str = "You have been kicked by the host") -> dict[str, Any]:
    return {"type": "player_kicked", "message": message}


def room_closed(message: str = "Host left the room") -> dict[str, Any]:
    return {"type": "room_closed", "message": message}


def chat_message(entry: RosterEntry, message: str) -> dict[str, Any]:
    return {
        "type": "chat_message",
        "id": entry.id,
        "name": entry.name,
        "color": entry.color,
        "message": truncate_chat(message),
    }
