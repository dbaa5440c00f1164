"""FastAPI endpoints for the coordinator websocket and room lookups."""

from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from . import messages
from .config import CoordinatorSettings, load_settings
from .coordinator import Coordinator
from .errors import InvalidMessage, RoomNotFound
from .identity import IdentityGate, UserDirectory, create_user_directory
from .logging_config import get_logger, setup_logging
from .registry import RoomRegistry
from .store import RoomStore, create_store

logger = get_logger(__name__)


class HealthResponse(BaseModel):
    status: str


class RoomInfoResponse(BaseModel):
    code: str
    max_players: int
    password_required: bool
    player_count: int
    is_full: bool
    created_at: datetime


OUTBOUND_QUEUE_LIMIT = 256
POLICY_VIOLATION = 1008


def decode_frame(frame: dict[str, Any]) -> Any:
    """Decode a text or binary websocket frame as JSON."""
    raw: str | bytes | None = frame.get("text")
    if raw is None:
        raw = frame.get("bytes")
    if raw is None:
        raise InvalidMessage()
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidMessage() from None


class WebSocketConnection:
    """Outbound channel for one websocket, drained by its own writer task.

    A peer that lets more than ``max_pending`` frames pile up is dropped.
    """

    def __init__(self, websocket: WebSocket, max_pending: int = OUTBOUND_QUEUE_LIMIT) -> None:
        self._websocket = websocket
        self._queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue(maxsize=max_pending)
        self._closed = False
        self._overflowed = False
        self._writer: asyncio.Task[None] | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        self._writer = asyncio.create_task(self._drain())

    def send(self, message: dict[str, Any]) -> None:
        if self._closed:
            return
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(f"Outbound queue full ({self._queue.maxsize} frames), dropping slow connection")
            self._overflowed = True
            self._stop()

    async def close(self) -> None:
        if not self._closed:
            self._stop()
        if self._writer is not None:
            await self._writer

    def _stop(self) -> None:
        self._closed = True
        if self._overflowed or self._queue.full():
            while not self._queue.empty():
                self._queue.get_nowait()
        self._queue.put_nowait(None)

    async def _drain(self) -> None:
        while True:
            message = await self._queue.get()
            if message is None:
                break
            try:
                await self._websocket.send_json(message)
            except (RuntimeError, OSError, WebSocketDisconnect):
                self._closed = True
                return
        if self._overflowed:
            try:
                await self._websocket.close(code=POLICY_VIOLATION)
            except (RuntimeError, OSError):
                logger.debug("Websocket already closed while dropping slow connection")


def create_app(
    store: RoomStore | None = None,
    directory: UserDirectory | None = None,
    settings: CoordinatorSettings | None = None,
) -> FastAPI:
    runtime_settings = settings if settings is not None else load_settings()
    room_store = store if store is not None else create_store(runtime_settings.database_url)
    user_directory = (
        directory
        if directory is not None
        else create_user_directory(runtime_settings.database_url, runtime_settings.token_secret)
    )
    coordinator = Coordinator(
        gate=IdentityGate(user_directory, timeout_seconds=runtime_settings.store_timeout_seconds),
        registry=RoomRegistry(room_store, timeout_seconds=runtime_settings.store_timeout_seconds),
        server_salt=runtime_settings.server_salt,
        host_grace_seconds=runtime_settings.host_grace_seconds,
        max_players_limit=runtime_settings.max_players_limit,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await coordinator.shutdown()

    app = FastAPI(title="Room Coordinator API", version="0.1.0", lifespan=lifespan)
    app.state.coordinator = coordinator
    app.state.user_directory = user_directory

    @app.get("/", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/api/rooms/{code}", response_model=RoomInfoResponse)
    async def get_room(code: str) -> RoomInfoResponse:
        try:
            record = await coordinator.lookup_room(code)
        except RoomNotFound:
            raise HTTPException(status_code=404, detail="Room not found") from None
        player_count = coordinator.player_count(record.code)
        return RoomInfoResponse(
            code=record.code,
            max_players=record.max_players,
            password_required=record.password_required,
            player_count=player_count,
            is_full=player_count >= record.max_players,
            created_at=record.created_at,
        )

    @app.websocket("/ws")
    async def coordinator_ws(websocket: WebSocket) -> None:
        await websocket.accept()
        connection = WebSocketConnection(websocket)
        connection.start()
        session = coordinator.connect(connection)
        logger.info(f"Session {session.session_id} connected")

        token = websocket.query_params.get("token")
        try:
            if token:
                await coordinator.dispatch(session, {"type": "auth", "credential": token})
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(frame.get("code", 1000))
                try:
                    data = decode_frame(frame)
                except InvalidMessage as exc:
                    connection.send(messages.error(exc.message))
                    continue
                await coordinator.dispatch(session, data)
        except WebSocketDisconnect:
            pass
        finally:
            await coordinator.disconnect(session)
            await connection.close()

    return app


def _default_app() -> FastAPI:
    settings = load_settings()
    setup_logging(log_level=settings.log_level, log_file=settings.log_file)
    return create_app(settings=settings)


app = _default_app()
