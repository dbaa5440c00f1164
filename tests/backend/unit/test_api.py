import asyncio

import pytest

fastapi = pytest.importorskip("fastapi")
pytest.importorskip("httpx")
from fastapi.testclient import TestClient

from roomhub.backend.api import WebSocketConnection, create_app, decode_frame
from roomhub.backend.config import CoordinatorSettings
from roomhub.backend.errors import InvalidMessage
from roomhub.backend.identity import InMemoryUserDirectory
from roomhub.backend.store import InMemoryRoomStore


def _settings() -> CoordinatorSettings:
    return CoordinatorSettings(
        server_salt="test-salt",
        token_secret="test-secret",
        database_url=None,
        host="127.0.0.1",
        port=8000,
        store_timeout_seconds=5.0,
        host_grace_seconds=0.0,
        max_players_limit=50,
        log_level="INFO",
        log_file=None,
    )


def _app_with_users(*users: tuple[str, str]):
    directory = InMemoryUserDirectory(token_secret="test-secret")
    for user_id, name in users:
        directory.register_user(user_id, name)
    return create_app(store=InMemoryRoomStore(), directory=directory, settings=_settings()), directory


def test_health_endpoint_reports_ok() -> None:
    app, _ = _app_with_users()
    with TestClient(app) as client:
        response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_room_info_returns_404_for_unknown_code() -> None:
    app, _ = _app_with_users()
    with TestClient(app) as client:
        response = client.get("/api/rooms/ABC234")

    assert response.status_code == 404


def test_websocket_create_then_room_info_reports_occupancy() -> None:
    app, directory = _app_with_users(("user-a", "Alice"))
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"type": "auth", "credential": directory.issue_credential("user-a")})
            assert websocket.receive_json()["type"] == "auth_success"

            websocket.send_json({"type": "create_room", "maxPlayers": 1, "levelData": {"blocks": []}})
            created = websocket.receive_json()
            assert created["type"] == "room_created"

            response = client.get(f"/api/rooms/{created['code'].lower()}")

    assert response.status_code == 200
    info = response.json()
    assert info["code"] == created["code"]
    assert info["max_players"] == 1
    assert info["password_required"] is False
    assert info["player_count"] == 1
    assert info["is_full"] is True


def test_websocket_join_announces_new_player_to_host() -> None:
    app, directory = _app_with_users(("user-a", "Alice"), ("user-b", "Bob"))
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws_host:
            ws_host.send_json({"type": "auth", "credential": directory.issue_credential("user-a")})
            host_auth = ws_host.receive_json()
            ws_host.send_json({"type": "create_room", "levelData": {"blocks": [1]}})
            code = ws_host.receive_json()["code"]

            with client.websocket_connect("/ws") as ws_guest:
                ws_guest.send_json({"type": "auth", "credential": directory.issue_credential("user-b")})
                guest_auth = ws_guest.receive_json()
                ws_guest.send_json({"type": "join_room", "code": code})

                joined = ws_guest.receive_json()
                announced = ws_host.receive_json()

    assert joined["type"] == "room_joined"
    assert joined["levelData"] == {"blocks": [1]}
    assert [entry["id"] for entry in joined["roster"]] == [host_auth["sessionId"]]
    assert announced["type"] == "player_joined"
    assert announced["id"] == guest_auth["sessionId"]
    assert announced["name"] == "Bob"


def test_websocket_authenticates_from_query_token() -> None:
    app, directory = _app_with_users(("user-a", "Alice"))
    with TestClient(app) as client:
        token = directory.issue_credential("user-a")
        with client.websocket_connect(f"/ws?token={token}") as websocket:
            message = websocket.receive_json()

    assert message["type"] == "auth_success"
    assert message["sessionId"]


def test_websocket_reports_invalid_json_and_keeps_session_open() -> None:
    app, _ = _app_with_users()
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text("{not json")
            first = websocket.receive_json()
            websocket.send_json({"type": "leave_room"})
            second = websocket.receive_json()

    assert first == {"type": "error", "message": "Invalid message"}
    assert second == {"type": "error", "message": "Not authenticated"}


def test_websocket_disconnect_of_host_closes_room() -> None:
    app, directory = _app_with_users(("user-a", "Alice"), ("user-b", "Bob"))
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws_guest:
            ws_guest.send_json({"type": "auth", "credential": directory.issue_credential("user-b")})
            ws_guest.receive_json()

            with client.websocket_connect("/ws") as ws_host:
                ws_host.send_json({"type": "auth", "credential": directory.issue_credential("user-a")})
                ws_host.receive_json()
                ws_host.send_json({"type": "create_room"})
                code = ws_host.receive_json()["code"]

                ws_guest.send_json({"type": "join_room", "code": code})
                assert ws_guest.receive_json()["type"] == "room_joined"

            closed = ws_guest.receive_json()

    assert closed == {"type": "room_closed", "message": "Host left the room"}


def test_websocket_accepts_binary_json_frames_and_keeps_session_open() -> None:
    app, directory = _app_with_users(("user-a", "Alice"))
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"type": "auth", "credential": directory.issue_credential("user-a")})
            websocket.receive_json()

            websocket.send_bytes(b"\x80 not json")
            rejected = websocket.receive_json()
            websocket.send_bytes(b'{"type": "create_room"}')
            created = websocket.receive_json()
            websocket.send_json({"type": "create_room"})
            repeated = websocket.receive_json()

    assert rejected == {"type": "error", "message": "Invalid message"}
    assert created["type"] == "room_created"
    assert repeated == {"type": "error", "message": "You are already in a room. Leave it first."}


def test_decode_frame_reads_text_and_bytes() -> None:
    assert decode_frame({"type": "websocket.receive", "text": '{"type": "leave_room"}'}) == {"type": "leave_room"}
    assert decode_frame({"type": "websocket.receive", "bytes": b'{"type": "leave_room"}'}) == {"type": "leave_room"}

    with pytest.raises(InvalidMessage):
        decode_frame({"type": "websocket.receive", "bytes": b"\x80"})
    with pytest.raises(InvalidMessage):
        decode_frame({"type": "websocket.receive"})


class _StalledWebSocket:
    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.sent: list[dict] = []
        self.close_codes: list[int] = []

    async def send_json(self, message: dict) -> None:
        await self.release.wait()
        self.sent.append(message)

    async def close(self, code: int = 1000) -> None:
        self.close_codes.append(code)


def test_connection_that_stops_reading_is_dropped_once_queue_fills() -> None:
    async def scenario():
        websocket = _StalledWebSocket()
        connection = WebSocketConnection(websocket, max_pending=3)
        connection.start()

        for index in range(10):
            connection.send({"type": "player_position", "id": "s-1", "x": index, "y": 0, "vx": 0, "vy": 0})

        assert connection.closed is True
        await connection.close()

        assert websocket.close_codes == [1008]
        assert websocket.sent == []

    asyncio.run(scenario())


def test_connection_delivers_queued_frames_in_order_before_closing() -> None:
    async def scenario():
        websocket = _StalledWebSocket()
        websocket.release.set()
        connection = WebSocketConnection(websocket, max_pending=3)
        connection.start()

        connection.send({"type": "room_created", "code": "ABC234"})
        connection.send({"type": "room_closed", "message": "Host left the room"})
        await connection.close()

        assert [message["type"] for message in websocket.sent] == ["room_created", "room_closed"]
        assert websocket.close_codes == []

    asyncio.run(scenario())
