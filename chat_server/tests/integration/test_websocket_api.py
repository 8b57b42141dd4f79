# chat_server/tests/integration/test_websocket_api.py
from unittest.mock import AsyncMock

import pytest
from fakeredis import aioredis
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from chat_server.config import AppConfig
from chat_server.main import Application

INITIAL_SYNC = [
    "rooms_list",
    "friends_list_updated",
    "dm_conversations",
    "online_users",
    "friend_requests_count_updated",
]


@pytest.fixture
def socket_client(tmp_path):
    """A full app over a file database, driven through its own event loop."""
    config = AppConfig(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}",
        REDIS_HOST="localhost",
        REDIS_PORT=6379,
        SECRET_KEY="test_secret_key",
        REFRESH_SECRET_KEY="test_refresh_secret_key",
    )
    application = Application(config)
    application.redis_client.connect = AsyncMock()
    application.redis_client.client = aioredis.FakeRedis()
    with TestClient(application.create_app()) as client:
        yield client


def register_and_login(client, username):
    client.post(
        "/api/v1/auth/register",
        json={"username": username, "email": f"{username}@example.com", "password": "testpassword"},
    )
    response = client.post(
        "/api/v1/auth/login", data={"username": username, "password": "testpassword"}
    )
    return response.json()["access_token"]


def receive_initial_sync(websocket):
    return {frame["event"]: frame["data"] for frame in (websocket.receive_json() for _ in INITIAL_SYNC)}


@pytest.mark.parametrize("query", ["", "?token=not-a-jwt"])
def test_socket_rejects_missing_or_bad_token(socket_client, query):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with socket_client.websocket_connect(f"/ws{query}") as websocket:
            websocket.receive_json()

    assert exc_info.value.code == 1008


def test_socket_initial_sync(socket_client):
    token = register_and_login(socket_client, "alice")

    with socket_client.websocket_connect(f"/ws?token={token}") as websocket:
        first = websocket.receive_json()
        assert first["event"] == "rooms_list"
        assert [room["name"] for room in first["data"]] == ["main"]
        rest = {websocket.receive_json()["event"] for _ in INITIAL_SYNC[1:]}
        assert rest == set(INITIAL_SYNC[1:])


def test_socket_reports_bad_frames(socket_client):
    token = register_and_login(socket_client, "alice")

    with socket_client.websocket_connect(f"/ws?token={token}") as websocket:
        receive_initial_sync(websocket)

        websocket.send_text("not json")
        assert websocket.receive_json() == {"event": "error", "data": "Frames must be JSON objects"}

        websocket.send_json(["get_user_rooms"])
        assert websocket.receive_json() == {"event": "error", "data": "Frames must carry an event name"}

        websocket.send_json({"event": "teleport"})
        assert websocket.receive_json() == {"event": "error", "data": "Unknown event: teleport"}

        websocket.send_json({"event": "get_friend_requests_count"})
        assert websocket.receive_json() == {
            "event": "friend_requests_count_updated",
            "data": {"count": 0},
        }


def test_presence_between_two_sockets(socket_client):
    alice_token = register_and_login(socket_client, "alice")
    bob_token = register_and_login(socket_client, "bob")
    bob_id = socket_client.get(
        "/api/v1/users/me", headers={"Authorization": f"Bearer {bob_token}"}
    ).json()["id"]

    with socket_client.websocket_connect(f"/ws?token={alice_token}") as alice:
        receive_initial_sync(alice)
        with socket_client.websocket_connect(f"/ws?token={bob_token}") as bob:
            bob_sync = receive_initial_sync(bob)
            assert {u["username"] for u in bob_sync["online_users"]} == {"alice", "bob"}

            assert [alice.receive_json() for _ in range(3)] == [
                {"event": "user_status_changed", "data": {"userId": bob_id, "username": "bob", "status": "online"}},
                {"event": "refresh_friends_status", "data": {}},
                {"event": "refresh_room_users", "data": {}},
            ]

        assert alice.receive_json() == {
            "event": "user_status_changed",
            "data": {"userId": bob_id, "username": "bob", "status": "offline"},
        }

        bob_me = socket_client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {bob_token}"})
        assert bob_me.json()["status"] == "offline"
