# chat_client/tests/test_chat_app.py
from unittest.mock import Mock

import pytest

from chat_client.api_client import ApiResponse
from chat_client.app import ChatApp
from chat_client.state_manager import StateEvent


@pytest.fixture
def api_client():
    api_client = Mock()
    api_client.login.return_value = ApiResponse(True, data={"access_token": "a"})
    api_client.get_current_user.return_value = ApiResponse(
        True, data={"id": 1, "username": "alice"}
    )
    return api_client


@pytest.fixture
def socket_client():
    socket_client = Mock()
    socket_client.emit.return_value = True
    return socket_client


@pytest.fixture
def app(api_client, socket_client):
    app = ChatApp(api_client=api_client, socket_client=socket_client, status_interval=3600)
    yield app
    app.sync.shutdown()


def test_login_opens_socket(app, socket_client):
    response = app.login("alice", "password123")

    assert response.success
    assert app.app_state.current_user_id == 1
    socket_client.start.assert_called_once()


def test_login_failure_keeps_socket_closed(app, api_client, socket_client):
    api_client.login.return_value = ApiResponse(False, status_code=401, error="Incorrect username or password")

    response = app.login("alice", "wrong")

    assert not response.success
    socket_client.start.assert_not_called()


def test_send_targets_current_selection(app, socket_client):
    assert not app.send_message("hello")

    app.open_room(5)
    app.send_message("hello")
    socket_client.emit.assert_called_with(
        "send_message", {"roomId": 5, "content": "hello", "messageType": "text"}
    )

    app.open_dm(2)
    app.set_typing(True)
    socket_client.emit.assert_called_with("typing_start", {"recipientId": 2})


def test_leaving_selected_room_closes_pane(app, api_client):
    api_client.leave_room.return_value = ApiResponse(True, data={"left": True})
    app.open_room(5)

    app.leave_room(5)

    assert app.app_state.current_chat is None


def test_logout_tears_down(app, api_client, socket_client):
    app.login("alice", "password123")
    app.sync.on_transport_status("connected")

    app.logout()

    socket_client.stop.assert_called_once()
    api_client.logout.assert_called_once()
    assert not app.app_state.is_authenticated
    assert app.app_state.connection_status == "disconnected"


def test_profile_update_reaches_observers(app, api_client):
    updates = []
    app.app_state.subscribe(StateEvent.USER_UPDATED, updates.append)
    app.login("alice", "password123")
    api_client.update_user.return_value = ApiResponse(
        True, data={"id": 1, "username": "alice", "display_name": "Alice"}
    )

    app.update_profile({"display_name": "Alice"})

    assert app.app_state.current_user["display_name"] == "Alice"
    assert updates[0]["user"]["display_name"] == "Alice"
