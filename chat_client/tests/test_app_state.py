# chat_client/tests/test_app_state.py
from unittest.mock import Mock

from chat_client.state_manager import AppState, StateEvent


def test_observers_receive_updates_until_unsubscribed():
    state = AppState()
    callback = Mock()
    state.subscribe(StateEvent.ROOMS_LOADED, callback)
    state.subscribe(StateEvent.ROOMS_LOADED, callback)

    state.set_rooms([{"id": 1}])
    callback.assert_called_once_with({"rooms": [{"id": 1}]})

    state.unsubscribe(StateEvent.ROOMS_LOADED, callback)
    state.set_rooms([])
    assert callback.call_count == 1


def test_failing_observer_does_not_block_others():
    state = AppState()
    good = Mock()
    state.subscribe(StateEvent.FRIEND_REQUESTS_COUNT_UPDATED, Mock(side_effect=RuntimeError("boom")))
    state.subscribe(StateEvent.FRIEND_REQUESTS_COUNT_UPDATED, good)

    state.set_friend_request_count(2)

    good.assert_called_once_with({"count": 2})


def test_switching_chat_resets_pane():
    state = AppState()
    state.set_current_chat(("room", 1))
    state.set_messages([{"id": 1}])
    state.set_room_users([{"id": 2}])
    state.increment_unread(("dm", 4))

    state.set_current_chat(("dm", 4))

    assert state.messages == []
    assert state.room_users == []
    assert state.unread_count(("dm", 4)) == 0
    assert state.is_selected("dm", 4)


def test_leaving_a_room_drops_its_badge():
    state = AppState()
    state.increment_unread(("room", 3))
    state.increment_unread(("room", 3))
    assert state.unread_count(("room", 3)) == 2

    state.set_rooms([{"id": 1}])

    assert state.unread_count(("room", 3)) == 0


def test_returned_collections_are_copies():
    state = AppState()
    state.set_current_user({"id": 1, "username": "alice"})
    state.set_rooms([{"id": 1}])

    state.rooms.append({"id": 2})
    state.current_user["username"] = "mallory"

    assert len(state.rooms) == 1
    assert state.current_user["username"] == "alice"


def test_clear_all_state_logs_out():
    state = AppState()
    logged_out = Mock()
    state.subscribe(StateEvent.USER_LOGGED_OUT, logged_out)
    state.set_current_user({"id": 1, "username": "alice"})
    state.set_current_chat(("room", 1))
    state.set_online_users([{"id": 1}])

    state.clear_all_state()

    assert not state.is_authenticated
    assert state.current_chat is None
    assert state.online_users == []
    logged_out.assert_called_once_with({})


def test_connection_status_notifies_on_change_only():
    state = AppState()
    callback = Mock()
    state.subscribe(StateEvent.CONNECTION_STATUS_CHANGED, callback)

    state.set_connection_status("connecting")
    state.set_connection_status("connecting")

    callback.assert_called_once_with({"status": "connecting"})
