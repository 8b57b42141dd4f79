import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

ChatTarget = Tuple[str, int]  # ("room", room_id) or ("dm", other_user_id)


class StateEvent(Enum):
    """Events that can trigger state changes."""

    USER_LOGGED_IN = "user_logged_in"
    USER_LOGGED_OUT = "user_logged_out"
    USER_UPDATED = "user_updated"
    ROOMS_LOADED = "rooms_loaded"
    FRIENDS_LOADED = "friends_loaded"
    CONVERSATIONS_LOADED = "conversations_loaded"
    ONLINE_USERS_UPDATED = "online_users_updated"
    PRESENCE_CHANGED = "presence_changed"
    FRIEND_REQUESTS_COUNT_UPDATED = "friend_requests_count_updated"
    ROOM_USERS_UPDATED = "room_users_updated"
    MESSAGES_LOADED = "messages_loaded"
    MESSAGE_RECEIVED = "message_received"
    MESSAGE_REMOVED = "message_removed"
    UNREAD_COUNT_UPDATED = "unread_count_updated"
    CURRENT_CHAT_CHANGED = "current_chat_changed"
    TYPING_CHANGED = "typing_changed"
    NOTIFICATION = "notification"
    ERROR = "error"
    CONNECTION_STATUS_CHANGED = "connection_status_changed"


def _named_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] %(levelname)s:%(name)s: %(message)s")
        )
        logger.addHandler(handler)
    return logger


class AppState:
    """
    Centralized client state store using observer pattern.
    Thread-safe: pushes are applied from the socket reader thread while the
    UI reads from its own.
    """

    def __init__(self) -> None:
        self._instance_lock = threading.RLock()
        self.logger = _named_logger("AppState")

        self._current_user: Optional[Dict[str, Any]] = None
        self._rooms: List[Dict[str, Any]] = []
        self._friends: List[Dict[str, Any]] = []
        self._conversations: List[Dict[str, Any]] = []
        self._online_users: Dict[int, Dict[str, Any]] = {}
        self._friend_request_count: int = 0
        self._current_chat: Optional[ChatTarget] = None
        self._messages: List[Dict[str, Any]] = []
        self._room_users: List[Dict[str, Any]] = []
        self._unread_counts: Dict[ChatTarget, int] = {}
        self._typing: Dict[ChatTarget, Dict[int, str]] = {}
        self._connection_status: str = "disconnected"

        self._observers: Dict[StateEvent, List[Callable]] = {
            event: [] for event in StateEvent
        }

    # Observer pattern methods
    def subscribe(
        self, event: StateEvent, callback: Callable[[Dict[str, Any]], None]
    ) -> None:
        with self._instance_lock:
            if callback not in self._observers[event]:
                self._observers[event].append(callback)

    def unsubscribe(
        self, event: StateEvent, callback: Callable[[Dict[str, Any]], None]
    ) -> None:
        with self._instance_lock:
            if callback in self._observers[event]:
                self._observers[event].remove(callback)

    def _notify_observers(self, event: StateEvent, data: Dict[str, Any]) -> None:
        with self._instance_lock:
            observers = self._observers[event].copy()

        for callback in observers:
            try:
                callback(data)
            except Exception as e:
                self.logger.error(
                    f"Error in observer callback for {event.value}: {str(e)}"
                )

    # User
    @property
    def current_user(self) -> Optional[Dict[str, Any]]:
        with self._instance_lock:
            return self._current_user.copy() if self._current_user else None

    @property
    def current_user_id(self) -> Optional[int]:
        with self._instance_lock:
            return self._current_user["id"] if self._current_user else None

    @property
    def is_authenticated(self) -> bool:
        with self._instance_lock:
            return self._current_user is not None

    def set_current_user(self, user: Optional[Dict[str, Any]]) -> None:
        with self._instance_lock:
            self._current_user = user.copy() if user else None

        event = StateEvent.USER_LOGGED_IN if user else StateEvent.USER_LOGGED_OUT
        self._notify_observers(event, {"user": self.current_user})
        self.logger.info(f"User state changed: {event.value}")

    def update_current_user(self, user_updates: Dict[str, Any]) -> None:
        with self._instance_lock:
            if not self._current_user:
                return
            self._current_user.update(user_updates)
            user_data = self._current_user.copy()

        self._notify_observers(StateEvent.USER_UPDATED, {"user": user_data})

    # Lists
    @property
    def rooms(self) -> List[Dict[str, Any]]:
        with self._instance_lock:
            return list(self._rooms)

    def set_rooms(self, rooms: List[Dict[str, Any]]) -> None:
        with self._instance_lock:
            self._rooms = list(rooms)
            live_ids = {room["id"] for room in self._rooms}
            for target in [t for t in self._unread_counts if t[0] == "room"]:
                if target[1] not in live_ids:
                    del self._unread_counts[target]
        self._notify_observers(StateEvent.ROOMS_LOADED, {"rooms": self.rooms})

    @property
    def friends(self) -> List[Dict[str, Any]]:
        with self._instance_lock:
            return list(self._friends)

    def set_friends(self, friends: List[Dict[str, Any]]) -> None:
        with self._instance_lock:
            self._friends = list(friends)
        self._notify_observers(StateEvent.FRIENDS_LOADED, {"friends": self.friends})

    @property
    def conversations(self) -> List[Dict[str, Any]]:
        with self._instance_lock:
            return list(self._conversations)

    def set_conversations(self, conversations: List[Dict[str, Any]]) -> None:
        with self._instance_lock:
            self._conversations = list(conversations)
        self._notify_observers(
            StateEvent.CONVERSATIONS_LOADED, {"conversations": self.conversations}
        )

    @property
    def online_users(self) -> List[Dict[str, Any]]:
        with self._instance_lock:
            return list(self._online_users.values())

    def is_user_online(self, user_id: int) -> bool:
        with self._instance_lock:
            return user_id in self._online_users

    def set_online_users(self, users: List[Dict[str, Any]]) -> None:
        with self._instance_lock:
            self._online_users = {user["id"]: user for user in users}
        self._notify_observers(
            StateEvent.ONLINE_USERS_UPDATED, {"users": self.online_users}
        )

    def apply_presence(self, user_id: int, username: str, status: str) -> None:
        """Fold one ``user_status_changed`` push into the online set and friend list."""
        with self._instance_lock:
            if status == "offline":
                self._online_users.pop(user_id, None)
            else:
                user = self._online_users.setdefault(
                    user_id, {"id": user_id, "username": username}
                )
                user["status"] = status
            for friend in self._friends:
                if friend["id"] == user_id:
                    friend["status"] = status

        self._notify_observers(
            StateEvent.PRESENCE_CHANGED,
            {"user_id": user_id, "username": username, "status": status},
        )

    @property
    def friend_request_count(self) -> int:
        with self._instance_lock:
            return self._friend_request_count

    def set_friend_request_count(self, count: int) -> None:
        with self._instance_lock:
            self._friend_request_count = count
        self._notify_observers(
            StateEvent.FRIEND_REQUESTS_COUNT_UPDATED, {"count": count}
        )

    # Selection and the active pane
    @property
    def current_chat(self) -> Optional[ChatTarget]:
        with self._instance_lock:
            return self._current_chat

    def is_selected(self, kind: str, target_id: Optional[int]) -> bool:
        with self._instance_lock:
            return self._current_chat == (kind, target_id)

    def set_current_chat(self, target: Optional[ChatTarget]) -> None:
        """Switch the active pane; clears its messages and the target's unread badge."""
        with self._instance_lock:
            self._current_chat = target
            self._messages = []
            self._room_users = []
            if target is not None:
                self._unread_counts.pop(target, None)

        self._notify_observers(StateEvent.CURRENT_CHAT_CHANGED, {"chat": target})
        if target is not None:
            self._notify_observers(
                StateEvent.UNREAD_COUNT_UPDATED, {"chat": target, "count": 0}
            )

    @property
    def messages(self) -> List[Dict[str, Any]]:
        with self._instance_lock:
            return list(self._messages)

    def set_messages(self, messages: List[Dict[str, Any]]) -> None:
        with self._instance_lock:
            self._messages = list(messages)
        self._notify_observers(StateEvent.MESSAGES_LOADED, {"messages": self.messages})

    def add_message(self, message: Dict[str, Any]) -> None:
        with self._instance_lock:
            if any(m["id"] == message["id"] for m in self._messages):
                return
            self._messages.append(message)
        self._notify_observers(StateEvent.MESSAGE_RECEIVED, {"message": message})

    def remove_message(self, message_id: int) -> None:
        with self._instance_lock:
            before = len(self._messages)
            self._messages = [m for m in self._messages if m["id"] != message_id]
            if len(self._messages) == before:
                return
        self._notify_observers(StateEvent.MESSAGE_REMOVED, {"message_id": message_id})

    @property
    def room_users(self) -> List[Dict[str, Any]]:
        with self._instance_lock:
            return list(self._room_users)

    def set_room_users(self, users: List[Dict[str, Any]]) -> None:
        with self._instance_lock:
            self._room_users = list(users)
        self._notify_observers(StateEvent.ROOM_USERS_UPDATED, {"users": self.room_users})

    # Badges
    def unread_count(self, target: ChatTarget) -> int:
        with self._instance_lock:
            return self._unread_counts.get(target, 0)

    def increment_unread(self, target: ChatTarget) -> None:
        with self._instance_lock:
            count = self._unread_counts.get(target, 0) + 1
            self._unread_counts[target] = count
        self._notify_observers(
            StateEvent.UNREAD_COUNT_UPDATED, {"chat": target, "count": count}
        )

    # Typing
    def typing_users(self, target: ChatTarget) -> List[str]:
        with self._instance_lock:
            return sorted(self._typing.get(target, {}).values())

    def set_typing(self, target: ChatTarget, user_id: int, username: str, typing: bool) -> None:
        with self._instance_lock:
            users = self._typing.setdefault(target, {})
            if typing:
                users[user_id] = username
            else:
                users.pop(user_id, None)
                if not users:
                    del self._typing[target]
        self._notify_observers(
            StateEvent.TYPING_CHANGED,
            {"chat": target, "users": self.typing_users(target)},
        )

    # Connection and notices
    @property
    def connection_status(self) -> str:
        with self._instance_lock:
            return self._connection_status

    def set_connection_status(self, status: str) -> None:
        with self._instance_lock:
            if self._connection_status == status:
                return
            self._connection_status = status
        self._notify_observers(
            StateEvent.CONNECTION_STATUS_CHANGED, {"status": status}
        )
        self.logger.info(f"Connection status: {status}")

    def notify(self, message: str, **extra: Any) -> None:
        self._notify_observers(StateEvent.NOTIFICATION, {"message": message, **extra})

    def report_error(self, message: str) -> None:
        self.logger.warning(f"Server error: {message}")
        self._notify_observers(StateEvent.ERROR, {"message": message})

    def clear_all_state(self) -> None:
        """Clear all state (used on logout)."""
        with self._instance_lock:
            self._current_user = None
            self._rooms = []
            self._friends = []
            self._conversations = []
            self._online_users = {}
            self._friend_request_count = 0
            self._current_chat = None
            self._messages = []
            self._room_users = []
            self._unread_counts = {}
            self._typing = {}

        self._notify_observers(StateEvent.USER_LOGGED_OUT, {})
        self.logger.info("All state cleared")


class SyncState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SYNCED = "synced"


TRANSPORT_STATES = {
    "connecting": SyncState.CONNECTING,
    "connected": SyncState.SYNCED,
    "disconnected": SyncState.DISCONNECTED,
}


class SyncStateMachine:
    """Keeps ``AppState`` in line with the server over an unreliable socket.

    Nothing is replayed across a reconnect gap, so every entry into
    ``SYNCED`` re-requests the whole picture. While synced a background
    timer re-asserts presence every ``status_interval`` seconds.
    """

    def __init__(
        self,
        app_state: AppState,
        emit: Callable[[str, Optional[dict]], Any],
        status_interval: float = 30.0,
    ):
        self.app_state = app_state
        self.emit = emit
        self.status_interval = status_interval
        self.state = SyncState.DISCONNECTED
        self.logger = _named_logger("SyncStateMachine")

        self._lock = threading.Lock()
        self._timer_stop: Optional[threading.Event] = None

        self.handlers: Dict[str, Callable[[Any], None]] = {
            "rooms_list": self.on_rooms_list,
            "room_messages": self.on_room_messages,
            "room_users": self.on_room_users,
            "new_message": self.on_new_message,
            "new_dm": self.on_new_dm,
            "dm_messages": self.on_dm_messages,
            "dm_conversations": self.on_dm_conversations,
            "online_users": self.on_online_users,
            "user_status_changed": self.on_user_status_changed,
            "friends_list_updated": self.on_friends_list_updated,
            "friend_requests_count_updated": self.on_friend_requests_count_updated,
            "user_typing": self.on_user_typing,
            "user_stopped_typing": self.on_user_stopped_typing,
            "message_deleted": self.on_message_deleted,
            "conversation_deleted": self.on_conversation_deleted,
            "refresh_dm_messages": self.on_refresh_dm_messages,
            "refresh_dm_conversations": self.on_refresh_dm_conversations,
            "refresh_friends_status": self.on_refresh_friends_status,
            "refresh_room_users": self.on_refresh_room_users,
            "friend_request_received": self.on_friend_notice,
            "friend_request_accepted": self.on_friend_notice,
            "friend_removed": self.on_friend_notice,
            "error": self.on_error,
        }

    # Transport callbacks

    def on_transport_status(self, status: str) -> None:
        new_state = TRANSPORT_STATES.get(status)
        if new_state is None:
            self.logger.warning(f"Unknown transport status: {status}")
            return
        with self._lock:
            previous, self.state = self.state, new_state
        self.app_state.set_connection_status(new_state.value)

        if new_state == SyncState.SYNCED:
            self.resync()
            self._start_status_timer()
        elif previous == SyncState.SYNCED:
            self._stop_status_timer()

    def handle_event(self, event: str, data: Any) -> None:
        handler = self.handlers.get(event)
        if handler is None:
            self.logger.debug(f"Ignoring push {event}")
            return
        handler(data)

    # Outbound requests

    def resync(self) -> None:
        """Request every view again; the selected room or DM is fetched too."""
        self.logger.info("Synced, requesting full resync")
        self.emit("refresh_my_status", {})
        self.emit("get_friends_list", {})
        self.emit("get_dm_conversations", {})
        self.emit("get_online_users", {})
        self.emit("get_friend_requests_count", {})
        self.emit("get_user_rooms", {})
        self._request_selected()

    def _request_selected(self) -> None:
        target = self.app_state.current_chat
        if target is None:
            return
        kind, target_id = target
        if kind == "room":
            # join_room answers with both room_messages and room_users
            self.emit("join_room", {"roomId": target_id})
        else:
            self.emit("get_dm_messages", {"recipientId": target_id})

    def tick(self) -> None:
        """One periodic presence refresh; skipped unless synced."""
        if self.state != SyncState.SYNCED:
            return
        self.emit("refresh_my_status", {})

    def _start_status_timer(self) -> None:
        self._stop_status_timer()
        stop = threading.Event()
        self._timer_stop = stop

        def run():
            while not stop.wait(self.status_interval):
                self.tick()

        threading.Thread(target=run, daemon=True).start()

    def _stop_status_timer(self) -> None:
        if self._timer_stop is not None:
            self._timer_stop.set()
            self._timer_stop = None

    def shutdown(self) -> None:
        self._stop_status_timer()
        with self._lock:
            self.state = SyncState.DISCONNECTED
        self.app_state.set_connection_status(SyncState.DISCONNECTED.value)

    # Selection

    def select_room(self, room_id: int) -> None:
        self.app_state.set_current_chat(("room", room_id))
        if self.state == SyncState.SYNCED:
            self.emit("join_room", {"roomId": room_id})

    def select_dm(self, user_id: int) -> None:
        self.app_state.set_current_chat(("dm", user_id))
        if self.state == SyncState.SYNCED:
            self.emit("get_dm_messages", {"recipientId": user_id})

    def clear_selection(self) -> None:
        self.app_state.set_current_chat(None)

    # Push handlers

    def on_rooms_list(self, rooms) -> None:
        self.app_state.set_rooms(rooms or [])

    def on_room_messages(self, data) -> None:
        if self.app_state.is_selected("room", data.get("roomId")):
            self.app_state.set_messages(data.get("messages", []))

    def on_room_users(self, data) -> None:
        if self.app_state.is_selected("room", data.get("roomId")):
            self.app_state.set_room_users(data.get("users", []))

    def on_new_message(self, message) -> None:
        target = ("room", message.get("room_id"))
        if self.app_state.is_selected(*target):
            self.app_state.add_message(message)
        elif message.get("sender_id") != self.app_state.current_user_id:
            self.app_state.increment_unread(target)

    def on_new_dm(self, message) -> None:
        me = self.app_state.current_user_id
        incoming = message.get("sender_id") != me
        other_id = message.get("sender_id") if incoming else message.get("recipient_id")
        target = ("dm", other_id)
        if self.app_state.is_selected(*target):
            self.app_state.add_message(message)
        elif incoming:
            self.app_state.increment_unread(target)

    def on_dm_messages(self, data) -> None:
        if self.app_state.is_selected("dm", data.get("recipientId")):
            self.app_state.set_messages(data.get("messages", []))

    def on_dm_conversations(self, conversations) -> None:
        self.app_state.set_conversations(conversations or [])

    def on_online_users(self, users) -> None:
        self.app_state.set_online_users(users or [])

    def on_user_status_changed(self, data) -> None:
        self.app_state.apply_presence(data["userId"], data.get("username"), data["status"])

    def on_friends_list_updated(self, data) -> None:
        self.app_state.set_friends(data.get("friends", []))

    def on_friend_requests_count_updated(self, data) -> None:
        self.app_state.set_friend_request_count(data.get("count", 0))

    def _typing_target(self, data) -> Optional[ChatTarget]:
        if data.get("roomId") is not None:
            return "room", data["roomId"]
        if data.get("recipientId") is not None:
            # a DM typing hint is addressed to us; the pane is keyed by the typist
            return "dm", data["userId"]
        return None

    def on_user_typing(self, data) -> None:
        target = self._typing_target(data)
        if target is not None:
            self.app_state.set_typing(target, data["userId"], data["username"], True)

    def on_user_stopped_typing(self, data) -> None:
        target = self._typing_target(data)
        if target is not None:
            self.app_state.set_typing(target, data["userId"], data["username"], False)

    def on_message_deleted(self, data) -> None:
        if self.app_state.is_selected("dm", data.get("conversationWith")):
            self.app_state.remove_message(data["messageId"])
        self.app_state.notify(f"{data.get('deletedBy')} deleted a message")

    def on_conversation_deleted(self, data) -> None:
        self.app_state.notify(
            f"{data.get('deletedBy')} cleared the conversation "
            f"({data.get('messageCount', 0)} messages)"
        )

    def on_refresh_dm_messages(self, data) -> None:
        user_id = data.get("userId")
        if self.app_state.is_selected("dm", user_id):
            self.emit("get_dm_messages", {"recipientId": user_id})

    def on_refresh_dm_conversations(self, _data) -> None:
        self.emit("get_dm_conversations", {})

    def on_refresh_friends_status(self, _data) -> None:
        self.emit("get_friends_list", {})

    def on_refresh_room_users(self, data) -> None:
        target = self.app_state.current_chat
        if target is None or target[0] != "room":
            return
        room_id = (data or {}).get("roomId")
        if room_id is None or room_id == target[1]:
            self.emit("get_room_users", {"roomId": target[1]})

    def on_friend_notice(self, data) -> None:
        self.app_state.notify(
            data.get("message", ""),
            user_id=data.get("userId"),
            friendship_id=data.get("friendshipId"),
        )

    def on_error(self, message) -> None:
        self.app_state.report_error(str(message))
