import argparse
import logging
import os
import threading
from typing import Any, Optional

from chat_client.api_client import ApiClient, ApiResponse, SocketClient
from chat_client.state_manager import AppState, StateEvent, SyncStateMachine


class ChatApp:
    """Headless client: REST calls go out over HTTP, views come back over the socket."""

    def __init__(
        self,
        api_client: Optional[ApiClient] = None,
        socket_client: Optional[SocketClient] = None,
        app_state: Optional[AppState] = None,
        status_interval: float = 30.0,
    ) -> None:
        self.logger: logging.Logger = logging.getLogger("ChatApp")
        self.logger.setLevel(logging.INFO)
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s:%(name)s: %(message)s"
        )
        handler.setFormatter(formatter)
        if not self.logger.handlers:
            self.logger.addHandler(handler)

        api_url = os.environ.get("API_URL", "http://localhost:8000/api/v1")
        ws_url = os.environ.get("WS_URL", "ws://localhost:8000/ws")

        self.api_client: ApiClient = api_client or ApiClient(api_url)
        self.app_state: AppState = app_state or AppState()
        self.sync: SyncStateMachine = SyncStateMachine(
            self.app_state, self._emit, status_interval=status_interval
        )
        self.socket_client: SocketClient = socket_client or SocketClient(
            ws_url,
            token_provider=self.api_client.ensure_fresh_token,
            on_event=self.sync.handle_event,
            on_status=self.sync.on_transport_status,
        )

        self.app_state.subscribe(StateEvent.NOTIFICATION, self._on_notification)
        self.app_state.subscribe(StateEvent.ERROR, self._on_error)

    def _emit(self, event: str, data: Optional[dict] = None) -> bool:
        return self.socket_client.emit(event, data)

    def _on_notification(self, data: dict[str, Any]) -> None:
        self.logger.info(f"Notice: {data.get('message')}")

    def _on_error(self, data: dict[str, Any]) -> None:
        self.logger.warning(f"Error: {data.get('message')}")

    # Session

    def initialize(self) -> bool:
        """Resume a stored session if the keyring still holds usable tokens."""
        if not self.api_client.refresh_token:
            return False
        return self._start_session()

    def login(self, username: str, password: str) -> ApiResponse:
        response = self.api_client.login(username, password)
        if response.success and not self._start_session():
            return ApiResponse(False, error="Could not load the current user")
        return response

    def _start_session(self) -> bool:
        user_response = self.api_client.get_current_user()
        if not user_response.success:
            self.logger.error(f"Failed to load current user: {user_response.error}")
            return False
        self.app_state.set_current_user(user_response.data)
        self.logger.info(
            f"Session started for user: {user_response.data.get('username', 'Unknown')}"
        )
        self.socket_client.start()
        return True

    def logout(self) -> None:
        self.logger.info("Handling user logout")
        self.socket_client.stop()
        self.sync.shutdown()
        self.api_client.logout()
        self.app_state.clear_all_state()

    def update_profile(self, user_data: dict[str, Any]) -> ApiResponse:
        response = self.api_client.update_user(user_data)
        if response.success:
            self.app_state.update_current_user(response.data)
        return response

    # Selection

    def open_room(self, room_id: int) -> None:
        self.sync.select_room(room_id)

    def open_dm(self, user_id: int) -> None:
        self.sync.select_dm(user_id)

    def close_chat(self) -> None:
        self.sync.clear_selection()

    # Socket actions

    def send_message(self, content: str, message_type: str = "text") -> bool:
        target = self.app_state.current_chat
        if target is None:
            self.logger.warning("No chat selected")
            return False
        kind, target_id = target
        if kind == "room":
            return self._emit(
                "send_message",
                {"roomId": target_id, "content": content, "messageType": message_type},
            )
        return self._emit(
            "send_dm",
            {"recipientId": target_id, "content": content, "messageType": message_type},
        )

    def set_typing(self, typing: bool) -> bool:
        target = self.app_state.current_chat
        if target is None:
            return False
        kind, target_id = target
        key = "roomId" if kind == "room" else "recipientId"
        return self._emit("typing_start" if typing else "typing_stop", {key: target_id})

    # HTTP actions; their views arrive as pushes

    def join_room(self, room_id: int) -> ApiResponse:
        response = self.api_client.join_room(room_id)
        if response.success:
            self.open_room(room_id)
        return response

    def leave_room(self, room_id: int) -> ApiResponse:
        response = self.api_client.leave_room(room_id)
        if response.success and self.app_state.is_selected("room", room_id):
            self.close_chat()
        return response

    def delete_conversation(self, conversation_id: int, other_user_id: int) -> ApiResponse:
        response = self.api_client.delete_conversation(conversation_id)
        if response.success and self.app_state.is_selected("dm", other_user_id):
            self.close_chat()
        return response


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless chat client")
    parser.add_argument("username", nargs="?")
    parser.add_argument("password", nargs="?")
    args = parser.parse_args()

    app = ChatApp()
    if not app.initialize():
        if not (args.username and args.password):
            parser.error("no stored session, username and password are required")
        response = app.login(args.username, args.password)
        if not response.success:
            app.logger.error(f"Login failed: {response.error}")
            raise SystemExit(1)
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        app.logout()


if __name__ == "__main__":
    main()
