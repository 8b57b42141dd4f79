import json
import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import keyring
import requests
from keyring.errors import KeyringError, PasswordDeleteError
from websockets.exceptions import WebSocketException
from websockets.sync.client import connect

KEYRING_SERVICE = "chat-sync"


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


def _parse_expiry(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    expiry = datetime.fromisoformat(value)
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return expiry


class ApiResponse:
    def __init__(self, success, data=None, status_code=None, error=None):
        self.success = success
        self.data = data
        self.status_code = status_code
        self.error = error


class ApiClient:
    """HTTP side of the client: auth, token storage and the REST producers."""

    def __init__(self, base_url, timeout=10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.access_token = None
        self.refresh_token = None
        self.token_expiry = None
        self.logger = _named_logger("ApiClient")

        self._load_stored_tokens()

    def _load_stored_tokens(self):
        """Loads stored tokens from secure storage on initialization."""
        try:
            self.access_token = keyring.get_password(KEYRING_SERVICE, "access_token")
            self.refresh_token = keyring.get_password(KEYRING_SERVICE, "refresh_token")
            stored_expiry = keyring.get_password(KEYRING_SERVICE, "token_expiry")
        except KeyringError as e:
            self.logger.error(f"Error loading stored tokens: {str(e)}")
            self.access_token = None
            self.refresh_token = None
            self.token_expiry = None
            return

        try:
            self.token_expiry = _parse_expiry(stored_expiry)
        except ValueError:
            self.logger.warning("Invalid stored token expiry format, ignoring")
            self.token_expiry = None
        if self.access_token:
            self.logger.info("Loaded stored tokens")

    def _store_tokens(self):
        try:
            keyring.set_password(KEYRING_SERVICE, "access_token", self.access_token)
            keyring.set_password(KEYRING_SERVICE, "refresh_token", self.refresh_token)
            if self.token_expiry:
                keyring.set_password(
                    KEYRING_SERVICE, "token_expiry", self.token_expiry.isoformat()
                )
            self.logger.info("Stored tokens securely")
        except KeyringError as e:
            self.logger.error(f"Error storing tokens: {str(e)}")

    def _clear_stored_tokens(self):
        for key in ("access_token", "refresh_token", "token_expiry"):
            try:
                keyring.delete_password(KEYRING_SERVICE, key)
            except PasswordDeleteError:
                pass  # never stored
            except KeyringError as e:
                self.logger.error(f"Error clearing {key}: {str(e)}")
        self.logger.info("Cleared all stored tokens")

    def _set_tokens(self, data):
        self.access_token = data.get("access_token")
        self.refresh_token = data.get("refresh_token")
        self.token_expiry = _parse_expiry(data.get("expires_at"))
        self._store_tokens()

    def _forget_tokens(self):
        self.access_token = None
        self.refresh_token = None
        self.token_expiry = None
        self._clear_stored_tokens()

    def _token_expiring(self):
        if not self.token_expiry:
            return False
        return datetime.now(timezone.utc) >= self.token_expiry - timedelta(minutes=5)

    def is_authenticated(self):
        """True if tokens exist and the access token is not about to expire."""
        if not self.access_token or not self.refresh_token:
            return False
        return not self._token_expiring()

    def _handle_response(self, response):
        if 200 <= response.status_code < 300:
            try:
                data = response.json() if response.content else {}
            except json.JSONDecodeError:
                data = {}
            return ApiResponse(True, data=data, status_code=response.status_code)

        # server errors are {"error", "code", "type", "details"}
        try:
            error = response.json().get("error") or response.text
        except (json.JSONDecodeError, AttributeError):
            error = response.text
        return ApiResponse(False, status_code=response.status_code, error=error)

    def _refresh_token(self):
        if not self.refresh_token:
            self.logger.warning("No refresh token available.")
            return False

        try:
            response = requests.post(
                f"{self.base_url}/auth/refresh",
                json={"refresh_token": self.refresh_token},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            self.logger.error(f"Exception during token refresh: {str(e)}")
            return False

        api_response = self._handle_response(response)
        if not api_response.success:
            self.logger.error("Failed to refresh token.")
            self._forget_tokens()
            return False
        self._set_tokens(api_response.data)
        self.logger.info("Token refreshed successfully.")
        return True

    def ensure_fresh_token(self):
        """Return a usable access token, refreshing it first if needed."""
        if not self.access_token or self._token_expiring():
            if not self._refresh_token():
                return None
        return self.access_token

    def _request(self, method, endpoint, auth_required=True, **kwargs):
        url = f"{self.base_url}{endpoint}"
        headers = kwargs.pop("headers", {})
        kwargs.setdefault("timeout", self.timeout)

        if auth_required:
            if self.ensure_fresh_token() is None:
                return ApiResponse(
                    False, error="Failed to refresh token. Please log in again."
                )
            headers["Authorization"] = f"Bearer {self.access_token}"

        try:
            response = requests.request(method, url, headers=headers, **kwargs)
            api_response = self._handle_response(response)

            if auth_required and api_response.status_code == 401:
                self.logger.warning("Received 401 Unauthorized. Attempting to refresh token.")
                if self._refresh_token():
                    headers["Authorization"] = f"Bearer {self.access_token}"
                    response = requests.request(method, url, headers=headers, **kwargs)
                    api_response = self._handle_response(response)

            return api_response
        except requests.RequestException as e:
            self.logger.error(f"HTTP request exception: {str(e)}")
            return ApiResponse(False, error=str(e))

    # auth

    def login(self, username, password):
        response = self._request(
            "POST",
            "/auth/login",
            auth_required=False,
            data={"username": username, "password": password},
        )
        if response.success:
            self._set_tokens(response.data)
            self.logger.info("Logged in successfully.")
        else:
            self.logger.error(f"Login failed: {response.error}")
        return response

    def register(self, username, email, password, display_name=None):
        payload = {"username": username, "email": email, "password": password}
        if display_name:
            payload["display_name"] = display_name
        response = self._request(
            "POST", "/auth/register", auth_required=False, json=payload
        )
        if response.success:
            self.logger.info(f"User '{username}' registered successfully.")
        else:
            self.logger.error(f"Registration failed: {response.error}")
        return response

    def logout(self):
        response = ApiResponse(True)
        if self.access_token:
            response = self._request("POST", "/auth/logout")
        self._forget_tokens()
        return response

    # users

    def get_current_user(self):
        return self._request("GET", "/users/me")

    def update_user(self, user_data):
        return self._request("PUT", "/users/me", json=user_data)

    def search_users(self, query: str):
        return self._request("GET", "/users/search", params={"query": query})

    # rooms

    def get_rooms(self):
        return self._request("GET", "/rooms/")

    def browse_rooms(self):
        return self._request("GET", "/rooms/browse")

    def get_room(self, room_id: int):
        return self._request("GET", f"/rooms/{room_id}")

    def get_room_users(self, room_id: int):
        return self._request("GET", f"/rooms/{room_id}/users")

    def create_room(self, name, display_name, description=None, is_private=False):
        return self._request(
            "POST",
            "/rooms/",
            json={
                "name": name,
                "display_name": display_name,
                "description": description,
                "is_private": is_private,
            },
        )

    def join_room(self, room_id: int):
        return self._request("POST", f"/rooms/{room_id}/join")

    def leave_room(self, room_id: int):
        return self._request("POST", f"/rooms/{room_id}/leave")

    # friends

    def get_friends(self):
        return self._request("GET", "/friends/")

    def get_friend_requests(self):
        return self._request("GET", "/friends/requests")

    def get_sent_friend_requests(self):
        return self._request("GET", "/friends/requests/sent")

    def get_friend_requests_count(self):
        return self._request("GET", "/friends/requests/count")

    def get_friendship_status(self, user_id: int):
        return self._request("GET", f"/friends/status/{user_id}")

    def send_friend_request(self, user_id: int):
        return self._request("POST", "/friends/requests", json={"addressee_id": user_id})

    def accept_friend_request(self, friendship_id: int):
        return self._request("POST", f"/friends/requests/{friendship_id}/accept")

    def reject_friend_request(self, friendship_id: int):
        return self._request("POST", f"/friends/requests/{friendship_id}/reject")

    def remove_friend(self, friendship_id: int):
        return self._request("DELETE", f"/friends/{friendship_id}")

    # conversations and messages

    def get_conversations(self):
        return self._request("GET", "/conversations/")

    def hide_conversation(self, conversation_id: int):
        return self._request("PUT", f"/conversations/{conversation_id}/hide")

    def unhide_conversation(self, conversation_id: int):
        return self._request("PUT", f"/conversations/{conversation_id}/unhide")

    def delete_conversation(self, conversation_id: int):
        return self._request("DELETE", f"/conversations/{conversation_id}")

    def get_room_messages(self, room_id: int, limit=None, offset=0):
        params = {"offset": offset}
        if limit:
            params["limit"] = limit
        return self._request("GET", f"/messages/room/{room_id}", params=params)

    def get_dm_messages(self, user_id: int, limit=None, offset=0):
        params = {"offset": offset}
        if limit:
            params["limit"] = limit
        return self._request("GET", f"/messages/dm/{user_id}", params=params)

    def delete_dm_message(self, message_id: int, scope="me"):
        return self._request("DELETE", f"/messages/dm/{message_id}", json={"scope": scope})

    def clear_dm_conversation(self, user_id: int, scope="me"):
        return self._request(
            "DELETE", f"/messages/dm/conversation/{user_id}", json={"scope": scope}
        )


class SocketClient:
    """The live connection: one reader thread, reconnecting with backoff.

    ``on_event(event, data)`` receives every push; ``on_status(status)`` sees
    ``connecting``, ``connected`` and ``disconnected``.
    """

    def __init__(
        self,
        url: str,
        token_provider: Callable[[], Optional[str]],
        on_event: Callable[[str, Any], None],
        on_status: Callable[[str], None],
        reconnect_delay: float = 1.0,
        max_reconnect_delay: float = 5.0,
    ):
        self.url = url
        self.token_provider = token_provider
        self.on_event = on_event
        self.on_status = on_status
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_delay = max_reconnect_delay
        self.logger = _named_logger("SocketClient")

        self._websocket = None
        self._send_lock = threading.Lock()
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stopped.clear()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stopped.set()
        websocket = self._websocket
        if websocket is not None:
            websocket.close()
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.max_reconnect_delay)

    def emit(self, event: str, data: Optional[dict] = None) -> bool:
        websocket = self._websocket
        if websocket is None:
            self.logger.warning(f"Not connected, dropping {event}")
            return False
        frame = json.dumps({"event": event, "data": data or {}})
        try:
            with self._send_lock:
                websocket.send(frame)
        except WebSocketException as e:
            self.logger.warning(f"Failed to send {event}: {str(e)}")
            return False
        return True

    def _run(self) -> None:
        delay = self.reconnect_delay
        while not self._stopped.is_set():
            self.on_status("connecting")
            token = self.token_provider()
            if token:
                try:
                    with connect(f"{self.url}?token={token}") as websocket:
                        self._websocket = websocket
                        delay = self.reconnect_delay
                        self.logger.info("Socket connected")
                        self.on_status("connected")
                        for raw in websocket:
                            self._dispatch(raw)
                except (OSError, WebSocketException) as e:
                    self.logger.warning(f"Socket error: {str(e)}")
                finally:
                    self._websocket = None
            else:
                self.logger.warning("No access token, cannot open socket")

            self.on_status("disconnected")
            if self._stopped.wait(delay):
                break
            delay = min(delay * 2, self.max_reconnect_delay)

    def _dispatch(self, raw) -> None:
        try:
            frame = json.loads(raw)
        except json.JSONDecodeError:
            self.logger.error(f"Ignoring malformed frame: {raw!r}")
            return
        event = frame.get("event") if isinstance(frame, dict) else None
        if not event:
            self.logger.error(f"Ignoring frame without event: {raw!r}")
            return
        try:
            self.on_event(event, frame.get("data"))
        except Exception as e:
            self.logger.exception(f"Error handling {event}: {str(e)}")
