# chat_server/realtime/presence.py
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone

from chat_server.realtime.connection import Connection


@dataclass(frozen=True)
class Transition:
    transitioned: bool
    to_online: bool


NO_TRANSITION = Transition(transitioned=False, to_online=False)


@dataclass
class PresenceSession:
    connection: Connection
    joined_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class PresenceRegistry:
    """Which users have at least one live connection, and through which ones.

    Every operation is a plain dict mutation under one lock, with no awaits,
    so the "was the set empty" check and the insert/remove are a single step.
    Callers act on the returned ``Transition``: persist the new status and
    broadcast it, exactly once per online/offline edge.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("ChatAPI")
        self._sessions: dict[int, dict[str, PresenceSession]] = {}
        self._lock = threading.Lock()

    def register_connection(self, user_id: int, connection: Connection) -> Transition:
        with self._lock:
            sessions = self._sessions.get(user_id)
            if sessions is None:
                sessions = self._sessions[user_id] = {}
            was_empty = not sessions
            if connection.id in sessions:
                return NO_TRANSITION
            sessions[connection.id] = PresenceSession(connection)
            count = len(sessions)

        self.logger.info(
            f"User {user_id} registered connection {connection.id[:8]} ({count} live)"
        )
        return Transition(transitioned=True, to_online=True) if was_empty else NO_TRANSITION

    def deregister_connection(self, user_id: int, connection: Connection) -> Transition:
        with self._lock:
            sessions = self._sessions.get(user_id)
            if not sessions or sessions.pop(connection.id, None) is None:
                return NO_TRANSITION
            now_empty = not sessions
            if now_empty:
                del self._sessions[user_id]
            count = len(sessions)

        self.logger.info(
            f"User {user_id} dropped connection {connection.id[:8]} ({count} live)"
        )
        return Transition(transitioned=True, to_online=False) if now_empty else NO_TRANSITION

    def is_online(self, user_id: int) -> bool:
        with self._lock:
            return bool(self._sessions.get(user_id))

    def connection_count(self, user_id: int) -> int:
        with self._lock:
            return len(self._sessions.get(user_id, {}))

    def all_online_user_ids(self) -> set[int]:
        with self._lock:
            return {user_id for user_id, sessions in self._sessions.items() if sessions}

    def connections_for(self, user_id: int) -> list[Connection]:
        with self._lock:
            return [s.connection for s in self._sessions.get(user_id, {}).values()]

    def all_connections(self) -> list[Connection]:
        with self._lock:
            return [
                s.connection
                for sessions in self._sessions.values()
                for s in sessions.values()
            ]
