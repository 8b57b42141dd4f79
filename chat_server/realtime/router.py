# chat_server/realtime/router.py
import logging
import threading
from typing import Any, Iterable

from fastapi.encoders import jsonable_encoder

from chat_server.realtime.connection import Connection
from chat_server.realtime.presence import PresenceRegistry


class BroadcastRouter:
    """Resolves room, user and global targets to live connections.

    Room groups hold the connections that joined a room in this process;
    users resolve through the presence registry. Every push is the
    notification of something already persisted, so a failed send is logged
    and skipped rather than raised.
    """

    def __init__(self, registry: PresenceRegistry, logger: logging.Logger | None = None):
        self.registry = registry
        self.logger = logger or logging.getLogger("ChatAPI")
        self._room_groups: dict[int, dict[str, Connection]] = {}
        self._lock = threading.Lock()

    def join_group(self, room_id: int, connection: Connection) -> bool:
        with self._lock:
            group = self._room_groups.setdefault(room_id, {})
            if connection.id in group:
                return False
            group[connection.id] = connection
        return True

    def leave_group(self, room_id: int, connection: Connection) -> bool:
        with self._lock:
            group = self._room_groups.get(room_id)
            if not group or group.pop(connection.id, None) is None:
                return False
            if not group:
                del self._room_groups[room_id]
        return True

    def leave_all(self, connection: Connection) -> list[int]:
        with self._lock:
            left = [
                room_id
                for room_id, group in self._room_groups.items()
                if connection.id in group
            ]
            for room_id in left:
                group = self._room_groups[room_id]
                group.pop(connection.id, None)
                if not group:
                    del self._room_groups[room_id]
        return left

    def has_joined(self, room_id: int, connection: Connection) -> bool:
        with self._lock:
            return connection.id in self._room_groups.get(room_id, {})

    def group_members(self, room_id: int) -> list[Connection]:
        with self._lock:
            return list(self._room_groups.get(room_id, {}).values())

    async def to_room(
        self,
        room_id: int,
        event: str,
        payload: Any,
        exclude: Connection | None = None,
    ) -> int:
        targets = [
            c for c in self.group_members(room_id) if exclude is None or c.id != exclude.id
        ]
        return await self._deliver(targets, event, payload)

    async def to_user(self, user_id: int, event: str, payload: Any) -> int:
        targets = self.registry.connections_for(user_id)
        if not targets:
            self.logger.debug(f"No live connection for user {user_id}, {event} not pushed")
            return 0
        return await self._deliver(targets, event, payload)

    async def to_users(self, user_ids: Iterable[int], event: str, payload: Any) -> int:
        delivered = 0
        for user_id in dict.fromkeys(user_ids):
            delivered += await self.to_user(user_id, event, payload)
        return delivered

    async def to_all(
        self, event: str, payload: Any, exclude: Connection | None = None
    ) -> int:
        targets = [
            c
            for c in self.registry.all_connections()
            if exclude is None or c.id != exclude.id
        ]
        return await self._deliver(targets, event, payload)

    async def to_connection(self, connection: Connection, event: str, payload: Any) -> int:
        return await self._deliver([connection], event, payload)

    async def _deliver(self, targets: list[Connection], event: str, payload: Any) -> int:
        if not targets:
            return 0
        data = jsonable_encoder(payload)
        delivered = 0
        for connection in targets:
            try:
                await connection.send(event, data)
                delivered += 1
            except Exception as e:
                # the transport's own disconnect path cleans the registry up
                self.logger.warning(
                    f"Failed to push {event} to connection {connection.id[:8]}: {e!s}"
                )
        return delivered
