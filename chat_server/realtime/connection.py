# chat_server/realtime/connection.py
import uuid
from typing import Any, Protocol

from fastapi import WebSocket

from chat_server.domain.identity import Identity


class Connection(Protocol):
    """One live transport session of one user."""

    id: str
    identity: Identity

    async def send(self, event: str, data: Any) -> None: ...


class WebSocketConnection:
    def __init__(self, websocket: WebSocket, identity: Identity):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.identity = identity

    async def send(self, event: str, data: Any) -> None:
        await self.websocket.send_json({"event": event, "data": data})

    def __repr__(self) -> str:
        return f"<WebSocketConnection {self.id[:8]} user={self.identity.user_id}>"
