# chat_server/realtime/dispatcher.py
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from chat_server.domain.enums import UserStatus
from chat_server.domain.errors import ChatError, TransientGatewayFailure, ValidationFailed
from chat_server.domain.events import MessageSent, PresenceChanged
from chat_server.infrastructure import schemas
from chat_server.realtime.connection import Connection
from chat_server.realtime.context import RealtimeServices, SessionScope


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    INITIALIZING = "initializing"
    ACTIVE = "active"
    DISCONNECTED = "disconnected"


Handler = Callable[[SessionScope, dict[str, Any]], Awaitable[None]]


class ConnectionDispatcher:
    """State machine for one live connection.

    Connecting -> Authenticated -> Initializing -> Active -> Disconnected.
    Every inbound event runs in its own database session and inside one error
    boundary: failures turn into an ``error`` push to this connection only.
    """

    def __init__(self, connection: Connection, services: RealtimeServices):
        self.connection = connection
        self.services = services
        self.identity = connection.identity
        self.logger = services.logger
        self.state = ConnectionState.CONNECTING
        self.handlers: dict[str, Handler] = {
            "join_room": self.join_room,
            "leave_room": self.leave_room,
            "get_user_rooms": self.get_user_rooms,
            "get_room_users": self.get_room_users,
            "get_online_users": self.get_online_users,
            "get_dm_conversations": self.get_dm_conversations,
            "get_friends_list": self.get_friends_list,
            "get_friend_requests_count": self.get_friend_requests_count,
            "refresh_my_status": self.refresh_my_status,
            "get_dm_messages": self.get_dm_messages,
            "send_dm": self.send_dm,
            "send_message": self.send_message,
            "typing_start": self.typing_start,
            "typing_stop": self.typing_stop,
        }

    @property
    def user_id(self) -> int:
        return self.identity.user_id

    @property
    def router(self):
        return self.services.router

    async def push(self, event: str, data: Any) -> None:
        await self.router.to_connection(self.connection, event, data)

    async def start(self) -> None:
        self.state = ConnectionState.AUTHENTICATED
        await self.initialize()

    async def initialize(self) -> None:
        self.state = ConnectionState.INITIALIZING
        transition = self.services.registry.register_connection(
            self.user_id, self.connection
        )
        if transition.transitioned:
            self.logger.info(f"User {self.identity.username} is now online")
            await self._persist_status(UserStatus.ONLINE)

        await self._guarded("initialize", self._initial_sync, {})

        if transition.transitioned:
            await self._announce_presence(UserStatus.ONLINE)
        await self.router.to_all("refresh_friends_status", {}, exclude=self.connection)
        await self.router.to_all("refresh_room_users", {}, exclude=self.connection)
        self.state = ConnectionState.ACTIVE

    async def _initial_sync(self, scope: SessionScope, _data: dict[str, Any]) -> None:
        rooms = await scope.directory.user_rooms(self.user_id)
        for room in rooms:
            self.router.join_group(room.id, self.connection)
        self.logger.info(f"{self.identity.username} joined {len(rooms)} room group(s)")
        await self.push("rooms_list", rooms)
        await self.push("friends_list_updated", {"friends": await scope.directory.friends_of(self.user_id)})
        await self.push("dm_conversations", await scope.directory.dm_conversations(self.user_id))
        await self.push("online_users", await scope.directory.online_users())
        await self.push(
            "friend_requests_count_updated",
            {"count": await scope.directory.pending_request_count(self.user_id)},
        )

    async def handle(self, event: str, data: Any = None) -> None:
        if self.state != ConnectionState.ACTIVE:
            await self.push("error", "Connection is not ready")
            return
        handler = self.handlers.get(event)
        if handler is None:
            await self.push("error", f"Unknown event: {event}")
            return
        await self._guarded(event, handler, data if isinstance(data, dict) else {})

    async def disconnect(self) -> None:
        if self.state == ConnectionState.DISCONNECTED:
            return
        self.state = ConnectionState.DISCONNECTED
        self.router.leave_all(self.connection)
        transition = self.services.registry.deregister_connection(
            self.user_id, self.connection
        )
        if transition.transitioned:
            self.logger.info(f"User {self.identity.username} is now offline")
            await self._persist_status(UserStatus.OFFLINE)
            await self._announce_presence(UserStatus.OFFLINE)

    async def _guarded(self, event: str, handler: Handler, data: dict[str, Any]) -> None:
        try:
            async with self.services.database.session() as session:
                await handler(SessionScope(session, self.services), data)
        except ChatError as e:
            await self.push("error", e.message)
        except ValidationError:
            await self.push("error", ValidationFailed(f"Invalid payload for {event}").message)
        except SQLAlchemyError:
            self.logger.exception(f"Gateway failure while handling {event} for {self.identity.username}")
            await self.push("error", TransientGatewayFailure().message)
        except Exception:
            self.logger.exception(f"Unexpected error while handling {event} for {self.identity.username}")
            await self.push("error", TransientGatewayFailure().message)

    async def _persist_status(self, status: UserStatus) -> None:
        # the live registry stays authoritative if this write fails
        try:
            async with self.services.database.session() as session:
                await SessionScope(session, self.services).users.update_status(
                    self.user_id, status.value
                )
        except SQLAlchemyError:
            self.logger.exception(f"Could not persist {status.value} for user {self.user_id}")

    async def _announce_presence(self, status: UserStatus) -> None:
        payload = {
            "userId": self.user_id,
            "username": self.identity.username,
            "status": status.value,
        }
        await self.router.to_all("user_status_changed", payload, exclude=self.connection)
        await self.services.event_dispatcher.dispatch(
            PresenceChanged(
                user_id=self.user_id, username=self.identity.username, status=status.value
            )
        )

    async def join_room(self, scope: SessionScope, data: dict[str, Any]) -> None:
        ref = schemas.RoomRef.model_validate(data)
        await scope.rooms.require_membership(ref.room_id, self.user_id)
        self.router.join_group(ref.room_id, self.connection)
        messages = await scope.messages.room_history(
            ref.room_id, self.user_id, limit=self.services.config.HISTORY_PAGE_SIZE
        )
        await self.push("room_messages", {"roomId": ref.room_id, "messages": messages})
        users = await scope.directory.room_users(ref.room_id, self.user_id)
        await self.push("room_users", {"roomId": ref.room_id, "users": users})
        self.logger.info(
            f"{self.identity.username} joined room {ref.room_id} with {len(users)} users"
        )

    async def leave_room(self, scope: SessionScope, data: dict[str, Any]) -> None:
        ref = schemas.RoomRef.model_validate(data)
        self.router.leave_group(ref.room_id, self.connection)
        await self.push("rooms_list", await scope.directory.user_rooms(self.user_id))

    async def get_user_rooms(self, scope: SessionScope, _data: dict[str, Any]) -> None:
        await self.push("rooms_list", await scope.directory.user_rooms(self.user_id))

    async def get_room_users(self, scope: SessionScope, data: dict[str, Any]) -> None:
        ref = schemas.RoomRef.model_validate(data)
        users = await scope.directory.room_users(ref.room_id, self.user_id)
        await self.push("room_users", {"roomId": ref.room_id, "users": users})

    async def get_online_users(self, scope: SessionScope, _data: dict[str, Any]) -> None:
        await self.push("online_users", await scope.directory.online_users())

    async def get_dm_conversations(self, scope: SessionScope, _data: dict[str, Any]) -> None:
        await self.push("dm_conversations", await scope.directory.dm_conversations(self.user_id))

    async def get_friends_list(self, scope: SessionScope, _data: dict[str, Any]) -> None:
        await self.push("friends_list_updated", {"friends": await scope.directory.friends_of(self.user_id)})

    async def get_friend_requests_count(self, scope: SessionScope, _data: dict[str, Any]) -> None:
        count = await scope.directory.pending_request_count(self.user_id)
        await self.push("friend_requests_count_updated", {"count": count})

    async def refresh_my_status(self, scope: SessionScope, _data: dict[str, Any]) -> None:
        await scope.users.update_status(self.user_id, UserStatus.ONLINE.value)
        await self.router.to_all(
            "user_status_changed",
            {"userId": self.user_id, "username": self.identity.username, "status": UserStatus.ONLINE.value},
            exclude=self.connection,
        )
        await self.push("online_users", await scope.directory.online_users())
        await self.push("friends_list_updated", {"friends": await scope.directory.friends_of(self.user_id)})

    async def get_dm_messages(self, scope: SessionScope, data: dict[str, Any]) -> None:
        request = schemas.DMHistoryRequest.model_validate(data)
        messages = await scope.messages.dm_history(
            self.user_id, request.recipient_id, request.limit, request.offset
        )
        await self.push("dm_messages", {"recipientId": request.recipient_id, "messages": messages})

    async def send_message(self, scope: SessionScope, data: dict[str, Any]) -> None:
        payload = schemas.SendMessagePayload.model_validate(data)
        message = await scope.messages.send_room_message(
            self.user_id,
            payload.room_id,
            payload.content,
            payload.message_type,
            payload.media_meta,
        )
        await self.router.to_room(payload.room_id, "new_message", message)
        if not self.router.has_joined(payload.room_id, self.connection):
            await self.push("new_message", message)
        await self.services.event_dispatcher.dispatch(
            MessageSent(
                message_id=message.id,
                sender_id=self.user_id,
                room_id=payload.room_id,
                message_type=message.message_type,
            )
        )

    async def send_dm(self, scope: SessionScope, data: dict[str, Any]) -> None:
        payload = schemas.SendDMPayload.model_validate(data)
        result = await scope.messages.send_direct_message(
            self.user_id,
            payload.recipient_id,
            payload.content,
            payload.message_type,
            payload.media_meta,
        )
        participants = list(dict.fromkeys([self.user_id, result.recipient_id]))
        await self.router.to_users(participants, "new_dm", result.message)
        for user_id in participants:
            if self.services.registry.is_online(user_id):
                await self.router.to_user(
                    user_id, "dm_conversations", await scope.directory.dm_conversations(user_id)
                )
        await self.services.event_dispatcher.dispatch(
            MessageSent(
                message_id=result.message.id,
                sender_id=self.user_id,
                recipient_id=result.recipient_id,
                message_type=result.message.message_type,
            )
        )

    async def typing_start(self, _scope: SessionScope, data: dict[str, Any]) -> None:
        await self._relay_typing("user_typing", data)

    async def typing_stop(self, _scope: SessionScope, data: dict[str, Any]) -> None:
        await self._relay_typing("user_stopped_typing", data)

    async def _relay_typing(self, event: str, data: dict[str, Any]) -> None:
        target = schemas.TypingPayload.model_validate(data)
        payload = {"userId": self.user_id, "username": self.identity.username}
        if target.room_id is not None:
            await self.router.to_room(
                target.room_id, event, {**payload, "roomId": target.room_id}, exclude=self.connection
            )
        elif target.recipient_id is not None:
            await self.router.to_user(
                target.recipient_id, event, {**payload, "recipientId": target.recipient_id}
            )
