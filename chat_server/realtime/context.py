# chat_server/realtime/context.py
import logging
from dataclasses import dataclass
from functools import cached_property

from sqlalchemy.ext.asyncio import AsyncSession

from chat_server.config import AppConfig
from chat_server.gateways.conversation_gateway import ConversationGateway
from chat_server.gateways.friend_gateway import FriendGateway
from chat_server.gateways.message_gateway import MessageGateway
from chat_server.gateways.room_gateway import RoomGateway
from chat_server.gateways.user_gateway import UserGateway
from chat_server.infrastructure.database import Database
from chat_server.infrastructure.event_dispatcher import EventDispatcher
from chat_server.infrastructure.uow import UnitOfWork
from chat_server.interactors.friend_interactor import FriendInteractor
from chat_server.interactors.message_interactor import MessageInteractor
from chat_server.interactors.room_interactor import RoomInteractor
from chat_server.realtime.directory import ConversationDirectory
from chat_server.realtime.presence import PresenceRegistry
from chat_server.realtime.router import BroadcastRouter


@dataclass
class RealtimeServices:
    """Process-wide collaborators shared by every connection."""

    config: AppConfig
    database: Database
    registry: PresenceRegistry
    router: BroadcastRouter
    event_dispatcher: EventDispatcher
    logger: logging.Logger


class SessionScope:
    """Gateways, interactors and the directory bound to one database session.

    A socket event or a notification opens one of these and drops it when
    done, the same way an HTTP request gets its own session.
    """

    def __init__(self, session: AsyncSession, services: RealtimeServices):
        self.session = session
        self.services = services
        self.uow = UnitOfWork(session)

    @cached_property
    def users(self) -> UserGateway:
        return UserGateway(self.session, self.uow)

    @cached_property
    def room_gateway(self) -> RoomGateway:
        return RoomGateway(self.session, self.uow)

    @cached_property
    def friend_gateway(self) -> FriendGateway:
        return FriendGateway(self.session, self.uow)

    @cached_property
    def message_gateway(self) -> MessageGateway:
        return MessageGateway(self.session, self.uow)

    @cached_property
    def conversation_gateway(self) -> ConversationGateway:
        return ConversationGateway(self.session, self.uow)

    @cached_property
    def rooms(self) -> RoomInteractor:
        return RoomInteractor(self.room_gateway, self.services.config.MAIN_ROOM_NAME)

    @cached_property
    def friends(self) -> FriendInteractor:
        return FriendInteractor(self.friend_gateway, self.users)

    @cached_property
    def messages(self) -> MessageInteractor:
        return MessageInteractor(
            self.message_gateway,
            self.room_gateway,
            self.conversation_gateway,
            self.users,
            max_length=self.services.config.MESSAGE_MAX_LENGTH,
        )

    @cached_property
    def directory(self) -> ConversationDirectory:
        return ConversationDirectory(
            registry=self.services.registry,
            room_interactor=self.rooms,
            friend_interactor=self.friends,
            friend_gateway=self.friend_gateway,
            conversation_gateway=self.conversation_gateway,
            user_gateway=self.users,
        )
