# chat_server/api/dependencies.py
from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from chat_server.config import AppConfig
from chat_server.domain.identity import Identity
from chat_server.gateways.conversation_gateway import ConversationGateway
from chat_server.gateways.friend_gateway import FriendGateway
from chat_server.gateways.message_gateway import MessageGateway
from chat_server.gateways.room_gateway import RoomGateway
from chat_server.gateways.token_gateway import TokenGateway
from chat_server.gateways.user_gateway import UserGateway
from chat_server.infrastructure import schemas
from chat_server.infrastructure.event_dispatcher import EventDispatcher
from chat_server.infrastructure.security import SecurityService
from chat_server.infrastructure.uow import UnitOfWork
from chat_server.interactors.conversation_interactor import ConversationInteractor
from chat_server.interactors.friend_interactor import FriendInteractor
from chat_server.interactors.message_interactor import MessageInteractor
from chat_server.interactors.room_interactor import RoomInteractor
from chat_server.interactors.token_interactor import TokenInteractor
from chat_server.interactors.user_interactor import UserInteractor
from chat_server.realtime.context import RealtimeServices
from chat_server.realtime.directory import ConversationDirectory

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_security_service(request: Request) -> SecurityService:
    return request.app.state.security_service


def get_event_dispatcher(request: Request) -> EventDispatcher:
    return request.app.state.event_dispatcher


def get_realtime_services(request: Request) -> RealtimeServices:
    return request.app.state.realtime


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_uow(session: AsyncSession = Depends(get_session)) -> UnitOfWork:
    return UnitOfWork(session)


async def get_user_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return UserGateway(session, uow)


async def get_token_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return TokenGateway(session, uow)


async def get_room_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return RoomGateway(session, uow)


async def get_friend_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return FriendGateway(session, uow)


async def get_message_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return MessageGateway(session, uow)


async def get_conversation_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return ConversationGateway(session, uow)


async def get_user_interactor(
    security_service: SecurityService = Depends(get_security_service),
    user_gateway: UserGateway = Depends(get_user_gateway),
    room_gateway: RoomGateway = Depends(get_room_gateway),
    config: AppConfig = Depends(get_config),
):
    return UserInteractor(
        security_service, user_gateway, room_gateway, config.MAIN_ROOM_NAME
    )


async def get_token_interactor(
    token_gateway: TokenGateway = Depends(get_token_gateway),
):
    return TokenInteractor(token_gateway)


async def get_room_interactor(
    room_gateway: RoomGateway = Depends(get_room_gateway),
    config: AppConfig = Depends(get_config),
):
    return RoomInteractor(room_gateway, config.MAIN_ROOM_NAME)


async def get_friend_interactor(
    friend_gateway: FriendGateway = Depends(get_friend_gateway),
    user_gateway: UserGateway = Depends(get_user_gateway),
):
    return FriendInteractor(friend_gateway, user_gateway)


async def get_message_interactor(
    message_gateway: MessageGateway = Depends(get_message_gateway),
    room_gateway: RoomGateway = Depends(get_room_gateway),
    conversation_gateway: ConversationGateway = Depends(get_conversation_gateway),
    user_gateway: UserGateway = Depends(get_user_gateway),
    config: AppConfig = Depends(get_config),
):
    return MessageInteractor(
        message_gateway,
        room_gateway,
        conversation_gateway,
        user_gateway,
        max_length=config.MESSAGE_MAX_LENGTH,
    )


async def get_conversation_interactor(
    conversation_gateway: ConversationGateway = Depends(get_conversation_gateway),
    message_gateway: MessageGateway = Depends(get_message_gateway),
):
    return ConversationInteractor(conversation_gateway, message_gateway)


async def authenticate_token(
    token: str,
    security_service: SecurityService,
    user_gateway: UserGateway,
    token_gateway: TokenGateway,
) -> schemas.User | None:
    """Resolve an access token to an active user, or None if it is not valid."""
    username = security_service.decode_access_token(token)
    if username is None:
        return None
    user_model = await user_gateway.get_by_username(username)
    valid_token = await token_gateway.get_by_access_token(token)
    if user_model is None or valid_token is None or not user_model.is_active:
        return None
    return schemas.User.model_validate(user_model._model)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    security_service: SecurityService = Depends(get_security_service),
    user_gateway: UserGateway = Depends(get_user_gateway),
    token_gateway: TokenGateway = Depends(get_token_gateway),
) -> schemas.User:
    user = await authenticate_token(token, security_service, user_gateway, token_gateway)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_active_user(
    current_user: schemas.User = Depends(get_current_user),
) -> schemas.User:
    if not current_user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


def identity_of(user: schemas.User) -> Identity:
    return Identity(
        user_id=user.id, username=user.username, display_name=user.display_name
    )


async def get_directory(
    realtime: RealtimeServices = Depends(get_realtime_services),
    room_interactor: RoomInteractor = Depends(get_room_interactor),
    friend_interactor: FriendInteractor = Depends(get_friend_interactor),
    friend_gateway: FriendGateway = Depends(get_friend_gateway),
    conversation_gateway: ConversationGateway = Depends(get_conversation_gateway),
    user_gateway: UserGateway = Depends(get_user_gateway),
) -> ConversationDirectory:
    return ConversationDirectory(
        registry=realtime.registry,
        room_interactor=room_interactor,
        friend_interactor=friend_interactor,
        friend_gateway=friend_gateway,
        conversation_gateway=conversation_gateway,
        user_gateway=user_gateway,
    )
