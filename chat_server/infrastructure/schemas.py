# chat_server/infrastructure/schemas.py
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from chat_server.domain.enums import DeleteScope, MessageType


class UserBase(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr


class UserCreate(UserBase):
    password: str = Field(..., min_length=8)
    display_name: str | None = Field(None, max_length=100)


class UserUpdate(BaseModel):
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=8)
    display_name: str | None = Field(None, max_length=100)
    avatar_url: str | None = None


class User(UserBase):
    id: int
    display_name: str | None = None
    avatar_url: str | None = None
    status: str
    last_seen: datetime | None = None
    created_at: datetime
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class UserPublic(BaseModel):
    id: int
    username: str
    display_name: str | None = None
    avatar_url: str | None = None
    status: str

    model_config = ConfigDict(from_attributes=True)


class RoomUser(UserPublic):
    role: str


class Friend(UserPublic):
    friendship_id: int
    since: datetime


class FriendRequest(BaseModel):
    id: int
    user: UserPublic
    status: str
    created_at: datetime


class FriendRequestCreate(BaseModel):
    addressee_id: int


class FriendshipStatusResponse(BaseModel):
    user_id: int
    status: str


class RoomCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=50, pattern=r"^[a-z0-9_-]+$")
    display_name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    is_private: bool = False


class Room(BaseModel):
    id: int
    name: str
    display_name: str
    description: str | None = None
    is_private: bool
    is_active: bool
    created_by: int | None = None
    created_at: datetime
    role: str | None = None

    model_config = ConfigDict(from_attributes=True)


class RoomBrowse(Room):
    member_count: int
    is_member: bool


class RoomDetail(Room):
    members: list[RoomUser] = Field(default_factory=list)


class Message(BaseModel):
    id: int
    sender_id: int
    room_id: int | None = None
    recipient_id: int | None = None
    message_type: str
    content: str
    media_meta: dict[str, Any] | None = None
    is_deleted: bool
    created_at: datetime
    username: str
    display_name: str | None = None
    avatar_url: str | None = None

    @classmethod
    def from_model(cls, message) -> "Message":
        return cls(
            id=message.id,
            sender_id=message.sender_id,
            room_id=message.room_id,
            recipient_id=message.recipient_id,
            message_type=message.message_type,
            content=message.content,
            media_meta=message.media_meta,
            is_deleted=message.is_deleted,
            created_at=message.created_at,
            username=message.sender.username,
            display_name=message.sender.display_name,
            avatar_url=message.sender.avatar_url,
        )


class MessageCreate(BaseModel):
    """A message aimed at exactly one room or exactly one recipient."""

    sender_id: int
    room_id: int | None = None
    recipient_id: int | None = None
    content: str
    message_type: MessageType = MessageType.TEXT
    media_meta: dict[str, Any] | None = None

    @model_validator(mode="after")
    def check_single_target(self) -> "MessageCreate":
        if (self.room_id is None) == (self.recipient_id is None):
            raise ValueError("A message needs exactly one of room_id or recipient_id")
        return self


class MessageDeleteRequest(BaseModel):
    scope: DeleteScope = DeleteScope.ME


class ConversationClearResult(BaseModel):
    scope: DeleteScope
    message_count: int


class Conversation(BaseModel):
    id: int
    other_user: UserPublic
    is_active: bool
    is_hidden: bool
    last_message_id: int | None = None
    last_message_at: datetime | None = None
    last_message_content: str | None = None
    last_message_sender_id: int | None = None

    @classmethod
    def for_viewer(cls, conversation, viewer_id: int) -> "Conversation":
        last = conversation.last_message
        return cls(
            id=conversation.id,
            other_user=UserPublic.model_validate(conversation.other_user(viewer_id)),
            is_active=conversation.is_active,
            is_hidden=conversation.is_hidden_for(viewer_id),
            last_message_id=conversation.last_message_id,
            last_message_at=conversation.last_message_at,
            last_message_content=last.content if last is not None else None,
            last_message_sender_id=last.sender_id if last is not None else None,
        )


# Inbound socket payloads. Clients send camelCase keys.


class SocketPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RoomRef(SocketPayload):
    room_id: int = Field(..., alias="roomId")


class DMHistoryRequest(SocketPayload):
    recipient_id: int = Field(..., alias="recipientId")
    limit: int = Field(50, ge=1, le=200)
    offset: int = Field(0, ge=0)


class SendMessagePayload(SocketPayload):
    room_id: int = Field(..., alias="roomId")
    content: str = ""
    message_type: MessageType = Field(MessageType.TEXT, alias="messageType")
    media_meta: dict[str, Any] | None = Field(None, alias="mediaMeta")


class SendDMPayload(SocketPayload):
    recipient_id: int = Field(..., alias="recipientId")
    content: str = ""
    message_type: MessageType = Field(MessageType.TEXT, alias="messageType")
    media_meta: dict[str, Any] | None = Field(None, alias="mediaMeta")


class TypingPayload(SocketPayload):
    room_id: int | None = Field(None, alias="roomId")
    recipient_id: int | None = Field(None, alias="recipientId")


class TokenBase(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str


class TokenCreate(TokenBase):
    expires_at: datetime
    user_id: int


class Token(TokenBase):
    id: int
    expires_at: datetime
    user_id: int

    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str
    expires_at: datetime
    user_id: int


class RefreshTokenRequest(BaseModel):
    refresh_token: str
