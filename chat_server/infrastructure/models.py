# chat_server/infrastructure/models.py
from datetime import datetime, timezone
from typing import Any, Optional, List

from chat_server.infrastructure.database import Base
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, index=True, autoincrement=True
    )
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    hashed_password: Mapped[str] = mapped_column(String)
    status: Mapped[str] = mapped_column(String(16), default="offline", index=True)
    last_seen: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    tokens: Mapped[List["Token"]] = relationship(
        "Token", back_populates="user", lazy="select"
    )
    memberships: Mapped[List["RoomMember"]] = relationship(
        "RoomMember", back_populates="user", lazy="select"
    )


class Token(Base):
    __tablename__ = "tokens"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, index=True, autoincrement=True
    )
    access_token: Mapped[str] = mapped_column(String, unique=True, index=True)
    refresh_token: Mapped[str] = mapped_column(String, unique=True, index=True)
    token_type: Mapped[str] = mapped_column(String)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE")
    )

    user: Mapped[User] = relationship("User", back_populates="tokens", lazy="select")


class Room(Base):
    __tablename__ = "rooms"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, index=True, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    display_name: Mapped[str] = mapped_column(String(100))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_private: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    memberships: Mapped[List["RoomMember"]] = relationship(
        "RoomMember", back_populates="room", lazy="select"
    )


class RoomMember(Base):
    __tablename__ = "room_members"

    __table_args__ = (
        UniqueConstraint("room_id", "user_id", name="uq_room_members_room_user"),
        Index("ix_room_members_user_active", "user_id", "is_active"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, index=True, autoincrement=True
    )
    room_id: Mapped[int] = mapped_column(Integer, ForeignKey("rooms.id"), index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    role: Mapped[str] = mapped_column(String(16), default="member")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    room: Mapped[Room] = relationship(
        "Room", back_populates="memberships", lazy="joined"
    )
    user: Mapped[User] = relationship(
        "User", back_populates="memberships", lazy="joined"
    )


class Friendship(Base):
    __tablename__ = "friendships"

    # one row per unordered pair, whoever asked first
    __table_args__ = (
        UniqueConstraint("user_low_id", "user_high_id", name="uq_friendships_pair"),
        CheckConstraint("requester_id != addressee_id", name="ck_friendships_distinct"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, index=True, autoincrement=True
    )
    requester_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), index=True
    )
    addressee_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), index=True
    )
    user_low_id: Mapped[int] = mapped_column(Integer)
    user_high_id: Mapped[int] = mapped_column(Integer)
    status: Mapped[str] = mapped_column(String(16), default="pending", index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    requester: Mapped[User] = relationship(
        "User", foreign_keys=[requester_id], lazy="joined"
    )
    addressee: Mapped[User] = relationship(
        "User", foreign_keys=[addressee_id], lazy="joined"
    )

    def other_party(self, user_id: int) -> User:
        return self.addressee if self.requester_id == user_id else self.requester


class Message(Base):
    __tablename__ = "messages"

    __table_args__ = (
        CheckConstraint(
            "(room_id IS NULL) != (recipient_id IS NULL)",
            name="ck_messages_single_target",
        ),
        Index("ix_messages_room_deleted", "room_id", "is_deleted"),
        Index("ix_messages_dm_pair", "sender_id", "recipient_id"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, index=True, autoincrement=True
    )
    sender_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    room_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("rooms.id"), nullable=True, index=True
    )
    recipient_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True, index=True
    )
    message_type: Mapped[str] = mapped_column(String(16), default="text")
    content: Mapped[str] = mapped_column(Text)
    media_meta: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=utcnow, nullable=True
    )

    sender: Mapped[User] = relationship(
        "User", foreign_keys=[sender_id], lazy="joined"
    )


class MessageHide(Base):
    """Marks a message as deleted for one user only."""

    __tablename__ = "message_hides"

    __table_args__ = (
        UniqueConstraint("message_id", "user_id", name="uq_message_hides_message_user"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, index=True, autoincrement=True
    )
    message_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("messages.id"), index=True
    )
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )


class DMConversation(Base):
    __tablename__ = "dm_conversations"

    # user1_id is always the smaller id of the pair
    __table_args__ = (
        UniqueConstraint("user1_id", "user2_id", name="uq_dm_conversations_pair"),
        CheckConstraint("user1_id < user2_id", name="ck_dm_conversations_ordered"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, index=True, autoincrement=True
    )
    user1_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    user2_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    user1_hidden: Mapped[bool] = mapped_column(Boolean, default=False)
    user2_hidden: Mapped[bool] = mapped_column(Boolean, default=False)
    user1_deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    user2_deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    last_message_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("messages.id"), nullable=True
    )
    last_message_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    user1: Mapped[User] = relationship("User", foreign_keys=[user1_id], lazy="joined")
    user2: Mapped[User] = relationship("User", foreign_keys=[user2_id], lazy="joined")
    last_message: Mapped[Optional[Message]] = relationship(
        "Message", foreign_keys=[last_message_id], lazy="joined"
    )

    def side(self, user_id: int) -> str:
        if user_id == self.user1_id:
            return "user1"
        if user_id == self.user2_id:
            return "user2"
        raise ValueError(f"User {user_id} is not part of conversation {self.id}")

    def other_user(self, user_id: int) -> User:
        return self.user2 if user_id == self.user1_id else self.user1

    def is_hidden_for(self, user_id: int) -> bool:
        return getattr(self, f"{self.side(user_id)}_hidden")
