# chat_server/domain/enums.py
from enum import Enum


class UserStatus(str, Enum):
    ONLINE = "online"
    AWAY = "away"
    OFFLINE = "offline"


class RoomRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class FriendshipStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    BLOCKED = "blocked"


class FriendshipPerspective(str, Enum):
    """How one user sees the friendship row shared with another user."""

    SELF = "self"
    NONE = "none"
    FRIENDS = "friends"
    SENT_REQUEST = "sent_request"
    RECEIVED_REQUEST = "received_request"
    REJECTED = "rejected"
    BLOCKED = "blocked"


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    LINK = "link"


class DeleteScope(str, Enum):
    ME = "me"
    EVERYONE = "everyone"


ROLE_ORDER = {RoomRole.OWNER.value: 0, RoomRole.ADMIN.value: 1, RoomRole.MEMBER.value: 2}
