# chat_server/domain/events.py
from pydantic import BaseModel


class Event(BaseModel):
    pass


class PresenceChanged(Event):
    user_id: int
    username: str
    status: str


class MessageSent(Event):
    message_id: int
    sender_id: int
    room_id: int | None = None
    recipient_id: int | None = None
    message_type: str


class FriendshipChanged(Event):
    """``action`` is one of requested, accepted, rejected, cancelled, removed."""

    action: str
    actor_id: int
    actor_username: str
    other_id: int
    friendship_id: int | None = None


class RoomMembershipChanged(Event):
    """``action`` is one of created, joined, left."""

    action: str
    room_id: int
    user_id: int
    room_deactivated: bool = False


class ConversationVisibilityChanged(Event):
    """``action`` is one of hidden, unhidden, deleted."""

    action: str
    conversation_id: int
    user_id: int
    other_user_id: int
    fully_deleted: bool = False


class DMMessageDeleted(Event):
    message_id: int
    deleted_by: int
    deleted_by_username: str
    conversation_with: int
    scope: str


class DMConversationCleared(Event):
    deleted_by: int
    deleted_by_username: str
    other_user_id: int
    scope: str
    message_count: int
