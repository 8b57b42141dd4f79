# chat_server/interactors/message_interactor.py
from dataclasses import dataclass
from typing import Any

from chat_server.domain.enums import DeleteScope, MessageType
from chat_server.domain.errors import AccessDenied, NotFound, ValidationFailed
from chat_server.gateways.interfaces import (
    IConversationGateway,
    IMessageGateway,
    IRoomGateway,
    IUserGateway,
)
from chat_server.infrastructure import schemas


@dataclass
class DirectMessageResult:
    message: schemas.Message
    conversation_id: int
    recipient_id: int


@dataclass
class MessageDeletion:
    message_id: int
    other_user_id: int
    scope: DeleteScope


def validate_content(content: str | None, max_length: int = 2000) -> str:
    text = (content or "").strip()
    if not text:
        raise ValidationFailed("Message content is required")
    if len(text) > max_length:
        raise ValidationFailed(f"Message too long (max {max_length} characters)")
    return text


class MessageInteractor:
    def __init__(
        self,
        message_gateway: IMessageGateway,
        room_gateway: IRoomGateway,
        conversation_gateway: IConversationGateway,
        user_gateway: IUserGateway,
        max_length: int = 2000,
    ):
        self.message_gateway = message_gateway
        self.room_gateway = room_gateway
        self.conversation_gateway = conversation_gateway
        self.user_gateway = user_gateway
        self.max_length = max_length

    async def send_room_message(
        self,
        sender_id: int,
        room_id: int,
        content: str,
        message_type: MessageType = MessageType.TEXT,
        media_meta: dict[str, Any] | None = None,
    ) -> schemas.Message:
        text = validate_content(content, self.max_length)
        membership = await self.room_gateway.get_active_membership(room_id, sender_id)
        if membership is None:
            raise AccessDenied("Access denied to room")
        message = await self.message_gateway.create_message(
            schemas.MessageCreate(
                sender_id=sender_id,
                room_id=room_id,
                content=text,
                message_type=message_type,
                media_meta=media_meta,
            )
        )
        return schemas.Message.from_model(message._model)

    async def send_direct_message(
        self,
        sender_id: int,
        recipient_id: int,
        content: str,
        message_type: MessageType = MessageType.TEXT,
        media_meta: dict[str, Any] | None = None,
    ) -> DirectMessageResult:
        text = validate_content(content, self.max_length)
        recipient = await self.user_gateway.get_user(recipient_id)
        if recipient is None or not recipient.is_active:
            raise NotFound("Recipient not found")

        conversation = await self.conversation_gateway.find_or_create(
            sender_id, recipient_id
        )
        message = await self.message_gateway.create_message(
            schemas.MessageCreate(
                sender_id=sender_id,
                recipient_id=recipient_id,
                content=text,
                message_type=message_type,
                media_meta=media_meta,
            )
        )
        await self.conversation_gateway.update_last_message(
            conversation, message.id, message.created_at
        )
        return DirectMessageResult(
            message=schemas.Message.from_model(message._model),
            conversation_id=conversation.id,
            recipient_id=recipient_id,
        )

    async def room_history(
        self, room_id: int, user_id: int, limit: int = 50, offset: int = 0
    ) -> list[schemas.Message]:
        if await self.room_gateway.get_active_membership(room_id, user_id) is None:
            raise AccessDenied("Access denied to room")
        messages = await self.message_gateway.room_messages(room_id, limit, offset)
        return [schemas.Message.from_model(message) for message in messages]

    async def dm_history(
        self, user_id: int, other_id: int, limit: int = 50, offset: int = 0
    ) -> list[schemas.Message]:
        if await self.user_gateway.get_user(other_id) is None:
            raise NotFound("User not found")
        messages = await self.message_gateway.dm_messages(
            user_id, other_id, user_id, limit, offset
        )
        return [schemas.Message.from_model(message) for message in messages]

    async def delete_dm_message(
        self, message_id: int, user_id: int, scope: DeleteScope
    ) -> MessageDeletion:
        message = await self.message_gateway.visible_dm_message(message_id, user_id)
        if message is None:
            raise NotFound("Message not found or already deleted")
        if scope == DeleteScope.EVERYONE and message.sender_id != user_id:
            raise AccessDenied("You can only delete your own messages for everyone")

        other_user_id = (
            message.recipient_id if message.sender_id == user_id else message.sender_id
        )
        if scope == DeleteScope.EVERYONE:
            await self.message_gateway.soft_delete_message(message_id, tombstone=True)
        else:
            await self.message_gateway.hide_message_for(user_id, message_id)
        return MessageDeletion(
            message_id=message_id, other_user_id=other_user_id, scope=scope
        )

    async def clear_conversation(
        self, user_id: int, other_id: int, scope: DeleteScope
    ) -> int:
        other = await self.user_gateway.get_user(other_id)
        if other is None or not other.is_active:
            raise NotFound("User not found")
        count = await self.message_gateway.count_visible_dm_messages(
            user_id, other_id, user_id
        )
        if count == 0:
            raise NotFound("No messages found in this conversation")
        if scope == DeleteScope.EVERYONE:
            return await self.message_gateway.tombstone_conversation_messages(
                user_id, other_id
            )
        return await self.message_gateway.hide_conversation_messages_for(
            user_id, other_id, user_id
        )
