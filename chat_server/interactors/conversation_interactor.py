# chat_server/interactors/conversation_interactor.py
from dataclasses import dataclass

from chat_server.domain.errors import NotFound
from chat_server.gateways.interfaces import IConversationGateway, IMessageGateway
from chat_server.infrastructure import models, schemas


@dataclass
class ConversationChange:
    conversation_id: int
    user_id: int
    other_user_id: int
    fully_deleted: bool = False
    tombstoned: int = 0


class ConversationInteractor:
    def __init__(
        self,
        conversation_gateway: IConversationGateway,
        message_gateway: IMessageGateway,
    ):
        self.conversation_gateway = conversation_gateway
        self.message_gateway = message_gateway

    async def get_conversation(
        self, conversation_id: int, user_id: int
    ) -> schemas.Conversation:
        conversation = await self.conversation_gateway.get_for_participant(
            conversation_id, user_id
        )
        if conversation is None:
            raise NotFound("Conversation not found")
        return schemas.Conversation.for_viewer(conversation._model, user_id)

    async def hide(self, conversation_id: int, user_id: int) -> ConversationChange:
        return await self._set_hidden(conversation_id, user_id, True)

    async def unhide(self, conversation_id: int, user_id: int) -> ConversationChange:
        return await self._set_hidden(conversation_id, user_id, False)

    async def delete(self, conversation_id: int, user_id: int) -> ConversationChange:
        """Delete for one side; once both sides deleted, the pair goes inactive."""
        conversation = await self.conversation_gateway.get_for_participant(
            conversation_id, user_id
        )
        if conversation is None:
            raise NotFound("Conversation not found")
        model: models.DMConversation = conversation._model
        other_user_id = model.other_user(user_id).id

        fully_deleted = await self.conversation_gateway.set_deleted(
            conversation, user_id, models.utcnow()
        )
        tombstoned = 0
        if fully_deleted:
            tombstoned = await self.message_gateway.tombstone_conversation_messages(
                model.user1_id, model.user2_id
            )
        return ConversationChange(
            conversation_id=conversation_id,
            user_id=user_id,
            other_user_id=other_user_id,
            fully_deleted=fully_deleted,
            tombstoned=tombstoned,
        )

    async def _set_hidden(
        self, conversation_id: int, user_id: int, hidden: bool
    ) -> ConversationChange:
        conversation = await self.conversation_gateway.get_for_participant(
            conversation_id, user_id
        )
        if conversation is None:
            raise NotFound("Conversation not found")
        await self.conversation_gateway.set_hidden(conversation, user_id, hidden)
        return ConversationChange(
            conversation_id=conversation_id,
            user_id=user_id,
            other_user_id=conversation._model.other_user(user_id).id,
        )
