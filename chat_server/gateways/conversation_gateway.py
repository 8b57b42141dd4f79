# chat_server/gateways/conversation_gateway.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from chat_server.gateways.interfaces import IConversationGateway
from chat_server.infrastructure import models
from chat_server.infrastructure.data_mappers import SQLAlchemyMapper
from chat_server.infrastructure.uow import UnitOfWork, UoWModel


def normalize_pair(user_a: int, user_b: int) -> tuple[int, int]:
    return min(user_a, user_b), max(user_a, user_b)


class ConversationGateway(IConversationGateway):
    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.DMConversation] = SQLAlchemyMapper(session)

    async def get_for_pair(self, user_a: int, user_b: int) -> Optional[UoWModel]:
        user1_id, user2_id = normalize_pair(user_a, user_b)
        stmt = select(models.DMConversation).filter(
            models.DMConversation.user1_id == user1_id,
            models.DMConversation.user2_id == user2_id,
        )
        result = await self.session.execute(stmt)
        conversation = result.unique().scalar_one_or_none()
        return UoWModel(conversation, self.uow) if conversation else None

    async def find_or_create(self, user_a: int, user_b: int) -> UoWModel:
        conversation = await self.get_for_pair(user_a, user_b)
        if conversation:
            if not conversation.is_active:
                # a fully deleted pair starts over on the same row
                conversation.is_active = True
                conversation.user1_deleted_at = None
                conversation.user2_deleted_at = None
                conversation.user1_hidden = False
                conversation.user2_hidden = False
                await self.uow.commit()
            return conversation

        user1_id, user2_id = normalize_pair(user_a, user_b)
        db_conversation = models.DMConversation(user1_id=user1_id, user2_id=user2_id)
        conversation = self.uow.register_new(db_conversation)
        await self.uow.commit()
        await self.session.refresh(db_conversation, ["user1", "user2", "last_message"])
        return conversation

    async def get_for_participant(
        self, conversation_id: int, user_id: int, active_only: bool = True
    ) -> Optional[UoWModel]:
        stmt = select(models.DMConversation).filter(
            models.DMConversation.id == conversation_id,
            or_(
                models.DMConversation.user1_id == user_id,
                models.DMConversation.user2_id == user_id,
            ),
        )
        if active_only:
            stmt = stmt.filter(models.DMConversation.is_active.is_(True))
        result = await self.session.execute(stmt)
        conversation = result.unique().scalar_one_or_none()
        return UoWModel(conversation, self.uow) if conversation else None

    async def conversations_for(
        self, user_id: int, respect_hidden_and_deleted: bool = True
    ) -> List[models.DMConversation]:
        as_user1 = models.DMConversation.user1_id == user_id
        as_user2 = models.DMConversation.user2_id == user_id
        if respect_hidden_and_deleted:
            # each side only looks at its own flags
            as_user1 = and_(
                as_user1,
                models.DMConversation.user1_hidden.is_(False),
                models.DMConversation.user1_deleted_at.is_(None),
            )
            as_user2 = and_(
                as_user2,
                models.DMConversation.user2_hidden.is_(False),
                models.DMConversation.user2_deleted_at.is_(None),
            )
        stmt = (
            select(models.DMConversation)
            .filter(models.DMConversation.is_active.is_(True), or_(as_user1, as_user2))
            .order_by(
                models.DMConversation.last_message_at.desc().nulls_last(),
                models.DMConversation.id.desc(),
            )
        )
        result = await self.session.execute(stmt)
        return list(result.unique().scalars().all())

    async def update_last_message(
        self, conversation: UoWModel, message_id: int, sent_at: datetime
    ) -> None:
        conversation.last_message_id = message_id
        conversation.last_message_at = sent_at
        # a new message brings the conversation back for both sides
        conversation.user1_hidden = False
        conversation.user2_hidden = False
        conversation.user1_deleted_at = None
        conversation.user2_deleted_at = None
        await self.uow.commit()
        await self.session.refresh(conversation._model, ["last_message"])

    async def set_hidden(
        self, conversation: UoWModel, user_id: int, hidden: bool
    ) -> None:
        setattr(conversation, f"{conversation._model.side(user_id)}_hidden", hidden)
        await self.uow.commit()

    async def set_deleted(
        self, conversation: UoWModel, user_id: int, deleted_at: Optional[datetime]
    ) -> bool:
        """Mark one side deleted. Returns True when both sides are now deleted."""
        model = conversation._model
        side = model.side(user_id)
        other_side = "user2" if side == "user1" else "user1"
        setattr(conversation, f"{side}_deleted_at", deleted_at)
        fully_deleted = getattr(model, f"{other_side}_deleted_at") is not None
        if fully_deleted:
            conversation.is_active = False
        await self.uow.commit()
        return fully_deleted
