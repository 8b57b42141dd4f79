# chat_server/gateways/message_gateway.py
from typing import List, Optional

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chat_server.gateways.interfaces import IMessageGateway
from chat_server.infrastructure import models, schemas
from chat_server.infrastructure.data_mappers import SQLAlchemyMapper
from chat_server.infrastructure.uow import UnitOfWork, UoWModel

TOMBSTONE = "[Message deleted]"


def _between(user_a: int, user_b: int):
    return and_(
        models.Message.room_id.is_(None),
        or_(
            and_(
                models.Message.sender_id == user_a,
                models.Message.recipient_id == user_b,
            ),
            and_(
                models.Message.sender_id == user_b,
                models.Message.recipient_id == user_a,
            ),
        ),
    )


def _not_hidden_for(viewer_id: int):
    hidden = select(models.MessageHide.id).filter(
        models.MessageHide.message_id == models.Message.id,
        models.MessageHide.user_id == viewer_id,
    )
    return ~hidden.exists()


class MessageGateway(IMessageGateway):
    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.Message] = SQLAlchemyMapper(session)
        uow.mappers[models.MessageHide] = SQLAlchemyMapper(session)

    async def create_message(self, message: schemas.MessageCreate) -> UoWModel:
        db_message = models.Message(
            sender_id=message.sender_id,
            room_id=message.room_id,
            recipient_id=message.recipient_id,
            message_type=message.message_type.value,
            content=message.content,
            media_meta=message.media_meta,
        )
        uow_message = self.uow.register_new(db_message)
        await self.uow.commit()
        await self.session.refresh(db_message, ["sender"])
        return uow_message

    async def get_message(self, message_id: int) -> Optional[UoWModel]:
        stmt = select(models.Message).filter(models.Message.id == message_id)
        result = await self.session.execute(stmt)
        message = result.scalar_one_or_none()
        return UoWModel(message, self.uow) if message else None

    async def room_messages(
        self, room_id: int, limit: int = 50, offset: int = 0
    ) -> List[models.Message]:
        stmt = (
            select(models.Message)
            .filter(
                models.Message.room_id == room_id,
                models.Message.is_deleted.is_(False),
            )
            .order_by(models.Message.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        # newest page first from the query, oldest first for the caller
        return list(reversed(result.scalars().all()))

    async def dm_messages(
        self, user_a: int, user_b: int, viewer_id: int, limit: int = 50, offset: int = 0
    ) -> List[models.Message]:
        stmt = (
            select(models.Message)
            .filter(
                _between(user_a, user_b),
                models.Message.is_deleted.is_(False),
                _not_hidden_for(viewer_id),
            )
            .order_by(models.Message.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(reversed(result.scalars().all()))

    async def visible_dm_message(
        self, message_id: int, viewer_id: int
    ) -> Optional[UoWModel]:
        stmt = select(models.Message).filter(
            models.Message.id == message_id,
            models.Message.room_id.is_(None),
            or_(
                models.Message.sender_id == viewer_id,
                models.Message.recipient_id == viewer_id,
            ),
            models.Message.is_deleted.is_(False),
            _not_hidden_for(viewer_id),
        )
        result = await self.session.execute(stmt)
        message = result.scalar_one_or_none()
        return UoWModel(message, self.uow) if message else None

    async def soft_delete_message(self, message_id: int, tombstone: bool) -> bool:
        message = await self.get_message(message_id)
        if message is None:
            return False
        message.is_deleted = True
        if tombstone:
            message.content = TOMBSTONE
        await self.uow.commit()
        return True

    async def hide_message_for(self, user_id: int, message_id: int) -> None:
        self.uow.register_new(models.MessageHide(message_id=message_id, user_id=user_id))
        await self.uow.commit()

    async def count_visible_dm_messages(
        self, user_a: int, user_b: int, viewer_id: int
    ) -> int:
        stmt = select(func.count(models.Message.id)).filter(
            _between(user_a, user_b),
            models.Message.is_deleted.is_(False),
            _not_hidden_for(viewer_id),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def hide_conversation_messages_for(
        self, user_a: int, user_b: int, viewer_id: int
    ) -> int:
        stmt = select(models.Message.id).filter(
            _between(user_a, user_b),
            models.Message.is_deleted.is_(False),
            _not_hidden_for(viewer_id),
        )
        result = await self.session.execute(stmt)
        message_ids = list(result.scalars().all())
        for message_id in message_ids:
            self.uow.register_new(
                models.MessageHide(message_id=message_id, user_id=viewer_id)
            )
        await self.uow.commit()
        return len(message_ids)

    async def tombstone_conversation_messages(self, user_a: int, user_b: int) -> int:
        stmt = (
            update(models.Message)
            .where(_between(user_a, user_b), models.Message.is_deleted.is_(False))
            .values(is_deleted=True, content=TOMBSTONE)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.uow.commit()
        return result.rowcount
