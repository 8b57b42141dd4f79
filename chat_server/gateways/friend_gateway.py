# chat_server/gateways/friend_gateway.py
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from chat_server.domain.enums import FriendshipStatus
from chat_server.gateways.interfaces import IFriendGateway
from chat_server.infrastructure import models
from chat_server.infrastructure.data_mappers import SQLAlchemyMapper
from chat_server.infrastructure.uow import UnitOfWork, UoWModel


class FriendGateway(IFriendGateway):
    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.Friendship] = SQLAlchemyMapper(session)

    async def friendship_between(self, user_a: int, user_b: int) -> Optional[UoWModel]:
        stmt = select(models.Friendship).filter(
            models.Friendship.user_low_id == min(user_a, user_b),
            models.Friendship.user_high_id == max(user_a, user_b),
        )
        result = await self.session.execute(stmt)
        friendship = result.scalar_one_or_none()
        return UoWModel(friendship, self.uow) if friendship else None

    async def get_friendship(self, friendship_id: int) -> Optional[UoWModel]:
        stmt = select(models.Friendship).filter(models.Friendship.id == friendship_id)
        result = await self.session.execute(stmt)
        friendship = result.scalar_one_or_none()
        return UoWModel(friendship, self.uow) if friendship else None

    async def create_or_update_friendship(
        self, requester_id: int, addressee_id: int, status: str
    ) -> UoWModel:
        friendship = await self.friendship_between(requester_id, addressee_id)
        if friendship:
            friendship.requester_id = requester_id
            friendship.addressee_id = addressee_id
            friendship.status = status
        else:
            friendship = self.uow.register_new(
                models.Friendship(
                    requester_id=requester_id,
                    addressee_id=addressee_id,
                    user_low_id=min(requester_id, addressee_id),
                    user_high_id=max(requester_id, addressee_id),
                    status=status,
                )
            )
        await self.uow.commit()
        # repointed foreign keys leave the joined users stale
        await self.session.refresh(friendship._model, ["requester", "addressee"])
        return friendship

    async def set_status(self, friendship: UoWModel, status: str) -> UoWModel:
        friendship.status = status
        await self.uow.commit()
        return friendship

    async def delete_friendship(self, friendship_id: int) -> bool:
        friendship = await self.get_friendship(friendship_id)
        if friendship is None:
            return False
        self.uow.register_deleted(friendship)
        await self.uow.commit()
        return True

    async def accepted_friends_of(self, user_id: int) -> List[models.Friendship]:
        stmt = select(models.Friendship).filter(
            or_(
                models.Friendship.requester_id == user_id,
                models.Friendship.addressee_id == user_id,
            ),
            models.Friendship.status == FriendshipStatus.ACCEPTED.value,
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().unique().all())

    async def pending_requests_to(self, user_id: int) -> List[models.Friendship]:
        stmt = (
            select(models.Friendship)
            .filter(
                models.Friendship.addressee_id == user_id,
                models.Friendship.status == FriendshipStatus.PENDING.value,
            )
            .order_by(models.Friendship.updated_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().unique().all())

    async def sent_requests_by(self, user_id: int) -> List[models.Friendship]:
        stmt = (
            select(models.Friendship)
            .filter(
                models.Friendship.requester_id == user_id,
                models.Friendship.status == FriendshipStatus.PENDING.value,
            )
            .order_by(models.Friendship.updated_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().unique().all())

    async def count_pending_requests_to(self, user_id: int) -> int:
        stmt = select(func.count(models.Friendship.id)).filter(
            models.Friendship.addressee_id == user_id,
            models.Friendship.status == FriendshipStatus.PENDING.value,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()
