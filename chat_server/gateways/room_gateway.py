# chat_server/gateways/room_gateway.py
from typing import List, Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from chat_server.domain.enums import ROLE_ORDER, RoomRole
from chat_server.gateways.interfaces import IRoomGateway
from chat_server.infrastructure import models, schemas
from chat_server.infrastructure.data_mappers import SQLAlchemyMapper
from chat_server.infrastructure.uow import UnitOfWork, UoWModel

NAME_LENGTH = models.Room.__table__.c.name.type.length


class RoomGateway(IRoomGateway):
    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.Room] = SQLAlchemyMapper(session)
        uow.mappers[models.RoomMember] = SQLAlchemyMapper(session)

    async def get_room(self, room_id: int) -> Optional[UoWModel]:
        stmt = select(models.Room).filter(models.Room.id == room_id)
        result = await self.session.execute(stmt)
        room = result.scalar_one_or_none()
        return UoWModel(room, self.uow) if room else None

    async def get_by_name(self, name: str) -> Optional[UoWModel]:
        stmt = select(models.Room).filter(
            models.Room.name == name, models.Room.is_active.is_(True)
        )
        result = await self.session.execute(stmt)
        room = result.scalar_one_or_none()
        return UoWModel(room, self.uow) if room else None

    async def active_memberships_for_user(
        self, user_id: int
    ) -> List[tuple[models.Room, str]]:
        stmt = (
            select(models.Room, models.RoomMember.role)
            .join(models.RoomMember, models.RoomMember.room_id == models.Room.id)
            .filter(
                models.RoomMember.user_id == user_id,
                models.RoomMember.is_active.is_(True),
                models.Room.is_active.is_(True),
            )
            .order_by(models.Room.display_name, models.Room.id)
        )
        result = await self.session.execute(stmt)
        return [(room, role) for room, role in result.all()]

    async def get_membership(self, room_id: int, user_id: int) -> Optional[UoWModel]:
        stmt = select(models.RoomMember).filter(
            models.RoomMember.room_id == room_id,
            models.RoomMember.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        membership = result.scalar_one_or_none()
        return UoWModel(membership, self.uow) if membership else None

    async def get_active_membership(
        self, room_id: int, user_id: int
    ) -> Optional[UoWModel]:
        stmt = (
            select(models.RoomMember)
            .join(models.Room, models.Room.id == models.RoomMember.room_id)
            .filter(
                models.RoomMember.room_id == room_id,
                models.RoomMember.user_id == user_id,
                models.RoomMember.is_active.is_(True),
                models.Room.is_active.is_(True),
            )
        )
        result = await self.session.execute(stmt)
        membership = result.scalar_one_or_none()
        return UoWModel(membership, self.uow) if membership else None

    async def add_membership(self, room_id: int, user_id: int, role: str) -> UoWModel:
        membership = await self.get_membership(room_id, user_id)
        if membership:
            # rejoin reuses the row
            membership.is_active = True
            membership.role = role
            membership.joined_at = models.utcnow()
        else:
            membership = self.uow.register_new(
                models.RoomMember(room_id=room_id, user_id=user_id, role=role)
            )
        await self.uow.commit()
        return membership

    async def deactivate_membership(self, room_id: int, user_id: int) -> bool:
        membership = await self.get_membership(room_id, user_id)
        if membership is None or not membership.is_active:
            return False
        membership.is_active = False
        await self.uow.commit()
        return True

    async def count_active_members(self, room_id: int) -> int:
        stmt = select(func.count(models.RoomMember.id)).filter(
            models.RoomMember.room_id == room_id,
            models.RoomMember.is_active.is_(True),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def room_members(self, room_id: int) -> List[tuple[models.User, str]]:
        role_rank = case(ROLE_ORDER, value=models.RoomMember.role, else_=len(ROLE_ORDER))
        stmt = (
            select(models.User, models.RoomMember.role)
            .join(models.RoomMember, models.RoomMember.user_id == models.User.id)
            .filter(
                models.RoomMember.room_id == room_id,
                models.RoomMember.is_active.is_(True),
                models.User.is_active.is_(True),
            )
            .order_by(role_rank, models.User.username)
        )
        result = await self.session.execute(stmt)
        return [(user, role) for user, role in result.all()]

    async def create_room(self, room: schemas.RoomCreate, creator_id: int) -> UoWModel:
        db_room = models.Room(**room.model_dump(), created_by=creator_id, is_active=True)
        uow_room = self.uow.register_new(db_room)
        await self.uow.commit()
        self.uow.register_new(
            models.RoomMember(
                room_id=db_room.id, user_id=creator_id, role=RoomRole.OWNER.value
            )
        )
        await self.uow.commit()
        return uow_room

    async def browse_public(self, user_id: int) -> List[tuple[models.Room, int, bool]]:
        member_count = (
            select(func.count(models.RoomMember.id))
            .filter(
                models.RoomMember.room_id == models.Room.id,
                models.RoomMember.is_active.is_(True),
            )
            .correlate(models.Room)
            .scalar_subquery()
        )
        is_member = (
            select(func.count(models.RoomMember.id))
            .filter(
                models.RoomMember.room_id == models.Room.id,
                models.RoomMember.user_id == user_id,
                models.RoomMember.is_active.is_(True),
            )
            .correlate(models.Room)
            .scalar_subquery()
        )
        stmt = (
            select(models.Room, member_count, is_member)
            .filter(models.Room.is_active.is_(True), models.Room.is_private.is_(False))
            .order_by(member_count.desc(), models.Room.display_name)
        )
        result = await self.session.execute(stmt)
        return [(room, count, bool(member)) for room, count, member in result.all()]

    async def deactivate_room(self, room_id: int) -> None:
        room = await self.get_room(room_id)
        if room and room.is_active:
            # "~" never passes the room name pattern, so the old name is free again
            suffix = f"~{room_id}"
            room.name = f"{room.name[: NAME_LENGTH - len(suffix)]}{suffix}"
            room.is_active = False
            await self.uow.commit()
