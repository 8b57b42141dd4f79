# chat_server/interactors/room_interactor.py
from dataclasses import dataclass

from chat_server.domain.enums import RoomRole
from chat_server.domain.errors import AccessDenied, Conflict, NotFound
from chat_server.gateways.interfaces import IRoomGateway
from chat_server.infrastructure import schemas


@dataclass
class LeaveResult:
    room_id: int
    left: bool
    room_deactivated: bool = False


def room_with_role(room, role: str | None) -> schemas.Room:
    data = schemas.Room.model_validate(room)
    data.role = role
    return data


class RoomInteractor:
    def __init__(self, room_gateway: IRoomGateway, main_room_name: str = "main"):
        self.room_gateway = room_gateway
        self.main_room_name = main_room_name

    async def user_rooms(self, user_id: int) -> list[schemas.Room]:
        memberships = await self.room_gateway.active_memberships_for_user(user_id)
        return [room_with_role(room, role) for room, role in memberships]

    async def browse(self, user_id: int) -> list[schemas.RoomBrowse]:
        rows = await self.room_gateway.browse_public(user_id)
        return [
            schemas.RoomBrowse(
                **schemas.Room.model_validate(room).model_dump(),
                member_count=member_count,
                is_member=is_member,
            )
            for room, member_count, is_member in rows
        ]

    async def create_room(
        self, room: schemas.RoomCreate, user_id: int
    ) -> schemas.Room:
        if await self.room_gateway.get_by_name(room.name) is not None:
            raise Conflict("Room name already exists", details={"field": "name"})

        new_room = await self.room_gateway.create_room(room, user_id)
        return room_with_role(new_room._model, RoomRole.OWNER.value)

    async def room_detail(self, room_id: int, user_id: int) -> schemas.RoomDetail:
        room = await self.room_gateway.get_room(room_id)
        if room is None or not room.is_active:
            raise NotFound("Room not found")
        membership = await self.room_gateway.get_active_membership(room_id, user_id)
        if room.is_private and membership is None:
            raise AccessDenied("Access denied to room")
        members = await self.room_gateway.room_members(room_id)
        return schemas.RoomDetail(
            **room_with_role(room._model, membership.role if membership else None).model_dump(),
            members=[
                schemas.RoomUser(**schemas.UserPublic.model_validate(user).model_dump(), role=role)
                for user, role in members
            ],
        )

    async def room_users(self, room_id: int, user_id: int) -> list[schemas.RoomUser]:
        await self.require_membership(room_id, user_id)
        members = await self.room_gateway.room_members(room_id)
        return [
            schemas.RoomUser(**schemas.UserPublic.model_validate(user).model_dump(), role=role)
            for user, role in members
        ]

    async def require_membership(self, room_id: int, user_id: int):
        membership = await self.room_gateway.get_active_membership(room_id, user_id)
        if membership is None:
            raise AccessDenied("Access denied to room")
        return membership

    async def join_room(self, room_id: int, user_id: int) -> schemas.Room:
        room = await self.room_gateway.get_room(room_id)
        if room is None or not room.is_active:
            raise NotFound("Room not found")
        if room.is_private:
            raise AccessDenied("Cannot join private room without invitation")
        membership = await self.room_gateway.get_membership(room_id, user_id)
        if membership is not None and membership.is_active:
            raise Conflict("Already a member of this room")
        role = membership.role if membership is not None else RoomRole.MEMBER.value
        await self.room_gateway.add_membership(room_id, user_id, role)
        return room_with_role(room._model, role)

    async def leave_room(self, room_id: int, user_id: int) -> LeaveResult:
        """Leave a room. Leaving a room you are not in is a no-op."""
        room = await self.room_gateway.get_room(room_id)
        if room is not None and room.name == self.main_room_name:
            raise AccessDenied("Cannot leave the main channel")

        membership = await self.room_gateway.get_active_membership(room_id, user_id)
        if membership is None:
            return LeaveResult(room_id=room_id, left=False)

        if membership.role == RoomRole.OWNER.value:
            active = await self.room_gateway.count_active_members(room_id)
            if active > 1:
                raise Conflict(
                    "Room owners cannot leave while other members are present. "
                    "Transfer ownership first.",
                    code="owner_must_transfer",
                )

        await self.room_gateway.deactivate_membership(room_id, user_id)

        remaining = await self.room_gateway.count_active_members(room_id)
        deactivated = False
        if remaining == 0 and room is not None:
            await self.room_gateway.deactivate_room(room_id)
            deactivated = True
        return LeaveResult(room_id=room_id, left=True, room_deactivated=deactivated)
