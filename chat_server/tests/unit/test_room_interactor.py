# chat_server/tests/unit/test_room_interactor.py
from unittest.mock import AsyncMock, Mock

import pytest

from chat_server.domain.errors import AccessDenied, Conflict, NotFound
from chat_server.gateways.interfaces import IRoomGateway
from chat_server.interactors.room_interactor import RoomInteractor


@pytest.fixture
def room_gateway():
    return AsyncMock(spec=IRoomGateway)


@pytest.fixture
def interactor(room_gateway):
    return RoomInteractor(room_gateway, main_room_name="main")


@pytest.mark.asyncio
async def test_leave_when_not_member_is_noop(interactor, room_gateway):
    room_gateway.get_active_membership.return_value = None

    result = await interactor.leave_room(3, 1)

    assert not result.left
    room_gateway.deactivate_membership.assert_not_called()


@pytest.mark.asyncio
async def test_owner_cannot_leave_populated_room(interactor, room_gateway):
    room_gateway.get_active_membership.return_value = Mock(role="owner")
    room_gateway.count_active_members.return_value = 2

    with pytest.raises(Conflict) as exc_info:
        await interactor.leave_room(3, 1)

    assert exc_info.value.code == "owner_must_transfer"
    room_gateway.deactivate_membership.assert_not_called()


@pytest.mark.asyncio
async def test_last_member_leaving_deactivates_room(interactor, room_gateway):
    room_gateway.get_active_membership.return_value = Mock(role="owner")
    room_gateway.count_active_members.side_effect = [1, 0]
    room_gateway.get_room.return_value = Mock(is_active=True)
    room_gateway.get_room.return_value.name = "side-room"

    result = await interactor.leave_room(3, 1)

    assert result.left and result.room_deactivated
    room_gateway.deactivate_room.assert_awaited_once_with(3)


@pytest.mark.asyncio
async def test_main_room_cannot_be_left(interactor, room_gateway):
    room_gateway.get_active_membership.return_value = Mock(role="member")
    room_gateway.get_room.return_value = Mock(is_active=True)
    room_gateway.get_room.return_value.name = "main"

    with pytest.raises(AccessDenied, match="Cannot leave the main channel"):
        await interactor.leave_room(1, 1)

    room_gateway.deactivate_membership.assert_not_called()
    room_gateway.deactivate_room.assert_not_called()


@pytest.mark.asyncio
async def test_taken_room_name_conflicts(interactor, room_gateway):
    room_gateway.get_by_name.return_value = Mock(is_active=True)

    with pytest.raises(Conflict, match="already exists"):
        await interactor.create_room(Mock(), 1)

    room_gateway.create_room.assert_not_called()
    room_gateway.add_membership.assert_not_called()


@pytest.mark.asyncio
async def test_join_rules(interactor, room_gateway):
    room_gateway.get_room.return_value = None
    with pytest.raises(NotFound, match="Room not found"):
        await interactor.join_room(9, 1)

    room_gateway.get_room.return_value = Mock(is_active=True, is_private=True)
    with pytest.raises(AccessDenied, match="private room"):
        await interactor.join_room(9, 1)

    room_gateway.get_room.return_value = Mock(is_active=True, is_private=False)
    room_gateway.get_membership.return_value = Mock(is_active=True)
    with pytest.raises(Conflict, match="Already a member"):
        await interactor.join_room(9, 1)
