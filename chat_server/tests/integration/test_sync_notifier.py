# chat_server/tests/integration/test_sync_notifier.py
import pytest

from chat_server.domain.events import (
    ConversationVisibilityChanged,
    DMConversationCleared,
    DMMessageDeleted,
    FriendshipChanged,
    RoomMembershipChanged,
)
from chat_server.gateways.friend_gateway import FriendGateway
from chat_server.gateways.room_gateway import RoomGateway
from chat_server.infrastructure import schemas

pytestmark = pytest.mark.asyncio


async def test_friend_request_reaches_addressee(connect, services, db_session, uow, test_user, test_user2):
    _, alice = await connect(test_user)
    _, bob = await connect(test_user2)
    friendship = await FriendGateway(db_session, uow).create_or_update_friendship(
        test_user.id, test_user2.id, "pending"
    )
    alice.clear()
    bob.clear()

    await services.event_dispatcher.dispatch(
        FriendshipChanged(
            action="requested",
            actor_id=test_user.id,
            actor_username=test_user.username,
            other_id=test_user2.id,
            friendship_id=friendship.id,
        )
    )

    assert bob.events("friend_requests_count_updated") == [{"count": 1}]
    assert bob.events("friend_request_received") == [
        {
            "message": f"{test_user.username} sent you a friend request",
            "userId": test_user.id,
            "friendshipId": friendship.id,
        }
    ]
    assert alice.events("friend_request_received") == []
    assert alice.events("friends_list_updated") == [{"friends": []}]
    assert len(alice.events("refresh_room_users")) == 1
    assert len(bob.events("refresh_room_users")) == 1


async def test_rejection_sends_no_notice(connect, services, test_user, test_user2):
    _, alice = await connect(test_user)
    alice.clear()

    await services.event_dispatcher.dispatch(
        FriendshipChanged(
            action="rejected",
            actor_id=test_user2.id,
            actor_username=test_user2.username,
            other_id=test_user.id,
            friendship_id=1,
        )
    )

    assert "friend_request_rejected" not in alice.names()
    assert alice.events("friends_list_updated") == [{"friends": []}]


async def test_created_room_joins_group_and_lists(connect, services, db_session, uow, test_user):
    dispatcher, alice = await connect(test_user)
    room = await RoomGateway(db_session, uow).create_room(
        schemas.RoomCreate(name="side-room", display_name="Side"), test_user.id
    )
    alice.clear()

    await services.event_dispatcher.dispatch(
        RoomMembershipChanged(action="created", room_id=room.id, user_id=test_user.id)
    )

    assert services.router.has_joined(room.id, dispatcher.connection)
    [rooms] = alice.events("rooms_list")
    assert {r["name"] for r in rooms} == {"main", "side-room"}
    assert alice.events("refresh_room_users") == [{"roomId": room.id}]


async def test_left_room_leaves_group(connect, services, db_session, uow, test_user):
    room = await RoomGateway(db_session, uow).create_room(
        schemas.RoomCreate(name="side-room", display_name="Side"), test_user.id
    )
    dispatcher, alice = await connect(test_user)
    assert services.router.has_joined(room.id, dispatcher.connection)
    alice.clear()

    await services.event_dispatcher.dispatch(
        RoomMembershipChanged(
            action="left", room_id=room.id, user_id=test_user.id, room_deactivated=True
        )
    )

    assert not services.router.has_joined(room.id, dispatcher.connection)
    assert alice.events("refresh_room_users") == []


async def test_fully_deleted_conversation_refreshes_both(connect, services, test_user, test_user2):
    _, alice = await connect(test_user)
    _, bob = await connect(test_user2)
    alice.clear()
    bob.clear()

    await services.event_dispatcher.dispatch(
        ConversationVisibilityChanged(
            action="deleted",
            conversation_id=1,
            user_id=test_user.id,
            other_user_id=test_user2.id,
            fully_deleted=True,
        )
    )

    assert alice.events("dm_conversations") == [[]]
    assert alice.events("refresh_dm_messages") == [{"userId": test_user2.id}]
    assert bob.events("refresh_dm_messages") == [{"userId": test_user.id}]
    assert bob.events("dm_conversations") == []


@pytest.mark.parametrize("scope, other_sees", [("me", []), ("everyone", ["message_deleted", "refresh_dm_messages"])])
async def test_deleted_message_notice_depends_on_scope(connect, services, test_user, test_user2, scope, other_sees):
    _, alice = await connect(test_user)
    _, bob = await connect(test_user2)
    alice.clear()
    bob.clear()

    await services.event_dispatcher.dispatch(
        DMMessageDeleted(
            message_id=7,
            deleted_by=test_user.id,
            deleted_by_username=test_user.username,
            conversation_with=test_user2.id,
            scope=scope,
        )
    )

    assert alice.names() == ["refresh_dm_messages"]
    assert bob.names() == other_sees
    if scope == "everyone":
        assert bob.events("message_deleted") == [
            {"messageId": 7, "deletedBy": test_user.username, "conversationWith": test_user.id}
        ]


async def test_cleared_conversation_for_everyone(connect, services, test_user, test_user2):
    _, alice = await connect(test_user)
    _, bob = await connect(test_user2)
    alice.clear()
    bob.clear()

    await services.event_dispatcher.dispatch(
        DMConversationCleared(
            deleted_by=test_user.id,
            deleted_by_username=test_user.username,
            other_user_id=test_user2.id,
            scope="everyone",
            message_count=3,
        )
    )

    assert alice.names() == ["refresh_dm_messages", "refresh_dm_conversations"]
    assert bob.names() == [
        "conversation_deleted",
        "refresh_dm_messages",
        "refresh_dm_conversations",
    ]
    assert bob.events("conversation_deleted") == [
        {"deletedBy": test_user.username, "messageCount": 3}
    ]
