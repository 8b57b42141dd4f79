# chat_server/tests/integration/test_directory_views.py
import pytest

from chat_server.domain.enums import FriendshipPerspective
from chat_server.gateways.conversation_gateway import ConversationGateway
from chat_server.gateways.friend_gateway import FriendGateway
from chat_server.gateways.user_gateway import UserGateway
from chat_server.realtime.context import SessionScope

pytestmark = pytest.mark.asyncio


@pytest.fixture
def directory(db_session, services):
    return SessionScope(db_session, services).directory


async def befriend(db_session, uow, requester, addressee, status="accepted"):
    return await FriendGateway(db_session, uow).create_or_update_friendship(
        requester.id, addressee.id, status
    )


async def test_online_friends_come_first(directory, db_session, uow, connect, make_user, test_user):
    bob = await make_user("bob")
    carol = await make_user("carol")
    await befriend(db_session, uow, test_user, bob)
    await befriend(db_session, uow, carol, test_user)
    await connect(carol)

    friends = await directory.friends_of(test_user.id)

    assert [f.id for f in friends] == [carol.id, bob.id]
    assert [f.status for f in friends] == ["online", "offline"]


async def test_stale_persisted_status_is_overridden(directory, db_session, uow, test_user, test_user2):
    await befriend(db_session, uow, test_user, test_user2)
    # persisted as online but no live connection
    await UserGateway(db_session, uow).update_status(test_user2.id, "online")

    [friend] = await directory.friends_of(test_user.id)

    assert friend.status == "offline"
    assert directory.live_status(test_user2.id, "away") == "away"


async def test_pending_requests_are_not_friends(directory, db_session, uow, test_user, test_user2):
    await befriend(db_session, uow, test_user, test_user2, status="pending")

    assert await directory.friends_of(test_user.id) == []
    assert await directory.pending_request_count(test_user2.id) == 1
    assert await directory.pending_request_count(test_user.id) == 0
    assert await directory.friendship_status(test_user.id, test_user2.id) == FriendshipPerspective.SENT_REQUEST
    assert await directory.friendship_status(test_user2.id, test_user.id) == FriendshipPerspective.RECEIVED_REQUEST


async def test_hidden_conversation_only_hides_one_side(directory, db_session, uow, test_user, test_user2):
    gateway = ConversationGateway(db_session, uow)
    conversation = await gateway.find_or_create(test_user.id, test_user2.id)

    await gateway.set_hidden(conversation, test_user.id, True)

    assert await directory.dm_conversations(test_user.id) == []
    [view] = await directory.dm_conversations(test_user2.id)
    assert view.other_user.id == test_user.id
    assert view.is_hidden is False


async def test_online_users_reflect_registry(directory, connect, test_user, test_user2):
    assert await directory.online_users() == []

    await connect(test_user2)

    [online] = await directory.online_users()
    assert online.id == test_user2.id
    assert online.status == "online"
