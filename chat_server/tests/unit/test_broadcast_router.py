# chat_server/tests/unit/test_broadcast_router.py
from datetime import datetime, timezone

import pytest

from chat_server.realtime.presence import PresenceRegistry
from chat_server.realtime.router import BroadcastRouter
from chat_server.tests.helpers import FakeConnection, identity

pytestmark = pytest.mark.asyncio


@pytest.fixture
def registry():
    return PresenceRegistry()


@pytest.fixture
def router(registry):
    return BroadcastRouter(registry)


def online(registry, user_id, fail=False):
    connection = FakeConnection(identity(user_id), fail=fail)
    registry.register_connection(user_id, connection)
    return connection


async def test_to_room_reaches_joined_connections_only(registry, router):
    joined, other_tab, outsider = online(registry, 1), online(registry, 1), online(registry, 2)
    router.join_group(10, joined)

    delivered = await router.to_room(10, "new_message", {"content": "hi"})

    assert delivered == 1
    assert joined.events("new_message") == [{"content": "hi"}]
    assert other_tab.sent == []
    assert outsider.sent == []


async def test_to_room_can_exclude_the_sender(registry, router):
    sender, listener = online(registry, 1), online(registry, 2)
    router.join_group(5, sender)
    router.join_group(5, listener)

    await router.to_room(5, "user_typing", {"userId": 1}, exclude=sender)

    assert sender.sent == []
    assert listener.names() == ["user_typing"]


async def test_to_user_reaches_every_device(registry, router):
    phone, laptop = online(registry, 4), online(registry, 4)

    assert await router.to_user(4, "new_dm", {"id": 1}) == 2
    assert phone.names() == laptop.names() == ["new_dm"]


async def test_to_user_without_connections_is_a_logged_noop(router, caplog):
    with caplog.at_level("DEBUG", logger="ChatAPI"):
        assert await router.to_user(42, "new_dm", {}) == 0
    assert "No live connection for user 42" in caplog.text


async def test_to_all_honours_exclude(registry, router):
    a, b, c = online(registry, 1), online(registry, 2), online(registry, 3)

    await router.to_all("user_status_changed", {"userId": 1}, exclude=a)

    assert a.sent == []
    assert b.names() == c.names() == ["user_status_changed"]


async def test_failed_send_is_skipped(registry, router, caplog):
    broken, healthy = online(registry, 1, fail=True), online(registry, 2)

    delivered = await router.to_all("refresh_room_users", {})

    assert delivered == 1
    assert healthy.names() == ["refresh_room_users"]
    assert "Failed to push refresh_room_users" in caplog.text


async def test_payload_is_json_encoded(registry, router):
    connection = online(registry, 1)
    sent_at = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    await router.to_connection(connection, "dm_messages", {"at": sent_at})

    assert connection.events("dm_messages") == [{"at": sent_at.isoformat()}]


async def test_group_membership_bookkeeping(registry, router):
    connection = online(registry, 1)

    assert router.join_group(1, connection)
    assert not router.join_group(1, connection)
    router.join_group(2, connection)
    assert router.has_joined(1, connection)

    assert sorted(router.leave_all(connection)) == [1, 2]
    assert not router.leave_group(1, connection)
    assert router.group_members(1) == []
