# chat_server/tests/unit/test_event_handlers.py
import json
import logging
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from chat_server.domain.events import MessageSent, PresenceChanged
from chat_server.infrastructure.event_dispatcher import EventDispatcher
from chat_server.infrastructure.event_handlers import EventHandlers
from chat_server.infrastructure.redis_client import RedisClient


@pytest.fixture
def mock_redis_client():
    return AsyncMock()


@pytest.fixture
def event_handlers(mock_redis_client):
    return EventHandlers(mock_redis_client, logging.getLogger("ChatAPI"))


@pytest.mark.asyncio
async def test_publish_event_uses_event_channel(event_handlers, mock_redis_client):
    event = PresenceChanged(user_id=1, username="alice", status="online")

    await event_handlers.publish_event(event)

    channel, payload = mock_redis_client.publish_json.call_args.args
    assert channel == "chat:events:PresenceChanged"
    assert payload == {"user_id": 1, "username": "alice", "status": "online"}


@pytest.mark.asyncio
async def test_publish_failure_is_logged_not_raised(event_handlers, mock_redis_client, caplog):
    mock_redis_client.publish_json.side_effect = RedisConnectionError("down")

    await event_handlers.publish_event(
        MessageSent(message_id=3, sender_id=1, room_id=2, message_type="text")
    )

    assert "Could not publish to chat:events:MessageSent" in caplog.text


@pytest.mark.asyncio
async def test_publish_to_fake_redis(mock_redis):
    client = RedisClient("localhost", 6379, logging.getLogger("ChatAPI"))
    client.client = mock_redis
    pubsub = mock_redis.pubsub()
    await pubsub.subscribe("chat:events:PresenceChanged")
    await pubsub.get_message(timeout=1)

    await EventHandlers(client, logging.getLogger("ChatAPI")).publish_event(
        PresenceChanged(user_id=2, username="bob", status="offline")
    )

    message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1)
    assert message is not None
    assert json.loads(message["data"])["status"] == "offline"
    await pubsub.aclose()


@pytest.mark.asyncio
async def test_dispatcher_routes_by_class_name():
    dispatcher = EventDispatcher()
    seen, mirrored = [], []

    async def on_presence(event):
        seen.append(event)

    async def mirror(event):
        mirrored.append(type(event).__name__)

    dispatcher.register("PresenceChanged", on_presence)
    dispatcher.register_all(["PresenceChanged", "MessageSent"], mirror)

    await dispatcher.dispatch(PresenceChanged(user_id=1, username="a", status="online"))
    await dispatcher.dispatch(MessageSent(message_id=1, sender_id=1, recipient_id=2, message_type="text"))

    assert len(seen) == 1
    assert mirrored == ["PresenceChanged", "MessageSent"]


@pytest.mark.asyncio
async def test_failing_handler_does_not_stop_the_rest(caplog):
    dispatcher = EventDispatcher()
    mirrored = []

    async def broken(event):
        raise RuntimeError("push failed")

    async def mirror(event):
        mirrored.append(event.user_id)

    dispatcher.register("PresenceChanged", broken)
    dispatcher.register("PresenceChanged", mirror)

    await dispatcher.dispatch(PresenceChanged(user_id=4, username="d", status="offline"))

    assert mirrored == [4]
    assert "failed for PresenceChanged" in caplog.text
