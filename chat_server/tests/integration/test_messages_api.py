# chat_server/tests/integration/test_messages_api.py
import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


@pytest.fixture
async def dm_ids(client, connect, auth_header, test_user, test_user2):
    """Alice sends two DMs to Bob; returns their ids oldest first."""
    sender, _ = await connect(test_user)
    for content in ("first", "second"):
        await sender.handle("send_dm", {"recipientId": test_user2.id, "content": content})
    await sender.disconnect()
    history = await client.get(f"/api/v1/messages/dm/{test_user2.id}", headers=auth_header)
    return [m["id"] for m in history.json()]


async def contents(client, headers, other_id):
    response = await client.get(f"/api/v1/messages/dm/{other_id}", headers=headers)
    assert response.status_code == 200
    return [m["content"] for m in response.json()]


async def test_room_history_requires_membership(client: AsyncClient, auth_header, connect, test_user):
    dispatcher, connection = await connect(test_user)
    main_room_id = connection.events("rooms_list")[0][0]["id"]
    for i in range(3):
        await dispatcher.handle("send_message", {"roomId": main_room_id, "content": f"msg {i}"})

    response = await client.get(
        f"/api/v1/messages/room/{main_room_id}", headers=auth_header, params={"limit": 2}
    )
    assert response.status_code == 200
    assert [m["content"] for m in response.json()] == ["msg 1", "msg 2"]

    response = await client.get("/api/v1/messages/room/9999", headers=auth_header)
    assert response.status_code == 403


async def test_history_limit_bounds(client: AsyncClient, auth_header, test_user2):
    response = await client.get(
        f"/api/v1/messages/dm/{test_user2.id}", headers=auth_header, params={"limit": 0}
    )
    assert response.status_code == 422


async def test_delete_for_me_hides_only_mine(client: AsyncClient, dm_ids, auth_header, auth_header2, test_user, test_user2):
    response = await client.request(
        "DELETE", f"/api/v1/messages/dm/{dm_ids[0]}", headers=auth_header2, json={"scope": "me"}
    )
    assert response.status_code == 200
    assert response.json() == {"message_id": dm_ids[0], "scope": "me"}

    assert await contents(client, auth_header2, test_user.id) == ["second"]
    assert await contents(client, auth_header, test_user2.id) == ["first", "second"]

    again = await client.delete(f"/api/v1/messages/dm/{dm_ids[0]}", headers=auth_header2)
    assert again.status_code == 404


async def test_delete_for_everyone(client: AsyncClient, connect, dm_ids, auth_header, auth_header2, test_user, test_user2):
    _, bob = await connect(test_user2)
    bob.clear()

    response = await client.request(
        "DELETE", f"/api/v1/messages/dm/{dm_ids[1]}", headers=auth_header, json={"scope": "everyone"}
    )
    assert response.status_code == 200

    assert await contents(client, auth_header, test_user2.id) == ["first"]
    assert await contents(client, auth_header2, test_user.id) == ["first"]
    assert bob.events("message_deleted") == [
        {"messageId": dm_ids[1], "deletedBy": test_user.username, "conversationWith": test_user.id}
    ]


async def test_recipient_cannot_delete_for_everyone(client: AsyncClient, dm_ids, auth_header2):
    response = await client.request(
        "DELETE", f"/api/v1/messages/dm/{dm_ids[0]}", headers=auth_header2, json={"scope": "everyone"}
    )
    assert response.status_code == 403


async def test_clear_conversation_for_me(client: AsyncClient, dm_ids, auth_header, auth_header2, test_user, test_user2):
    response = await client.request(
        "DELETE", f"/api/v1/messages/dm/conversation/{test_user2.id}", headers=auth_header, json={"scope": "me"}
    )
    assert response.status_code == 200
    assert response.json() == {"scope": "me", "message_count": 2}

    assert await contents(client, auth_header, test_user2.id) == []
    assert await contents(client, auth_header2, test_user.id) == ["first", "second"]

    empty = await client.delete(f"/api/v1/messages/dm/conversation/{test_user2.id}", headers=auth_header)
    assert empty.status_code == 404
    assert empty.json()["error"] == "No messages found in this conversation"


async def test_clear_conversation_for_everyone(client: AsyncClient, connect, dm_ids, auth_header, auth_header2, test_user, test_user2):
    _, bob = await connect(test_user2)
    bob.clear()

    response = await client.request(
        "DELETE",
        f"/api/v1/messages/dm/conversation/{test_user2.id}",
        headers=auth_header,
        json={"scope": "everyone"},
    )
    assert response.json() == {"scope": "everyone", "message_count": 2}

    assert await contents(client, auth_header2, test_user.id) == []
    assert bob.events("conversation_deleted") == [
        {"deletedBy": test_user.username, "messageCount": 2}
    ]
