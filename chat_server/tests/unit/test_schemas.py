# chat_server/tests/unit/test_schemas.py
import random

import pytest
from pydantic import ValidationError

from chat_server.domain.enums import MessageType
from chat_server.infrastructure import schemas


def random_target(rng):
    return rng.choice([None, rng.randint(1, 10_000)])


def test_message_needs_exactly_one_target():
    rng = random.Random(1234)
    for _ in range(200):
        room_id, recipient_id = random_target(rng), random_target(rng)
        data = dict(
            sender_id=rng.randint(1, 10_000),
            room_id=room_id,
            recipient_id=recipient_id,
            content="x" * rng.randint(1, 50),
            message_type=rng.choice(list(MessageType)),
        )
        if (room_id is None) == (recipient_id is None):
            with pytest.raises(ValidationError, match="exactly one of room_id or recipient_id"):
                schemas.MessageCreate(**data)
        else:
            message = schemas.MessageCreate(**data)
            assert (message.room_id is None) != (message.recipient_id is None)


def test_socket_payloads_accept_camel_case():
    payload = schemas.SendMessagePayload.model_validate(
        {"roomId": 5, "content": "hello", "messageType": "link"}
    )
    assert payload.room_id == 5
    assert payload.message_type == MessageType.LINK

    request = schemas.DMHistoryRequest.model_validate({"recipientId": 2})
    assert (request.limit, request.offset) == (50, 0)


def test_socket_payloads_reject_missing_target():
    with pytest.raises(ValidationError):
        schemas.RoomRef.model_validate({})
    with pytest.raises(ValidationError):
        schemas.DMHistoryRequest.model_validate({"recipientId": 2, "limit": 0})


@pytest.mark.parametrize("name", ["General", "has space", "x", "emoji🙂"])
def test_room_names_are_slugs(name):
    with pytest.raises(ValidationError):
        schemas.RoomCreate(name=name, display_name="Anything")


def test_delete_scope_defaults_to_me():
    assert schemas.MessageDeleteRequest().scope.value == "me"
