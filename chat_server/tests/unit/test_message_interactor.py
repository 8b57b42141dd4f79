# chat_server/tests/unit/test_message_interactor.py
from unittest.mock import AsyncMock, Mock

import pytest

from chat_server.domain.enums import DeleteScope
from chat_server.domain.errors import AccessDenied, NotFound, ValidationFailed
from chat_server.gateways.interfaces import (
    IConversationGateway,
    IMessageGateway,
    IRoomGateway,
    IUserGateway,
)
from chat_server.interactors.message_interactor import MessageInteractor, validate_content


@pytest.fixture
def gateways():
    return {
        "message": AsyncMock(spec=IMessageGateway),
        "room": AsyncMock(spec=IRoomGateway),
        "conversation": AsyncMock(spec=IConversationGateway),
        "user": AsyncMock(spec=IUserGateway),
    }


@pytest.fixture
def interactor(gateways):
    return MessageInteractor(
        gateways["message"], gateways["room"], gateways["conversation"], gateways["user"]
    )


class TestValidateContent:
    def test_strips_whitespace(self):
        assert validate_content("  hi  ") == "hi"

    @pytest.mark.parametrize("content", ["", "   ", None])
    def test_rejects_empty(self, content):
        with pytest.raises(ValidationFailed, match="Message content is required"):
            validate_content(content)

    def test_length_boundary(self):
        assert validate_content("a" * 2000) == "a" * 2000
        with pytest.raises(ValidationFailed, match=r"Message too long \(max 2000 characters\)"):
            validate_content("a" * 2001)


class TestMessageInteractor:
    @pytest.mark.asyncio
    async def test_empty_room_message_never_reaches_storage(self, interactor, gateways):
        with pytest.raises(ValidationFailed):
            await interactor.send_room_message(1, 5, "")

        gateways["room"].get_active_membership.assert_not_called()
        gateways["message"].create_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_room_message_requires_membership(self, interactor, gateways):
        gateways["room"].get_active_membership.return_value = None

        with pytest.raises(AccessDenied, match="Access denied to room"):
            await interactor.send_room_message(1, 5, "hello")
        gateways["message"].create_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_dm_to_missing_recipient(self, interactor, gateways):
        gateways["user"].get_user.return_value = None

        with pytest.raises(NotFound, match="Recipient not found"):
            await interactor.send_direct_message(1, 99, "hello")
        gateways["conversation"].find_or_create.assert_not_called()

    @pytest.mark.asyncio
    async def test_only_sender_deletes_for_everyone(self, interactor, gateways):
        gateways["message"].visible_dm_message.return_value = Mock(
            sender_id=2, recipient_id=1
        )

        with pytest.raises(AccessDenied, match="only delete your own messages"):
            await interactor.delete_dm_message(10, 1, DeleteScope.EVERYONE)
        gateways["message"].soft_delete_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_for_me_hides_only_for_requester(self, interactor, gateways):
        gateways["message"].visible_dm_message.return_value = Mock(
            sender_id=2, recipient_id=1
        )

        deletion = await interactor.delete_dm_message(10, 1, DeleteScope.ME)

        gateways["message"].hide_message_for.assert_awaited_once_with(1, 10)
        gateways["message"].soft_delete_message.assert_not_called()
        assert deletion.other_user_id == 2

    @pytest.mark.asyncio
    async def test_deleting_invisible_message(self, interactor, gateways):
        gateways["message"].visible_dm_message.return_value = None

        with pytest.raises(NotFound, match="Message not found or already deleted"):
            await interactor.delete_dm_message(10, 1, DeleteScope.ME)

    @pytest.mark.asyncio
    async def test_clearing_empty_conversation(self, interactor, gateways):
        gateways["user"].get_user.return_value = Mock(is_active=True)
        gateways["message"].count_visible_dm_messages.return_value = 0

        with pytest.raises(NotFound, match="No messages found in this conversation"):
            await interactor.clear_conversation(1, 2, DeleteScope.EVERYONE)
