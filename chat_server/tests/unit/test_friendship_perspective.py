# chat_server/tests/unit/test_friendship_perspective.py
import pytest

from chat_server.domain.enums import FriendshipPerspective, FriendshipStatus
from chat_server.infrastructure import models
from chat_server.interactors.friend_interactor import friendship_perspective


def friendship(requester_id, addressee_id, status):
    return models.Friendship(
        requester_id=requester_id,
        addressee_id=addressee_id,
        user_low_id=min(requester_id, addressee_id),
        user_high_id=max(requester_id, addressee_id),
        status=status.value,
    )


def test_self_and_none():
    assert friendship_perspective(1, 1, None) == FriendshipPerspective.SELF
    assert friendship_perspective(1, 2, None) == FriendshipPerspective.NONE


@pytest.mark.parametrize(
    "viewer, expected",
    [(1, FriendshipPerspective.SENT_REQUEST), (2, FriendshipPerspective.RECEIVED_REQUEST)],
)
def test_pending_depends_on_who_asked(viewer, expected):
    row = friendship(1, 2, FriendshipStatus.PENDING)
    other = 2 if viewer == 1 else 1

    assert friendship_perspective(viewer, other, row) == expected


@pytest.mark.parametrize(
    "status, expected",
    [
        (FriendshipStatus.ACCEPTED, FriendshipPerspective.FRIENDS),
        (FriendshipStatus.REJECTED, FriendshipPerspective.REJECTED),
        (FriendshipStatus.BLOCKED, FriendshipPerspective.BLOCKED),
    ],
)
def test_symmetric_statuses(status, expected):
    row = friendship(5, 9, status)

    assert friendship_perspective(5, 9, row) == expected
    assert friendship_perspective(9, 5, row) == expected


def test_other_party_resolves_either_side():
    alice = models.User(id=1, username="alice")
    bob = models.User(id=2, username="bob")
    row = friendship(1, 2, FriendshipStatus.ACCEPTED)
    row.requester, row.addressee = alice, bob

    assert row.other_party(1) is bob
    assert row.other_party(2) is alice
