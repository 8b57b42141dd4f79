# chat_server/interactors/friend_interactor.py
from dataclasses import dataclass

from chat_server.domain.enums import FriendshipPerspective, FriendshipStatus
from chat_server.domain.errors import AccessDenied, Conflict, NotFound, ValidationFailed
from chat_server.gateways.interfaces import IFriendGateway, IUserGateway
from chat_server.infrastructure import models, schemas


def friendship_perspective(
    user_id: int, other_id: int, friendship: models.Friendship | None
) -> FriendshipPerspective:
    """Resolve the single friendship row into what ``user_id`` sees."""
    if user_id == other_id:
        return FriendshipPerspective.SELF
    if friendship is None:
        return FriendshipPerspective.NONE
    status = friendship.status
    if status == FriendshipStatus.ACCEPTED.value:
        return FriendshipPerspective.FRIENDS
    if status == FriendshipStatus.PENDING.value:
        if friendship.requester_id == user_id:
            return FriendshipPerspective.SENT_REQUEST
        return FriendshipPerspective.RECEIVED_REQUEST
    if status == FriendshipStatus.REJECTED.value:
        return FriendshipPerspective.REJECTED
    return FriendshipPerspective.BLOCKED


@dataclass
class FriendshipChange:
    friendship_id: int
    other_id: int
    previous_status: str


class FriendInteractor:
    def __init__(self, friend_gateway: IFriendGateway, user_gateway: IUserGateway):
        self.friend_gateway = friend_gateway
        self.user_gateway = user_gateway

    async def friendship_status(self, user_id: int, other_id: int) -> FriendshipPerspective:
        if user_id == other_id:
            return FriendshipPerspective.SELF
        friendship = await self.friend_gateway.friendship_between(user_id, other_id)
        return friendship_perspective(
            user_id, other_id, friendship._model if friendship else None
        )

    async def received_requests(self, user_id: int) -> list[schemas.FriendRequest]:
        rows = await self.friend_gateway.pending_requests_to(user_id)
        return [self._request_view(row, row.requester) for row in rows]

    async def sent_requests(self, user_id: int) -> list[schemas.FriendRequest]:
        rows = await self.friend_gateway.sent_requests_by(user_id)
        return [self._request_view(row, row.addressee) for row in rows]

    async def pending_count(self, user_id: int) -> int:
        return await self.friend_gateway.count_pending_requests_to(user_id)

    async def send_request(
        self, requester_id: int, addressee_id: int
    ) -> schemas.FriendRequest:
        if requester_id == addressee_id:
            raise ValidationFailed("Cannot send friend request to yourself")
        target = await self.user_gateway.get_user(addressee_id)
        if target is None or not target.is_active:
            raise NotFound("User not found")

        existing = await self.friend_gateway.friendship_between(requester_id, addressee_id)
        if existing is not None:
            if existing.status == FriendshipStatus.ACCEPTED.value:
                raise Conflict("Already friends", code="already_friends")
            if existing.status == FriendshipStatus.PENDING.value:
                raise Conflict("Friend request already pending", code="request_pending")
            if existing.status == FriendshipStatus.BLOCKED.value:
                raise AccessDenied("Cannot send friend request")

        # a rejected row is revived in place, never duplicated
        friendship = await self.friend_gateway.create_or_update_friendship(
            requester_id, addressee_id, FriendshipStatus.PENDING.value
        )
        return self._request_view(friendship._model, friendship._model.addressee)

    async def accept_request(self, friendship_id: int, user_id: int) -> schemas.Friend:
        friendship = await self._pending_for_addressee(friendship_id, user_id)
        await self.friend_gateway.set_status(friendship, FriendshipStatus.ACCEPTED.value)
        requester = friendship._model.requester
        return schemas.Friend(
            **schemas.UserPublic.model_validate(requester).model_dump(),
            friendship_id=friendship.id,
            since=friendship._model.updated_at,
        )

    async def reject_request(self, friendship_id: int, user_id: int) -> FriendshipChange:
        friendship = await self._pending_for_addressee(friendship_id, user_id)
        await self.friend_gateway.set_status(friendship, FriendshipStatus.REJECTED.value)
        return FriendshipChange(
            friendship_id=friendship.id,
            other_id=friendship.requester_id,
            previous_status=FriendshipStatus.PENDING.value,
        )

    async def remove_friendship(self, friendship_id: int, user_id: int) -> FriendshipChange:
        """Unfriend, or cancel a request. Either party may do it."""
        friendship = await self.friend_gateway.get_friendship(friendship_id)
        if friendship is None or user_id not in (
            friendship.requester_id,
            friendship.addressee_id,
        ):
            raise NotFound("Friendship not found")
        change = FriendshipChange(
            friendship_id=friendship.id,
            other_id=friendship._model.other_party(user_id).id,
            previous_status=friendship.status,
        )
        await self.friend_gateway.delete_friendship(friendship_id)
        return change

    async def _pending_for_addressee(self, friendship_id: int, user_id: int):
        friendship = await self.friend_gateway.get_friendship(friendship_id)
        if (
            friendship is None
            or friendship.addressee_id != user_id
            or friendship.status != FriendshipStatus.PENDING.value
        ):
            raise NotFound("Friend request not found")
        return friendship

    @staticmethod
    def _request_view(friendship: models.Friendship, user: models.User) -> schemas.FriendRequest:
        return schemas.FriendRequest(
            id=friendship.id,
            user=schemas.UserPublic.model_validate(user),
            status=friendship.status,
            created_at=friendship.updated_at or friendship.created_at,
        )
