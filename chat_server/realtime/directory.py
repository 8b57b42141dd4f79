# chat_server/realtime/directory.py
from chat_server.domain.enums import FriendshipPerspective, UserStatus
from chat_server.gateways.interfaces import (
    IConversationGateway,
    IFriendGateway,
    IUserGateway,
)
from chat_server.infrastructure import schemas
from chat_server.interactors.friend_interactor import FriendInteractor
from chat_server.interactors.room_interactor import RoomInteractor
from chat_server.realtime.presence import PresenceRegistry


class ConversationDirectory:
    """Per-user views of rooms, friends and DM conversations.

    Everything here is a read. Persisted ``status`` is only a cache of the
    presence registry, so the views overlay the live state on top of it.
    """

    def __init__(
        self,
        registry: PresenceRegistry,
        room_interactor: RoomInteractor,
        friend_interactor: FriendInteractor,
        friend_gateway: IFriendGateway,
        conversation_gateway: IConversationGateway,
        user_gateway: IUserGateway,
    ):
        self.registry = registry
        self.room_interactor = room_interactor
        self.friend_interactor = friend_interactor
        self.friend_gateway = friend_gateway
        self.conversation_gateway = conversation_gateway
        self.user_gateway = user_gateway

    def live_status(self, user_id: int, persisted: str | None) -> str:
        if self.registry.is_online(user_id):
            return UserStatus.ONLINE.value
        if persisted == UserStatus.AWAY.value:
            return persisted
        return UserStatus.OFFLINE.value

    def _public(self, user) -> schemas.UserPublic:
        view = schemas.UserPublic.model_validate(user)
        view.status = self.live_status(user.id, user.status)
        return view

    async def user_rooms(self, user_id: int) -> list[schemas.Room]:
        return await self.room_interactor.user_rooms(user_id)

    async def friends_of(self, user_id: int) -> list[schemas.Friend]:
        friendships = await self.friend_gateway.accepted_friends_of(user_id)
        friends = [
            schemas.Friend(
                **self._public(friendship.other_party(user_id)).model_dump(),
                friendship_id=friendship.id,
                since=friendship.updated_at or friendship.created_at,
            )
            for friendship in friendships
        ]
        friends.sort(
            key=lambda f: (
                f.status != UserStatus.ONLINE.value,
                (f.display_name or f.username).lower(),
            )
        )
        return friends

    async def dm_conversations(self, user_id: int) -> list[schemas.Conversation]:
        conversations = await self.conversation_gateway.conversations_for(user_id)
        views = []
        for conversation in conversations:
            view = schemas.Conversation.for_viewer(conversation, user_id)
            view.other_user.status = self.live_status(
                view.other_user.id, view.other_user.status
            )
            views.append(view)
        return views

    async def friendship_status(
        self, user_id: int, other_id: int
    ) -> FriendshipPerspective:
        return await self.friend_interactor.friendship_status(user_id, other_id)

    async def room_users(self, room_id: int, user_id: int) -> list[schemas.RoomUser]:
        users = await self.room_interactor.room_users(room_id, user_id)
        for user in users:
            user.status = self.live_status(user.id, user.status)
        return users

    async def online_users(self) -> list[schemas.UserPublic]:
        online_ids = self.registry.all_online_user_ids()
        users = await self.user_gateway.get_many(sorted(online_ids))
        views = []
        for user in users:
            view = schemas.UserPublic.model_validate(user)
            view.status = UserStatus.ONLINE.value
            views.append(view)
        return views

    async def pending_request_count(self, user_id: int) -> int:
        return await self.friend_interactor.pending_count(user_id)
