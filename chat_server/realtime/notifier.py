# chat_server/realtime/notifier.py
from sqlalchemy.exc import SQLAlchemyError

from chat_server.domain.enums import DeleteScope
from chat_server.domain.events import (
    ConversationVisibilityChanged,
    DMConversationCleared,
    DMMessageDeleted,
    FriendshipChanged,
    RoomMembershipChanged,
)
from chat_server.infrastructure.event_dispatcher import EventDispatcher
from chat_server.realtime.context import RealtimeServices, SessionScope

FRIEND_NOTICES = {
    "requested": ("friend_request_received", "{username} sent you a friend request"),
    "accepted": ("friend_request_accepted", "{username} accepted your friend request"),
    "removed": ("friend_removed", "{username} removed you from friends"),
}


class SyncNotifier:
    """Turns persisted HTTP-side changes into pushes for the affected users.

    Handlers run after the producing request committed, each in a fresh
    session. A failure here is logged; the change itself already happened and
    clients pick it up on their next resync.
    """

    def __init__(self, services: RealtimeServices):
        self.services = services
        self.router = services.router
        self.registry = services.registry
        self.logger = services.logger

    def register(self, event_dispatcher: EventDispatcher) -> None:
        event_dispatcher.register("FriendshipChanged", self.on_friendship_changed)
        event_dispatcher.register("RoomMembershipChanged", self.on_room_membership_changed)
        event_dispatcher.register(
            "ConversationVisibilityChanged", self.on_conversation_visibility_changed
        )
        event_dispatcher.register("DMMessageDeleted", self.on_dm_message_deleted)
        event_dispatcher.register("DMConversationCleared", self.on_dm_conversation_cleared)

    async def push_friend_views(self, scope: SessionScope, user_id: int) -> None:
        if not self.registry.is_online(user_id):
            return
        friends = await scope.directory.friends_of(user_id)
        await self.router.to_user(user_id, "friends_list_updated", {"friends": friends})
        count = await scope.directory.pending_request_count(user_id)
        await self.router.to_user(user_id, "friend_requests_count_updated", {"count": count})

    async def on_friendship_changed(self, event: FriendshipChanged) -> None:
        try:
            async with self.services.database.session() as session:
                scope = SessionScope(session, self.services)
                for user_id in (event.actor_id, event.other_id):
                    await self.push_friend_views(scope, user_id)
        except SQLAlchemyError:
            self.logger.exception(f"Could not push friend views after {event.action}")

        notice = FRIEND_NOTICES.get(event.action)
        if notice is not None:
            name, template = notice
            await self.router.to_user(
                event.other_id,
                name,
                {
                    "message": template.format(username=event.actor_username),
                    "userId": event.actor_id,
                    "friendshipId": event.friendship_id,
                },
            )
        await self.router.to_users(
            [event.actor_id, event.other_id], "refresh_room_users", {}
        )

    async def on_room_membership_changed(self, event: RoomMembershipChanged) -> None:
        for connection in self.registry.connections_for(event.user_id):
            if event.action == "left":
                self.router.leave_group(event.room_id, connection)
            else:
                self.router.join_group(event.room_id, connection)

        if self.registry.is_online(event.user_id):
            try:
                async with self.services.database.session() as session:
                    rooms = await SessionScope(session, self.services).directory.user_rooms(
                        event.user_id
                    )
                await self.router.to_user(event.user_id, "rooms_list", rooms)
            except SQLAlchemyError:
                self.logger.exception(f"Could not push rooms_list to user {event.user_id}")

        if not event.room_deactivated:
            await self.router.to_room(event.room_id, "refresh_room_users", {"roomId": event.room_id})

    async def on_conversation_visibility_changed(
        self, event: ConversationVisibilityChanged
    ) -> None:
        if self.registry.is_online(event.user_id):
            try:
                async with self.services.database.session() as session:
                    conversations = await SessionScope(
                        session, self.services
                    ).directory.dm_conversations(event.user_id)
                await self.router.to_user(event.user_id, "dm_conversations", conversations)
            except SQLAlchemyError:
                self.logger.exception(
                    f"Could not push dm_conversations to user {event.user_id}"
                )

        if event.fully_deleted:
            await self.router.to_user(
                event.user_id, "refresh_dm_messages", {"userId": event.other_user_id}
            )
            await self.router.to_user(
                event.other_user_id, "refresh_dm_messages", {"userId": event.user_id}
            )

    async def on_dm_message_deleted(self, event: DMMessageDeleted) -> None:
        await self.router.to_user(
            event.deleted_by, "refresh_dm_messages", {"userId": event.conversation_with}
        )
        if event.scope != DeleteScope.EVERYONE.value:
            return
        await self.router.to_user(
            event.conversation_with,
            "message_deleted",
            {
                "messageId": event.message_id,
                "deletedBy": event.deleted_by_username,
                "conversationWith": event.deleted_by,
            },
        )
        await self.router.to_user(
            event.conversation_with, "refresh_dm_messages", {"userId": event.deleted_by}
        )

    async def on_dm_conversation_cleared(self, event: DMConversationCleared) -> None:
        await self.router.to_user(
            event.deleted_by, "refresh_dm_messages", {"userId": event.other_user_id}
        )
        await self.router.to_user(event.deleted_by, "refresh_dm_conversations", {})
        if event.scope != DeleteScope.EVERYONE.value:
            return
        await self.router.to_user(
            event.other_user_id,
            "conversation_deleted",
            {"deletedBy": event.deleted_by_username, "messageCount": event.message_count},
        )
        await self.router.to_user(
            event.other_user_id, "refresh_dm_messages", {"userId": event.deleted_by}
        )
        await self.router.to_user(event.other_user_id, "refresh_dm_conversations", {})
