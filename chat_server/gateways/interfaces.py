# chat_server/gateways/interfaces.py
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence

from chat_server.infrastructure import models, schemas
from chat_server.infrastructure.security import SecurityService
from chat_server.infrastructure.uow import UoWModel


class IUserGateway(ABC):
    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_by_username(self, username: str) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_many(self, user_ids: Sequence[int]) -> List[models.User]:
        pass

    @abstractmethod
    async def create_user(
        self, user: schemas.UserCreate, security_service: SecurityService
    ) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def update_user(
        self,
        user: UoWModel,
        user_update: schemas.UserUpdate,
        security_service: SecurityService,
    ) -> UoWModel:
        pass

    @abstractmethod
    async def update_status(self, user_id: int, status: str) -> bool:
        pass

    @abstractmethod
    async def search_users(
        self, query: str, current_user_id: int, limit: int = 20
    ) -> List[UoWModel]:
        pass

    @abstractmethod
    async def verify_password(
        self, user: UoWModel, password: str, security_service: SecurityService
    ) -> bool:
        pass


class ITokenGateway(ABC):
    @abstractmethod
    async def create_token(self, token: schemas.TokenCreate) -> UoWModel:
        pass

    @abstractmethod
    async def get_by_access_token(self, access_token: str) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_by_refresh_token(self, refresh_token: str) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def delete_token_by_access_token(self, access_token: str) -> bool:
        pass

    @abstractmethod
    async def delete_token_by_refresh_token(self, refresh_token: str) -> bool:
        pass


class IRoomGateway(ABC):
    @abstractmethod
    async def get_room(self, room_id: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_by_name(self, name: str) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def active_memberships_for_user(
        self, user_id: int
    ) -> List[tuple[models.Room, str]]:
        pass

    @abstractmethod
    async def get_membership(self, room_id: int, user_id: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_active_membership(
        self, room_id: int, user_id: int
    ) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def add_membership(self, room_id: int, user_id: int, role: str) -> UoWModel:
        pass

    @abstractmethod
    async def deactivate_membership(self, room_id: int, user_id: int) -> bool:
        pass

    @abstractmethod
    async def count_active_members(self, room_id: int) -> int:
        pass

    @abstractmethod
    async def room_members(self, room_id: int) -> List[tuple[models.User, str]]:
        pass

    @abstractmethod
    async def create_room(
        self, room: schemas.RoomCreate, creator_id: int
    ) -> UoWModel:
        pass

    @abstractmethod
    async def browse_public(
        self, user_id: int
    ) -> List[tuple[models.Room, int, bool]]:
        pass

    @abstractmethod
    async def deactivate_room(self, room_id: int) -> None:
        pass


class IMessageGateway(ABC):
    @abstractmethod
    async def create_message(self, message: schemas.MessageCreate) -> UoWModel:
        pass

    @abstractmethod
    async def get_message(self, message_id: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def room_messages(
        self, room_id: int, limit: int = 50, offset: int = 0
    ) -> List[models.Message]:
        pass

    @abstractmethod
    async def dm_messages(
        self, user_a: int, user_b: int, viewer_id: int, limit: int = 50, offset: int = 0
    ) -> List[models.Message]:
        pass

    @abstractmethod
    async def visible_dm_message(
        self, message_id: int, viewer_id: int
    ) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def soft_delete_message(self, message_id: int, tombstone: bool) -> bool:
        pass

    @abstractmethod
    async def hide_message_for(self, user_id: int, message_id: int) -> None:
        pass

    @abstractmethod
    async def count_visible_dm_messages(
        self, user_a: int, user_b: int, viewer_id: int
    ) -> int:
        pass

    @abstractmethod
    async def hide_conversation_messages_for(
        self, user_a: int, user_b: int, viewer_id: int
    ) -> int:
        pass

    @abstractmethod
    async def tombstone_conversation_messages(self, user_a: int, user_b: int) -> int:
        pass


class IFriendGateway(ABC):
    @abstractmethod
    async def friendship_between(self, user_a: int, user_b: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_friendship(self, friendship_id: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def create_or_update_friendship(
        self, requester_id: int, addressee_id: int, status: str
    ) -> UoWModel:
        pass

    @abstractmethod
    async def set_status(self, friendship: UoWModel, status: str) -> UoWModel:
        pass

    @abstractmethod
    async def delete_friendship(self, friendship_id: int) -> bool:
        pass

    @abstractmethod
    async def accepted_friends_of(self, user_id: int) -> List[models.Friendship]:
        pass

    @abstractmethod
    async def pending_requests_to(self, user_id: int) -> List[models.Friendship]:
        pass

    @abstractmethod
    async def sent_requests_by(self, user_id: int) -> List[models.Friendship]:
        pass

    @abstractmethod
    async def count_pending_requests_to(self, user_id: int) -> int:
        pass


class IConversationGateway(ABC):
    @abstractmethod
    async def find_or_create(self, user_a: int, user_b: int) -> UoWModel:
        pass

    @abstractmethod
    async def get_for_pair(self, user_a: int, user_b: int) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def get_for_participant(
        self, conversation_id: int, user_id: int, active_only: bool = True
    ) -> Optional[UoWModel]:
        pass

    @abstractmethod
    async def conversations_for(
        self, user_id: int, respect_hidden_and_deleted: bool = True
    ) -> List[models.DMConversation]:
        pass

    @abstractmethod
    async def update_last_message(
        self, conversation: UoWModel, message_id: int, sent_at: datetime
    ) -> None:
        pass

    @abstractmethod
    async def set_hidden(
        self, conversation: UoWModel, user_id: int, hidden: bool
    ) -> None:
        pass

    @abstractmethod
    async def set_deleted(
        self, conversation: UoWModel, user_id: int, deleted_at: Optional[datetime]
    ) -> bool:
        pass
