# chat_server/interactors/user_interactor.py

from chat_server.domain.errors import Conflict, NotFound
from chat_server.gateways.interfaces import IRoomGateway, IUserGateway
from chat_server.infrastructure import schemas
from chat_server.infrastructure.security import SecurityService
from chat_server.infrastructure.uow import UoWModel


class UserInteractor:
    def __init__(
        self,
        security_service: SecurityService,
        user_gateway: IUserGateway,
        room_gateway: IRoomGateway | None = None,
        main_room_name: str = "main",
    ):
        self.security_service = security_service
        self.user_gateway = user_gateway
        self.room_gateway = room_gateway
        self.main_room_name = main_room_name

    async def get_user(self, user_id: int) -> schemas.User | None:
        user: UoWModel | None = await self.user_gateway.get_user(user_id)
        return schemas.User.model_validate(user._model) if user else None

    async def get_user_by_username(self, username: str) -> schemas.User | None:
        user: UoWModel | None = await self.user_gateway.get_by_username(username)
        return schemas.User.model_validate(user._model) if user else None

    async def create_user(self, user: schemas.UserCreate) -> schemas.User:
        """Register a user and enrol them in the main room."""
        if await self.user_gateway.get_by_username(user.username):
            raise Conflict("Username already registered", code="username_taken")
        if await self.user_gateway.get_by_email(user.email):
            raise Conflict("Email already registered", code="email_taken")
        new_user: UoWModel | None = await self.user_gateway.create_user(
            user, self.security_service
        )
        if new_user is None:
            raise Conflict("User creation failed")

        if self.room_gateway is not None:
            main_room = await self.room_gateway.get_by_name(self.main_room_name)
            if main_room is not None:
                await self.room_gateway.add_membership(main_room.id, new_user.id, "member")
        return schemas.User.model_validate(new_user._model)

    async def update_user(
        self, user_id: int, user_update: schemas.UserUpdate
    ) -> schemas.User:
        user: UoWModel | None = await self.user_gateway.get_user(user_id)
        if not user:
            raise NotFound("User not found")
        if user_update.email and user_update.email.lower() != user.email.lower():
            if await self.user_gateway.get_by_email(user_update.email):
                raise Conflict("Email already registered", code="email_taken")
        updated_user = await self.user_gateway.update_user(
            user, user_update, self.security_service
        )
        return schemas.User.model_validate(updated_user._model)

    async def search_users(
        self, query: str, current_user_id: int
    ) -> list[schemas.UserPublic]:
        users: list[UoWModel] = await self.user_gateway.search_users(
            query, current_user_id
        )
        return [schemas.UserPublic.model_validate(user._model) for user in users]

    async def verify_user_password(
        self, username: str, password: str
    ) -> schemas.User | None:
        user: UoWModel | None = await self.user_gateway.get_by_username(username)
        if not user:
            return None
        if await self.user_gateway.verify_password(
            user, password, self.security_service
        ):
            return schemas.User.model_validate(user._model)
        return None
