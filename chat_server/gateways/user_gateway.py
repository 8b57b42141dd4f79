# chat_server/gateways/user_gateway.py
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from chat_server.domain.enums import UserStatus
from chat_server.gateways.interfaces import IUserGateway
from chat_server.infrastructure import models, schemas
from chat_server.infrastructure.data_mappers import SQLAlchemyMapper
from chat_server.infrastructure.security import SecurityService
from chat_server.infrastructure.uow import UnitOfWork, UoWModel


class UserGateway(IUserGateway):
    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.User] = SQLAlchemyMapper(session)

    async def get_user(self, user_id: int) -> UoWModel | None:
        stmt = select(models.User).filter(models.User.id == user_id)
        result = await self.session.execute(stmt)
        user = result.scalar_one_or_none()
        return UoWModel(user, self.uow) if user else None

    async def get_by_email(self, email: str) -> UoWModel | None:
        stmt = select(models.User).filter(
            func.lower(models.User.email) == func.lower(email)
        )
        result = await self.session.execute(stmt)
        user = result.scalar_one_or_none()
        return UoWModel(user, self.uow) if user else None

    async def get_by_username(self, username: str) -> UoWModel | None:
        stmt = select(models.User).filter(
            func.lower(models.User.username) == func.lower(username)
        )
        result = await self.session.execute(stmt)
        user = result.scalar_one_or_none()
        return UoWModel(user, self.uow) if user else None

    async def get_many(self, user_ids: Sequence[int]) -> list[models.User]:
        if not user_ids:
            return []
        stmt = (
            select(models.User)
            .filter(models.User.id.in_(list(user_ids)), models.User.is_active.is_(True))
            .order_by(models.User.username)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create_user(
        self, user: schemas.UserCreate, security_service: SecurityService
    ) -> UoWModel | None:
        if await self.get_by_email(user.email):
            return None
        if await self.get_by_username(user.username):
            return None

        hashed_password = security_service.get_password_hash(user.password)
        db_user = models.User(
            username=user.username,
            email=user.email,
            display_name=user.display_name or user.username,
            hashed_password=hashed_password,
            status=UserStatus.OFFLINE.value,
        )
        uow_user = self.uow.register_new(db_user)
        await self.uow.commit()
        return uow_user

    async def update_user(
        self,
        user: UoWModel,
        user_update: schemas.UserUpdate,
        security_service: SecurityService,
    ) -> UoWModel:
        user_update_data = user_update.model_dump(exclude_unset=True)
        if "password" in user_update_data:
            user.hashed_password = security_service.get_password_hash(
                user_update_data.pop("password")
            )
        for key in ("email", "display_name", "avatar_url"):
            if key in user_update_data:
                setattr(user, key, user_update_data[key])

        await self.uow.commit()
        return user

    async def update_status(self, user_id: int, status: str) -> bool:
        user = await self.get_user(user_id)
        if user is None:
            return False
        user.status = status
        user.last_seen = models.utcnow()
        await self.uow.commit()
        return True

    async def search_users(
        self, query: str, current_user_id: int, limit: int = 20
    ) -> list[UoWModel]:
        pattern = f"%{query}%"
        stmt = (
            select(models.User)
            .filter(
                models.User.id != current_user_id,
                models.User.is_active.is_(True),
                models.User.username.ilike(pattern)
                | models.User.display_name.ilike(pattern),
            )
            .order_by(models.User.username)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        users = result.scalars().all()
        return [UoWModel(user, self.uow) for user in users]

    async def verify_password(
        self, user: UoWModel, password: str, security_service: SecurityService
    ) -> bool:
        return security_service.verify_password(password, user._model.hashed_password)
