# chat_server/gateways/token_gateway.py
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chat_server.gateways.interfaces import ITokenGateway
from chat_server.infrastructure import models, schemas
from chat_server.infrastructure.data_mappers import SQLAlchemyMapper
from chat_server.infrastructure.uow import UnitOfWork, UoWModel


class TokenGateway(ITokenGateway):
    """Issued token pairs. A user keeps one row per logged-in device."""

    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.Token] = SQLAlchemyMapper(session)

    async def create_token(self, token: schemas.TokenCreate) -> UoWModel:
        db_token = models.Token(**token.model_dump())
        uow_token = self.uow.register_new(db_token)
        await self.uow.commit()
        return uow_token

    async def get_by_access_token(self, access_token: str) -> Optional[UoWModel]:
        stmt = select(models.Token).filter(models.Token.access_token == access_token)
        result = await self.session.execute(stmt)
        token = result.scalar_one_or_none()
        return UoWModel(token, self.uow) if token else None

    async def get_by_refresh_token(self, refresh_token: str) -> Optional[UoWModel]:
        stmt = select(models.Token).filter(models.Token.refresh_token == refresh_token)
        result = await self.session.execute(stmt)
        token = result.scalar_one_or_none()
        return UoWModel(token, self.uow) if token else None

    async def delete_token_by_access_token(self, access_token: str) -> bool:
        token = await self.get_by_access_token(access_token)
        if token:
            self.uow.register_deleted(token)
            await self.uow.commit()
            return True
        return False

    async def delete_token_by_refresh_token(self, refresh_token: str) -> bool:
        token = await self.get_by_refresh_token(refresh_token)
        if token:
            self.uow.register_deleted(token)
            await self.uow.commit()
            return True
        return False
