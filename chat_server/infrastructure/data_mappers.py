# chat_server/infrastructure/data_mappers.py

from typing import Generic, Protocol, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

ModelT_contra = TypeVar("ModelT_contra", contravariant=True)
ModelT = TypeVar("ModelT")


class DataMapper(Protocol[ModelT_contra]):
    async def insert(self, model: ModelT_contra):
        raise NotImplementedError

    async def delete(self, model: ModelT_contra):
        raise NotImplementedError

    async def update(self, model: ModelT_contra):
        raise NotImplementedError


class SQLAlchemyMapper(Generic[ModelT]):
    """Writes any mapped model through the session it was built with."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert(self, model: ModelT):
        self.session.add(model)
        await self.session.flush()

    async def delete(self, model: ModelT):
        await self.session.delete(model)
        await self.session.flush()

    async def update(self, model: ModelT):
        await self.session.merge(model)
        await self.session.flush()
