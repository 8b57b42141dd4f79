# chat_server/tests/conftest.py
import random
import string

import pytest
from fakeredis import aioredis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from chat_server.config import AppConfig
from chat_server.domain.identity import Identity
from chat_server.gateways.room_gateway import RoomGateway
from chat_server.gateways.user_gateway import UserGateway
from chat_server.infrastructure import schemas
from chat_server.infrastructure.database import Base, create_database
from chat_server.infrastructure.security import SecurityService
from chat_server.infrastructure.uow import UnitOfWork
from chat_server.interactors.user_interactor import UserInteractor
from chat_server.main import Application
from chat_server.realtime.dispatcher import ConnectionDispatcher
from chat_server.tests.helpers import TEST_PASSWORD, FakeConnection, login


@pytest.fixture(scope="function")
def app_config():
    return AppConfig(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        REDIS_HOST="localhost",
        REDIS_PORT=6379,
        SECRET_KEY="test_secret_key",
        REFRESH_SECRET_KEY="test_refresh_secret_key",
        PROJECT_NAME="Test Chat Sync API",
        API_V1_STR="/api/v1",
        ALGORITHM="HS256",
        ACCESS_TOKEN_EXPIRE_MINUTES=5,
        REFRESH_TOKEN_EXPIRE_DAYS=7,
    )


@pytest.fixture(scope="function")
async def mock_redis():
    redis = aioredis.FakeRedis()
    yield redis
    await redis.flushall()
    await redis.aclose()


@pytest.fixture(scope="function")
async def engine(app_config):
    """One shared in-memory SQLite connection for the whole test."""
    engine = create_async_engine(
        app_config.DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    async with engine.begin() as conn:
        from chat_server.infrastructure import models  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
async def database(engine, app_config):
    database = create_database(engine)
    await database.ensure_main_room(app_config.MAIN_ROOM_NAME)
    return database


@pytest.fixture(scope="function")
async def db_session(engine):
    session_factory = async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False
    )
    session = session_factory()
    yield session
    await session.close()


@pytest.fixture(scope="function")
async def uow(db_session):
    return UnitOfWork(db_session)


@pytest.fixture(scope="function")
def application(app_config, mock_redis, database):
    application = Application(config=app_config)
    application.database = database
    application.redis_client.client = mock_redis
    return application


@pytest.fixture(scope="function")
def app(application):
    return application.create_app()


@pytest.fixture(scope="function")
def services(app):
    return app.state.realtime


@pytest.fixture(scope="function")
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture(scope="function")
def make_user(db_session, uow, app_config):
    """Register users the way the HTTP layer does, main room included."""

    async def _make_user(prefix: str = "user") -> schemas.User:
        suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=8))
        interactor = UserInteractor(
            SecurityService(app_config),
            UserGateway(db_session, uow),
            RoomGateway(db_session, uow),
            app_config.MAIN_ROOM_NAME,
        )
        return await interactor.create_user(
            schemas.UserCreate(
                username=f"{prefix}_{suffix}",
                email=f"{prefix}_{suffix}@example.com",
                password=TEST_PASSWORD,
            )
        )

    return _make_user


@pytest.fixture(scope="function")
async def test_user(make_user):
    return await make_user("alice")


@pytest.fixture(scope="function")
async def test_user2(make_user):
    return await make_user("bob")


@pytest.fixture(scope="function")
async def auth_header(client, test_user):
    return await login(client, test_user.username)


@pytest.fixture(scope="function")
async def auth_header2(client, test_user2):
    return await login(client, test_user2.username)


@pytest.fixture(scope="function")
def connect(services):
    """Open a realtime session for a user over a fake connection."""

    async def _connect(user: schemas.User, fail: bool = False):
        connection = FakeConnection(
            Identity(user_id=user.id, username=user.username, display_name=user.display_name),
            fail=fail,
        )
        dispatcher = ConnectionDispatcher(connection, services)
        await dispatcher.start()
        return dispatcher, connection

    return _connect

