# chat_server/main.py
import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import create_async_engine

from chat_server.api import auth, conversations, friends, messages, rooms, users, websocket
from chat_server.api.exceptions import register_exception_handlers
from chat_server.config import AppConfig
from chat_server.domain import events
from chat_server.infrastructure.database import create_database
from chat_server.infrastructure.event_dispatcher import EventDispatcher
from chat_server.infrastructure.event_handlers import EventHandlers
from chat_server.infrastructure.redis_client import RedisClient
from chat_server.infrastructure.security import SecurityService
from chat_server.realtime.context import RealtimeServices
from chat_server.realtime.notifier import SyncNotifier
from chat_server.realtime.presence import PresenceRegistry
from chat_server.realtime.router import BroadcastRouter

MIRRORED_EVENTS = [
    events.PresenceChanged.__name__,
    events.MessageSent.__name__,
    events.FriendshipChanged.__name__,
    events.RoomMembershipChanged.__name__,
    events.ConversationVisibilityChanged.__name__,
    events.DMMessageDeleted.__name__,
    events.DMConversationCleared.__name__,
]


class Application:
    def __init__(self, config: AppConfig):
        self.config = config
        self.logger = self.setup_logger()
        engine = create_async_engine(config.DATABASE_URL, echo=False)
        self.database = create_database(engine)
        self.redis_client = RedisClient(
            config.REDIS_HOST, config.REDIS_PORT, self.logger
        )
        self.event_dispatcher = EventDispatcher(self.logger)
        self.security_service = SecurityService(config)
        self.event_handlers = EventHandlers(self.redis_client, self.logger)

        self.registry = PresenceRegistry(self.logger)
        self.router = BroadcastRouter(self.registry, self.logger)
        self.notifier = SyncNotifier(self.realtime)

        # pushes first, then the mirror to Redis
        self.notifier.register(self.event_dispatcher)
        self.event_dispatcher.register_all(
            MIRRORED_EVENTS, self.event_handlers.publish_event
        )

    @property
    def realtime(self) -> RealtimeServices:
        # built on access so a swapped-in test database is picked up
        return RealtimeServices(
            config=self.config,
            database=self.database,
            registry=self.registry,
            router=self.router,
            event_dispatcher=self.event_dispatcher,
            logger=self.logger,
        )

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        await self.database.connect()
        await self.database.ensure_main_room(self.config.MAIN_ROOM_NAME)
        await self.redis_client.connect()
        yield
        await self.database.disconnect()
        await self.redis_client.disconnect()

    def setup_logger(self):
        logger = logging.getLogger("ChatAPI")
        logger.setLevel(self.config.LOG_LEVEL.upper())

        if not logger.handlers:
            c_handler = logging.StreamHandler(sys.stdout)
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )
            c_handler.setFormatter(formatter)
            logger.addHandler(c_handler)

        return logger

    def create_app(self) -> FastAPI:
        app = FastAPI(
            title=self.config.PROJECT_NAME,
            version=self.config.PROJECT_VERSION,
            description=self.config.PROJECT_DESCRIPTION,
            openapi_url=f"{self.config.API_V1_STR}/openapi.json",
            lifespan=self.lifespan,
        )

        realtime = self.realtime
        self.notifier.services = realtime

        app.state.config = self.config
        app.state.security_service = self.security_service
        app.state.event_dispatcher = self.event_dispatcher
        app.state.database = self.database
        app.state.logger = self.logger
        app.state.realtime = realtime

        prefix = self.config.API_V1_STR
        app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["auth"])
        app.include_router(users.router, prefix=f"{prefix}/users", tags=["users"])
        app.include_router(rooms.router, prefix=f"{prefix}/rooms", tags=["rooms"])
        app.include_router(friends.router, prefix=f"{prefix}/friends", tags=["friends"])
        app.include_router(
            conversations.router,
            prefix=f"{prefix}/conversations",
            tags=["conversations"],
        )
        app.include_router(
            messages.router, prefix=f"{prefix}/messages", tags=["messages"]
        )
        app.include_router(websocket.router, tags=["realtime"])

        register_exception_handlers(app)

        @app.get("/")
        async def root():
            return {"message": "Welcome to the Chat Sync API"}

        return app


def create() -> FastAPI:
    config = AppConfig()
    application = Application(config)
    app = application.create_app()
    application.logger.info("Application created and configured")
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create(), host="127.0.0.1", port=8000)
