# chat_server/infrastructure/event_handlers.py
import logging

from redis.exceptions import RedisError

from chat_server.domain.events import Event

CHANNEL_PREFIX = "chat:events"


class EventHandlers:
    """Mirrors every domain event to Redis for out-of-process observers."""

    def __init__(self, redis_client, logger: logging.Logger):
        self.redis_client = redis_client
        self.logger = logger

    @staticmethod
    def channel_for(event: Event) -> str:
        return f"{CHANNEL_PREFIX}:{event.__class__.__name__}"

    async def publish_event(self, event: Event) -> None:
        channel_name = self.channel_for(event)
        try:
            await self.redis_client.publish_json(channel_name, event.model_dump())
        except (RedisError, RuntimeError, OSError) as e:
            self.logger.warning(f"Could not publish to {channel_name}: {e!s}")
