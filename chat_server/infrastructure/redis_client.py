# chat_server/infrastructure/redis_client.py
import json
import logging
from typing import Any

import redis.asyncio as redis


class RedisClient:
    """redis.asyncio connection carrying the domain event feed.

    The feed is optional for the chat core. An unreachable Redis is logged at
    startup; the client keeps its handle because redis-py reconnects lazily on
    the next command, and publish failures are left to the caller to log.
    """

    def __init__(self, host: str, port: int, logger: logging.Logger):
        self.host = host
        self.port = port
        self.client: redis.Redis | None = None
        self.logger = logger

    async def connect(self) -> bool:
        self.client = redis.Redis(
            host=self.host,
            port=self.port,
            db=0,
            decode_responses=True,
        )
        try:
            await self.client.ping()
        except redis.ConnectionError as e:
            self.logger.error(
                f"Redis at {self.host}:{self.port} unreachable ({e!s}), "
                "domain event feed paused until it recovers"
            )
            return False
        self.logger.info(f"Successfully connected to Redis at {self.host}:{self.port}")
        return True

    async def disconnect(self) -> None:
        if self.client:
            await self.client.aclose()
            self.client = None
            self.logger.info("Disconnected from Redis")

    async def publish_json(self, channel: str, payload: dict[str, Any]) -> int:
        """Publish ``payload`` as JSON; returns how many subscribers got it."""
        if self.client is None:
            raise RuntimeError("Redis client not connected")
        receivers = await self.client.publish(channel, json.dumps(payload, default=str))
        self.logger.debug(f"Published to {channel} ({receivers} subscribers)")
        return receivers
