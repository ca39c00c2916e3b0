# messaging/infrastructure/redis_client.py
import logging

import redis.asyncio as redis
from redis.asyncio.client import PubSub


class RedisClient:
    """Pub/sub transport between writers and live query listeners.

    Channels carry change notices only; a notice published while nobody
    listens on the channel is dropped by Redis.
    """

    def __init__(self, host: str, port: int, logger: logging.Logger, db: int = 0):
        self.host = host
        self.port = port
        self.db = db
        self.client: redis.Redis | None = None
        self.logger = logger

    @property
    def is_connected(self) -> bool:
        return self.client is not None

    async def connect(self):
        client = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            decode_responses=True,
        )
        try:
            await client.ping()
        except redis.ConnectionError as e:
            self.logger.error(f"Failed to connect to Redis: {e!s}")
            self.logger.error(f"Redis host: {self.host}, Redis port: {self.port}")
            await client.aclose()
            raise e
        self.client = client
        self.logger.info(f"Successfully connected to Redis at {self.host}:{self.port}")

    async def disconnect(self):
        if self.client:
            await self.client.aclose()
            self.client = None
            self.logger.info("Disconnected from Redis")

    def _connected(self) -> redis.Redis:
        if self.client is None:
            raise RuntimeError("Redis client not connected")
        return self.client

    async def publish(self, channel: str, message: str) -> int:
        listeners = await self._connected().publish(channel, message)
        self.logger.debug(f"Published message to channel {channel} ({listeners} listeners)")
        return listeners

    def pubsub(self) -> PubSub:
        return self._connected().pubsub(ignore_subscribe_messages=True)
