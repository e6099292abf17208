"""Redis message bus (pub/sub)."""
import asyncio
import json
import logging
from typing import Awaitable, Callable, Optional

import redis.asyncio as redis

from app.settings import settings

logger = logging.getLogger(__name__)


class RedisBus:
    """Redis pub/sub used to fan events out across API workers."""

    def __init__(self, url: Optional[str] = None):
        self._url = url
        self._redis: Optional[redis.Redis] = None

    async def connect(self):
        """Connect to Redis."""
        self._redis = redis.from_url(self._url or settings.redis_url, decode_responses=True)

    async def disconnect(self):
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def ping(self) -> bool:
        """Round-trip to Redis."""
        if not self._redis:
            await self.connect()
        return bool(await self._redis.ping())

    async def publish(self, channel: str, message: dict):
        """Publish a message to a channel."""
        if not self._redis:
            await self.connect()
        await self._redis.publish(channel, json.dumps(message))

    async def subscribe_forever(
        self, channel: str, handler: Callable[[dict], Awaitable[None]]
    ) -> None:
        """Subscribe to a channel and call handler for each message. Runs until cancelled."""
        if not self._redis:
            await self.connect()
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(channel)
        try:
            while True:
                msg = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if not msg or msg.get("type") != "message" or not msg.get("data"):
                    continue
                try:
                    data = json.loads(msg["data"])
                except json.JSONDecodeError:
                    logger.warning("Dropping non-JSON message on %s", channel)
                    continue
                try:
                    await handler(data)
                except Exception:
                    logger.exception("Handler failed for message on %s", channel)
        except asyncio.CancelledError:
            pass
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()


# Global instance
redis_bus = RedisBus()
