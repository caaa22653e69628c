# roomrelay/services/redis_pub_sub.py
import asyncio
import json
import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "room:"


class AsyncRedisPubSubService:
    """Relays room broadcasts between server processes through Redis channels."""

    def __init__(self, manager, host: str = "localhost", port: int = 6379, access_key: str = "", ssl: bool = False):
        self.manager = manager
        self.host = host
        self.port = port
        self.access_key = access_key
        self.ssl = ssl
        self.client = None
        self.pubsub = None
        self._listener: Optional[asyncio.Task] = None

    async def connect(self):
        """Establish async connection to Redis."""
        scheme = "rediss" if self.ssl else "redis"
        auth = f":{self.access_key}@" if self.access_key else ""
        self.client = redis.from_url(
            f"{scheme}://{auth}{self.host}:{self.port}",
            decode_responses=True
        )
        await self.client.ping()
        logger.info(f"✓ Connected to Redis at {self.host}:{self.port}")

    async def publish(self, channel: str, message: dict):
        """Publish message to channel."""
        await self.client.publish(channel, json.dumps(message))
        logger.debug(f"📤 Published to Redis channel '{channel}'")

    async def broadcast_to_room(self, room: str, envelope: dict, exclude: Optional[str] = None):
        """
        Publish a room event so every instance can deliver it locally.

        The excluded connection id travels with the envelope; connection ids
        are unique across instances, so exclusion still holds wherever the
        sender is connected.
        """
        channel = f"{CHANNEL_PREFIX}{room}"
        try:
            await self.publish(channel, {"room": room, "exclude": exclude, "envelope": envelope})
        except RedisError as e:
            logger.error(f"Publish to '{channel}' failed: {e}")

    async def handle(self, raw: str):
        data = json.loads(raw)
        if not isinstance(data, dict):
            logger.warning("Redis message is not an object - ignoring")
            return
        room = data.get("room")
        envelope = data.get("envelope")
        if not room or not isinstance(envelope, dict):
            logger.warning("Redis message without room/envelope - ignoring")
            return
        await self.manager.deliver_to_room(room, envelope, data.get("exclude"))

    async def listen(self, pattern: str = f"{CHANNEL_PREFIX}*"):
        """Listen on the room channels and deliver to local WebSockets."""
        self.pubsub = self.client.pubsub()
        await self.pubsub.psubscribe(pattern)
        logger.info(f"✓ Subscribed to Redis pattern '{pattern}'")

        async for message in self.pubsub.listen():
            if message["type"] in ("message", "pmessage"):
                try:
                    await self.handle(message["data"])
                except Exception as e:
                    logger.error(f"Error processing Redis message: {e}")

    def start(self):
        self._listener = asyncio.create_task(self.listen())
        self._listener.add_done_callback(self._on_listener_done)

    def _on_listener_done(self, task: asyncio.Task):
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Redis listener stopped, cross-process fan-out is down: {error!r}")

    async def close(self):
        """Stop the listener and close connections."""
        if self._listener and not self._listener.done():
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
        if self.pubsub:
            await self.pubsub.punsubscribe()
            await self.pubsub.aclose()
        if self.client:
            await self.client.aclose()
        logger.info("Redis connection closed")
