# snooker_api/services/redis_service.py
import json
import logging
from typing import Any, Dict, Optional

import redis.asyncio as redis  # Using asyncio version for FastAPI

from snooker_api.core.config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    def __init__(self, host: str = settings.REDIS_HOST, port: int = settings.REDIS_PORT,
                 enabled: bool = settings.REDIS_ENABLED):
        self.host = host
        self.port = port
        self.enabled = enabled
        self._client: Optional[redis.Redis] = None

    async def connect(self):
        if not self.enabled or self._client:
            return
        try:
            client = redis.Redis(host=self.host, port=self.port, decode_responses=True)
            await client.ping()
            self._client = client
            logger.info(f"Connected to Redis at {self.host}:{self.port}")
        except (redis.ConnectionError, OSError) as e:
            logger.warning(f"Could not connect to Redis: {e}")
            self._client = None

    async def disconnect(self):
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Disconnected from Redis")

    async def get_client(self) -> Optional[redis.Redis]:
        if not self._client:
            await self.connect()  # Attempt to connect if not already connected
        return self._client

    async def publish_message(self, channel: str, message: str) -> bool:
        r = await self.get_client()
        if not r:
            logger.debug(f"Redis unavailable, message to '{channel}' dropped")
            return False
        try:
            await r.publish(channel, message)
        except redis.RedisError as e:
            logger.warning(f"Failed to publish to '{channel}': {e}")
            return False
        return True

    async def publish_event(self, channel: str, event: str, payload: Dict[str, Any]) -> bool:
        message = json.dumps({"event": event, **payload}, default=str)
        return await self.publish_message(channel, message)


# Global instance used across the application
redis_client = RedisClient()


def house_channel(house_id) -> str:
    return f"snooker_house_{house_id}"


# Called on FastAPI startup and shutdown
async def startup_redis_client():
    await redis_client.connect()


async def shutdown_redis_client():
    await redis_client.disconnect()
