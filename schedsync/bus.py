"""
Event bus for availability change notifications, backed by Redis pub/sub.
"""
import json
from typing import Final

import redis.asyncio as redis

from schedsync.events import AvailabilityChangedEvent

CHANNEL_AVAILABILITY_PREFIX: Final[str] = "availability:"


class EventBus:
    def __init__(self, redis_client: redis.Redis):
        self.redis_client = redis_client

    @staticmethod
    def availability_channel(event_id: str) -> str:
        return f"{CHANNEL_AVAILABILITY_PREFIX}{event_id}"

    async def publish_availability(self, event_id: str, event: AvailabilityChangedEvent) -> int:
        return await self.redis_client.publish(self.availability_channel(event_id), json.dumps(event))
