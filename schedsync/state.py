import asyncio
from typing import Optional

import redis.asyncio as redis

from schedsync.bus import EventBus

# Global runtime state initialized in lifespan.setup_resources
redis_client: Optional[redis.Redis] = None
event_bus: Optional[EventBus] = None
db_enabled: bool = False

# One lock per (event_id, user_id): mutations from the same user are applied one at a time
mutation_locks: dict[tuple[str, str], asyncio.Lock] = {}


def get_mutation_lock(event_id: str, user_id: str) -> asyncio.Lock:
    key = (event_id, user_id)
    lock = mutation_locks.get(key)
    if lock is None:
        lock = mutation_locks[key] = asyncio.Lock()
    return lock
