"""PostgreSQL persistence for events, profiles and availability rows."""

from schedsync.db.availability import (
    bulk_delete_availability,
    delete_availability_row,
    delete_exact_availability,
    fetch_event_availability,
    fetch_participants,
    fetch_user_availability,
    insert_availability,
)
from schedsync.db.core import close_pool, get_pool_stats, init_pool
from schedsync.db.events import create_event, get_event, upsert_profile

__all__ = [
    "bulk_delete_availability",
    "close_pool",
    "create_event",
    "delete_availability_row",
    "delete_exact_availability",
    "fetch_event_availability",
    "fetch_participants",
    "fetch_user_availability",
    "get_event",
    "get_pool_stats",
    "init_pool",
    "insert_availability",
    "upsert_profile",
]
