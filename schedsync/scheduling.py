"""Glue between the HTTP layer, the merge/recommendation engines and storage.

Every mutation returns the new state of the dates it touched plus freshly
computed recommendations, and publishes an ``availability_changed`` event.
"""

import datetime as dt
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

import psycopg

from schedsync import db, merge, state
from schedsync.bus import EventBus
from schedsync.config import get_settings
from schedsync.errors import DatabaseError, NotFoundError
from schedsync.models.availability import GroupedRecommendation, Participant
from schedsync.models.slots import ChangeSet, TimeSlot
from schedsync.participants import resolve_participants
from schedsync.producers.availability_producer import build_availability_event, publish_availability_changed
from schedsync.recommend import recommend

logger = logging.getLogger("schedsync.scheduling")


@contextmanager
def db_errors(action: str):
    """Translate driver failures into DatabaseError."""
    try:
        yield
    except psycopg.Error as e:
        logger.exception("Database failure while trying to %s", action)
        raise DatabaseError(details=f"Failed to {action}") from e


@dataclass
class MutationOutcome:
    result: merge.MergeResult | None
    rows: list[dict[str, Any]]
    participants: list[Participant]
    recommendations: list[GroupedRecommendation]
    deleted: int = 0


async def load_event(event_id: str) -> dict[str, Any]:
    with db_errors("load event"):
        event = await db.get_event(event_id)
    if not event:
        raise NotFoundError(details="Event not found", event_id=event_id)
    return event


def event_window(event: dict[str, Any], window_start: int | None = None, window_end: int | None = None) -> tuple[int, int]:
    """Recommendation window: explicit override, else the event's own, else the configured default."""
    defaults = get_settings().scheduling
    start = window_start if window_start is not None else event.get("window_start")
    end = window_end if window_end is not None else event.get("window_end")
    start = defaults.window_start if start is None else start
    end = defaults.window_end if end is None else end
    return start, end


async def load_participants(event_id: str) -> list[Participant]:
    with db_errors("load participants"):
        users = await db.fetch_participants(event_id)
    return resolve_participants(users)


async def compute_recommendations(
    event: dict[str, Any],
    window_start: int | None = None,
    window_end: int | None = None,
) -> tuple[list[Participant], list[GroupedRecommendation]]:
    participants = await load_participants(event["id"])
    with db_errors("load availability"):
        rows = await db.fetch_event_availability(event["id"])
    start, end = event_window(event, window_start, window_end)
    groups = recommend(rows, [p.id for p in participants], window_start=start, window_end=end)
    return participants, groups


async def _user_rows(event_id: str, user_id: str, dates: list[dt.date]) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    with db_errors("load availability"):
        for day in sorted(dates):
            rows.extend(await db.fetch_user_availability(event_id, user_id, day))
    return rows


async def apply_for_user(
    event: dict[str, Any],
    user_id: str,
    change_set: ChangeSet,
    event_bus: EventBus | None,
) -> MutationOutcome:
    """Apply a change set for one user, serialized per (event, user)."""
    async with state.get_mutation_lock(event["id"], user_id):
        with db_errors(f"{change_set.action.value} availability"):
            result = await merge.apply_change_set(event["id"], user_id, change_set, store=db)
        rows = await _user_rows(event["id"], user_id, result.dates)

    if result.changed:
        await publish_availability_changed(
            event_bus,
            build_availability_event(event["id"], user_id, change_set.action.value, result.dates),
        )
    participants, groups = await compute_recommendations(event)
    return MutationOutcome(result=result, rows=rows, participants=participants, recommendations=groups)


async def clear_for_user(
    event: dict[str, Any],
    user_id: str,
    start_date: dt.date,
    end_date: dt.date,
    slots: list[TimeSlot] | None,
    event_bus: EventBus | None,
) -> MutationOutcome:
    """Atomic bulk removal across a date range."""
    async with state.get_mutation_lock(event["id"], user_id):
        with db_errors("clear availability"):
            deleted = await merge.clear_range(event["id"], user_id, start_date, end_date, slots, store=db)
            rows = await db.fetch_event_availability(event["id"], start_date, end_date, user_id=user_id)

    if deleted:
        days = [start_date + dt.timedelta(days=i) for i in range((end_date - start_date).days + 1)]
        await publish_availability_changed(event_bus, build_availability_event(event["id"], user_id, "clear", days))
    participants, groups = await compute_recommendations(event)
    return MutationOutcome(result=None, rows=rows, participants=participants, recommendations=groups, deleted=deleted)
