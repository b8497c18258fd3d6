"""Availability merge engine.

Applies one user's ChangeSet to their stored rows. Adds insert rows verbatim
(fragmentation and duplicates are fine, the hourly projection aggregates over
them). Removals try an exact ``(start_hour, end_hour)`` match first; otherwise
every overlapping row is deleted and the parts outside the removal window are
re-inserted.

The store is any object exposing the row-level coroutines of ``schedsync.db``:
``insert_availability``, ``delete_exact_availability``,
``fetch_user_availability``, ``delete_availability_row`` and
``bulk_delete_availability``. Delete-then-reinsert is not atomic across those
calls; a failed re-insert raises PartialRemovalError and is never retried here.
"""

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Any

from schedsync import db
from schedsync.errors import PartialRemovalError
from schedsync.models.slots import Action, ChangeSet, TimeSlot, coerce_availability_type, validate_slot

logger = logging.getLogger("schedsync.merge")


@dataclass
class MergeResult:
    action: Action
    inserted: list[dict[str, Any]] = field(default_factory=list)
    deleted: int = 0
    split: int = 0
    unmatched: list[tuple[dt.date, TimeSlot]] = field(default_factory=list)
    dates: list[dt.date] = field(default_factory=list)

    def touch(self, day: dt.date) -> None:
        if day not in self.dates:
            self.dates.append(day)

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.deleted)

    def unmatched_dicts(self) -> list[dict[str, Any]]:
        return [{"date": day.isoformat(), **slot.to_dict()} for day, slot in self.unmatched]


def _row_slot(row: dict[str, Any], start_hour: int, end_hour: int) -> TimeSlot:
    return TimeSlot(
        start_hour=start_hour,
        end_hour=end_hour,
        name=row.get("name"),
        availability_type=coerce_availability_type(row.get("availability_type")),
    )


def overlaps(row: dict[str, Any], start_hour: int, end_hour: int) -> bool:
    return row["start_hour"] < end_hour and row["end_hour"] > start_hour


def split_remainders(row: dict[str, Any], start_hour: int, end_hour: int) -> list[TimeSlot]:
    """Pieces of ``row`` left after cutting out ``[start_hour, end_hour)``.

    Zero pieces when the row lies inside the window, one when it overlaps an
    edge, two when the window punches a hole in the middle. Each piece keeps
    the row's name and availability_type.
    """
    pieces = []
    if row["start_hour"] < start_hour:
        pieces.append(_row_slot(row, row["start_hour"], start_hour))
    if end_hour < row["end_hour"]:
        pieces.append(_row_slot(row, end_hour, row["end_hour"]))
    return pieces


async def add_slot(event_id: str, user_id: str, day: dt.date, slot: TimeSlot, store: Any, result: MergeResult) -> None:
    row = await store.insert_availability(event_id, user_id, day, slot)
    result.inserted.append(row)
    result.touch(day)


async def remove_slot(event_id: str, user_id: str, day: dt.date, slot: TimeSlot, store: Any, result: MergeResult) -> None:
    """Remove one hour range for one date, splitting coarser rows as needed."""
    deleted = await store.delete_exact_availability(event_id, user_id, day, slot.start_hour, slot.end_hour)
    if deleted:
        logger.debug("Exact-match delete removed %d row(s) on %s [%d,%d)", deleted, day, slot.start_hour, slot.end_hour)
        result.deleted += deleted
        result.touch(day)
        return

    rows = await store.fetch_user_availability(event_id, user_id, day)
    overlapping = [r for r in rows if overlaps(r, slot.start_hour, slot.end_hour)]
    if not overlapping:
        result.unmatched.append((day, slot))
        return

    for row in overlapping:
        if not await store.delete_availability_row(event_id, user_id, row["id"]):
            logger.warning("Row %s vanished before split on %s; skipping", row["id"], day)
            continue
        result.deleted += 1
        result.touch(day)

        pieces = split_remainders(row, slot.start_hour, slot.end_hour)
        restored: list[TimeSlot] = []
        for piece in pieces:
            try:
                new_row = await store.insert_availability(event_id, user_id, day, piece)
            except Exception as e:
                missing = [[p.start_hour, p.end_hour] for p in pieces[len(restored):]]
                logger.error(
                    "Split re-insert failed for row %s on %s (missing=%s): %s",
                    row["id"], day, missing, e,
                )
                raise PartialRemovalError(
                    details=f"Removed row {row['id']} on {day.isoformat()} but could not restore its remaining hours",
                    event_id=event_id,
                    user_id=user_id,
                    date=day.isoformat(),
                    row={"id": row["id"], "start_hour": row["start_hour"], "end_hour": row["end_hour"]},
                    missing=missing,
                ) from e
            restored.append(piece)
            result.inserted.append(new_row)
            result.split += 1


async def apply_change_set(event_id: str, user_id: str, change_set: ChangeSet, store: Any = None) -> MergeResult:
    """Apply an add or remove ChangeSet for one user.

    Slots are re-validated on the way in; any that fail are skipped.

    Raises:
        PartialRemovalError: A split removal could not restore a remainder.
    """
    store = store or db
    result = MergeResult(action=change_set.action)
    for day, candidate in change_set.pairs():
        slot = validate_slot(candidate)
        if slot is None:
            continue
        if change_set.action == Action.ADD:
            await add_slot(event_id, user_id, day, slot, store, result)
        else:
            await remove_slot(event_id, user_id, day, slot, store, result)

    logger.info(
        "Applied %s for user=%s event=%s inserted=%d deleted=%d split=%d unmatched=%d",
        change_set.action.value, user_id, event_id,
        len(result.inserted), result.deleted, result.split, len(result.unmatched),
    )
    return result


async def clear_range(
    event_id: str,
    user_id: str,
    start_date: dt.date,
    end_date: dt.date,
    slots: list[TimeSlot] | None = None,
    store: Any = None,
) -> int:
    """Atomically delete exact-matching rows (or all rows) across a date range."""
    store = store or db
    if slots is not None:
        slots = [s for s in (validate_slot(c) for c in slots) if s is not None]
        if not slots:
            return 0
    deleted = await store.bulk_delete_availability(event_id, user_id, start_date, end_date, slots)
    logger.info(
        "Bulk delete for user=%s event=%s %s..%s removed %d row(s)",
        user_id, event_id, start_date, end_date, deleted,
    )
    return deleted
