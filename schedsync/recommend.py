"""Common-time recommendations and the hourly availability projection.

Both are rebuilt from the full row set on every call and hold no state
between calls.
"""

import datetime as dt
from collections import defaultdict
from collections.abc import Iterable
from typing import Any

from schedsync.models.availability import CommonSlot, GroupedRecommendation, HourSummary
from schedsync.models.slots import AvailabilityType, coerce_availability_type

DEFAULT_WINDOW_START = 8
DEFAULT_WINDOW_END = 24

# Resolution order when one user has several rows covering the same hour.
_STATUS_RANK = {
    AvailabilityType.TENTATIVE: 0,
    AvailabilityType.AVAILABLE: 1,
    AvailabilityType.BUSY: 2,
    AvailabilityType.UNAVAILABLE: 3,
}


def _as_date(value: Any) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    return dt.date.fromisoformat(str(value))


def _row_type(row: dict[str, Any]) -> AvailabilityType:
    return coerce_availability_type(row.get("availability_type")) or AvailabilityType.AVAILABLE


class _HourSets:
    __slots__ = ("available", "unavailable")

    def __init__(self) -> None:
        self.available: set[str] = set()
        self.unavailable: set[str] = set()


def collect_hour_sets(
    rows: Iterable[dict[str, Any]],
    participant_ids: Iterable[str] | None = None,
) -> dict[dt.date, dict[int, _HourSets]]:
    """Per date and hour, who is available (or tentative) and who vetoes."""
    allowed = set(participant_ids) if participant_ids is not None else None
    by_date: dict[dt.date, dict[int, _HourSets]] = defaultdict(lambda: defaultdict(_HourSets))
    for row in rows:
        user_id = row.get("user_id")
        if not user_id or row.get("date") is None:
            continue
        if allowed is not None and user_id not in allowed:
            continue
        day = _as_date(row["date"])
        vetoes = _row_type(row).is_veto
        for hour in range(row["start_hour"], row["end_hour"]):
            sets = by_date[day][hour]
            if vetoes:
                sets.unavailable.add(user_id)
            else:
                sets.available.add(user_id)
    return by_date


def find_common_slots(
    rows: Iterable[dict[str, Any]],
    total_participants: int,
    window_start: int = DEFAULT_WINDOW_START,
    window_end: int = DEFAULT_WINDOW_END,
    participant_ids: Iterable[str] | None = None,
) -> list[CommonSlot]:
    """Maximal runs of hours, per date, where everyone is free and nobody vetoes.

    Hours ``window_start`` through ``window_end - 1`` are scanned; a run still
    open at the end of the window closes at ``window_end``.
    """
    if total_participants <= 0:
        return []
    by_date = collect_hour_sets(rows, participant_ids)
    slots: list[CommonSlot] = []
    for day in sorted(by_date):
        hours = by_date[day]
        run_start: int | None = None
        for hour in range(window_start, window_end):
            sets = hours.get(hour)
            qualifies = (
                sets is not None
                and len(sets.available) == total_participants
                and not sets.unavailable
            )
            if qualifies:
                if run_start is None:
                    run_start = hour
            elif run_start is not None:
                slots.append(CommonSlot(date=day, start_hour=run_start, end_hour=hour))
                run_start = None
        if run_start is not None:
            slots.append(CommonSlot(date=day, start_hour=run_start, end_hour=window_end))
    return slots


def group_common_slots(slots: list[CommonSlot]) -> list[GroupedRecommendation]:
    """Collapse runs with identical hours on consecutive dates into date ranges."""
    groups: list[GroupedRecommendation] = []
    current: GroupedRecommendation | None = None
    for slot in slots:
        if (
            current is not None
            and (slot.date - current.end_date).days == 1
            and slot.start_hour == current.start_hour
            and slot.end_hour == current.end_hour
        ):
            current.end_date = slot.date
            continue
        if current is not None:
            groups.append(current)
        current = GroupedRecommendation(
            start_date=slot.date,
            end_date=slot.date,
            start_hour=slot.start_hour,
            end_hour=slot.end_hour,
        )
    if current is not None:
        groups.append(current)
    return groups


def recommend(
    rows: Iterable[dict[str, Any]],
    participant_ids: list[str],
    window_start: int = DEFAULT_WINDOW_START,
    window_end: int = DEFAULT_WINDOW_END,
) -> list[GroupedRecommendation]:
    slots = find_common_slots(
        rows,
        total_participants=len(set(participant_ids)),
        window_start=window_start,
        window_end=window_end,
        participant_ids=participant_ids,
    )
    return group_common_slots(slots)


def build_hourly_grid(
    rows: Iterable[dict[str, Any]],
    day: dt.date,
    participant_ids: list[str],
) -> list[HourSummary]:
    """24 hourly summaries for one date: counts plus each user's resolved status."""
    statuses: dict[int, dict[str, AvailabilityType]] = defaultdict(dict)
    allowed = set(participant_ids)
    for row in rows:
        user_id = row.get("user_id")
        if user_id not in allowed or row.get("date") is None or _as_date(row["date"]) != day:
            continue
        status = _row_type(row)
        for hour in range(row["start_hour"], row["end_hour"]):
            prev = statuses[hour].get(user_id)
            if prev is None or _STATUS_RANK[status] > _STATUS_RANK[prev]:
                statuses[hour][user_id] = status

    total = len(allowed)
    grid = []
    for hour in range(24):
        users = statuses.get(hour, {})
        available = sum(1 for s in users.values() if not s.is_veto)
        grid.append(HourSummary(hour=hour, available=available, total=total, users=dict(users)))
    return grid
