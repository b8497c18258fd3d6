"""Canonical time-slot shapes and the slot validator.

A slot is a half-open hour range ``[start_hour, end_hour)`` on one calendar
date. ``(0, 24)`` is the explicit full-day sentinel.

Usage:
    from schedsync.models.slots import validate_slot

    slot = validate_slot({"start_hour": 9, "end_hour": 17, "availability_type": "busy"})
    if slot is None:
        ...  # rejected, drop it
"""

import datetime as dt
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, StrictInt, field_validator, model_validator

FULL_DAY: tuple[int, int] = (0, 24)


class AvailabilityType(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    BUSY = "busy"
    TENTATIVE = "tentative"

    @property
    def is_veto(self) -> bool:
        """Busy and unavailable exclude an hour from any common slot."""
        return self in (AvailabilityType.UNAVAILABLE, AvailabilityType.BUSY)


class Action(str, Enum):
    ADD = "add"
    REMOVE = "remove"


def _is_int(value: Any) -> bool:
    # bool is an int subclass; a model emitting true/false is not an hour
    return isinstance(value, int) and not isinstance(value, bool)


def hours_in_range(start_hour: int, end_hour: int) -> bool:
    if (start_hour, end_hour) == FULL_DAY:
        return True
    return 0 <= start_hour < 24 and 0 < end_hour <= 24 and start_hour < end_hour


def coerce_availability_type(value: Any) -> AvailabilityType | None:
    """Map a raw status onto the enum, or None when it is not one of the four."""
    if isinstance(value, AvailabilityType):
        return value
    if not isinstance(value, str):
        return None
    try:
        return AvailabilityType(value.strip().lower())
    except ValueError:
        return None


class TimeSlot(BaseModel):
    start_hour: StrictInt
    end_hour: StrictInt
    name: str | None = None
    availability_type: AvailabilityType | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def check_hours(self) -> "TimeSlot":
        if not hours_in_range(self.start_hour, self.end_hour):
            raise ValueError(
                f"invalid hour range: start_hour={self.start_hour} end_hour={self.end_hour}"
            )
        return self

    @property
    def is_full_day(self) -> bool:
        return (self.start_hour, self.end_hour) == FULL_DAY

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class DailyAvailability(BaseModel):
    date: dt.date
    slots: list[TimeSlot]

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "slots": [s.to_dict() for s in self.slots]}


class ChangeSet(BaseModel):
    action: Action
    dates: list[DailyAvailability] = []

    @property
    def is_empty(self) -> bool:
        return not self.dates

    def pairs(self) -> list[tuple[dt.date, TimeSlot]]:
        """Flatten into ``(date, slot)`` pairs in order."""
        return [(day.date, slot) for day in self.dates for slot in day.slots]

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action.value, "dates": [d.to_dict() for d in self.dates]}


def validate_slot(candidate: Any) -> TimeSlot | None:
    """Validate one candidate slot, returning None when it must be dropped.

    Rules, in order: both hours are integers; ``(0, 24)`` is always accepted;
    otherwise ``0 <= start < 24``, ``0 < end <= 24`` and ``start < end``. A blank
    name is treated as absent and an unrecognized availability_type is omitted
    rather than defaulted. Never raises.
    """
    if isinstance(candidate, TimeSlot):
        candidate = candidate.model_dump()
    if not isinstance(candidate, Mapping):
        return None

    start_hour = candidate.get("start_hour")
    end_hour = candidate.get("end_hour")
    if not _is_int(start_hour) or not _is_int(end_hour):
        return None
    if not hours_in_range(start_hour, end_hour):
        return None

    name = candidate.get("name")
    if not isinstance(name, str) or not name.strip():
        name = None

    return TimeSlot(
        start_hour=start_hour,
        end_hour=end_hour,
        name=name,
        availability_type=coerce_availability_type(candidate.get("availability_type")),
    )


def validate_slots(candidates: Any) -> list[TimeSlot]:
    if not isinstance(candidates, list):
        return []
    return [slot for slot in (validate_slot(c) for c in candidates) if slot is not None]
