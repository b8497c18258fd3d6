from schedsync.models.slots import (
    Action,
    AvailabilityType,
    ChangeSet,
    DailyAvailability,
    TimeSlot,
    validate_slot,
)

__all__ = [
    "Action",
    "AvailabilityType",
    "ChangeSet",
    "DailyAvailability",
    "TimeSlot",
    "validate_slot",
]
