from typing import Literal, TypedDict


class AvailabilityChangedEvent(TypedDict):
    type: Literal["availability_changed"]
    event_id: str
    user_id: str
    action: Literal["add", "remove", "clear"]
    dates: list[str]
    timestamp: str
