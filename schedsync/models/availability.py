import datetime as dt

from pydantic import BaseModel, Field, computed_field

from schedsync.models.slots import AvailabilityType


class AvailabilityRow(BaseModel):
    id: int
    event_id: str
    user_id: str
    date: dt.date
    start_hour: int
    end_hour: int
    name: str | None = None
    availability_type: AvailabilityType | None = None


class Participant(BaseModel):
    id: str
    display_name: str


class HourSummary(BaseModel):
    hour: int
    available: int
    total: int
    users: dict[str, AvailabilityType] = {}

    @computed_field
    @property
    def perfect_match(self) -> bool:
        return self.total > 0 and self.available == self.total


class CommonSlot(BaseModel):
    date: dt.date
    start_hour: int = Field(serialization_alias="startHour")
    end_hour: int = Field(serialization_alias="endHour")


class GroupedRecommendation(BaseModel):
    start_date: dt.date = Field(serialization_alias="startDate")
    end_date: dt.date = Field(serialization_alias="endDate")
    start_hour: int = Field(serialization_alias="startHour")
    end_hour: int = Field(serialization_alias="endHour")


class Event(BaseModel):
    id: str
    name: str
    description: str | None = None
    start_date: dt.date
    end_date: dt.date
    window_start: int | None = None
    window_end: int | None = None
    created_at: str


class EventResponse(BaseModel):
    event: Event
    participants: list[Participant]


class GridResponse(BaseModel):
    date: dt.date
    hours: list[HourSummary]


class RecommendationsResponse(BaseModel):
    event_id: str
    participant_count: int
    window_start: int
    window_end: int
    recommendations: list[GroupedRecommendation]
    summary: str


class AvailabilityStateResponse(BaseModel):
    event_id: str
    user_id: str
    action: str
    inserted: int
    deleted: int
    split: int
    unmatched: list[dict] = []
    rows: list[AvailabilityRow]
    recommendations: list[GroupedRecommendation]
