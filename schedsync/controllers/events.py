import datetime as dt
import logging
from typing import Any, Dict, List

from fastapi import APIRouter
from pydantic import BaseModel, Field, field_validator, model_validator

from schedsync import db, scheduling
from schedsync.dependencies import CurrentUser, Database
from schedsync.models.availability import Event, EventResponse, Participant

logger = logging.getLogger("schedsync.events")
router = APIRouter(dependencies=[Database], tags=["events"])

MAX_EVENT_DAYS = 62


class CreateEventRequest(BaseModel):
    name: str
    description: str | None = None
    start_date: dt.date
    end_date: dt.date
    window_start: int | None = Field(default=None, ge=0, le=23)
    window_end: int | None = Field(default=None, ge=1, le=24)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v or len(v) > 200:
            raise ValueError("name must be 1-200 characters")
        return v

    @model_validator(mode="after")
    def check_ranges(self) -> "CreateEventRequest":
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        if (self.end_date - self.start_date).days >= MAX_EVENT_DAYS:
            raise ValueError(f"date range must be shorter than {MAX_EVENT_DAYS} days")
        if (self.window_start is None) != (self.window_end is None):
            raise ValueError("window_start and window_end must be given together")
        if self.window_start is not None and self.window_start >= self.window_end:
            raise ValueError("window_start must be before window_end")
        return self


class ProfileRequest(BaseModel):
    display_name: str | None = None

    @field_validator("display_name")
    @classmethod
    def validate_display_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if len(v) > 100:
            raise ValueError("display_name must be at most 100 characters")
        return v or None


@router.post("/events", status_code=201, response_model=Event)
async def create_event(req: CreateEventRequest) -> Dict[str, Any]:
    logger.info("POST /events name=%s range=%s..%s", req.name, req.start_date, req.end_date)
    with scheduling.db_errors("create event"):
        event = await db.create_event(
            name=req.name,
            start_date=req.start_date,
            end_date=req.end_date,
            description=req.description,
            window_start=req.window_start,
            window_end=req.window_end,
        )
    logger.info("Created event id=%s", event["id"])
    return event


@router.get("/events/{event_id}", response_model=EventResponse)
async def get_event(event_id: str) -> EventResponse:
    event = await scheduling.load_event(event_id)
    participants = await scheduling.load_participants(event_id)
    return EventResponse(event=Event(**event), participants=participants)


@router.get("/events/{event_id}/participants", response_model=List[Participant])
async def list_participants(event_id: str) -> List[Participant]:
    await scheduling.load_event(event_id)
    return await scheduling.load_participants(event_id)


@router.put("/profiles/me")
async def update_profile(req: ProfileRequest, user_id: CurrentUser) -> Dict[str, Any]:
    with scheduling.db_errors("update profile"):
        return await db.upsert_profile(user_id, req.display_name)
