import datetime as dt
import logging
from typing import Any, Dict, List, Literal

from fastapi import APIRouter, Query
from pydantic import BaseModel, model_validator

from schedsync import db, scheduling
from schedsync.conversation import describe_recommendations
from schedsync.dependencies import CurrentUser, Database, OptionalBus
from schedsync.errors import BadRequestError
from schedsync.models.availability import (
    AvailabilityRow,
    AvailabilityStateResponse,
    GridResponse,
    RecommendationsResponse,
)
from schedsync.models.slots import Action, ChangeSet, DailyAvailability, validate_slots
from schedsync.recommend import build_hourly_grid

logger = logging.getLogger("schedsync.availability")
router = APIRouter(prefix="/events/{event_id}", dependencies=[Database], tags=["availability"])


class DayRequest(BaseModel):
    date: dt.date
    slots: List[Dict[str, Any]]


class ApplyRequest(BaseModel):
    action: Literal["add", "remove"]
    dates: List[DayRequest]

    def to_change_set(self) -> ChangeSet:
        days = []
        for entry in self.dates:
            slots = validate_slots(entry.slots)
            if slots:
                days.append(DailyAvailability(date=entry.date, slots=slots))
        return ChangeSet(action=Action(self.action), dates=days)


class ClearRequest(BaseModel):
    start_date: dt.date
    end_date: dt.date
    slots: List[Dict[str, Any]] | None = None

    @model_validator(mode="after")
    def check_order(self) -> "ClearRequest":
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


def _state_response(event_id: str, user_id: str, action: str, outcome: scheduling.MutationOutcome) -> AvailabilityStateResponse:
    result = outcome.result
    return AvailabilityStateResponse(
        event_id=event_id,
        user_id=user_id,
        action=action,
        inserted=len(result.inserted) if result else 0,
        deleted=result.deleted if result else outcome.deleted,
        split=result.split if result else 0,
        unmatched=result.unmatched_dicts() if result else [],
        rows=[AvailabilityRow(**r) for r in outcome.rows],
        recommendations=outcome.recommendations,
    )


@router.get("/availability", response_model=List[AvailabilityRow])
async def list_availability(
    event_id: str,
    date: dt.date | None = Query(None, description="Only rows for this date"),
    user_id: str | None = Query(None, description="Only rows for this user"),
) -> List[AvailabilityRow]:
    await scheduling.load_event(event_id)
    with scheduling.db_errors("load availability"):
        rows = await db.fetch_event_availability(event_id, date, date, user_id=user_id)
    return [AvailabilityRow(**r) for r in rows]


@router.post("/availability", response_model=AvailabilityStateResponse)
async def apply_availability(
    event_id: str,
    req: ApplyRequest,
    user_id: CurrentUser,
    event_bus: OptionalBus,
) -> AvailabilityStateResponse:
    logger.info("POST /events/%s/availability user=%s action=%s dates=%d", event_id, user_id, req.action, len(req.dates))
    event = await scheduling.load_event(event_id)
    change_set = req.to_change_set()
    if change_set.is_empty:
        raise BadRequestError(details="No valid slots in request")
    outcome = await scheduling.apply_for_user(event, user_id, change_set, event_bus)
    return _state_response(event_id, user_id, req.action, outcome)


@router.post("/availability/clear", response_model=AvailabilityStateResponse)
async def clear_availability(
    event_id: str,
    req: ClearRequest,
    user_id: CurrentUser,
    event_bus: OptionalBus,
) -> AvailabilityStateResponse:
    logger.info("POST /events/%s/availability/clear user=%s range=%s..%s", event_id, user_id, req.start_date, req.end_date)
    event = await scheduling.load_event(event_id)
    slots = None
    if req.slots is not None:
        slots = validate_slots(req.slots)
        if not slots:
            raise BadRequestError(details="No valid slots in request")
    outcome = await scheduling.clear_for_user(event, user_id, req.start_date, req.end_date, slots, event_bus)
    return _state_response(event_id, user_id, "clear", outcome)


@router.get("/grid", response_model=GridResponse)
async def hourly_grid(event_id: str, date: dt.date = Query(..., description="Date to summarize")) -> GridResponse:
    await scheduling.load_event(event_id)
    participants = await scheduling.load_participants(event_id)
    with scheduling.db_errors("load availability"):
        rows = await db.fetch_event_availability(event_id, date, date)
    return GridResponse(date=date, hours=build_hourly_grid(rows, date, [p.id for p in participants]))


@router.get("/recommendations", response_model=RecommendationsResponse)
async def recommendations(
    event_id: str,
    window_start: int | None = Query(None, ge=0, le=23),
    window_end: int | None = Query(None, ge=1, le=24),
) -> RecommendationsResponse:
    event = await scheduling.load_event(event_id)
    start, end = scheduling.event_window(event, window_start, window_end)
    if start >= end:
        raise BadRequestError(details="window_start must be before window_end")
    participants, groups = await scheduling.compute_recommendations(event, start, end)
    return RecommendationsResponse(
        event_id=event_id,
        participant_count=len(participants),
        window_start=start,
        window_end=end,
        recommendations=groups,
        summary=describe_recommendations(groups),
    )
