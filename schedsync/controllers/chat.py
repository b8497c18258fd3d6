import datetime as dt
import logging
from typing import Any, Dict, List

from fastapi import APIRouter
from pydantic import BaseModel, field_validator

from schedsync import interpreter, scheduling
from schedsync.conversation import GREETING, confirmation_message, describe_recommendations
from schedsync.dependencies import CurrentUser, Database, OptionalBus
from schedsync.models.availability import AvailabilityRow, GroupedRecommendation

logger = logging.getLogger("schedsync.chat")
router = APIRouter(prefix="/events/{event_id}", dependencies=[Database], tags=["chat"])


class ChatRequest(BaseModel):
    message: str
    date: dt.date | None = None

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        v = v.strip()
        if not v or len(v) > 2000:
            raise ValueError("message must be 1-2000 characters")
        return v


class ChatResponse(BaseModel):
    reply: str
    understood: bool
    change_set: Dict[str, Any]
    rows: List[AvailabilityRow] = []
    recommendations: List[GroupedRecommendation] = []


@router.get("/chat")
async def chat_greeting(event_id: str) -> Dict[str, str]:
    await scheduling.load_event(event_id)
    return {"reply": GREETING}


@router.post("/chat", response_model=ChatResponse)
async def chat(
    event_id: str,
    req: ChatRequest,
    user_id: CurrentUser,
    event_bus: OptionalBus,
) -> ChatResponse:
    event = await scheduling.load_event(event_id)
    reference = req.date or dt.date.today()
    logger.info("POST /events/%s/chat user=%s len=%d", event_id, user_id, len(req.message))

    change_set = await interpreter.interpret(req.message, reference, (event["start_date"], event["end_date"]))
    if change_set.is_empty:
        return ChatResponse(
            reply=confirmation_message(change_set),
            understood=False,
            change_set=change_set.to_dict(),
        )

    outcome = await scheduling.apply_for_user(event, user_id, change_set, event_bus)
    unmatched = len(outcome.result.unmatched) if outcome.result else 0
    reply = confirmation_message(change_set, unmatched=unmatched)
    reply = f"{reply}\n\n{describe_recommendations(outcome.recommendations)}"
    return ChatResponse(
        reply=reply,
        understood=True,
        change_set=change_set.to_dict(),
        rows=[AvailabilityRow(**r) for r in outcome.rows],
        recommendations=outcome.recommendations,
    )
