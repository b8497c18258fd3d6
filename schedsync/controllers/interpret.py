import datetime as dt
import logging
from typing import Any, Dict

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from schedsync import interpreter

logger = logging.getLogger("schedsync.interpret")
router = APIRouter(tags=["interpret"])

MAX_MESSAGE_LENGTH = 2000


class DateRange(BaseModel):
    start: dt.date
    end: dt.date

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError("start must not be after end")
        return self


class InterpretRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    date: dt.date | None = None
    date_range: DateRange | None = Field(default=None, alias="dateRange")

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        v = v.strip()
        if not v or len(v) > MAX_MESSAGE_LENGTH:
            raise ValueError(f"message must be 1-{MAX_MESSAGE_LENGTH} characters")
        return v

    def reference_date(self) -> dt.date:
        if self.date is not None:
            return self.date
        if self.date_range is not None:
            return self.date_range.start
        return dt.date.today()

    def range_tuple(self) -> tuple[dt.date, dt.date] | None:
        if self.date_range is None:
            return None
        return self.date_range.start, self.date_range.end


@router.post("/interpret")
async def interpret_message(req: InterpretRequest) -> Dict[str, Any]:
    reference = req.reference_date()
    logger.info("POST /interpret len=%d reference_date=%s", len(req.message), reference.isoformat())
    change_set = await interpreter.interpret(req.message, reference, req.range_tuple())
    if change_set.is_empty:
        logger.info("Nothing interpretable in message")
    return {**change_set.to_dict(), "understood": not change_set.is_empty}
