"""Defensive handling of language-model output.

The model is an untrusted producer: it may wrap JSON in code fences, surround
it with prose, emit strings where integers belong, or invent fields. Everything
here is a pure transform from raw reply text to a validated ``ChangeSet`` so it
can be tested without a network call.

Outcomes:
    - a ChangeSet with dates: the normal case
    - a ChangeSet with no dates: well-formed but nothing usable ("nothing understood")
    - InterpretationError: unparseable after one repair attempt, unsupported
      shape, or an action other than ``add``/``remove``
"""

import datetime as dt
import json
import logging
import re
from typing import Any

from schedsync.errors import InterpretationError
from schedsync.models.slots import Action, ChangeSet, DailyAvailability, TimeSlot, validate_slot

logger = logging.getLogger("schedsync.interpreter.sanitize")

_FENCE_RE = re.compile(r"^\s*```[A-Za-z0-9_-]*[ \t]*\n?(.*?)\n?[ \t]*```\s*$", re.DOTALL)
_DECODER = json.JSONDecoder()
_RAW_LIMIT = 2000


def _raw_context(text: str) -> str:
    return text if len(text) <= _RAW_LIMIT else text[:_RAW_LIMIT] + "..."


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` fence if the whole reply is fenced."""
    m = _FENCE_RE.match(text)
    if m:
        return m.group(1).strip()
    return text.strip()


def _openers(text: str) -> list[int]:
    return [i for i, ch in enumerate(text) if ch in "{["]


def extract_json(text: str) -> Any:
    """Parse the reply as JSON, retrying once on the first bracketed value that decodes.

    The repair scans each ``{`` or ``[`` in order, so bracketed prose ahead of
    the payload does not hide it.

    Raises:
        InterpretationError: Nothing parseable, with the raw reply in context.
    """
    cleaned = strip_code_fences(text or "")
    if not cleaned:
        raise InterpretationError(details="Language model returned an empty response", raw=text or "")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    starts = _openers(cleaned)
    if not starts:
        logger.warning("No JSON object in model response: %s", cleaned[:200])
        raise InterpretationError(details="No JSON found in language model response", raw=_raw_context(text))
    first_error: json.JSONDecodeError | None = None
    for start in starts:
        try:
            payload, _end = _DECODER.raw_decode(cleaned, start)
        except json.JSONDecodeError as e:
            first_error = first_error or e
            continue
        logger.debug("Recovered JSON at offset %d of %d chars", start, len(cleaned))
        return payload
    logger.warning("Brace-extraction repair failed: %s", first_error.msg)
    raise InterpretationError(
        details=f"Malformed JSON in language model response: {first_error.msg}",
        raw=_raw_context(text),
    ) from first_error


def _parse_action(value: Any, raw: str) -> Action:
    if value == Action.ADD.value:
        return Action.ADD
    if value == Action.REMOVE.value:
        return Action.REMOVE
    raise InterpretationError(details=f"Unsupported action: {value!r}", raw=raw)


def _parse_date(value: Any) -> dt.date | None:
    if isinstance(value, dt.date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return dt.date.fromisoformat(value.strip())
    except ValueError:
        return None


def normalize_change_set(payload: Any, reference_date: dt.date, raw: str = "") -> ChangeSet:
    """Turn a parsed payload into a validated ChangeSet.

    Accepts the canonical ``{"action", "dates"}`` object and the legacy bare
    list of slots, which is read as an ``add`` for ``reference_date``. Invalid
    slots are dropped silently; date entries left with no slots are dropped.
    Repeated dates are merged into the first entry for that date.
    """
    if isinstance(payload, list):
        action = Action.ADD
        entries: Any = [{"date": reference_date.isoformat(), "slots": payload}]
    elif isinstance(payload, dict):
        action = _parse_action(payload.get("action"), raw)
        entries = payload.get("dates")
        if not isinstance(entries, list):
            raise InterpretationError(details="Language model response has no dates array", raw=raw)
    else:
        raise InterpretationError(
            details=f"Unsupported response shape: {type(payload).__name__}",
            raw=raw,
        )

    merged: dict[dt.date, list[TimeSlot]] = {}
    seen = kept = 0
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        day = _parse_date(entry.get("date"))
        candidates = entry.get("slots")
        if not isinstance(candidates, list):
            continue
        seen += len(candidates)
        if day is None:
            continue
        slots = [s for s in (validate_slot(c) for c in candidates) if s is not None]
        kept += len(slots)
        if slots:
            merged.setdefault(day, []).extend(slots)

    if kept < seen:
        logger.info("Dropped %d of %d slots from model output", seen - kept, seen)

    return ChangeSet(
        action=action,
        dates=[DailyAvailability(date=day, slots=slots) for day, slots in merged.items()],
    )


def sanitize(text: str, reference_date: dt.date) -> ChangeSet:
    """Full output-handling pass: fences, JSON repair, shape normalization, validation."""
    payload = extract_json(text)
    return normalize_change_set(payload, reference_date, raw=_raw_context(text or ""))
