"""Natural-language availability interpreter.

``interpret`` makes exactly one language-model call per message and runs the
reply through the deterministic sanitize pass. Retries are left to callers.
"""

import datetime as dt
import logging

from schedsync.config import get_settings
from schedsync.interpreter import llm
from schedsync.interpreter.prompts import build_system_prompt
from schedsync.interpreter.sanitize import extract_json, normalize_change_set, sanitize, strip_code_fences
from schedsync.models.slots import ChangeSet

logger = logging.getLogger("schedsync.interpreter")

if get_settings().debug.llm:
    logger.setLevel(logging.DEBUG)


async def interpret(
    text: str,
    reference_date: dt.date,
    date_range: tuple[dt.date, dt.date] | None = None,
) -> ChangeSet:
    """Convert free text into a validated ChangeSet.

    Raises:
        ModelConfigError: The model is not configured.
        ModelTransportError: The model call failed.
        InterpretationError: The reply could not be interpreted.
    """
    system = build_system_prompt(reference_date, date_range)
    logger.info("Interpreting message len=%d reference_date=%s", len(text), reference_date.isoformat())
    raw = await llm.complete(system, text)
    change_set = sanitize(raw, reference_date)
    logger.info(
        "Interpreted action=%s dates=%d slots=%d",
        change_set.action.value,
        len(change_set.dates),
        len(change_set.pairs()),
    )
    return change_set


__all__ = [
    "extract_json",
    "interpret",
    "normalize_change_set",
    "sanitize",
    "strip_code_fences",
]
