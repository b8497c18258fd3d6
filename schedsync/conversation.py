"""User-facing wording for interpreter results and recommendations."""

import datetime as dt

from schedsync.models.availability import GroupedRecommendation
from schedsync.models.slots import Action, ChangeSet, TimeSlot

GREETING = (
    "Hi! I'm here to help coordinate schedules. Tell me your availability for the selected "
    "date range. For example: 'I'm free Saturday morning' or 'Busy Tuesday 2-4 PM'"
)

CLARIFICATION = (
    "I couldn't find a specific day or time in that. Can you be more specific? "
    "For example: 'I'm available Monday 9 AM - 5 PM' or 'Busy Tuesday afternoon'."
)

NO_COMMON_TIME = "No common availability found for all participants."


def format_hour(hour: int) -> str:
    h24 = hour % 24
    period = "AM" if h24 < 12 else "PM"
    h12 = h24 % 12 or 12
    return f"{h12}:00 {period}"


def _long_date(day: dt.date) -> str:
    return f"{day:%A}, {day:%b} {day.day}"


def format_date_range(start: dt.date, end: dt.date) -> str:
    """``Monday, Jun 3`` or ``Monday, Jun 3 - Wednesday, 5`` (month repeated across months)."""
    if start == end:
        return _long_date(start)
    if (start.year, start.month) != (end.year, end.month):
        return f"{_long_date(start)} - {_long_date(end)}"
    return f"{_long_date(start)} - {end:%A}, {end.day}"


def describe_slot(slot: TimeSlot) -> str:
    text = "all day" if slot.is_full_day else f"{format_hour(slot.start_hour)} - {format_hour(slot.end_hour)}"
    extras = []
    if slot.availability_type is not None:
        extras.append(slot.availability_type.value)
    if slot.name:
        extras.append(slot.name)
    if extras:
        text += f" ({', '.join(extras)})"
    return text


def _date_runs(change_set: ChangeSet) -> list[tuple[dt.date, dt.date, list[TimeSlot]]]:
    """Consecutive dates carrying identical slots, merged into ranges."""
    runs: list[tuple[dt.date, dt.date, list[TimeSlot]]] = []
    for entry in sorted(change_set.dates, key=lambda d: d.date):
        if runs:
            start, end, slots = runs[-1]
            if (entry.date - end).days == 1 and entry.slots == slots:
                runs[-1] = (start, entry.date, slots)
                continue
        runs.append((entry.date, entry.date, entry.slots))
    return runs


def confirmation_message(change_set: ChangeSet, unmatched: int = 0) -> str:
    """Confirmation for an applied change set, or a clarification prompt when it is empty."""
    if change_set.is_empty:
        return CLARIFICATION

    lines = []
    for start, end, slots in _date_runs(change_set):
        lines.append(f"- {format_date_range(start, end)}: {'; '.join(describe_slot(s) for s in slots)}")

    if change_set.action == Action.ADD:
        header = "Got it! I've added this to your availability:"
    elif unmatched and unmatched == len(change_set.pairs()):
        return "I couldn't find any saved availability matching that, so nothing was removed."
    else:
        header = "Done. I've removed this from your availability:"
    return "\n".join([header, *lines])


def describe_recommendations(groups: list[GroupedRecommendation]) -> str:
    if not groups:
        return NO_COMMON_TIME
    lines = ["Times that work for everyone:"]
    for g in groups:
        lines.append(
            f"- {format_date_range(g.start_date, g.end_date)}: "
            f"{format_hour(g.start_hour)} - {format_hour(g.end_hour)}"
        )
    return "\n".join(lines)
