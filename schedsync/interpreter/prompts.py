import datetime as dt

# Cue phrases the model maps onto availability_type. Kept here so the prompt
# and the tests agree on the vocabulary.
STATUS_CUES: dict[str, list[str]] = {
    "available": ["free", "available", "open", "can do", "works for me", "I can make it"],
    "unavailable": ["not available", "unavailable", "can't", "cannot", "out of office", "away", "on vacation", "off"],
    "busy": ["busy", "booked", "meeting", "appointment", "class", "call", "have plans", "working"],
    "tentative": ["maybe", "might", "possibly", "tentatively", "probably", "not sure", "if needed"],
}

# Named parts of the day, as hour ranges. "All day" is always the (0, 24)
# full-day sentinel.
DAY_PARTS: dict[str, tuple[int, int]] = {
    "all day / whole day / entire day / the day": (0, 24),
    "morning": (8, 12),
    "afternoon": (12, 17),
    "evening": (17, 21),
    "night": (19, 24),
    "lunch / lunchtime": (12, 13),
    "business hours / work hours": (9, 17),
}


def _status_table() -> list[str]:
    lines = []
    for status, cues in STATUS_CUES.items():
        quoted = ", ".join(f'"{c}"' for c in cues)
        lines.append(f"- {status}: {quoted}")
    return lines


def _day_parts_table() -> list[str]:
    return [f"- {label}: start_hour={start}, end_hour={end}" for label, (start, end) in DAY_PARTS.items()]


def build_system_prompt(reference_date: dt.date, date_range: tuple[dt.date, dt.date] | None = None) -> str:
    """Instruction set for turning one availability sentence into a change set."""
    lines: list[str] = []
    lines.append('You convert a person\'s availability message for a group calendar app called "Schedule Sync" into JSON.')
    lines.append("Reply with JSON only. No prose, no explanations, no markdown.")
    lines.append("")
    lines.append("## OUTPUT SHAPE")
    lines.append('{"action": "add" | "remove", "dates": [{"date": "YYYY-MM-DD", "slots": [{"start_hour": <int>, "end_hour": <int>, "name": <string, optional>, "availability_type": "available" | "unavailable" | "busy" | "tentative" (optional)}]}]}')
    lines.append("")
    lines.append("## DATES")
    lines.append(f"Today is {reference_date.strftime('%A')}, {reference_date.isoformat()}.")
    lines.append("Resolve relative expressions (today, tomorrow, this Friday, next Monday, this weekend) against today's date above.")
    if date_range is not None:
        start, end = date_range
        lines.append(f"The group is scheduling between {start.isoformat()} and {end.isoformat()}; a weekday name refers to the matching day in that range.")
    lines.append("A range of days (\"July 10-15\", \"Monday to Wednesday\", \"June 4-6\") becomes one entry in \"dates\" per calendar day, each with the same slots.")
    lines.append("Emit each date at most once. Dates are ISO YYYY-MM-DD.")
    lines.append("")
    lines.append("## HOURS")
    lines.append("Hours are whole integers on a 24-hour clock. start_hour is 0-23, end_hour is 1-24, start_hour < end_hour.")
    lines.append("Convert 12-hour times: 9am -> 9, 12pm/noon -> 12, 2pm -> 14, 11pm -> 23, midnight at the end of a range -> 24.")
    lines.append('"2-4pm" means 14 to 16. "9 to 5" means 9 to 17. Round minutes down for start and up for end.')
    lines.append("A single time with no end (\"at 3pm\") covers one hour: 15 to 16.")
    lines.append("If a day is mentioned without any time, the slot is the whole day: start_hour=0, end_hour=24.")
    lines.append("Named parts of the day:")
    lines.extend(_day_parts_table())
    lines.append("")
    lines.append("## STATUS")
    lines.append("Set availability_type from these cues:")
    lines.extend(_status_table())
    lines.append("If no cue applies, omit availability_type.")
    lines.append('If the message names what the time is for ("client meeting", "dentist"), put a short label in "name".')
    lines.append("")
    lines.append("## ACTION")
    lines.append('Use "add" when the person states availability or a commitment (including "I\'m busy", "I\'m not available").')
    lines.append('Use "remove" only when they take back something they said before ("remove my Tuesday", "scratch Friday afternoon", "I\'m no longer free on the 5th").')
    lines.append("")
    lines.append("## EXAMPLES")
    lines.append('"I\'m free Saturday 2-5 PM" -> {"action": "add", "dates": [{"date": "<Saturday>", "slots": [{"start_hour": 14, "end_hour": 17, "availability_type": "available"}]}]}')
    lines.append('"busy with client meeting 2-4pm Thursday" -> {"action": "add", "dates": [{"date": "<Thursday>", "slots": [{"start_hour": 14, "end_hour": 16, "name": "client meeting", "availability_type": "busy"}]}]}')
    lines.append('"I\'m not available June 4-6" -> {"action": "add", "dates": [three entries, June 4, 5 and 6, each {"start_hour": 0, "end_hour": 24, "availability_type": "unavailable"}]}')
    lines.append('"Remove my Monday morning" -> {"action": "remove", "dates": [{"date": "<Monday>", "slots": [{"start_hour": 8, "end_hour": 12}]}]}')
    lines.append("")
    lines.append('If the message contains no usable date or time, reply {"action": "add", "dates": []}.')
    return "\n".join(lines)
