from collections.abc import Iterable

from schedsync.config import get_settings
from schedsync.models.availability import Participant


def resolve_participants(
    users: Iterable[tuple[str, str | None]],
    fallback: str | None = None,
) -> list[Participant]:
    """Distinct participants in first-seen order; a missing name gets the fallback label."""
    if fallback is None:
        fallback = get_settings().scheduling.fallback_display_name
    seen: dict[str, Participant] = {}
    for user_id, display_name in users:
        if not user_id:
            continue
        name = display_name.strip() if isinstance(display_name, str) else ""
        existing = seen.get(user_id)
        if existing is None:
            seen[user_id] = Participant(id=user_id, display_name=name or fallback)
        elif name and existing.display_name == fallback:
            existing.display_name = name
    return list(seen.values())

