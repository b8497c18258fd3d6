import datetime as dt
import logging
from datetime import UTC, datetime

from schedsync.bus import EventBus
from schedsync.events import AvailabilityChangedEvent

logger = logging.getLogger("schedsync.producers.availability")


def build_availability_event(
    event_id: str,
    user_id: str,
    action: str,
    dates: list[dt.date],
) -> AvailabilityChangedEvent:
    return {
        "type": "availability_changed",
        "event_id": event_id,
        "user_id": user_id,
        "action": action,
        "dates": sorted(d.isoformat() for d in dates),
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def publish_availability_changed(event_bus: EventBus | None, event: AvailabilityChangedEvent) -> bool:
    """Notify subscribers; a failed publish never fails the mutation itself."""
    if event_bus is None:
        return False
    try:
        await event_bus.publish_availability(event["event_id"], event)
        return True
    except Exception as e:
        logger.warning("Failed to publish availability change for event %s: %r", event["event_id"], e)
        return False
