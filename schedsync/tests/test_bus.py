import datetime as dt
import json
from unittest.mock import AsyncMock, MagicMock

import fakeredis.aioredis as fakeredis
import pytest

from schedsync.bus import EventBus
from schedsync.producers.availability_producer import build_availability_event, publish_availability_changed


class TestAvailabilityEvents:
    """availability_changed notifications on Redis pub/sub."""

    def test_build_event(self):
        event = build_availability_event(
            "evt1", "user-a", "remove", [dt.date(2024, 1, 16), dt.date(2024, 1, 15)],
        )
        assert event["type"] == "availability_changed"
        assert event["action"] == "remove"
        assert event["dates"] == ["2024-01-15", "2024-01-16"]
        assert "timestamp" in event

    def test_channel_name(self):
        assert EventBus.availability_channel("evt1") == "availability:evt1"

    @pytest.mark.asyncio
    async def test_publish_reaches_subscriber(self):
        client = fakeredis.FakeRedis(decode_responses=True)
        bus = EventBus(client)
        pubsub = client.pubsub()
        await pubsub.subscribe("availability:evt1")
        # Subscription confirmation
        await pubsub.get_message(timeout=1)

        event = build_availability_event("evt1", "user-a", "add", [dt.date(2024, 1, 15)])
        assert await publish_availability_changed(bus, event) is True

        message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1)
        assert message is not None
        assert json.loads(message["data"]) == event

        await pubsub.aclose()
        await client.aclose()

    @pytest.mark.asyncio
    async def test_no_bus_is_noop(self):
        event = build_availability_event("evt1", "user-a", "add", [])
        assert await publish_availability_changed(None, event) is False

    @pytest.mark.asyncio
    async def test_publish_failure_is_swallowed(self):
        bus = MagicMock()
        bus.publish_availability = AsyncMock(side_effect=ConnectionError("redis down"))
        event = build_availability_event("evt1", "user-a", "add", [dt.date(2024, 1, 15)])
        assert await publish_availability_changed(bus, event) is False
