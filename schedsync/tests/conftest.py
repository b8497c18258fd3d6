import os
import sys
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

import datetime as dt
import itertools

import pytest
from fastapi.testclient import TestClient
import fakeredis.aioredis as fakeredis

import schedsync.lifespan as lifespan
import schedsync.main as main
from schedsync import state


class _AwaitableRedis:
    def __init__(self, client):
        self._client = client

    def __await__(self):
        async def _coro():
            return self._client

        return _coro().__await__()


class InMemoryStore:
    """Stands in for ``schedsync.db`` in tests; same coroutine names and row dicts."""

    def __init__(self):
        self.rows: list[dict] = []
        self.events: dict[str, dict] = {}
        self.profiles: dict[str, str | None] = {}
        self._ids = itertools.count(1)
        self.calls: list[str] = []
        # Number of inserts allowed before every further insert raises
        self.fail_inserts_after: int | None = None
        self._inserts = 0

    def add_row(self, event_id, user_id, day, start_hour, end_hour, name=None, availability_type=None):
        row = {
            "id": next(self._ids),
            "event_id": event_id,
            "user_id": user_id,
            "date": day,
            "start_hour": start_hour,
            "end_hour": end_hour,
            "name": name,
            "availability_type": availability_type,
        }
        self.rows.append(row)
        return row

    def ranges(self, event_id, user_id, day):
        return sorted(
            (r["start_hour"], r["end_hour"])
            for r in self.rows
            if r["event_id"] == event_id and r["user_id"] == user_id and r["date"] == day
        )

    async def insert_availability(self, event_id, user_id, day, slot):
        self.calls.append("insert_availability")
        if self.fail_inserts_after is not None and self._inserts >= self.fail_inserts_after:
            raise RuntimeError("insert failed")
        self._inserts += 1
        availability_type = slot.availability_type.value if slot.availability_type else None
        return dict(self.add_row(event_id, user_id, day, slot.start_hour, slot.end_hour, slot.name, availability_type))

    async def delete_exact_availability(self, event_id, user_id, day, start_hour, end_hour):
        self.calls.append("delete_exact_availability")
        before = len(self.rows)
        self.rows = [
            r for r in self.rows
            if not (
                r["event_id"] == event_id and r["user_id"] == user_id and r["date"] == day
                and r["start_hour"] == start_hour and r["end_hour"] == end_hour
            )
        ]
        return before - len(self.rows)

    async def fetch_user_availability(self, event_id, user_id, day):
        self.calls.append("fetch_user_availability")
        rows = [
            dict(r) for r in self.rows
            if r["event_id"] == event_id and r["user_id"] == user_id and r["date"] == day
        ]
        return sorted(rows, key=lambda r: (r["start_hour"], r["end_hour"], r["id"]))

    async def delete_availability_row(self, event_id, user_id, row_id):
        self.calls.append("delete_availability_row")
        before = len(self.rows)
        self.rows = [
            r for r in self.rows
            if not (r["id"] == row_id and r["event_id"] == event_id and r["user_id"] == user_id)
        ]
        return before - len(self.rows)

    async def bulk_delete_availability(self, event_id, user_id, start_date, end_date, slots=None):
        self.calls.append("bulk_delete_availability")
        pairs = None if slots is None else {(s.start_hour, s.end_hour) for s in slots}
        before = len(self.rows)
        self.rows = [
            r for r in self.rows
            if not (
                r["event_id"] == event_id and r["user_id"] == user_id
                and start_date <= r["date"] <= end_date
                and (pairs is None or (r["start_hour"], r["end_hour"]) in pairs)
            )
        ]
        return before - len(self.rows)

    async def fetch_event_availability(self, event_id, start_date=None, end_date=None, user_id=None):
        rows = [
            dict(r) for r in self.rows
            if r["event_id"] == event_id
            and (start_date is None or r["date"] >= start_date)
            and (end_date is None or r["date"] <= end_date)
            and (user_id is None or r["user_id"] == user_id)
        ]
        return sorted(rows, key=lambda r: (r["date"], r["user_id"], r["start_hour"], r["id"]))

    async def fetch_participants(self, event_id):
        users = sorted({r["user_id"] for r in self.rows if r["event_id"] == event_id})
        return [(u, self.profiles.get(u)) for u in users]

    async def create_event(self, name, start_date, end_date, description=None, window_start=None, window_end=None):
        event_id = f"evt{len(self.events) + 1}"
        self.events[event_id] = {
            "id": event_id,
            "name": name,
            "description": description,
            "start_date": start_date,
            "end_date": end_date,
            "window_start": window_start,
            "window_end": window_end,
            "created_at": "2024-01-01T00:00:00+00:00",
        }
        return dict(self.events[event_id])

    async def get_event(self, event_id):
        event = self.events.get(event_id)
        return dict(event) if event else None

    async def upsert_profile(self, user_id, display_name):
        self.profiles[user_id] = display_name
        return {"id": user_id, "display_name": display_name, "updated_at": "2024-01-01T00:00:00+00:00"}

    def get_pool_stats(self):
        return {"status": "not_initialized"}


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def client(monkeypatch):
    def fake_redis_constructor(*_args, **_kwargs):
        fake = fakeredis.FakeRedis(decode_responses=True)
        return _AwaitableRedis(fake)

    monkeypatch.setattr(lifespan.redis, "Redis", fake_redis_constructor)

    with TestClient(main.app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def db_client(client, monkeypatch, memory_store):
    """App client backed by the in-memory store, with one event from 2024-01-15 to 2024-01-19."""
    import schedsync.controllers.availability as availability_controller
    import schedsync.controllers.events as events_controller
    import schedsync.scheduling as scheduling

    for module in (scheduling, availability_controller, events_controller):
        monkeypatch.setattr(module, "db", memory_store)
    monkeypatch.setattr(state, "db_enabled", True)
    memory_store.events["evt1"] = {
        "id": "evt1",
        "name": "Team offsite",
        "description": None,
        "start_date": dt.date(2024, 1, 15),
        "end_date": dt.date(2024, 1, 19),
        "window_start": None,
        "window_end": None,
        "created_at": "2024-01-01T00:00:00+00:00",
    }
    return client
