import datetime as dt
import secrets
import string
from datetime import UTC, datetime
from typing import Any

from psycopg import errors as pg_errors

from schedsync.db.core import _get_connection


def _generate_event_id(length: int = 10) -> str:
    chars = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(chars) for _ in range(length))


async def create_event(
    name: str,
    start_date: dt.date,
    end_date: dt.date,
    description: str | None = None,
    window_start: int | None = None,
    window_end: int | None = None,
) -> dict[str, Any]:
    now = datetime.now(UTC)
    async with _get_connection() as conn:
        for _ in range(10):
            event_id = _generate_event_id()
            try:
                await conn.execute(
                    """INSERT INTO schedule_events (id, name, description, start_date, end_date, window_start, window_end, created_at)
                       VALUES (%s, %s, %s, %s, %s, %s, %s, %s)""",
                    (event_id, name, description, start_date, end_date, window_start, window_end, now),
                )
                return {
                    "id": event_id,
                    "name": name,
                    "description": description,
                    "start_date": start_date,
                    "end_date": end_date,
                    "window_start": window_start,
                    "window_end": window_end,
                    "created_at": now.isoformat(),
                }
            except pg_errors.UniqueViolation:
                continue
        raise RuntimeError("Failed to generate unique event ID")


async def get_event(event_id: str) -> dict[str, Any] | None:
    async with _get_connection() as conn:
        rows = await conn.execute(
            """SELECT id, name, description, start_date, end_date, window_start, window_end, created_at
               FROM schedule_events WHERE id = %s""",
            (event_id,),
        )
        row = await rows.fetchone()
        if not row:
            return None
        return {
            "id": row[0],
            "name": row[1],
            "description": row[2],
            "start_date": row[3],
            "end_date": row[4],
            "window_start": row[5],
            "window_end": row[6],
            "created_at": row[7].astimezone(UTC).isoformat(),
        }


async def upsert_profile(user_id: str, display_name: str | None) -> dict[str, Any]:
    now = datetime.now(UTC)
    async with _get_connection() as conn:
        await conn.execute(
            """INSERT INTO profiles (id, display_name, updated_at)
               VALUES (%s, %s, %s)
               ON CONFLICT (id) DO UPDATE SET display_name = EXCLUDED.display_name, updated_at = EXCLUDED.updated_at""",
            (user_id, display_name, now),
        )
    return {"id": user_id, "display_name": display_name, "updated_at": now.isoformat()}
