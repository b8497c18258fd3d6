"""Availability rows: one row per contiguous hour range per user and date.

Every mutating statement filters on ``user_id`` so a caller can only touch
their own rows.
"""

import datetime as dt
from typing import Any

from schedsync.db.core import _get_connection
from schedsync.models.slots import TimeSlot

_COLUMNS = "id, event_id, user_id, date, start_hour, end_hour, name, availability_type"


def _row_to_dict(row: tuple) -> dict[str, Any]:
    return {
        "id": row[0],
        "event_id": row[1],
        "user_id": row[2],
        "date": row[3],
        "start_hour": row[4],
        "end_hour": row[5],
        "name": row[6],
        "availability_type": row[7],
    }


async def insert_availability(event_id: str, user_id: str, day: dt.date, slot: TimeSlot) -> dict[str, Any]:
    availability_type = slot.availability_type.value if slot.availability_type else None
    async with _get_connection() as conn:
        cur = await conn.execute(
            """INSERT INTO availability (event_id, user_id, date, start_hour, end_hour, name, availability_type)
               VALUES (%s, %s, %s, %s, %s, %s, %s)
               RETURNING id""",
            (event_id, user_id, day, slot.start_hour, slot.end_hour, slot.name, availability_type),
        )
        row = await cur.fetchone()
    return {
        "id": row[0],
        "event_id": event_id,
        "user_id": user_id,
        "date": day,
        "start_hour": slot.start_hour,
        "end_hour": slot.end_hour,
        "name": slot.name,
        "availability_type": availability_type,
    }


async def delete_exact_availability(
    event_id: str, user_id: str, day: dt.date, start_hour: int, end_hour: int
) -> int:
    async with _get_connection() as conn:
        cur = await conn.execute(
            """DELETE FROM availability
               WHERE event_id = %s AND user_id = %s AND date = %s AND start_hour = %s AND end_hour = %s""",
            (event_id, user_id, day, start_hour, end_hour),
        )
        return cur.rowcount


async def fetch_user_availability(event_id: str, user_id: str, day: dt.date) -> list[dict[str, Any]]:
    async with _get_connection() as conn:
        rows = await conn.execute(
            f"""SELECT {_COLUMNS} FROM availability
                WHERE event_id = %s AND user_id = %s AND date = %s
                ORDER BY start_hour, end_hour, id""",
            (event_id, user_id, day),
        )
        return [_row_to_dict(row) async for row in rows]


async def delete_availability_row(event_id: str, user_id: str, row_id: int) -> int:
    async with _get_connection() as conn:
        cur = await conn.execute(
            "DELETE FROM availability WHERE id = %s AND event_id = %s AND user_id = %s",
            (row_id, event_id, user_id),
        )
        return cur.rowcount


async def bulk_delete_availability(
    event_id: str,
    user_id: str,
    start_date: dt.date,
    end_date: dt.date,
    slots: list[TimeSlot] | None = None,
) -> int:
    """Delete every matching row in a single statement.

    With ``slots`` the predicate matches exact ``(start_hour, end_hour)``
    pairs; without it every row of the user in the date range goes.
    """
    sql = """DELETE FROM availability
             WHERE event_id = %s AND user_id = %s AND date BETWEEN %s AND %s"""
    params: list[Any] = [event_id, user_id, start_date, end_date]
    if slots is not None:
        sql += " AND (start_hour, end_hour) IN (SELECT * FROM unnest(%s::int[], %s::int[]))"
        params.append([s.start_hour for s in slots])
        params.append([s.end_hour for s in slots])
    async with _get_connection() as conn:
        cur = await conn.execute(sql, tuple(params))
        return cur.rowcount


async def fetch_event_availability(
    event_id: str,
    start_date: dt.date | None = None,
    end_date: dt.date | None = None,
    user_id: str | None = None,
) -> list[dict[str, Any]]:
    clauses = ["event_id = %s"]
    params: list[Any] = [event_id]
    if start_date is not None:
        clauses.append("date >= %s")
        params.append(start_date)
    if end_date is not None:
        clauses.append("date <= %s")
        params.append(end_date)
    if user_id is not None:
        clauses.append("user_id = %s")
        params.append(user_id)
    where = " AND ".join(clauses)
    async with _get_connection() as conn:
        rows = await conn.execute(
            f"SELECT {_COLUMNS} FROM availability WHERE {where} ORDER BY date, user_id, start_hour, id",
            tuple(params),
        )
        return [_row_to_dict(row) async for row in rows]


async def fetch_participants(event_id: str) -> list[tuple[str, str | None]]:
    """Distinct users with at least one row, joined with their display names."""
    async with _get_connection() as conn:
        rows = await conn.execute(
            """SELECT DISTINCT a.user_id, p.display_name
               FROM availability a
               LEFT JOIN profiles p ON p.id = a.user_id
               WHERE a.event_id = %s
               ORDER BY a.user_id""",
            (event_id,),
        )
        return [(row[0], row[1]) async for row in rows]
