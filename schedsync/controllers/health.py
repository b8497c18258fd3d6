import logging
from typing import Any, Dict

from fastapi import APIRouter

from schedsync import db, state
from schedsync.db.schema import get_schema_info

logger = logging.getLogger("schedsync.controllers.health")

router = APIRouter()


@router.get("/health")
async def health() -> Dict[str, Any]:
    redis_status = "disconnected"
    if state.redis_client:
        try:
            await state.redis_client.ping()
            redis_status = "healthy"
        except Exception:
            redis_status = "unhealthy"

    database: Dict[str, Any] = dict(db.get_pool_stats())
    if state.db_enabled:
        try:
            database["schema_version"] = (await get_schema_info())["current_version"]
        except Exception as e:
            logger.warning("Schema version lookup failed: %s", e)
            database["schema_version"] = None

    return {"status": "ok", "redis": redis_status, "database": database}
