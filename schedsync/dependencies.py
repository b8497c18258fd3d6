"""Dependency injection for FastAPI endpoints.

Usage in controllers:
    from schedsync.dependencies import CurrentUser, OptionalBus

    @router.post("/example")
    async def example(user_id: CurrentUser, bus: OptionalBus):
        ...
"""

from typing import Annotated

from fastapi import Depends, Header

from schedsync import state
from schedsync.bus import EventBus
from schedsync.errors import ServiceUnavailableError, UnauthorizedError


def get_optional_event_bus() -> EventBus | None:
    """Get the EventBus if available, or None."""
    return state.event_bus


def require_database() -> None:
    """Reject requests that need Postgres when the pool was not opened."""
    if not state.db_enabled:
        raise ServiceUnavailableError(details="Database not enabled")


def get_current_user_id(x_user_id: Annotated[str | None, Header()] = None) -> str:
    """Caller identity, supplied by the authentication layer in front of the API.

    Raises:
        UnauthorizedError: If the X-User-Id header is missing or blank.
    """
    if x_user_id is None or not x_user_id.strip():
        raise UnauthorizedError(details="X-User-Id header required")
    return x_user_id.strip()


OptionalBus = Annotated[EventBus | None, Depends(get_optional_event_bus)]
CurrentUser = Annotated[str, Depends(get_current_user_id)]
Database = Depends(require_database)
