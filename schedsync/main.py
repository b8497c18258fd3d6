import logging

logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
)
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from schedsync.config import get_settings
from schedsync.controllers.availability import router as availability_router
from schedsync.controllers.chat import router as chat_router
from schedsync.controllers.events import router as events_router
from schedsync.controllers.health import router as health_router
from schedsync.controllers.interpret import router as interpret_router
from schedsync.errors import register_exception_handlers
from schedsync.lifespan import cleanup_resources, setup_resources
from schedsync.middleware import HTTPLogMiddleware

settings = get_settings()

app = FastAPI(title="Schedule Sync API", version="1.0.0")

# Preflight requests are answered here and never reach a handler
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins,
    allow_origin_regex=settings.cors.origins_regex or None,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.debug.request:
    logging.getLogger("schedsync.http").setLevel(logging.DEBUG)
    app.add_middleware(HTTPLogMiddleware)

register_exception_handlers(app)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    resources = await setup_resources()
    try:
        yield
    finally:
        await cleanup_resources(resources)

app.router.lifespan_context = lifespan

app.include_router(health_router)
app.include_router(interpret_router)
app.include_router(events_router)
app.include_router(availability_router)
app.include_router(chat_router)
