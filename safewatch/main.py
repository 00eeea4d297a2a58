"""SafeWatch FastAPI application."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from safewatch.api import alerts, auth, contacts, health, journey, location, unsafe, ws
from safewatch.core.config import settings
from safewatch.core.scheduler import AsyncioTaskScheduler
from safewatch.core.ws_manager import ws_manager
from safewatch.db.session import SessionLocal
from safewatch.services.safety_service import SafetyService

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    loop = asyncio.get_running_loop()
    ws_manager.bind_loop(loop)
    safety = SafetyService(SessionLocal, AsyncioTaskScheduler(loop), publisher=ws_manager)
    app.state.safety = safety
    safety.start()
    logger.info("%s started", settings.app_name)
    try:
        yield
    finally:
        safety.shutdown()
        ws_manager.bind_loop(None)


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(alerts.router)
app.include_router(location.router)
app.include_router(journey.router)
app.include_router(unsafe.router)
app.include_router(contacts.router)
app.include_router(ws.router)
