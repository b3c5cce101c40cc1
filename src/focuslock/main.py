"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from focuslock.config import Settings, get_settings
from focuslock.database import close_db, create_tables, init_db, new_session
from focuslock.health.router import router as health_router
from focuslock.middleware import setup_middleware
from focuslock.notify.webhook import WebhookClient
from focuslock.redis_client import close_redis, init_redis
from focuslock.seed import seed_student
from focuslock.students.cheat import CheatSignalIngest
from focuslock.students.engine import TransitionEngine
from focuslock.students.locks import StudentLocks
from focuslock.students.router import router as students_router
from focuslock.ws.manager import RoomRegistry
from focuslock.ws.notifier import Notifier
from focuslock.ws.router import router as ws_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    if settings.auto_create_tables:
        try:
            await create_tables()
        except Exception:
            logging.getLogger(__name__).warning("Table creation failed (database may be unreachable)", exc_info=True)

    if settings.seed_demo_student:
        try:
            async with new_session() as db:
                await seed_student(
                    db,
                    settings.demo_student_id,
                    name=settings.demo_student_name,
                    email=settings.demo_student_email,
                )
        except Exception:
            logging.getLogger(__name__).warning("Demo student seeding failed", exc_info=True)

    yield

    # Let in-flight failure webhooks finish before the pools go away
    await app.state.engine.drain()
    await close_db()
    await close_redis()


def build_services(app: FastAPI, settings: Settings) -> None:
    """Wire the room registry, notifier, engine and cheat ingest onto ``app.state``."""
    registry = RoomRegistry(send_timeout=settings.ws_send_timeout_seconds)
    notifier = Notifier(registry)
    locks = StudentLocks()
    webhook = WebhookClient(
        settings.failure_webhook_url,
        secret=settings.backend_secret,
        timeout=settings.webhook_timeout_seconds,
        user_agent=f"focuslock/{settings.app_version}",
    )

    app.state.registry = registry
    app.state.notifier = notifier
    app.state.engine = TransitionEngine(
        new_session,
        notifier,
        locks=locks,
        webhook=webhook,
        checkin_overrides_remedial=settings.checkin_overrides_remedial,
    )
    app.state.cheat_ingest = CheatSignalIngest(new_session, notifier, locks)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="FocusLock API",
        description="Daily study check-ins, mentor interventions and real-time status push",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    build_services(app, settings)
    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(students_router)
    app.include_router(ws_router)

    return app


app = create_app()
