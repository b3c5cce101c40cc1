"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from focuslock.database import close_db, create_tables, init_db, new_session
from focuslock.students.cheat import CheatSignalIngest
from focuslock.students.engine import TransitionEngine
from focuslock.ws.manager import RoomRegistry
from focuslock.ws.notifier import Notifier


def make_ws(*, fail_send: bool = False, stall_send: bool = False) -> MagicMock:
    """Create a mock WebSocket.

    ``stall_send`` makes every send hang forever, like a peer that stopped
    reading without closing the connection.
    """
    ws = AsyncMock()
    ws.accept = AsyncMock()
    if fail_send:
        ws.send_text = AsyncMock(side_effect=RuntimeError("connection closed"))
    elif stall_send:

        async def never_completes(_payload: str) -> None:
            await asyncio.Event().wait()

        ws.send_text = AsyncMock(side_effect=never_completes)
    else:
        ws.send_text = AsyncMock()
    return ws


def aware(value: datetime) -> datetime:
    """SQLite returns naive datetimes; everything is stored in UTC."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[str, None]:
    """Fresh SQLite database file with all tables created."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'focuslock.db'}"
    await init_db(url)
    await create_tables()
    yield url
    await close_db()


@pytest.fixture
def registry() -> RoomRegistry:
    return RoomRegistry()


@pytest.fixture
def notifier(registry: RoomRegistry) -> Notifier:
    return Notifier(registry)


@pytest_asyncio.fixture
async def engine(database: str, notifier: Notifier) -> TransitionEngine:
    """Engine with the default check-in override policy and no webhook."""
    return TransitionEngine(new_session, notifier)


@pytest_asyncio.fixture
async def cheat_ingest(engine: TransitionEngine, notifier: Notifier) -> CheatSignalIngest:
    return CheatSignalIngest(new_session, notifier, engine.locks)


@pytest_asyncio.fixture
async def app(database: str) -> FastAPI:
    from focuslock.main import create_app

    return create_app()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the app (lifespan not run; database from fixture)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
