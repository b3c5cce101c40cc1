"""Shared FastAPI dependencies.

Services are built once per app by ``main.build_services`` and live on
``app.state``; these helpers hand them to route handlers.
"""

from fastapi import Request

from focuslock.students.cheat import CheatSignalIngest
from focuslock.students.engine import TransitionEngine
from focuslock.ws.manager import RoomRegistry


def get_engine(request: Request) -> TransitionEngine:
    """Transition engine owned by the running app."""
    return request.app.state.engine


def get_cheat_ingest(request: Request) -> CheatSignalIngest:
    return request.app.state.cheat_ingest


def get_registry(request: Request) -> RoomRegistry:
    return request.app.state.registry
