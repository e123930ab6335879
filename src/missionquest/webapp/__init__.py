"""FastAPI frontend and SQL store for Mission Quest.

Needs the ``web`` extra (``pip install missionquest[web]``). Serve it with
``uvicorn missionquest.webapp:app``.
"""
from __future__ import annotations

from .application import app, event_log, new_board, use_gateway
from .persistence import SqlMissionGateway, build_engine, create_db_and_tables, engine

__all__ = [
    "app",
    "event_log",
    "new_board",
    "use_gateway",
    "SqlMissionGateway",
    "build_engine",
    "create_db_and_tables",
    "engine",
]
