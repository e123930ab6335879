"""Configuration constants for the Mission Quest web frontend."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from ..models import MilestonePolicy, ReconciliationPolicy

load_dotenv()

PARENT_PIN = os.environ.get("PARENT_PIN", "1234")
SESSION_SECRET = os.environ.get("SESSION_SECRET", "change-this-session-secret")
SQLITE_FILE_NAME = os.environ.get("MISSIONQUEST_SQLITE", "missionquest.db")
DATABASE_URL = os.environ.get("MISSIONQUEST_DATABASE_URL") or f"sqlite:///{SQLITE_FILE_NAME}"
MILESTONE_POLICY = MilestonePolicy(os.environ.get("MISSIONQUEST_MILESTONE_POLICY", MilestonePolicy.RATCHET.value))
RECONCILIATION_POLICY = ReconciliationPolicy(
    os.environ.get("MISSIONQUEST_RECONCILIATION", ReconciliationPolicy.KEEP_OPTIMISTIC.value)
)
_log_path = os.environ.get("MISSIONQUEST_LOG")
LOG_PATH: Optional[Path] = Path(_log_path) if _log_path else None
APP_TITLE = "Mission Quest"

__all__ = [
    "PARENT_PIN",
    "SESSION_SECRET",
    "SQLITE_FILE_NAME",
    "DATABASE_URL",
    "MILESTONE_POLICY",
    "RECONCILIATION_POLICY",
    "LOG_PATH",
    "APP_TITLE",
]
