"""Custom exception hierarchy for the Mission Quest package."""

from __future__ import annotations

from typing import Dict, Mapping, Optional


class MissionQuestError(Exception):
    """Base class for all Mission Quest specific errors."""


class ValidationError(MissionQuestError):
    """Raised when form input is rejected before any remote call.

    ``errors`` maps each offending field name to the message shown next to it.
    """

    def __init__(self, errors: Mapping[str, str], message: Optional[str] = None) -> None:
        self.errors: Dict[str, str] = dict(errors)
        super().__init__(message or "; ".join(self.errors.values()) or "Invalid input")


class MissionNotFoundError(MissionQuestError):
    """Raised when a mission id is not part of the current mission list."""

    def __init__(self, mission_id: int) -> None:
        self.mission_id = mission_id
        super().__init__(f"Mission {mission_id} not found")


class GatewayError(MissionQuestError):
    """Raised when a gateway read cannot be served by the store."""
