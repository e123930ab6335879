"""Mission Quest: household missions with star rewards and a family milestone."""

from .board import MissionBoard
from .client import HttpMissionGateway
from .exceptions import GatewayError, MissionNotFoundError, MissionQuestError, ValidationError
from .gateway import MissionGateway
from .models import (
    MilestonePolicy,
    MilestoneSettings,
    Mission,
    MissionDraft,
    MissionStats,
    MutationResult,
    Notice,
    NoticeKind,
    ReconciliationPolicy,
    ToggleOutcome,
)
from .ops import StructuredLogger
from .parent_mode import GateState, ParentModeGate, PinAttempt
from .progress import percent_complete

__all__ = [
    "GateState",
    "GatewayError",
    "HttpMissionGateway",
    "MilestonePolicy",
    "MilestoneSettings",
    "Mission",
    "MissionBoard",
    "MissionDraft",
    "MissionGateway",
    "MissionNotFoundError",
    "MissionQuestError",
    "MissionStats",
    "MutationResult",
    "Notice",
    "NoticeKind",
    "ParentModeGate",
    "PinAttempt",
    "ReconciliationPolicy",
    "StructuredLogger",
    "ToggleOutcome",
    "ValidationError",
    "percent_complete",
]
