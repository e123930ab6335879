"""Domain models used by the Mission Quest package."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

POINTS_PER_STAR = 10
STATS_TOTAL_POINTS = 100
MIN_STARS = 1
MAX_STARS = 5
DEFAULT_MILESTONE_GOAL = 100
NOTICE_SECONDS = 3.0

FAILURE_ERROR = "error"
FAILURE_INVALID = "invalid"
FAILURE_NOT_FOUND = "not_found"


class MilestonePolicy(str, Enum):
    """How un-completing a mission affects the milestone counter."""

    RATCHET = "ratchet"
    SYMMETRIC = "symmetric"


class ReconciliationPolicy(str, Enum):
    """What happens to optimistic local state when a remote write fails."""

    KEEP_OPTIMISTIC = "keep"
    ROLLBACK = "rollback"


class NoticeKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


def mission_points(stars: int) -> int:
    """Return the progress points a mission with ``stars`` is worth."""

    return stars * POINTS_PER_STAR


@dataclass(slots=True, frozen=True)
class Mission:
    """A single task record as seen by the client."""

    id: int
    title: str
    description: str
    stars: int
    completed: bool = False
    created_at: Optional[datetime] = None

    @property
    def points(self) -> int:
        return mission_points(self.stars)

    def toggled(self) -> "Mission":
        return Mission(
            id=self.id,
            title=self.title,
            description=self.description,
            stars=self.stars,
            completed=not self.completed,
            created_at=self.created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "stars": self.stars,
            "completed": self.completed,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Mission":
        created_raw = payload.get("created_at")
        created_at = datetime.fromisoformat(created_raw) if created_raw else None
        return cls(
            id=int(payload["id"]),
            title=str(payload["title"]),
            description=str(payload["description"]),
            stars=int(payload["stars"]),
            completed=bool(payload.get("completed", False)),
            created_at=created_at,
        )


@dataclass(slots=True)
class MissionStats:
    """Aggregate progress across missions.

    ``total_points`` is the fixed scale of the progress bar while
    ``mission_count`` tracks how many missions exist; the two are updated
    independently.
    """

    completed_points: int = 0
    total_points: int = 0
    mission_count: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "completed_points": self.completed_points,
            "total_points": self.total_points,
            "mission_count": self.mission_count,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "MissionStats":
        return cls(
            completed_points=int(payload.get("completed_points", 0) or 0),
            total_points=int(payload.get("total_points", 0) or 0),
            mission_count=int(payload.get("mission_count", 0) or 0),
        )


@dataclass(slots=True)
class MilestoneSettings:
    """The family milestone: a goal and an ever-growing current value."""

    total_goal: int = 0
    current_value: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"total_goal": self.total_goal, "current_value": self.current_value}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "MilestoneSettings":
        return cls(
            total_goal=int(payload.get("total_goal", 0) or 0),
            current_value=int(payload.get("current_value", 0) or 0),
        )


@dataclass(slots=True, frozen=True)
class MutationResult:
    """Outcome of a single write issued against the store."""

    success: bool
    message: str = ""
    code: str = ""

    @classmethod
    def ok(cls, message: str = "") -> "MutationResult":
        return cls(True, message)

    @classmethod
    def failed(cls, message: str, code: str = FAILURE_ERROR) -> "MutationResult":
        return cls(False, message, code)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "message": self.message}


@dataclass(slots=True, frozen=True)
class ToggleOutcome:
    """Everything a caller needs to know about one completion toggle."""

    mission_id: int
    completed: bool
    delta: int
    toggle: MutationResult
    milestone: Optional[MutationResult] = None
    rolled_back: bool = False

    @property
    def success(self) -> bool:
        return self.toggle.success and (self.milestone is None or self.milestone.success)


@dataclass(slots=True, frozen=True)
class Notice:
    """Transient feedback shown above the mission list."""

    kind: NoticeKind
    text: str
    expires_at: Optional[datetime] = None

    def active(self, moment: datetime) -> bool:
        return self.expires_at is None or moment < self.expires_at


@dataclass(slots=True)
class MissionDraft:
    """Validated input for a new mission."""

    title: str
    description: str
    stars: int

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "description": self.description, "stars": self.stars}


__all__ = [
    "POINTS_PER_STAR",
    "STATS_TOTAL_POINTS",
    "MIN_STARS",
    "MAX_STARS",
    "DEFAULT_MILESTONE_GOAL",
    "NOTICE_SECONDS",
    "FAILURE_ERROR",
    "FAILURE_INVALID",
    "FAILURE_NOT_FOUND",
    "MilestonePolicy",
    "ReconciliationPolicy",
    "NoticeKind",
    "mission_points",
    "Mission",
    "MissionStats",
    "MilestoneSettings",
    "MutationResult",
    "ToggleOutcome",
    "Notice",
    "MissionDraft",
]
