"""Client-side mission board kept in step with a :class:`MissionGateway`.

The board is a disposable, per-page copy of the store. Toggles are applied
locally before the store confirms them; adds and deletes wait for the store.
What happens to an optimistic change whose write fails is governed by a
:class:`~missionquest.models.ReconciliationPolicy`, and whether un-completing
a mission gives its points back to the milestone is governed by a
:class:`~missionquest.models.MilestonePolicy`.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from .exceptions import MissionNotFoundError
from .gateway import MissionGateway
from .models import (
    FAILURE_ERROR,
    NOTICE_SECONDS,
    MilestonePolicy,
    MilestoneSettings,
    Mission,
    MissionStats,
    MutationResult,
    Notice,
    NoticeKind,
    ReconciliationPolicy,
    ToggleOutcome,
)
from .ops import StructuredLogger
from .progress import percent_complete
from .validation import RawNumber, validate_milestone, validate_mission

BUSY_MESSAGE = "Still saving, please wait."


class MissionBoard:
    """In-memory view of missions, stats and the milestone."""

    def __init__(
        self,
        gateway: MissionGateway,
        *,
        milestone_policy: MilestonePolicy = MilestonePolicy.RATCHET,
        reconciliation: ReconciliationPolicy = ReconciliationPolicy.KEEP_OPTIMISTIC,
        logger: Optional[StructuredLogger] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
        notice_seconds: float = NOTICE_SECONDS,
    ) -> None:
        self._gateway = gateway
        self.milestone_policy = MilestonePolicy(milestone_policy)
        self.reconciliation = ReconciliationPolicy(reconciliation)
        self._logger = logger or StructuredLogger()
        self._clock = clock
        self._notice_window = timedelta(seconds=notice_seconds)
        self._missions: List[Mission] = []
        self.stats = MissionStats()
        self.milestone = MilestoneSettings()
        self.loading = True
        self.submitting = False
        self._notice: Optional[Notice] = None

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------
    @property
    def missions(self) -> Tuple[Mission, ...]:
        return tuple(self._missions)

    def get_mission(self, mission_id: int) -> Mission:
        return self._locate(mission_id)[1]

    @property
    def stats_percent(self) -> int:
        return percent_complete(self.stats.completed_points, self.stats.total_points)

    @property
    def milestone_percent(self) -> int:
        return percent_complete(self.milestone.current_value, self.milestone.total_goal)

    @property
    def all_missions_complete(self) -> bool:
        return self.stats_percent == 100

    @property
    def milestone_achieved(self) -> bool:
        return self.milestone_percent == 100

    @property
    def notice(self) -> Optional[Notice]:
        if self._notice is not None and not self._notice.active(self._clock()):
            self._notice = None
        return self._notice

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    async def load(self) -> None:
        """Fetch missions, stats and milestone; failed fetches fall back to empty defaults."""

        self.loading = True
        try:
            missions, stats, milestone = await asyncio.gather(
                self._gateway.list_missions(),
                self._gateway.mission_stats(),
                self._gateway.milestone(),
                return_exceptions=True,
            )
            self._missions = list(self._fetched("missions_fetch_failed", missions, []))
            self.stats = self._fetched("stats_fetch_failed", stats, MissionStats())
            self.milestone = self._fetched("milestone_fetch_failed", milestone, MilestoneSettings())
        finally:
            self.loading = False

    def _fetched(self, event: str, result: Any, default: Any) -> Any:
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            self._logger.error(event, error=str(result))
            return default
        return result

    # ------------------------------------------------------------------
    # Toggle
    # ------------------------------------------------------------------
    async def toggle(self, mission_id: int) -> ToggleOutcome:
        """Flip a mission's completion locally, then tell the store."""

        index, mission = self._locate(mission_id)
        updated = mission.toggled()
        points = mission.points
        self._missions[index] = updated
        stats_delta = points if updated.completed else -points
        self.stats.completed_points += stats_delta

        milestone_delta = self._milestone_delta(updated.completed, points)
        applied = self._shift_milestone(milestone_delta) if milestone_delta else 0

        requests: List[Awaitable[MutationResult]] = [
            self._call(self._gateway.toggle_mission(mission_id), "mission_toggle_failed", "Failed to update mission")
        ]
        if milestone_delta:
            requests.append(
                self._call(
                    self._gateway.increment_milestone(milestone_delta),
                    "milestone_increment_failed",
                    "Failed to update milestone",
                )
            )
        results = await asyncio.gather(*requests)
        toggle_result = results[0]
        milestone_result = results[1] if milestone_delta else None

        rolled_back = False
        failures: List[str] = []
        if not toggle_result.success:
            failures.append(toggle_result.message)
            if self.reconciliation is ReconciliationPolicy.ROLLBACK:
                self._revert_toggle(mission_id, stats_delta)
                rolled_back = True
        if milestone_result is not None and not milestone_result.success:
            failures.append(milestone_result.message)
            if self.reconciliation is ReconciliationPolicy.ROLLBACK:
                self._shift_milestone(-applied)
                rolled_back = True
        if failures:
            self._set_notice(NoticeKind.ERROR, " ".join(message for message in failures if message))
            self._logger.log(
                "toggle_reconciled",
                mission_id=mission_id,
                policy=self.reconciliation.value,
                rolled_back=rolled_back,
            )
        return ToggleOutcome(
            mission_id=mission_id,
            completed=updated.completed,
            delta=points,
            toggle=toggle_result,
            milestone=milestone_result,
            rolled_back=rolled_back,
        )

    def _milestone_delta(self, completed: bool, points: int) -> int:
        if completed:
            return points
        if self.milestone_policy is MilestonePolicy.SYMMETRIC:
            return -points
        return 0

    def _shift_milestone(self, delta: int) -> int:
        """Apply ``delta`` to the local milestone without going below zero; return what was applied."""

        current = self.milestone.current_value
        applied = max(delta, -current)
        self.milestone = MilestoneSettings(self.milestone.total_goal, current + applied)
        return applied

    def _revert_toggle(self, mission_id: int, stats_delta: int) -> None:
        for index, mission in enumerate(self._missions):
            if mission.id == mission_id:
                self._missions[index] = mission.toggled()
                self.stats.completed_points -= stats_delta
                return

    # ------------------------------------------------------------------
    # Add / delete
    # ------------------------------------------------------------------
    async def add_mission(self, title: Optional[str], description: Optional[str], stars: RawNumber) -> MutationResult:
        """Validate and store a new mission, then reload the whole board.

        Raises :class:`~missionquest.exceptions.ValidationError` before any
        remote call when the input is rejected.
        """

        if self.submitting:
            return MutationResult.failed(BUSY_MESSAGE)
        draft = validate_mission(title, description, stars)
        self.submitting = True
        try:
            result = await self._call(self._gateway.add_mission(draft), "mission_add_failed", "Failed to add mission")
        finally:
            self.submitting = False
        if not result.success:
            self._set_notice(NoticeKind.ERROR, result.message)
            return result
        await self.load()
        self._set_notice(NoticeKind.SUCCESS, result.message or "Mission added successfully!")
        return result

    async def delete_mission(self, mission_id: int) -> MutationResult:
        """Delete remotely first; only a confirmed delete touches local state."""

        self._locate(mission_id)
        result = await self._call(
            self._gateway.delete_mission(mission_id), "mission_delete_failed", "Failed to delete mission"
        )
        if not result.success:
            self._set_notice(NoticeKind.ERROR, result.message)
            return result
        for index, mission in enumerate(self._missions):
            if mission.id == mission_id:
                removed = self._missions.pop(index)
                if removed.completed:
                    self.stats.completed_points -= removed.points
                self.stats.mission_count = max(0, self.stats.mission_count - 1)
                break
        self._set_notice(NoticeKind.SUCCESS, result.message or "Mission deleted successfully")
        return result

    # ------------------------------------------------------------------
    # Milestone
    # ------------------------------------------------------------------
    async def update_milestone(self, goal: RawNumber, value: RawNumber) -> MutationResult:
        """Save changed milestone fields; local state only changes once every write succeeded."""

        if self.submitting:
            return MutationResult.failed(BUSY_MESSAGE)
        new_goal, new_value = validate_milestone(goal, value)
        self.submitting = True
        self._notice = None
        try:
            if new_goal != self.milestone.total_goal:
                result = await self._call(
                    self._gateway.update_milestone_goal(new_goal),
                    "milestone_goal_update_failed",
                    "Failed to update milestone",
                )
                if not result.success:
                    self._set_notice(NoticeKind.ERROR, result.message)
                    return result
            if new_value != self.milestone.current_value:
                result = await self._call(
                    self._gateway.update_milestone_value(new_value),
                    "milestone_value_update_failed",
                    "Failed to update milestone",
                )
                if not result.success:
                    self._set_notice(NoticeKind.ERROR, result.message)
                    return result
        finally:
            self.submitting = False
        self.milestone = MilestoneSettings(total_goal=new_goal, current_value=new_value)
        message = "Milestone updated successfully"
        self._set_notice(NoticeKind.SUCCESS, message)
        return MutationResult.ok(message)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _locate(self, mission_id: int) -> Tuple[int, Mission]:
        for index, mission in enumerate(self._missions):
            if mission.id == mission_id:
                return index, mission
        raise MissionNotFoundError(mission_id)

    async def _call(
        self, request: Awaitable[MutationResult], event: str, fallback: str
    ) -> MutationResult:
        try:
            result = await request
        except Exception as exc:
            self._logger.error(event, error=str(exc))
            return MutationResult.failed(fallback)
        if not result.success:
            self._logger.error(event, error=result.message)
            if not result.message:
                return MutationResult.failed(fallback, result.code or FAILURE_ERROR)
        return result

    def _set_notice(self, kind: NoticeKind, text: str) -> None:
        expires_at: Optional[datetime] = None
        if kind is NoticeKind.SUCCESS:
            expires_at = self._clock() + self._notice_window
        self._notice = Notice(kind=kind, text=text, expires_at=expires_at)


__all__ = ["BUSY_MESSAGE", "MissionBoard"]
