"""The request/response boundary between mission views and the store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, List

from .models import MilestoneSettings, Mission, MissionDraft, MissionStats, MutationResult

InvalidationListener = Callable[[str], None]


class MissionGateway(ABC):
    """Asynchronous operations over the mission store.

    Writes never raise for store or transport failures; they log and return a
    failed :class:`MutationResult`. Reads raise
    :class:`~missionquest.exceptions.GatewayError` instead so callers decide
    how to degrade.
    """

    def __init__(self) -> None:
        self._listeners: List[InvalidationListener] = []

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------
    def subscribe(self, listener: InvalidationListener) -> Callable[[], None]:
        """Register ``listener`` to be told which view a write invalidated."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def invalidate(self, path: str = "/") -> None:
        for listener in list(self._listeners):
            listener(path)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    @abstractmethod
    async def list_missions(self) -> List[Mission]:
        """Return every mission ordered by stars, then id."""

    @abstractmethod
    async def mission_stats(self) -> MissionStats:
        ...

    @abstractmethod
    async def milestone(self) -> MilestoneSettings:
        ...

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    @abstractmethod
    async def add_mission(self, draft: MissionDraft) -> MutationResult:
        ...

    @abstractmethod
    async def toggle_mission(self, mission_id: int) -> MutationResult:
        ...

    @abstractmethod
    async def delete_mission(self, mission_id: int) -> MutationResult:
        ...

    @abstractmethod
    async def update_milestone_goal(self, goal: int) -> MutationResult:
        ...

    @abstractmethod
    async def update_milestone_value(self, value: int) -> MutationResult:
        ...

    @abstractmethod
    async def increment_milestone(self, delta: int) -> MutationResult:
        """Add ``delta`` (possibly negative) to the milestone, never going below zero."""


__all__ = ["InvalidationListener", "MissionGateway"]
