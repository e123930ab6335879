"""Persistence and SQLModel definitions for the Mission Quest web frontend."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, TypeVar

from sqlalchemy import DateTime, case, delete, func, not_, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Field, Session, SQLModel, create_engine, select
from starlette.concurrency import run_in_threadpool

from ..exceptions import GatewayError
from ..gateway import MissionGateway
from ..models import (
    DEFAULT_MILESTONE_GOAL,
    FAILURE_INVALID,
    FAILURE_NOT_FOUND,
    POINTS_PER_STAR,
    STATS_TOTAL_POINTS,
    MilestoneSettings,
    Mission,
    MissionDraft,
    MissionStats,
    MutationResult,
)
from ..ops import StructuredLogger
from .config import DATABASE_URL

T = TypeVar("T")

MILESTONE_ROW_ID = 1
MISSION_NOT_FOUND_MESSAGE = "Mission not found"


# ---------------------------------------------------------------------------
# Database models
# ---------------------------------------------------------------------------
class MissionRecord(SQLModel, table=True):
    __tablename__ = "missions"
    # AUTOINCREMENT keeps SQLite from handing out the id of a deleted row again.
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: str
    stars: int
    completed: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), sa_type=DateTime(timezone=True))

    def to_mission(self) -> Mission:
        created_at = self.created_at
        # SQLite hands timestamps back without an offset; they were written as UTC.
        if created_at is not None and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return Mission(
            id=self.id or 0,
            title=self.title,
            description=self.description,
            stars=self.stars,
            completed=self.completed,
            created_at=created_at,
        )


class MilestoneSettingsRecord(SQLModel, table=True):
    __tablename__ = "milestone_settings"

    id: Optional[int] = Field(default=MILESTONE_ROW_ID, primary_key=True)
    total_goal: int = DEFAULT_MILESTONE_GOAL
    current_value: int = 0

    def to_settings(self) -> MilestoneSettings:
        return MilestoneSettings(total_goal=self.total_goal, current_value=self.current_value)


# ---------------------------------------------------------------------------
# Engine & initialisation
# ---------------------------------------------------------------------------
def build_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, echo=False)
    connect_args = {"check_same_thread": False}
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(url, echo=False, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(url, echo=False, connect_args=connect_args)


def _milestone_row(session: Session) -> MilestoneSettingsRecord:
    row = session.get(MilestoneSettingsRecord, MILESTONE_ROW_ID)
    if row is None:
        row = MilestoneSettingsRecord(id=MILESTONE_ROW_ID)
        session.add(row)
        session.commit()
        session.refresh(row)
    return row


def create_db_and_tables(target: Engine) -> None:
    SQLModel.metadata.create_all(target)
    with Session(target) as session:
        _milestone_row(session)


engine = build_engine(DATABASE_URL)
create_db_and_tables(engine)


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------
class SqlMissionGateway(MissionGateway):
    """Serve gateway operations straight from the SQL store.

    Blocking SQLModel work runs in Starlette's thread pool so callers on the
    event loop are never blocked.
    """

    def __init__(self, db_engine: Engine, *, logger: Optional[StructuredLogger] = None) -> None:
        super().__init__()
        self.engine = db_engine
        self._logger = logger or StructuredLogger()

    async def _read(self, event: str, work: Callable[[Session], T]) -> T:
        try:
            return await run_in_threadpool(self._in_session, work)
        except SQLAlchemyError as exc:
            self._logger.error(event, error=str(exc))
            raise GatewayError(str(exc)) from exc

    async def _write(self, event: str, fallback: str, work: Callable[[Session], MutationResult]) -> MutationResult:
        try:
            result = await run_in_threadpool(self._in_session, work)
        except SQLAlchemyError as exc:
            self._logger.error(event, error=str(exc))
            return MutationResult.failed(fallback)
        if result.success:
            self.invalidate("/")
        return result

    def _in_session(self, work: Callable[[Session], T]) -> T:
        with Session(self.engine) as session:
            return work(session)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def list_missions(self) -> List[Mission]:
        def run(session: Session) -> List[Mission]:
            rows = session.exec(select(MissionRecord).order_by(MissionRecord.stars, MissionRecord.id)).all()
            return [row.to_mission() for row in rows]

        return await self._read("missions_fetch_failed", run)

    async def mission_stats(self) -> MissionStats:
        def run(session: Session) -> MissionStats:
            completed_stars = session.exec(
                select(func.coalesce(func.sum(MissionRecord.stars), 0)).where(MissionRecord.completed == True)  # noqa: E712
            ).one()
            count = session.exec(select(func.count(MissionRecord.id))).one()
            return MissionStats(
                completed_points=int(completed_stars or 0) * POINTS_PER_STAR,
                total_points=STATS_TOTAL_POINTS,
                mission_count=int(count or 0),
            )

        return await self._read("stats_fetch_failed", run)

    async def milestone(self) -> MilestoneSettings:
        return await self._read("milestone_fetch_failed", lambda session: _milestone_row(session).to_settings())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def add_mission(self, draft: MissionDraft) -> MutationResult:
        def run(session: Session) -> MutationResult:
            record = MissionRecord(title=draft.title, description=draft.description, stars=draft.stars)
            session.add(record)
            session.commit()
            session.refresh(record)
            self._logger.log("mission_added", mission_id=record.id, stars=record.stars)
            return MutationResult.ok("Mission added successfully!")

        return await self._write("mission_add_failed", "Failed to add mission", run)

    async def toggle_mission(self, mission_id: int) -> MutationResult:
        def run(session: Session) -> MutationResult:
            statement = (
                update(MissionRecord)
                .where(MissionRecord.id == mission_id)
                .values(completed=not_(MissionRecord.completed))
            )
            outcome: Any = session.exec(statement)  # type: ignore[call-overload]
            session.commit()
            if not outcome.rowcount:
                return MutationResult.failed(MISSION_NOT_FOUND_MESSAGE, FAILURE_NOT_FOUND)
            return MutationResult.ok()

        return await self._write("mission_toggle_failed", "Failed to update mission", run)

    async def delete_mission(self, mission_id: int) -> MutationResult:
        def run(session: Session) -> MutationResult:
            outcome: Any = session.exec(delete(MissionRecord).where(MissionRecord.id == mission_id))  # type: ignore[call-overload]
            session.commit()
            if not outcome.rowcount:
                return MutationResult.failed(MISSION_NOT_FOUND_MESSAGE, FAILURE_NOT_FOUND)
            self._logger.log("mission_deleted", mission_id=mission_id)
            return MutationResult.ok("Mission deleted successfully")

        return await self._write("mission_delete_failed", "Failed to delete mission", run)

    async def update_milestone_goal(self, goal: int) -> MutationResult:
        if goal <= 0:
            return MutationResult.failed("Goal must be a positive number", FAILURE_INVALID)

        def run(session: Session) -> MutationResult:
            row = _milestone_row(session)
            row.total_goal = goal
            session.add(row)
            session.commit()
            return MutationResult.ok("Milestone goal updated")

        return await self._write("milestone_goal_update_failed", "Failed to update milestone goal", run)

    async def update_milestone_value(self, value: int) -> MutationResult:
        if value < 0:
            return MutationResult.failed("Current value cannot be negative", FAILURE_INVALID)

        def run(session: Session) -> MutationResult:
            row = _milestone_row(session)
            row.current_value = value
            session.add(row)
            session.commit()
            return MutationResult.ok("Milestone value updated")

        return await self._write("milestone_value_update_failed", "Failed to update milestone value", run)

    async def increment_milestone(self, delta: int) -> MutationResult:
        def run(session: Session) -> MutationResult:
            _milestone_row(session)
            shifted = MilestoneSettingsRecord.current_value + delta
            session.exec(  # type: ignore[call-overload]
                update(MilestoneSettingsRecord)
                .where(MilestoneSettingsRecord.id == MILESTONE_ROW_ID)
                .values(current_value=case((shifted < 0, 0), else_=shifted))
            )
            session.commit()
            return MutationResult.ok()

        return await self._write("milestone_increment_failed", "Failed to update milestone", run)


__all__ = [
    "engine",
    "MissionRecord",
    "MilestoneSettingsRecord",
    "MILESTONE_ROW_ID",
    "MISSION_NOT_FOUND_MESSAGE",
    "build_engine",
    "create_db_and_tables",
    "SqlMissionGateway",
]
