import asyncio
from datetime import timedelta

import pytest

pytest.importorskip("sqlmodel")
from sqlmodel import Session, select

from missionquest.exceptions import GatewayError
from missionquest.models import MilestoneSettings, MissionDraft, MissionStats
from missionquest.ops import StructuredLogger
from missionquest.webapp.persistence import (
    MilestoneSettingsRecord,
    SqlMissionGateway,
    build_engine,
    create_db_and_tables,
)


@pytest.fixture()
def gateway(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'missions.db'}")
    create_db_and_tables(engine)
    yield SqlMissionGateway(engine, logger=StructuredLogger())
    engine.dispose()


def add(gateway: SqlMissionGateway, title: str, stars: int) -> None:
    result = asyncio.run(gateway.add_mission(MissionDraft(title, f"{title} details", stars)))
    assert result.success


def test_tables_start_with_seeded_milestone(gateway) -> None:
    assert asyncio.run(gateway.list_missions()) == []
    assert asyncio.run(gateway.milestone()) == MilestoneSettings(100, 0)
    assert asyncio.run(gateway.mission_stats()) == MissionStats(0, 100, 0)


def test_added_mission_is_listed_incomplete_with_timestamp(gateway) -> None:
    result = asyncio.run(gateway.add_mission(MissionDraft("Feed fish", "Two pinches", 2)))

    assert result.success and result.message == "Mission added successfully!"
    [mission] = asyncio.run(gateway.list_missions())
    assert mission.title == "Feed fish"
    assert mission.stars == 2
    assert mission.completed is False
    assert mission.created_at is not None
    assert mission.created_at.utcoffset() == timedelta(0)


def test_missions_are_ordered_by_stars_then_id(gateway) -> None:
    add(gateway, "Big", 5)
    add(gateway, "Small", 1)
    add(gateway, "Also small", 1)

    titles = [m.title for m in asyncio.run(gateway.list_missions())]

    assert titles == ["Small", "Also small", "Big"]


def test_toggle_flips_and_feeds_stats(gateway) -> None:
    add(gateway, "Dishes", 3)
    add(gateway, "Trash", 2)
    dishes, trash = sorted(asyncio.run(gateway.list_missions()), key=lambda m: m.title)

    assert asyncio.run(gateway.toggle_mission(dishes.id)).success
    assert asyncio.run(gateway.mission_stats()) == MissionStats(30, 100, 2)

    asyncio.run(gateway.toggle_mission(trash.id))
    assert asyncio.run(gateway.mission_stats()).completed_points == 50

    asyncio.run(gateway.toggle_mission(dishes.id))
    listed = {m.id: m.completed for m in asyncio.run(gateway.list_missions())}
    assert listed == {dishes.id: False, trash.id: True}


def test_toggle_and_delete_report_missing_missions(gateway) -> None:
    toggled = asyncio.run(gateway.toggle_mission(404))
    deleted = asyncio.run(gateway.delete_mission(404))

    assert not toggled.success and toggled.code == "not_found"
    assert not deleted.success and deleted.code == "not_found"


def test_deleted_ids_are_never_reused(gateway) -> None:
    add(gateway, "First", 1)
    add(gateway, "Second", 2)
    second = asyncio.run(gateway.list_missions())[-1]

    assert asyncio.run(gateway.delete_mission(second.id)).success
    assert second.id not in {m.id for m in asyncio.run(gateway.list_missions())}

    add(gateway, "Third", 3)
    ids = [m.id for m in asyncio.run(gateway.list_missions())]
    assert ids[-1] > second.id


def test_milestone_updates_validate_and_persist(gateway) -> None:
    assert not asyncio.run(gateway.update_milestone_goal(0)).success
    assert not asyncio.run(gateway.update_milestone_value(-1)).success

    assert asyncio.run(gateway.update_milestone_goal(500)).success
    assert asyncio.run(gateway.update_milestone_value(120)).success

    assert asyncio.run(gateway.milestone()) == MilestoneSettings(500, 120)
    with Session(gateway.engine) as session:
        rows = session.exec(select(MilestoneSettingsRecord)).all()
        assert len(rows) == 1


def test_increment_accumulates_and_clamps_at_zero(gateway) -> None:
    asyncio.run(gateway.increment_milestone(30))
    asyncio.run(gateway.increment_milestone(20))
    assert asyncio.run(gateway.milestone()).current_value == 50

    asyncio.run(gateway.increment_milestone(-80))
    assert asyncio.run(gateway.milestone()).current_value == 0


def test_successful_writes_notify_listeners(gateway) -> None:
    seen = []
    unsubscribe = gateway.subscribe(seen.append)

    add(gateway, "Laundry", 2)
    asyncio.run(gateway.toggle_mission(999))
    unsubscribe()
    add(gateway, "Sweep", 1)

    assert seen == ["/"]


def test_store_failures_are_logged(tmp_path) -> None:
    engine = build_engine(f"sqlite:///{tmp_path / 'broken.db'}")
    logger = StructuredLogger()
    gateway = SqlMissionGateway(engine, logger=logger)

    with pytest.raises(GatewayError):
        asyncio.run(gateway.list_missions())
    result = asyncio.run(gateway.add_mission(MissionDraft("Dust", "Shelves", 1)))

    assert not result.success and result.message == "Failed to add mission"
    assert [entry["event"] for entry in logger.tail()] == ["missions_fetch_failed", "mission_add_failed"]
    assert all(entry["level"] == "error" for entry in logger.tail())
    engine.dispose()
