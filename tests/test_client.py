import asyncio
from typing import Iterator

import httpx
import pytest

pytest.importorskip("fastapi")

from missionquest.board import MissionBoard
from missionquest.client import HttpMissionGateway
from missionquest.exceptions import GatewayError
from missionquest.models import MilestoneSettings, MissionDraft, MissionStats
from missionquest.ops import StructuredLogger
from missionquest.webapp import application
from missionquest.webapp.persistence import SqlMissionGateway, build_engine, create_db_and_tables


@pytest.fixture()
def store(tmp_path) -> Iterator[SqlMissionGateway]:
    engine = build_engine(f"sqlite:///{tmp_path / 'missions.db'}")
    create_db_and_tables(engine)
    gateway = SqlMissionGateway(engine)
    previous = application.use_gateway(gateway)
    yield gateway
    application.use_gateway(previous)
    engine.dispose()


def in_process_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=application.app), base_url="http://testserver")


def unreachable_client() -> httpx.AsyncClient:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    return httpx.AsyncClient(transport=httpx.MockTransport(refuse), base_url="http://testserver")


def test_board_over_http_ratchets_milestone(store: SqlMissionGateway) -> None:
    asyncio.run(store.add_mission(MissionDraft("Make the bed", "Pillows too", 3)))

    async def scenario():
        async with in_process_client() as http:
            board = MissionBoard(HttpMissionGateway(client=http))
            await board.load()
            mission_id = board.missions[0].id
            first = await board.toggle(mission_id)
            second = await board.toggle(mission_id)
            return board, first, second

    board, first, second = asyncio.run(scenario())

    assert first.success and first.delta == 30
    assert second.success and second.milestone is None
    assert board.milestone.current_value == 30
    assert board.stats.completed_points == 0
    assert asyncio.run(store.milestone()) == MilestoneSettings(100, 30)
    assert asyncio.run(store.mission_stats()) == MissionStats(0, 100, 1)


def test_http_gateway_reads_and_writes(store: SqlMissionGateway) -> None:
    async def scenario():
        async with in_process_client() as http:
            gateway = HttpMissionGateway(client=http)
            seen = []
            gateway.subscribe(seen.append)
            added = await gateway.add_mission(MissionDraft("Feed cat", "Half a scoop", 2))
            missions = await gateway.list_missions()
            goal = await gateway.update_milestone_goal(40)
            value = await gateway.update_milestone_value(10)
            increment = await gateway.increment_milestone(5)
            settings = await gateway.milestone()
            return seen, added, missions, (goal, value, increment), settings

    seen, added, missions, updates, settings = asyncio.run(scenario())

    assert added.success and added.message == "Mission added successfully!"
    assert [m.title for m in missions] == ["Feed cat"]
    assert missions[0].created_at is not None and missions[0].created_at.tzinfo is not None
    assert all(result.success for result in updates)
    assert settings == MilestoneSettings(40, 15)
    assert seen == ["/"] * 4


def test_http_gateway_maps_error_statuses(store: SqlMissionGateway) -> None:
    async def scenario():
        async with in_process_client() as http:
            gateway = HttpMissionGateway(client=http)
            return (
                await gateway.toggle_mission(404),
                await gateway.delete_mission(404),
                await gateway.update_milestone_goal(0),
            )

    toggled, deleted, goal = asyncio.run(scenario())

    assert toggled.code == "not_found" and toggled.message == "Mission not found"
    assert deleted.code == "not_found"
    assert not goal.success and goal.code == "invalid"


def test_unreachable_server_fails_writes_and_raises_on_reads() -> None:
    logger = StructuredLogger()

    async def scenario():
        async with unreachable_client() as http:
            gateway = HttpMissionGateway(client=http, logger=logger)
            result = await gateway.toggle_mission(1)
            with pytest.raises(GatewayError):
                await gateway.list_missions()
            return result

    result = asyncio.run(scenario())

    assert not result.success
    assert result.message == "Failed to update mission"
    assert [entry["event"] for entry in logger.tail()] == ["api_write_failed", "api_read_failed"]


def test_board_degrades_when_server_is_down() -> None:
    async def scenario():
        async with unreachable_client() as http:
            board = MissionBoard(HttpMissionGateway(client=http))
            await board.load()
            return board

    board = asyncio.run(scenario())

    assert board.missions == ()
    assert board.stats == MissionStats(0, 0, 0)
    assert board.milestone == MilestoneSettings(0, 0)
    assert board.stats_percent == 0
