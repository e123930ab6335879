from datetime import datetime, timezone

import pytest

from missionquest.exceptions import ValidationError
from missionquest.models import Mission, MissionStats, MilestoneSettings, MutationResult, ToggleOutcome
from missionquest.progress import percent_complete, progress_label, star_hint
from missionquest.validation import parse_int, validate_milestone, validate_mission


def test_percent_complete_floors_and_clamps() -> None:
    assert percent_complete(30, 100) == 30
    assert percent_complete(2, 3) == 66
    assert percent_complete(150, 100) == 100
    assert percent_complete(-10, 100) == 0


def test_percent_complete_with_zero_max_is_zero() -> None:
    assert percent_complete(0, 0) == 0
    assert percent_complete(40, 0) == 0
    assert percent_complete(40, -5) == 0


def test_progress_label_matches_display_format() -> None:
    assert progress_label(30, 100) == "(30/100) 30% Complete"
    assert progress_label(5, 0) == "(5/0) 0% Complete"


def test_star_hints_cover_every_star_value() -> None:
    assert star_hint(1).startswith("Easy peasy")
    assert star_hint(5).startswith("Super challenge")
    assert star_hint(9) == ""


def test_parse_int_accepts_ints_and_digit_strings() -> None:
    assert parse_int(4) == 4
    assert parse_int(" 12 ") == 12
    assert parse_int("") is None
    assert parse_int("three") is None
    assert parse_int(None) is None
    assert parse_int(True) is None


def test_validate_mission_trims_and_accepts_star_strings() -> None:
    draft = validate_mission("  Feed the cat ", "Fill the bowl", "3")

    assert draft.title == "Feed the cat"
    assert draft.description == "Fill the bowl"
    assert draft.stars == 3


def test_validate_mission_reports_every_bad_field() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_mission("   ", "", "lots")

    assert set(excinfo.value.errors) == {"title", "description", "stars"}
    assert excinfo.value.errors["title"] == "Mission title is required"


@pytest.mark.parametrize("stars", [0, 6, "-1"])
def test_validate_mission_rejects_out_of_range_stars(stars) -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_mission("Dishes", "Load the dishwasher", stars)

    assert "between 1 and 5" in excinfo.value.errors["stars"]


def test_validate_milestone_requires_positive_goal_and_non_negative_value() -> None:
    assert validate_milestone("200", "0") == (200, 0)

    with pytest.raises(ValidationError) as excinfo:
        validate_milestone("0", "-1")

    assert set(excinfo.value.errors) == {"goal", "value"}


def test_mission_dict_round_trip_keeps_timestamp() -> None:
    created = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)
    mission = Mission(id=7, title="Read", description="Read a chapter", stars=2, created_at=created)

    restored = Mission.from_dict(mission.to_dict())

    assert restored == mission
    assert restored.points == 20
    assert mission.toggled().completed is True
    assert mission.completed is False


def test_stats_and_milestone_tolerate_missing_fields() -> None:
    assert MissionStats.from_dict({}) == MissionStats(0, 0, 0)
    assert MilestoneSettings.from_dict({"total_goal": 50}) == MilestoneSettings(50, 0)


def test_toggle_outcome_success_requires_both_writes() -> None:
    ok = MutationResult.ok()
    failed = MutationResult.failed("boom")

    assert ToggleOutcome(1, True, 10, ok, ok).success
    assert ToggleOutcome(1, False, 10, ok, None).success
    assert not ToggleOutcome(1, True, 10, ok, failed).success
    assert failed.code == "error"


@pytest.mark.parametrize("raw", [2.5, 3.0, [3], {"stars": 3}])
def test_parse_int_rejects_non_integer_json_values(raw) -> None:
    assert parse_int(raw) is None


def test_validate_mission_treats_non_text_fields_as_missing() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_mission(5, ["Make it"], 2.5)

    assert excinfo.value.errors == {
        "title": "Mission title is required",
        "description": "Mission description is required",
        "stars": "Star reward must be a whole number",
    }


def test_validate_milestone_rejects_fractional_numbers() -> None:
    with pytest.raises(ValidationError) as excinfo:
        validate_milestone(10.5, 1.0)

    assert set(excinfo.value.errors) == {"goal", "value"}
