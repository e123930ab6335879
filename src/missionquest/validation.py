"""Form parsing for missions and milestone settings."""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple, Union

from .exceptions import ValidationError
from .models import MAX_STARS, MIN_STARS, MissionDraft

RawNumber = Union[int, str, None]


def parse_int(raw: Any) -> Optional[int]:
    """Parse ``raw`` as a base-10 integer, returning ``None`` when it is not one."""

    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def validate_mission(title: Any, description: Any, stars: Any) -> MissionDraft:
    """Return a :class:`MissionDraft` or raise :class:`ValidationError` with per-field messages."""

    errors: Dict[str, str] = {}
    clean_title = title.strip() if isinstance(title, str) else ""
    clean_description = description.strip() if isinstance(description, str) else ""
    if not clean_title:
        errors["title"] = "Mission title is required"
    if not clean_description:
        errors["description"] = "Mission description is required"
    star_value = parse_int(stars)
    if star_value is None:
        errors["stars"] = "Star reward must be a whole number"
    elif not MIN_STARS <= star_value <= MAX_STARS:
        errors["stars"] = f"Star reward must be between {MIN_STARS} and {MAX_STARS}"
    if errors:
        raise ValidationError(errors)
    return MissionDraft(title=clean_title, description=clean_description, stars=star_value)


def validate_goal(raw: RawNumber) -> int:
    goal = parse_int(raw)
    if goal is None or goal <= 0:
        raise ValidationError({"goal": "Goal must be a positive whole number"})
    return goal


def validate_value(raw: RawNumber) -> int:
    value = parse_int(raw)
    if value is None or value < 0:
        raise ValidationError({"value": "Current value must be zero or greater"})
    return value


def validate_milestone(goal: RawNumber, value: RawNumber) -> Tuple[int, int]:
    """Validate both milestone fields, reporting every bad field at once."""

    errors: Dict[str, str] = {}
    parsed_goal = parsed_value = 0
    try:
        parsed_goal = validate_goal(goal)
    except ValidationError as exc:
        errors.update(exc.errors)
    try:
        parsed_value = validate_value(value)
    except ValidationError as exc:
        errors.update(exc.errors)
    if errors:
        raise ValidationError(errors)
    return parsed_goal, parsed_value


__all__ = [
    "parse_int",
    "validate_mission",
    "validate_goal",
    "validate_value",
    "validate_milestone",
]
