"""Helpers for turning progress counters into display percentages."""

from __future__ import annotations

import math

STAR_HINTS = {
    1: "Easy peasy! A quick and simple task.",
    2: "A bit of effort needed, but not too hard!",
    3: "Medium difficulty, requires some work.",
    4: "Challenging task that takes real effort!",
    5: "Super challenge! A major accomplishment!",
}


def percent_complete(value: int, max_value: int) -> int:
    """Return ``floor(min(value / max_value, 1) * 100)`` as an int.

    A non-positive ``max_value`` yields 0 and negative values clamp to 0.
    """

    if max_value <= 0:
        return 0
    ratio = min(value / max_value, 1)
    if ratio <= 0:
        return 0
    return int(math.floor(ratio * 100))


def progress_label(value: int, max_value: int) -> str:
    pct = percent_complete(value, max_value)
    return f"({value}/{max_value}) {pct}% Complete"


def star_hint(stars: int) -> str:
    return STAR_HINTS.get(stars, "")


__all__ = ["STAR_HINTS", "percent_complete", "progress_label", "star_hint"]
