"""Parent mode: a PIN-unlocked UI state kept in the caller's session storage.

This is a convenience gate for the family UI, not a security boundary. The
flag lives wherever the caller keeps session state (a cookie-backed session
in the web app) and nothing server-side checks it on the JSON API.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, MutableMapping, Optional

PARENT_MODE_KEY = "kids_mission_parent_mode"
PIN_LENGTH = 4
INCORRECT_PIN_MESSAGE = "Incorrect PIN. Please try again."

_NON_DIGITS = re.compile(r"[^0-9]")


class GateState(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"


@dataclass(slots=True, frozen=True)
class PinAttempt:
    """Result of one PIN entry."""

    unlocked: bool
    error: Optional[str] = None


def sanitize_pin(raw: Optional[str]) -> str:
    """Keep only digits and at most :data:`PIN_LENGTH` of them."""

    return _NON_DIGITS.sub("", raw or "")[:PIN_LENGTH]


class ParentModeGate:
    """Read and write the parent-mode flag stored under :data:`PARENT_MODE_KEY`."""

    def __init__(self, storage: MutableMapping[str, Any], secret: str) -> None:
        self._storage = storage
        self._secret = secret

    @property
    def state(self) -> GateState:
        return GateState.UNLOCKED if self._storage.get(PARENT_MODE_KEY) == "true" else GateState.LOCKED

    @property
    def unlocked(self) -> bool:
        return self.state is GateState.UNLOCKED

    def unlock(self, raw_pin: Optional[str]) -> PinAttempt:
        pin = sanitize_pin(raw_pin)
        if len(pin) == PIN_LENGTH and pin == self._secret:
            self._storage[PARENT_MODE_KEY] = "true"
            return PinAttempt(unlocked=True)
        return PinAttempt(unlocked=False, error=INCORRECT_PIN_MESSAGE)

    def lock(self) -> None:
        self._storage[PARENT_MODE_KEY] = "false"


__all__ = [
    "PARENT_MODE_KEY",
    "PIN_LENGTH",
    "INCORRECT_PIN_MESSAGE",
    "GateState",
    "PinAttempt",
    "sanitize_pin",
    "ParentModeGate",
]
