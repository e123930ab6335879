import pytest

from missionquest.parent_mode import (
    INCORRECT_PIN_MESSAGE,
    PARENT_MODE_KEY,
    GateState,
    ParentModeGate,
    sanitize_pin,
)

SECRET = "2468"


def test_gate_starts_locked_with_empty_storage() -> None:
    gate = ParentModeGate({}, SECRET)

    assert gate.state is GateState.LOCKED
    assert not gate.unlocked


def test_correct_pin_unlocks_and_survives_reload() -> None:
    storage: dict = {}
    gate = ParentModeGate(storage, SECRET)

    attempt = gate.unlock(SECRET)

    assert attempt.unlocked and attempt.error is None
    assert storage[PARENT_MODE_KEY] == "true"
    reloaded = ParentModeGate(storage, SECRET)
    assert reloaded.state is GateState.UNLOCKED


@pytest.mark.parametrize("raw", ["", "24", "1357", "abcd", "24a6", "2a4b"])
def test_other_input_stays_locked_with_error(raw: str) -> None:
    storage: dict = {}
    gate = ParentModeGate(storage, SECRET)

    attempt = gate.unlock(raw)

    assert not attempt.unlocked
    assert attempt.error == INCORRECT_PIN_MESSAGE
    assert gate.state is GateState.LOCKED
    assert PARENT_MODE_KEY not in storage


def test_extra_digits_are_dropped_before_comparison() -> None:
    gate = ParentModeGate({}, SECRET)

    assert sanitize_pin("2 4 6 8 0") == "2468"
    assert gate.unlock("24680").unlocked


def test_lock_returns_to_locked_and_persists() -> None:
    storage: dict = {}
    gate = ParentModeGate(storage, SECRET)
    gate.unlock(SECRET)

    gate.lock()

    assert gate.state is GateState.LOCKED
    assert ParentModeGate(storage, SECRET).state is GateState.LOCKED
