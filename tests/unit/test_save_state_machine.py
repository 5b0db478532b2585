"""Unit tests for the explicit save state machine.

These tests assert that illegal transitions fail loudly and that every
terminal state leads back to IDLE.
"""

from __future__ import annotations

import pytest

from workflow_session.sync.state_machine import (
    ALLOWED_TRANSITIONS,
    IllegalTransitionError,
    SaveSnapshot,
    SaveState,
    transition,
)


def test_transition_rejects_illegal_transitions() -> None:
    snap = SaveSnapshot(state=SaveState.IDLE)
    with pytest.raises(IllegalTransitionError):
        transition(current=snap, to=SaveState.PERSISTING)


def test_happy_path_carries_revision_until_reset() -> None:
    idle = SaveSnapshot(state=SaveState.IDLE)
    snap = transition(current=idle, to=SaveState.VALIDATING, revision=7)
    snap = transition(current=snap, to=SaveState.PERSISTING)
    assert snap.revision == 7
    assert snap.busy

    snap = transition(current=snap, to=SaveState.SUCCEEDED)
    assert not snap.busy
    snap = transition(current=snap, to=SaveState.IDLE)
    assert snap == SaveSnapshot(state=SaveState.IDLE)


def test_persisting_can_be_cancelled_back_to_idle() -> None:
    snap = SaveSnapshot(state=SaveState.PERSISTING, revision=3)
    assert transition(current=snap, to=SaveState.IDLE).state is SaveState.IDLE


def test_every_state_can_reach_idle() -> None:
    for state in SaveState:
        seen = {state}
        frontier = [state]
        while frontier:
            current = frontier.pop()
            for nxt in ALLOWED_TRANSITIONS[current]:
                if nxt not in seen:
                    seen.add(nxt)
                    frontier.append(nxt)
        assert SaveState.IDLE in seen or state is SaveState.IDLE


def test_snapshot_to_json() -> None:
    assert SaveSnapshot(state=SaveState.VALIDATING, revision=2).to_json() == {
        "state": "validating",
        "revision": 2,
    }
