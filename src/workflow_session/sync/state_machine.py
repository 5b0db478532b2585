from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SaveState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    PERSISTING = "persisting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[SaveState, set[SaveState]] = {
    SaveState.IDLE: {SaveState.VALIDATING},
    SaveState.VALIDATING: {SaveState.PERSISTING, SaveState.FAILED},
    # PERSISTING -> IDLE is the cancellation path.
    SaveState.PERSISTING: {SaveState.SUCCEEDED, SaveState.FAILED, SaveState.IDLE},
    SaveState.SUCCEEDED: {SaveState.IDLE},
    SaveState.FAILED: {SaveState.IDLE},
}

BUSY_STATES = frozenset({SaveState.VALIDATING, SaveState.PERSISTING})


class IllegalTransitionError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class SaveSnapshot:
    """Where the save machine is, and for which graph revision."""

    state: SaveState
    revision: int | None = None

    @property
    def busy(self) -> bool:
        return self.state in BUSY_STATES

    def to_json(self) -> dict[str, object]:
        return {"state": self.state.value, "revision": self.revision}


def transition(
    *, current: SaveSnapshot, to: SaveState, revision: int | None = None
) -> SaveSnapshot:
    allowed = ALLOWED_TRANSITIONS.get(current.state, set())
    if to not in allowed:
        raise IllegalTransitionError(f"Illegal transition: {current.state.value} -> {to.value}")
    if to is SaveState.IDLE:
        return SaveSnapshot(state=to)
    return SaveSnapshot(state=to, revision=current.revision if revision is None else revision)
