"""Save/sync orchestration: the save state machine and the orchestrator driving it."""

from workflow_session.sync.orchestrator import (
    OUTCOME_MESSAGES,
    SaveOrchestrator,
    SaveOutcome,
    SaveOutcomeKind,
)
from workflow_session.sync.state_machine import (
    ALLOWED_TRANSITIONS,
    IllegalTransitionError,
    SaveSnapshot,
    SaveState,
    transition,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "OUTCOME_MESSAGES",
    "IllegalTransitionError",
    "SaveOrchestrator",
    "SaveOutcome",
    "SaveOutcomeKind",
    "SaveSnapshot",
    "SaveState",
    "transition",
]
