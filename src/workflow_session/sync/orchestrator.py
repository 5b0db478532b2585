"""Validate -> persist -> reconcile, as a single `save()` operation.

The orchestrator runs on the editor's event loop. Validation is synchronous;
the blocking transport call is pushed to a worker thread so the editor keeps
accepting mutations while a save is in flight. Every failure is reported as a
`SaveOutcome` rather than raised, so the editing session never dies on a save.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from workflow_session.auth import Session, require_session
from workflow_session.errors import TransportError, TransportErrorKind
from workflow_session.graph.model import GraphModel, GraphPolicy
from workflow_session.transport import WorkflowSummary, WorkflowTransport
from workflow_session.validation import INVALID_WORKFLOW_MESSAGE, ValidationIssue, validate

from .state_machine import SaveSnapshot, SaveState, transition

logger = logging.getLogger(__name__)


class SaveOutcomeKind(str, Enum):
    SUCCEEDED = "succeeded"
    VALIDATION_FAILED = "validation_failed"
    NETWORK_UNAVAILABLE = "network_unavailable"
    REJECTED = "rejected"
    UNKNOWN = "unknown"
    SAVE_IN_PROGRESS = "save_in_progress"
    CANCELLED = "cancelled"


OUTCOME_MESSAGES: dict[SaveOutcomeKind, str] = {
    SaveOutcomeKind.SUCCEEDED: "Workflow saved successfully!",
    SaveOutcomeKind.VALIDATION_FAILED: INVALID_WORKFLOW_MESSAGE,
    SaveOutcomeKind.NETWORK_UNAVAILABLE: (
        "An error occurred while saving the workflow. Please refresh and re-attempt to save."
    ),
    SaveOutcomeKind.REJECTED: INVALID_WORKFLOW_MESSAGE,
    SaveOutcomeKind.UNKNOWN: "An error occurred while saving the workflow.",
    SaveOutcomeKind.SAVE_IN_PROGRESS: "A save is already in progress.",
    SaveOutcomeKind.CANCELLED: "Save cancelled.",
}

_TRANSPORT_OUTCOMES: dict[TransportErrorKind, SaveOutcomeKind] = {
    TransportErrorKind.NETWORK_UNAVAILABLE: SaveOutcomeKind.NETWORK_UNAVAILABLE,
    TransportErrorKind.REJECTED: SaveOutcomeKind.REJECTED,
    TransportErrorKind.UNKNOWN: SaveOutcomeKind.UNKNOWN,
}


@dataclass(frozen=True, slots=True)
class SaveOutcome:
    kind: SaveOutcomeKind
    workflow: WorkflowSummary | None = None
    issues: tuple[ValidationIssue, ...] = ()
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.kind is SaveOutcomeKind.SUCCEEDED

    @property
    def message(self) -> str:
        return OUTCOME_MESSAGES[self.kind]


class SaveOrchestrator:
    """Sequences a save of the open workflow and classifies the result.

    Not reentrant: while one save is validating or persisting, further calls
    return `SAVE_IN_PROGRESS` without touching the in-flight attempt.
    """

    def __init__(
        self,
        *,
        graph: GraphModel,
        transport: WorkflowTransport,
        session: Session | None,
        workflow_id: str,
        policy: GraphPolicy | None = None,
    ) -> None:
        if not workflow_id.strip():
            raise ValueError("workflow_id is required")

        self.graph = graph
        self.transport = transport
        self.session = require_session(session, require_organization=True)
        self.workflow_id = workflow_id
        self.policy = policy

        self._snapshot = SaveSnapshot(state=SaveState.IDLE)
        self._attempt = 0
        self._cancelled_attempts: set[int] = set()
        self._pending: asyncio.Future[WorkflowSummary] | None = None
        self._saved_revision: int | None = None

        self.last_outcome: SaveOutcome | None = None
        self.last_saved: WorkflowSummary | None = None

    @property
    def state(self) -> SaveState:
        return self._snapshot.state

    @property
    def busy(self) -> bool:
        return self._snapshot.busy

    @property
    def has_unsaved_changes(self) -> bool:
        return self._saved_revision != self.graph.revision

    def mark_saved(self) -> None:
        """Treat the current graph as the persisted one (e.g. right after opening it)."""

        self._saved_revision = self.graph.revision

    def _move(self, to: SaveState, *, revision: int | None = None) -> None:
        previous = self._snapshot.state
        self._snapshot = transition(current=self._snapshot, to=to, revision=revision)
        logger.debug(
            "Save state changed",
            extra={
                "workflow_id": self.workflow_id,
                "from": previous.value,
                "to": to.value,
                "revision": self._snapshot.revision,
            },
        )

    def _finish(self, outcome: SaveOutcome) -> SaveOutcome:
        terminal = SaveState.SUCCEEDED if outcome.ok else SaveState.FAILED
        self._move(terminal)
        self.last_outcome = outcome
        log = logger.info if outcome.ok else logger.warning
        log(
            "Save finished",
            extra={
                "workflow_id": self.workflow_id,
                "outcome": outcome.kind.value,
                "issues": [issue.code for issue in outcome.issues],
            },
        )
        self._move(SaveState.IDLE)
        return outcome

    def _cancelled(self, attempt: int) -> SaveOutcome:
        self._cancelled_attempts.discard(attempt)
        outcome = SaveOutcome(kind=SaveOutcomeKind.CANCELLED)
        self.last_outcome = outcome
        logger.info(
            "Save cancelled", extra={"workflow_id": self.workflow_id, "attempt": attempt}
        )
        return outcome

    async def save(self) -> SaveOutcome:
        if self.busy:
            logger.info(
                "Save already in progress",
                extra={"workflow_id": self.workflow_id, "state": self.state.value},
            )
            return SaveOutcome(kind=SaveOutcomeKind.SAVE_IN_PROGRESS)

        self._attempt += 1
        attempt = self._attempt
        revision = self.graph.revision
        self._move(SaveState.VALIDATING, revision=revision)

        try:
            result = validate(self.graph, self.policy)
        except Exception as e:
            logger.exception("Validation crashed", extra={"workflow_id": self.workflow_id})
            return self._finish(SaveOutcome(kind=SaveOutcomeKind.UNKNOWN, detail=str(e)))

        if not result.is_valid:
            return self._finish(
                SaveOutcome(kind=SaveOutcomeKind.VALIDATION_FAILED, issues=result.issues)
            )

        # Snapshot before suspending: edits made while persisting stay unsaved.
        payload = self.graph.to_json()
        self._move(SaveState.PERSISTING)

        pending = asyncio.ensure_future(
            asyncio.to_thread(self.transport.save, self.session.token, self.workflow_id, payload)
        )
        self._pending = pending
        try:
            summary = await pending
        except asyncio.CancelledError:
            if attempt in self._cancelled_attempts:
                return self._cancelled(attempt)
            # The caller's task was cancelled: reset and let cancellation propagate.
            if self._attempt == attempt and self.state is SaveState.PERSISTING:
                self._move(SaveState.IDLE)
            raise
        except TransportError as e:
            if attempt in self._cancelled_attempts:
                return self._cancelled(attempt)
            return self._finish(
                SaveOutcome(kind=_TRANSPORT_OUTCOMES[e.kind], detail=str(e))
            )
        except Exception as e:
            if attempt in self._cancelled_attempts:
                return self._cancelled(attempt)
            logger.exception(
                "Unexpected error while saving workflow",
                extra={"workflow_id": self.workflow_id},
            )
            return self._finish(SaveOutcome(kind=SaveOutcomeKind.UNKNOWN, detail=str(e)))
        finally:
            if self._pending is pending:
                self._pending = None

        if attempt in self._cancelled_attempts:
            return self._cancelled(attempt)

        self._saved_revision = revision
        self.last_saved = summary
        return self._finish(SaveOutcome(kind=SaveOutcomeKind.SUCCEEDED, workflow=summary))

    def cancel(self) -> bool:
        """Abandon the in-flight save and return to IDLE immediately.

        The discarded request is not retried. Returns False when nothing was
        being persisted.
        """

        if self.state is not SaveState.PERSISTING:
            return False

        self._cancelled_attempts.add(self._attempt)
        if self._pending is not None:
            self._pending.cancel()
        self._move(SaveState.IDLE)
        return True
