"""Editing session for one open workflow.

`WorkflowEditor` wires the graph model, the mutation API, presence and the
save orchestrator together for the signed-in user. All context (session,
workflow id, participant identity) is passed in explicitly.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from workflow_session.auth import Session, require_session
from workflow_session.catalog import BlockCatalog, BlockDefinition
from workflow_session.graph.model import (
    Edge,
    GraphModel,
    GraphPolicy,
    IdFactory,
    Node,
    NodeSpec,
    Position,
    new_id,
)
from workflow_session.graph.mutations import GraphMutations
from workflow_session.presence import PresenceBroadcaster, PresenceChannel, PresenceTracker
from workflow_session.sync.orchestrator import SaveOrchestrator, SaveOutcome
from workflow_session.transport import WorkflowDocument, WorkflowSummary, WorkflowTransport
from workflow_session.validation import ValidationResult, validate

logger = logging.getLogger(__name__)


class WorkflowEditor:
    def __init__(
        self,
        *,
        session: Session | None,
        transport: WorkflowTransport,
        catalog: BlockCatalog | None = None,
        policy: GraphPolicy | None = None,
        presence_timeout_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        id_factory: IdFactory = new_id,
    ) -> None:
        self.session = require_session(session, require_organization=True)
        self.transport = transport
        self.catalog = catalog or BlockCatalog()

        self.graph = GraphModel(policy=policy, id_factory=id_factory)
        self.mutations = GraphMutations(self.graph)
        self.presence = PresenceTracker(
            timeout_seconds=presence_timeout_seconds,
            clock=clock,
            local_participant_id=self.session.user.id,
        )

        self.workflow: WorkflowSummary | None = None
        self.orchestrator: SaveOrchestrator | None = None
        self._unsubscribe_broadcast: Callable[[], None] | None = None

    @property
    def participant_id(self) -> str:
        return self.session.user.id

    @property
    def blocks(self) -> list[BlockDefinition]:
        return list(self.catalog)

    def list_workflows(self) -> list[WorkflowSummary]:
        return self.transport.get_all(self.session.token)

    def create_workflow(self, name: str, description: str = "") -> WorkflowSummary:
        if not name.strip():
            raise ValueError("Please enter a workflow name.")
        summary = self.transport.create(
            self.session.token, name=name.strip(), description=description
        )
        logger.info("Workflow created", extra={"workflow_id": summary.id})
        return summary

    def open(self, workflow_id: str, *, channel: PresenceChannel | None = None) -> WorkflowDocument:
        """Load a workflow into the editor, replacing whatever was open.

        The current workflow stays open if fetching or parsing the new one fails.
        """

        document = self.transport.get(self.session.token, workflow_id)
        nodes = [Node.from_json(item) for item in document.nodes]
        edges = [Edge.from_json(item) for item in document.edges]

        self.close()
        self.mutations.restore(nodes, edges)

        self.workflow = WorkflowSummary(
            id=document.id, name=document.name, description=document.description
        )
        self.orchestrator = SaveOrchestrator(
            graph=self.graph,
            transport=self.transport,
            session=self.session,
            workflow_id=document.id,
            policy=self.graph.policy,
        )
        self.orchestrator.mark_saved()

        self.presence.join(self.participant_id, self.session.user)
        if channel is not None:
            broadcaster = PresenceBroadcaster(
                channel, participant_id=self.participant_id, workflow_id=document.id
            )
            self._unsubscribe_broadcast = self.mutations.subscribe(broadcaster)

        logger.info(
            "Workflow opened",
            extra={"workflow_id": document.id, "nodes": len(nodes), "edges": len(edges)},
        )
        return document

    def close(self) -> None:
        if self._unsubscribe_broadcast is not None:
            self._unsubscribe_broadcast()
            self._unsubscribe_broadcast = None
        if self.orchestrator is not None:
            self.orchestrator.cancel()
        self.presence.leave(self.participant_id)
        self.workflow = None
        self.orchestrator = None

    def create_node(
        self,
        block_type: str,
        *,
        position: Position | None = None,
        input: dict[str, Any] | None = None,  # noqa: A002 (matches the node field)
    ) -> Node:
        definition = self.catalog.get(block_type)
        node = self.mutations.add_node(
            NodeSpec(type=definition.type, input=input or {}, position=position or Position())
        )
        self.mutations.select_node(node.id)
        return node

    def validate(self) -> ValidationResult:
        return validate(self.graph)

    async def save(self) -> SaveOutcome:
        if self.orchestrator is None:
            raise RuntimeError("No workflow is open")
        return await self.orchestrator.save()
