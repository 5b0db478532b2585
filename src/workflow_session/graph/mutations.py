"""Change-notifying wrapper around the graph model.

Every accepted mutation is published as a `GraphChanged` event, in the order
it was applied, to every subscriber (the canvas renderer, the presence
broadcaster, ...). Rejected mutations and no-op removals publish nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .model import Edge, GraphModel, Node, NodeSpec

logger = logging.getLogger(__name__)


class MutationKind(str, Enum):
    NODE_ADDED = "node_added"
    NODE_UPDATED = "node_updated"
    NODE_REMOVED = "node_removed"
    EDGE_ADDED = "edge_added"
    EDGE_REMOVED = "edge_removed"
    GRAPH_RESTORED = "graph_restored"


@dataclass(frozen=True, slots=True)
class GraphChanged:
    kind: MutationKind
    node_ids: tuple[str, ...] = ()
    edge_ids: tuple[str, ...] = ()
    revision: int = 0

    def to_json(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "node_ids": list(self.node_ids),
            "edge_ids": list(self.edge_ids),
            "revision": self.revision,
        }


Subscriber = Callable[[GraphChanged], None]


class GraphMutations:
    """Mutation API used by the editor UI."""

    def __init__(self, graph: GraphModel) -> None:
        self.graph = graph
        self._subscribers: list[Subscriber] = []
        self._selected: str | None = None

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""

        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def _emit(
        self,
        kind: MutationKind,
        *,
        node_ids: tuple[str, ...] = (),
        edge_ids: tuple[str, ...] = (),
    ) -> GraphChanged:
        event = GraphChanged(
            kind=kind, node_ids=node_ids, edge_ids=edge_ids, revision=self.graph.revision
        )
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Graph subscriber failed", extra={"kind": kind.value})
        return event

    @property
    def selected_node(self) -> Node | None:
        if self._selected is None:
            return None
        return self.graph.get_node(self._selected)

    def select_node(self, node_id: str | None) -> None:
        if node_id is not None and not self.graph.has_node(node_id):
            node_id = None
        self._selected = node_id

    def add_node(self, spec: NodeSpec) -> Node:
        node = self.graph.add_node(spec)
        logger.debug("Node added", extra={"node_id": node.id, "type": node.type})
        self._emit(MutationKind.NODE_ADDED, node_ids=(node.id,))
        return node

    def update_node(self, node_id: str, patch: Mapping[str, Any]) -> Node:
        node = self.graph.update_node(node_id, patch)
        self._emit(MutationKind.NODE_UPDATED, node_ids=(node.id,))
        return node

    def remove_node(self, node_id: str) -> bool:
        removed = self.graph.remove_node(node_id)
        if removed is None:
            return False

        node, edges = removed
        if self._selected == node.id:
            self._selected = None
        logger.debug(
            "Node removed",
            extra={"node_id": node.id, "cascaded_edges": [e.id for e in edges]},
        )
        self._emit(
            MutationKind.NODE_REMOVED,
            node_ids=(node.id,),
            edge_ids=tuple(e.id for e in edges),
        )
        return True

    def add_edge(
        self,
        source: str,
        target: str,
        *,
        source_handle: str | None = None,
        target_handle: str | None = None,
    ) -> Edge:
        edge, created = self.graph.add_edge(
            source, target, source_handle=source_handle, target_handle=target_handle
        )
        if created:
            self._emit(
                MutationKind.EDGE_ADDED,
                node_ids=(edge.source, edge.target),
                edge_ids=(edge.id,),
            )
        return edge

    def remove_edge(self, edge_id: str) -> bool:
        edge = self.graph.remove_edge(edge_id)
        if edge is None:
            return False
        self._emit(
            MutationKind.EDGE_REMOVED,
            node_ids=(edge.source, edge.target),
            edge_ids=(edge.id,),
        )
        return True

    def restore(self, nodes: list[Node], edges: list[Edge]) -> None:
        """Replace the graph with a loaded workflow and notify subscribers once."""

        self.graph.restore(nodes, edges)
        self._selected = None
        self._emit(
            MutationKind.GRAPH_RESTORED,
            node_ids=tuple(n.id for n in nodes),
            edge_ids=tuple(e.id for e in edges),
        )
