"""In-memory workflow graph.

The model stores blocks (nodes) and their connections (edges) in insertion
order. Structural rules such as acyclicity are NOT enforced here: the editor
is allowed to pass through invalid intermediate states, and
`workflow_session.validation` decides whether a graph may be saved.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from workflow_session.errors import InvalidReference, NotFound

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]

_PATCHABLE_FIELDS = frozenset({"input", "position"})


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True, slots=True)
class Position:
    x: float = 0.0
    y: float = 0.0

    def to_json(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @staticmethod
    def from_json(obj: object) -> Position:
        if isinstance(obj, Position):
            return obj
        if not isinstance(obj, Mapping):
            return Position()

        def _float(v: object) -> float:
            if isinstance(v, bool):
                return 0.0
            if isinstance(v, (int, float)):
                return float(v)
            if isinstance(v, str):
                try:
                    return float(v)
                except ValueError:
                    return 0.0
            return 0.0

        return Position(x=_float(obj.get("x")), y=_float(obj.get("y")))


@dataclass(frozen=True, slots=True)
class NodeSpec:
    """What the user picked when placing a block on the canvas."""

    type: str
    input: dict[str, Any] = field(default_factory=dict)
    position: Position = field(default_factory=Position)


@dataclass(slots=True)
class Node:
    id: str
    type: str
    input: dict[str, Any] = field(default_factory=dict)
    position: Position = field(default_factory=Position)

    def to_json(self) -> dict[str, object]:
        return {
            "id": self.id,
            "type": self.type,
            "input": dict(self.input),
            "position": self.position.to_json(),
        }

    @staticmethod
    def from_json(obj: Mapping[str, Any]) -> Node:
        node_id = obj.get("id")
        node_type = obj.get("type")
        if not isinstance(node_id, str) or not node_id:
            raise ValueError("Node is missing an id")
        if not isinstance(node_type, str) or not node_type:
            raise ValueError(f"Node {node_id} is missing a type")
        raw_input = obj.get("input")
        return Node(
            id=node_id,
            type=node_type,
            input=dict(raw_input) if isinstance(raw_input, Mapping) else {},
            position=Position.from_json(obj.get("position")),
        )


@dataclass(frozen=True, slots=True)
class Edge:
    id: str
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None

    @property
    def key(self) -> tuple[str, str, str | None, str | None]:
        """Identity of the connection ignoring its id, used for duplicate detection."""

        return (self.source, self.target, self.source_handle, self.target_handle)

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id

    def to_json(self) -> dict[str, object]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "source_handle": self.source_handle,
            "target_handle": self.target_handle,
        }

    @staticmethod
    def from_json(obj: Mapping[str, Any]) -> Edge:
        edge_id = obj.get("id")
        source = obj.get("source")
        target = obj.get("target")
        if not isinstance(edge_id, str) or not edge_id:
            raise ValueError("Edge is missing an id")
        if not isinstance(source, str) or not isinstance(target, str):
            raise ValueError(f"Edge {edge_id} is missing source/target")

        def _handle(v: object) -> str | None:
            return v if isinstance(v, str) and v else None

        return Edge(
            id=edge_id,
            source=source,
            target=target,
            source_handle=_handle(obj.get("source_handle")),
            target_handle=_handle(obj.get("target_handle")),
        )


@dataclass(frozen=True, slots=True)
class GraphPolicy:
    """Configurable structural rules.

    orphan_nodes_block_save:
        Nodes without any connection are reported by validation.
    allow_duplicate_edges:
        Permit more than one edge with the same source, target and handles.
    """

    orphan_nodes_block_save: bool = True
    allow_duplicate_edges: bool = False


class GraphModel:
    """Nodes and edges of the currently open workflow."""

    def __init__(
        self,
        *,
        policy: GraphPolicy | None = None,
        id_factory: IdFactory = new_id,
    ) -> None:
        self.policy = policy or GraphPolicy()
        self._id_factory = id_factory
        self._nodes: dict[str, Node] = {}
        self._edges: dict[str, Edge] = {}
        self._revision = 0

    @property
    def revision(self) -> int:
        """Monotonic counter bumped by every accepted change."""

        return self._revision

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    @property
    def edges(self) -> list[Edge]:
        return list(self._edges.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> Node | None:
        return self._nodes.get(node_id)

    def get_edge(self, edge_id: str) -> Edge | None:
        return self._edges.get(edge_id)

    def incident_edges(self, node_id: str) -> list[Edge]:
        return [edge for edge in self._edges.values() if edge.touches(node_id)]

    def add_node(self, spec: NodeSpec) -> Node:
        node_id = self._id_factory()
        assert node_id not in self._nodes, f"id factory reused node id {node_id}"
        node = Node(
            id=node_id,
            type=spec.type,
            input=dict(spec.input),
            position=spec.position,
        )
        self._nodes[node_id] = node
        self._bump()
        return node

    def remove_node(self, node_id: str) -> tuple[Node, list[Edge]] | None:
        """Remove a node and every edge attached to it.

        Returns the removed node and edges, or None when the node was already absent.
        """

        node = self._nodes.pop(node_id, None)
        if node is None:
            return None

        removed = [edge for edge in self._edges.values() if edge.touches(node_id)]
        for edge in removed:
            del self._edges[edge.id]

        assert not any(edge.touches(node_id) for edge in self._edges.values())
        self._bump()
        return node, removed

    def update_node(self, node_id: str, patch: Mapping[str, Any]) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise NotFound(node_id)

        unknown = set(patch) - _PATCHABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot patch node field(s): {', '.join(sorted(unknown))}")

        if "input" in patch:
            values = patch["input"]
            if not isinstance(values, Mapping):
                raise ValueError("Node input patch must be a mapping")
            node.input.update(values)
        if "position" in patch:
            node.position = Position.from_json(patch["position"])

        self._bump()
        return node

    def find_duplicate(self, key: tuple[str, str, str | None, str | None]) -> Edge | None:
        """Existing edge with the given (source, target, source_handle, target_handle)."""

        for edge in self._edges.values():
            if edge.key == key:
                return edge
        return None

    def add_edge(
        self,
        source: str,
        target: str,
        *,
        source_handle: str | None = None,
        target_handle: str | None = None,
    ) -> tuple[Edge, bool]:
        """Connect two existing nodes.

        Returns the edge and whether it was newly created. With duplicate edges
        disallowed, an identical existing connection is returned unchanged.

        Raises:
            InvalidReference: If either endpoint is not in the graph.
        """

        missing = tuple(n for n in (source, target) if n not in self._nodes)
        if missing:
            raise InvalidReference(kind="node", missing=missing)

        if not self.policy.allow_duplicate_edges:
            existing = self.find_duplicate((source, target, source_handle, target_handle))
            if existing is not None:
                logger.debug(
                    "Ignoring duplicate edge",
                    extra={"edge_id": existing.id, "source": source, "target": target},
                )
                return existing, False

        edge = Edge(
            id=self._id_factory(),
            source=source,
            target=target,
            source_handle=source_handle,
            target_handle=target_handle,
        )
        assert edge.id not in self._edges, f"id factory reused edge id {edge.id}"
        self._edges[edge.id] = edge
        self._bump()
        return edge, True

    def remove_edge(self, edge_id: str) -> Edge | None:
        edge = self._edges.pop(edge_id, None)
        if edge is not None:
            self._bump()
        return edge

    def restore(self, nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
        """Replace the whole graph, e.g. when a persisted workflow is opened.

        Edges whose endpoints are unknown are kept so validation can report them.
        """

        self._nodes = {}
        for node in nodes:
            self._nodes[node.id] = node
        self._edges = {}
        for edge in edges:
            self._edges[edge.id] = edge

        dangling = [e.id for e in self._edges.values() if not self._resolves(e)]
        if dangling:
            logger.warning("Restored graph has dangling edges", extra={"edge_ids": dangling})
        self._bump()

    def clear(self) -> None:
        self.restore([], [])

    def _resolves(self, edge: Edge) -> bool:
        return edge.source in self._nodes and edge.target in self._nodes

    def _bump(self) -> None:
        self._revision += 1

    def to_json(self) -> dict[str, object]:
        return {
            "nodes": [node.to_json() for node in self._nodes.values()],
            "edges": [edge.to_json() for edge in self._edges.values()],
        }

    @classmethod
    def from_json(
        cls,
        obj: Mapping[str, Any],
        *,
        policy: GraphPolicy | None = None,
        id_factory: IdFactory = new_id,
    ) -> GraphModel:
        graph = cls(policy=policy, id_factory=id_factory)
        graph.load_json(obj)
        return graph

    def load_json(self, obj: Mapping[str, Any]) -> None:
        raw_nodes = obj.get("nodes") or []
        raw_edges = obj.get("edges") or []
        if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
            raise ValueError("Graph JSON must contain 'nodes' and 'edges' lists")
        for label, items in (("node", raw_nodes), ("edge", raw_edges)):
            for index, item in enumerate(items):
                if not isinstance(item, Mapping):
                    raise ValueError(f"Graph JSON {label} #{index} is not an object")
        self.restore(
            [Node.from_json(item) for item in raw_nodes],
            [Edge.from_json(item) for item in raw_edges],
        )
