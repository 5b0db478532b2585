"""Structural checks run before every save attempt.

Fast, deterministic and side-effect free. Issues are reported in a stable
order: dangling edges, then cycles, then orphan nodes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from workflow_session.graph.model import GraphModel, GraphPolicy

from .issues import Cycle, DanglingEdge, OrphanNode, ValidationIssue, ValidationResult

logger = logging.getLogger(__name__)

_UNVISITED = 0
_ON_STACK = 1
_DONE = 2


def find_dangling_edges(graph: GraphModel) -> list[DanglingEdge]:
    issues: list[DanglingEdge] = []
    for edge in graph.edges:
        missing = tuple(n for n in (edge.source, edge.target) if not graph.has_node(n))
        if missing:
            issues.append(DanglingEdge(edge_id=edge.id, missing=missing))
    return issues


def _adjacency(graph: GraphModel) -> dict[str, list[str]]:
    adjacency: dict[str, list[str]] = {node.id: [] for node in graph.nodes}
    for edge in graph.edges:
        if edge.source in adjacency and edge.target in adjacency:
            adjacency[edge.source].append(edge.target)
    return adjacency


def _canonical(cycle: tuple[str, ...]) -> tuple[str, ...]:
    pivot = cycle.index(min(cycle))
    return cycle[pivot:] + cycle[:pivot]


def find_cycles(graph: GraphModel) -> list[Cycle]:
    """Depth-first search with an on-stack marker.

    Every back edge yields the cycle made of the stacked nodes from the
    back edge's target to the current node. Iterative, so deep chains do not
    hit the recursion limit.
    """

    adjacency = _adjacency(graph)
    state = dict.fromkeys(adjacency, _UNVISITED)
    seen: set[tuple[str, ...]] = set()
    cycles: list[Cycle] = []

    for root in adjacency:
        if state[root] != _UNVISITED:
            continue

        path: list[str] = [root]
        stack: list[Iterator[str]] = [iter(adjacency[root])]
        state[root] = _ON_STACK

        while stack:
            successor = next(stack[-1], None)
            if successor is None:
                stack.pop()
                state[path.pop()] = _DONE
                continue

            if state[successor] == _UNVISITED:
                state[successor] = _ON_STACK
                path.append(successor)
                stack.append(iter(adjacency[successor]))
            elif state[successor] == _ON_STACK:
                cycle = tuple(path[path.index(successor) :])
                key = _canonical(cycle)
                if key not in seen:
                    seen.add(key)
                    cycles.append(Cycle(node_ids=cycle))

    return cycles


def find_orphan_nodes(graph: GraphModel) -> list[OrphanNode]:
    connected: set[str] = set()
    for edge in graph.edges:
        if graph.has_node(edge.source) and graph.has_node(edge.target):
            connected.add(edge.source)
            connected.add(edge.target)
    return [OrphanNode(node_id=node.id) for node in graph.nodes if node.id not in connected]


def validate(graph: GraphModel, policy: GraphPolicy | None = None) -> ValidationResult:
    """Decide whether `graph` may be persisted.

    Args:
        graph: Graph to check.
        policy: Overrides the graph's own policy when given.

    Returns:
        A result with no issues when the graph is a savable DAG.
    """

    policy = policy or graph.policy

    issues: list[ValidationIssue] = []
    issues.extend(find_dangling_edges(graph))
    issues.extend(find_cycles(graph))
    if policy.orphan_nodes_block_save:
        issues.extend(find_orphan_nodes(graph))

    result = ValidationResult(issues=tuple(issues))
    logger.debug(
        "Validated workflow graph",
        extra={
            "valid": result.is_valid,
            "issue_codes": [issue.code for issue in issues],
            "nodes": len(graph),
        },
    )
    return result
