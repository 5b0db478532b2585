"""Unit tests for the in-memory graph model."""

from __future__ import annotations

import random

import pytest

from workflow_session.errors import InvalidReference, NotFound
from workflow_session.graph.model import (
    GraphModel,
    GraphPolicy,
    NodeSpec,
    Position,
)


def test_add_node_assigns_fresh_ids_in_insertion_order(graph: GraphModel) -> None:
    a = graph.add_node(NodeSpec(type="ManualTriggerBlock"))
    b = graph.add_node(NodeSpec(type="UrlStatusCheck", input={"url": "https://x"}))

    assert (a.id, b.id) == ("id1", "id2")
    assert [n.id for n in graph.nodes] == ["id1", "id2"]
    assert b.input == {"url": "https://x"}
    assert b.position == Position()


def test_add_node_copies_spec_input(graph: GraphModel) -> None:
    values = {"url": "https://x"}
    node = graph.add_node(NodeSpec(type="UrlStatusCheck", input=values))
    values["url"] = "changed"
    assert node.input == {"url": "https://x"}


def test_remove_node_cascades_incident_edges(graph: GraphModel) -> None:
    a = graph.add_node(NodeSpec(type="t"))
    b = graph.add_node(NodeSpec(type="t"))
    c = graph.add_node(NodeSpec(type="t"))
    graph.add_edge(a.id, b.id)
    graph.add_edge(b.id, c.id)
    keep, _ = graph.add_edge(a.id, c.id)

    removed = graph.remove_node(b.id)

    assert removed is not None
    assert removed[0].id == b.id
    assert len(removed[1]) == 2
    assert graph.edges == [keep]
    assert all(not e.touches(b.id) for e in graph.edges)


def test_remove_node_is_idempotent(graph: GraphModel) -> None:
    a = graph.add_node(NodeSpec(type="t"))
    b = graph.add_node(NodeSpec(type="t"))
    graph.add_edge(a.id, b.id)

    graph.remove_node(a.id)
    once = graph.to_json()
    revision = graph.revision

    assert graph.remove_node(a.id) is None
    assert graph.to_json() == once
    assert graph.revision == revision
    assert graph.remove_node("never-existed") is None


def test_update_node_merges_input_and_replaces_position(graph: GraphModel) -> None:
    node = graph.add_node(NodeSpec(type="t", input={"a": 1, "b": 2}))

    graph.update_node(node.id, {"input": {"b": 3, "c": 4}, "position": {"x": 10, "y": -5}})

    assert node.input == {"a": 1, "b": 3, "c": 4}
    assert node.position == Position(x=10.0, y=-5.0)


def test_update_node_missing_raises_not_found(graph: GraphModel) -> None:
    with pytest.raises(NotFound) as exc:
        graph.update_node("ghost", {"input": {}})
    assert exc.value.node_id == "ghost"


def test_update_node_rejects_unknown_fields(graph: GraphModel) -> None:
    node = graph.add_node(NodeSpec(type="t"))
    with pytest.raises(ValueError):
        graph.update_node(node.id, {"type": "other"})
    assert node.type == "t"


def test_add_edge_with_missing_endpoint_leaves_edges_unchanged(graph: GraphModel) -> None:
    n1 = graph.add_node(NodeSpec(type="t"))
    before = graph.edges

    with pytest.raises(InvalidReference) as exc:
        graph.add_edge("missing", n1.id)

    assert exc.value.missing == ("missing",)
    assert graph.edges == before


def test_add_edge_allows_cycles(graph: GraphModel) -> None:
    a = graph.add_node(NodeSpec(type="t"))
    b = graph.add_node(NodeSpec(type="t"))
    graph.add_edge(a.id, b.id)
    graph.add_edge(b.id, a.id)
    assert len(graph.edges) == 2


def test_duplicate_edges_are_deduplicated_by_default(graph: GraphModel) -> None:
    a = graph.add_node(NodeSpec(type="t"))
    b = graph.add_node(NodeSpec(type="t"))

    first, created = graph.add_edge(a.id, b.id)
    again, created_again = graph.add_edge(a.id, b.id)
    other_port, created_port = graph.add_edge(a.id, b.id, source_handle="false")

    assert created and not created_again and created_port
    assert again == first
    assert other_port.id != first.id
    assert len(graph.edges) == 2


def test_ignored_duplicate_does_not_consume_an_id(graph: GraphModel) -> None:
    a = graph.add_node(NodeSpec(type="t"))
    b = graph.add_node(NodeSpec(type="t"))
    graph.add_edge(a.id, b.id)
    graph.add_edge(a.id, b.id)

    c = graph.add_node(NodeSpec(type="t"))

    assert [a.id, b.id, c.id] == ["id1", "id2", "id4"]


def test_duplicate_edges_allowed_by_policy(make_ids) -> None:
    graph = GraphModel(policy=GraphPolicy(allow_duplicate_edges=True), id_factory=make_ids("n"))
    a = graph.add_node(NodeSpec(type="t"))
    b = graph.add_node(NodeSpec(type="t"))
    graph.add_edge(a.id, b.id)
    graph.add_edge(a.id, b.id)
    assert len(graph.edges) == 2


def test_remove_edge_is_idempotent(graph: GraphModel) -> None:
    a = graph.add_node(NodeSpec(type="t"))
    b = graph.add_node(NodeSpec(type="t"))
    edge, _ = graph.add_edge(a.id, b.id)

    assert graph.remove_edge(edge.id) == edge
    assert graph.remove_edge(edge.id) is None
    assert graph.edges == []


@pytest.mark.parametrize("seed", range(20))
def test_random_mutations_keep_referential_integrity(seed: int, make_ids) -> None:
    rng = random.Random(seed)
    graph = GraphModel(id_factory=make_ids("r"))

    for _ in range(200):
        op = rng.choice(["add_node", "add_node", "add_edge", "add_edge", "remove_node"])
        ids = [n.id for n in graph.nodes]
        if op == "add_node":
            graph.add_node(NodeSpec(type="t"))
        elif op == "add_edge":
            candidates = ids + ["missing"]
            try:
                graph.add_edge(rng.choice(candidates), rng.choice(candidates))
            except InvalidReference:
                pass
        elif ids:
            graph.remove_node(rng.choice(ids))

        node_ids = {n.id for n in graph.nodes}
        for edge in graph.edges:
            assert edge.source in node_ids
            assert edge.target in node_ids


def test_json_roundtrip_keeps_dangling_edges(make_graph) -> None:
    graph = make_graph(["n1"], [("n1", "gone")])

    restored = GraphModel.from_json(graph.to_json())

    assert [n.id for n in restored.nodes] == ["n1"]
    assert [(e.source, e.target) for e in restored.edges] == [("n1", "gone")]


def test_from_json_rejects_malformed_nodes() -> None:
    with pytest.raises(ValueError):
        GraphModel.from_json({"nodes": [{"type": "t"}], "edges": []})


@pytest.mark.parametrize(
    "payload",
    [
        {"nodes": [{"id": "n1", "type": "t"}, "n2"], "edges": []},
        {"nodes": [{"id": "n1", "type": "t"}], "edges": [["n1", "n1"]]},
    ],
)
def test_from_json_rejects_entries_that_are_not_objects(payload: dict) -> None:
    with pytest.raises(ValueError, match="is not an object"):
        GraphModel.from_json(payload)
