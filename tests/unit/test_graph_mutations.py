"""Unit tests for change notification around graph mutations."""

from __future__ import annotations

import pytest

from workflow_session.errors import InvalidReference, NotFound
from workflow_session.graph.model import GraphModel, NodeSpec
from workflow_session.graph.mutations import GraphChanged, GraphMutations, MutationKind


@pytest.fixture
def mutations(graph: GraphModel) -> GraphMutations:
    return GraphMutations(graph)


def test_every_accepted_mutation_is_published_in_order(mutations: GraphMutations) -> None:
    events: list[GraphChanged] = []
    mutations.subscribe(events.append)

    a = mutations.add_node(NodeSpec(type="t"))
    b = mutations.add_node(NodeSpec(type="t"))
    edge = mutations.add_edge(a.id, b.id)
    mutations.update_node(b.id, {"input": {"k": "v"}})
    mutations.remove_edge(edge.id)
    mutations.remove_node(a.id)

    assert [e.kind for e in events] == [
        MutationKind.NODE_ADDED,
        MutationKind.NODE_ADDED,
        MutationKind.EDGE_ADDED,
        MutationKind.NODE_UPDATED,
        MutationKind.EDGE_REMOVED,
        MutationKind.NODE_REMOVED,
    ]
    assert events[2].edge_ids == (edge.id,)
    assert events[2].node_ids == (a.id, b.id)
    assert [e.revision for e in events] == sorted(e.revision for e in events)


def test_node_removal_event_lists_cascaded_edges(mutations: GraphMutations) -> None:
    a = mutations.add_node(NodeSpec(type="t"))
    b = mutations.add_node(NodeSpec(type="t"))
    edge = mutations.add_edge(a.id, b.id)

    events: list[GraphChanged] = []
    mutations.subscribe(events.append)
    mutations.remove_node(b.id)

    assert events == [
        GraphChanged(
            kind=MutationKind.NODE_REMOVED,
            node_ids=(b.id,),
            edge_ids=(edge.id,),
            revision=mutations.graph.revision,
        )
    ]


def test_rejected_and_noop_mutations_publish_nothing(mutations: GraphMutations) -> None:
    a = mutations.add_node(NodeSpec(type="t"))
    b = mutations.add_node(NodeSpec(type="t"))
    mutations.add_edge(a.id, b.id)

    events: list[GraphChanged] = []
    mutations.subscribe(events.append)

    with pytest.raises(InvalidReference):
        mutations.add_edge("missing", a.id)
    with pytest.raises(NotFound):
        mutations.update_node("missing", {"input": {}})
    assert mutations.remove_node("missing") is False
    assert mutations.remove_edge("missing") is False
    mutations.add_edge(a.id, b.id)  # duplicate

    assert events == []


def test_unsubscribe_stops_delivery(mutations: GraphMutations) -> None:
    events: list[GraphChanged] = []
    unsubscribe = mutations.subscribe(events.append)

    mutations.add_node(NodeSpec(type="t"))
    unsubscribe()
    unsubscribe()
    mutations.add_node(NodeSpec(type="t"))

    assert len(events) == 1


def test_failing_subscriber_does_not_block_others(mutations: GraphMutations) -> None:
    def broken(_event: GraphChanged) -> None:
        raise RuntimeError("renderer crashed")

    events: list[GraphChanged] = []
    mutations.subscribe(broken)
    mutations.subscribe(events.append)

    node = mutations.add_node(NodeSpec(type="t"))

    assert mutations.graph.get_node(node.id) is node
    assert len(events) == 1


def test_selection_is_cleared_when_node_is_removed(mutations: GraphMutations) -> None:
    node = mutations.add_node(NodeSpec(type="t"))
    mutations.select_node(node.id)
    assert mutations.selected_node is node

    mutations.remove_node(node.id)
    assert mutations.selected_node is None


def test_selecting_unknown_node_clears_selection(mutations: GraphMutations) -> None:
    node = mutations.add_node(NodeSpec(type="t"))
    mutations.select_node(node.id)
    mutations.select_node("ghost")
    assert mutations.selected_node is None
