"""Unit tests for local workflow drafts."""

from __future__ import annotations

from pathlib import Path

import pytest

from workflow_session.graph.model import GraphModel, NodeSpec
from workflow_session.storage import DraftStore, read_graph_file, write_graph_file


def test_write_then_read_preserves_graph(tmp_path: Path, graph: GraphModel) -> None:
    a = graph.add_node(NodeSpec(type="ManualTriggerBlock"))
    b = graph.add_node(NodeSpec(type="SlackWebhook", input={"channel": "C1"}))
    graph.add_edge(a.id, b.id)
    path = tmp_path / "nested" / "graph.json"

    write_graph_file(path, graph)

    assert read_graph_file(path).to_json() == graph.to_json()


def test_read_rejects_non_object(tmp_path: Path) -> None:
    path = tmp_path / "graph.json"
    path.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        read_graph_file(path)


def test_draft_store_lists_saved_ids(tmp_path: Path, graph: GraphModel) -> None:
    store = DraftStore(tmp_path / "drafts")
    assert store.list_ids() == []

    store.save("wf-b", graph)
    store.save("wf-a", graph)

    assert store.list_ids() == ["wf-a", "wf-b"]
    assert store.exists("wf-a")
    assert len(store.load("wf-a")) == 0


def test_missing_draft_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        DraftStore(tmp_path).load("wf-1")


@pytest.mark.parametrize("workflow_id", ["../escape", "a/b", ""])
def test_unsafe_ids_are_refused(tmp_path: Path, workflow_id: str) -> None:
    with pytest.raises(ValueError):
        DraftStore(tmp_path).path_for(workflow_id)
