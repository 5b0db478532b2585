"""Test configuration and fixtures."""

from __future__ import annotations

import itertools
from collections.abc import Callable, Iterable
from unittest.mock import Mock

import pytest

from workflow_session.auth import Organization, Session, UserIdentity
from workflow_session.graph.model import Edge, GraphModel, GraphPolicy, Node
from workflow_session.transport import HttpWorkflowTransport, WorkflowSummary


def sequential_ids(prefix: str = "id") -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter)}"


def build_graph(
    node_ids: Iterable[str],
    edges: Iterable[tuple[str, str]] = (),
    *,
    policy: GraphPolicy | None = None,
) -> GraphModel:
    """Graph with fixed ids: edges are named e1, e2, ... in the given order."""

    graph = GraphModel(policy=policy, id_factory=sequential_ids("x"))
    graph.restore(
        [Node(id=node_id, type="ManualTriggerBlock") for node_id in node_ids],
        [
            Edge(id=f"e{i}", source=source, target=target)
            for i, (source, target) in enumerate(edges, start=1)
        ],
    )
    return graph


@pytest.fixture
def user() -> UserIdentity:
    return UserIdentity(id="user-1", name="Ada", email="ada@example.com")


@pytest.fixture
def session(user: UserIdentity) -> Session:
    """Provide a signed-in session with one organization."""
    return Session(
        token="test-token",
        user=user,
        organizations=(Organization(id="org-1", name="Acme"),),
    )


@pytest.fixture
def graph() -> GraphModel:
    """Provide an empty graph with predictable ids (id1, id2, ...)."""
    return GraphModel(id_factory=sequential_ids())


@pytest.fixture
def transport() -> Mock:
    """Provide a mocked persistence transport."""
    mock = Mock(spec=HttpWorkflowTransport)
    mock.save.return_value = WorkflowSummary(id="wf-1", name="Demo")
    return mock


@pytest.fixture
def make_graph() -> Callable[..., GraphModel]:
    """Provide `build_graph` for tests that need fixed node and edge ids."""
    return build_graph


@pytest.fixture
def make_ids() -> Callable[[str], Callable[[], str]]:
    """Provide a factory of predictable id generators."""
    return sequential_ids
