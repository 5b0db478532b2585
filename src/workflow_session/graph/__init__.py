"""Workflow graph model and its change-notifying mutation API."""

from workflow_session.graph.model import (
    Edge,
    GraphModel,
    GraphPolicy,
    Node,
    NodeSpec,
    Position,
)
from workflow_session.graph.mutations import GraphChanged, GraphMutations, MutationKind

__all__ = [
    "Edge",
    "GraphChanged",
    "GraphModel",
    "GraphMutations",
    "GraphPolicy",
    "MutationKind",
    "Node",
    "NodeSpec",
    "Position",
]
