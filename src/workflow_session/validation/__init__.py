"""Pre-save structural validation."""

from workflow_session.validation.engine import (
    find_cycles,
    find_dangling_edges,
    find_orphan_nodes,
    validate,
)
from workflow_session.validation.issues import (
    INVALID_WORKFLOW_MESSAGE,
    Cycle,
    DanglingEdge,
    OrphanNode,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    "INVALID_WORKFLOW_MESSAGE",
    "Cycle",
    "DanglingEdge",
    "OrphanNode",
    "ValidationIssue",
    "ValidationResult",
    "find_cycles",
    "find_dangling_edges",
    "find_orphan_nodes",
    "validate",
]
