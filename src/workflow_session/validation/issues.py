"""Validation issue and result types."""

from __future__ import annotations

from dataclasses import dataclass, field

INVALID_WORKFLOW_MESSAGE = (
    "Invalid workflow. Make sure to clear unconnected nodes and remove cycles."
)


@dataclass(frozen=True, slots=True)
class DanglingEdge:
    edge_id: str
    missing: tuple[str, ...]

    code = "dangling_edge"

    @property
    def message(self) -> str:
        return f"Connection {self.edge_id} points at missing block(s): {', '.join(self.missing)}"


@dataclass(frozen=True, slots=True)
class Cycle:
    node_ids: tuple[str, ...]

    code = "cycle"

    @property
    def message(self) -> str:
        path = " -> ".join((*self.node_ids, self.node_ids[0]))
        return f"Blocks form a cycle: {path}"


@dataclass(frozen=True, slots=True)
class OrphanNode:
    node_id: str

    code = "orphan_node"

    @property
    def message(self) -> str:
        return f"Block {self.node_id} is not connected to anything"


ValidationIssue = DanglingEdge | Cycle | OrphanNode


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Verdict of a validation run. Valid when there are no issues."""

    issues: tuple[ValidationIssue, ...] = field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    @property
    def message(self) -> str:
        return "" if self.is_valid else INVALID_WORKFLOW_MESSAGE

    def of_type(self, issue_type: type) -> list[ValidationIssue]:
        return [issue for issue in self.issues if isinstance(issue, issue_type)]

    def to_dict(self) -> dict[str, object]:
        return {
            "valid": self.is_valid,
            "issues": [{"code": issue.code, "message": issue.message} for issue in self.issues],
        }
