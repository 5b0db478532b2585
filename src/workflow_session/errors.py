"""Error types raised by the workflow session engine.

Every error here is recoverable: the editing session keeps running and the
graph is left unchanged by the failed call.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class WorkflowSessionError(Exception):
    """Base class for recoverable engine errors."""


@dataclass(frozen=True, slots=True)
class InvalidReference(WorkflowSessionError):
    """A mutation referenced a node or edge id that is not in the graph."""

    kind: str
    missing: tuple[str, ...]

    def __str__(self) -> str:
        return f"Unknown {self.kind} id(s): {', '.join(self.missing)}"


@dataclass(frozen=True, slots=True)
class NotFound(WorkflowSessionError):
    """An update targeted a node that does not exist."""

    node_id: str

    def __str__(self) -> str:
        return f"Node not found: {self.node_id}"


class SessionRequired(WorkflowSessionError):
    """Raised when an operation is attempted without an authenticated session."""


@dataclass(frozen=True, slots=True)
class UnknownBlockType(WorkflowSessionError):
    """A node was requested for a block type outside the catalog."""

    block_type: str

    def __str__(self) -> str:
        return f"Unknown block type: {self.block_type!r}"


class TransportErrorKind(str, Enum):
    NETWORK_UNAVAILABLE = "network_unavailable"
    REJECTED = "rejected"
    UNKNOWN = "unknown"


class TransportError(WorkflowSessionError):
    """A persistence call failed.

    `kind` is the only thing callers should branch on; `status_code` and the
    message are kept for diagnostics.
    """

    def __init__(
        self,
        kind: TransportErrorKind,
        message: str = "",
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message or kind.value)
        self.kind = kind
        self.status_code = status_code
